"""
API routes for JSON endpoints.
Booking operations are posted as {"operation": name, "data": {...}}.
"""

from flask import Blueprint, current_app, request
from flask_login import current_user, login_required

from blueprints.api.services import (
    OFFICE_BOOKING_OPERATIONS,
    RESERVATION_OPERATIONS,
    dispatch_operation,
)
from models.office import get_all_offices
from models.room import get_room_by_id
from models.room_access import get_room_members, is_room_admin
from models.user import get_all_users
from utils.api_response import api_success
from utils.decorators import admin_required
from utils.errors import Forbidden, InvalidRequest, NotFound
from utils.messages import get_message

api_bp = Blueprint('api', __name__)


def _read_operation() -> tuple:
    """Extract (operation, data) from the JSON body."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict) or not body.get('operation'):
        raise InvalidRequest(get_message('invalid_payload'))
    if not isinstance(body['operation'], str):
        raise InvalidRequest(get_message('invalid_payload'), field='operation')
    return body['operation'], body.get('data')


def _run(registry: dict):
    operation, data = _read_operation()
    principal = current_user._get_current_object()
    result, message = dispatch_operation(registry, principal, operation, data)
    return api_success(data=result, message=message)


@api_bp.route('/health')
def health_check():
    """
    Health check endpoint (no authentication required).

    Returns:
        JSON with status and version
    """
    return api_success(data={
        'status': 'ok',
        'version': current_app.config.get('APP_VERSION', '1.0.0'),
        'app': current_app.config.get('APP_NAME', 'DeskFlow')
    })


@api_bp.route('/me')
@login_required
def api_me():
    """Current principal."""
    return api_success(data=current_user.to_dict())


@api_bp.route('/reservations', methods=['POST'])
@login_required
def api_reservations():
    """
    Desk reservation operations.

    Body:
        operation: create, request, approve, reject, cancel,
            create_fixed_assignment, create_daily_assignments,
            delete_fixed_assignment, list_my_reservations,
            list_room_reservations, list_pending_approvals,
            list_fixed_assignments, check_availability,
            room_availability, reservation_history
        data: Operation parameters

    Returns:
        JSON envelope with the mutated or queried records
    """
    return _run(RESERVATION_OPERATIONS)


@api_bp.route('/offices/bookings', methods=['POST'])
@login_required
def api_office_bookings():
    """
    Office time-slot operations.

    Body:
        operation: list_by_office, list_by_user, create,
            create_admin_block, delete
        data: Operation parameters
    """
    return _run(OFFICE_BOOKING_OPERATIONS)


@api_bp.route('/users')
@login_required
@admin_required
def api_users():
    """All active users (global admins only)."""
    users = get_all_users(active_only=request.args.get('active', 'true') != 'false')
    return api_success(data=users)


@api_bp.route('/rooms/<int:room_id>/members')
@login_required
def api_room_members(room_id):
    """Users with access to a room (room admins only)."""
    if not get_room_by_id(room_id):
        raise NotFound('Room not found', room_id=room_id)
    if not is_room_admin(current_user, room_id):
        raise Forbidden('Only room admins can list members', room_id=room_id)
    return api_success(data=get_room_members(room_id))


@api_bp.route('/offices')
@login_required
def api_offices():
    """Offices the caller can book: shared ones, or all for global admins."""
    return api_success(data=get_all_offices(shared_only=not current_user.is_admin))
