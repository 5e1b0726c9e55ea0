"""
Business logic for the reservation operation endpoint.

Each handler receives the resolved principal and a validated request
dataclass and returns (data, message). RESERVATION_OPERATIONS maps the
operation names accepted on POST /api/reservations to their request type
and handler.
"""

import logging

from models.reservation import (
    approve_reservation,
    cancel_reservation,
    create_daily_assignment_reservations,
    create_fixed_assignment,
    create_reservation,
    delete_fixed_assignment,
    get_cell_availability,
    get_reservation_by_id,
    get_room_availability_map,
    get_status_history,
    list_fixed_assignments,
    list_my_reservations,
    list_pending_approvals,
    list_room_reservations,
    reject_reservation,
    request_reservation,
)
from models.room import get_cell_by_id, get_room_by_id
from models.room_access import has_room_access
from utils.errors import Forbidden, InvalidRequest, NotFound
from utils.messages import get_message
from blueprints.api.requests import (
    BookDeskRequest,
    CheckAvailabilityRequest,
    CreateFixedAssignmentRequest,
    DailyAssignmentsRequest,
    DateWindowRequest,
    DeleteFixedAssignmentRequest,
    EmptyRequest,
    FixedAssignmentsQuery,
    ReservationActionRequest,
    ReservationHistoryRequest,
    RoomAvailabilityRequest,
    RoomReservationsRequest,
)

logger = logging.getLogger(__name__)


# =============================================================================
# DISPATCH
# =============================================================================

def dispatch_operation(registry: dict, principal, operation, data) -> tuple:
    """
    Resolve an operation name, build its request and run the handler.

    Args:
        registry: {operation: (request_type, handler)}
        principal: Authenticated caller
        operation: Operation name from the request body
        data: Raw "data" object from the request body

    Returns:
        tuple: (data, message) from the handler

    Raises:
        InvalidRequest: Unknown operation or malformed data
        BookingError: Whatever the handler raises
    """
    if operation not in registry:
        raise InvalidRequest(get_message('unknown_operation', operation=operation),
                             operation=operation)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidRequest('data must be a JSON object', operation=operation)

    request_type, handler = registry[operation]
    request = request_type.from_payload(data)

    logger.info(f'User {principal.id} ({principal.role}) performing operation: {operation}')
    return handler(principal, request)


# =============================================================================
# BOOKING
# =============================================================================

def handle_create(principal, req: BookDeskRequest) -> tuple:
    reservation = create_reservation(
        principal, req.cell_id, req.date_start, req.date_end,
        req.time_segment, req.user_id, req.notes
    )
    return reservation, get_message('reservation_created')


def handle_request(principal, req: BookDeskRequest) -> tuple:
    reservation = request_reservation(
        principal, req.cell_id, req.date_start, req.date_end,
        req.time_segment, req.user_id, req.notes
    )
    return reservation, get_message('reservation_requested')


def handle_create_fixed_assignment(principal, req: CreateFixedAssignmentRequest) -> tuple:
    assignment = create_fixed_assignment(
        principal, req.cell_id, req.assigned_to, req.date_start, req.date_end
    )
    message = get_message('assignment_created',
                          date_start=assignment['date_start'], date_end=assignment['date_end'])
    return assignment, message


def handle_create_daily_assignments(principal, req: DailyAssignmentsRequest) -> tuple:
    reservation_ids = create_daily_assignment_reservations(
        principal, req.cell_id, req.user_id, req.date_start, req.date_end
    )
    data = {'reservation_ids': reservation_ids, 'count': len(reservation_ids)}
    return data, get_message('daily_assignments_created', days=len(reservation_ids))


# =============================================================================
# LIFECYCLE
# =============================================================================

def handle_approve(principal, req: ReservationActionRequest) -> tuple:
    approve_reservation(principal, req.reservation_id, req.notes)
    return get_reservation_by_id(req.reservation_id), get_message('reservation_approved')


def handle_reject(principal, req: ReservationActionRequest) -> tuple:
    reject_reservation(principal, req.reservation_id, req.notes)
    return get_reservation_by_id(req.reservation_id), get_message('reservation_rejected')


def handle_cancel(principal, req: ReservationActionRequest) -> tuple:
    cancel_reservation(principal, req.reservation_id, req.notes)
    return get_reservation_by_id(req.reservation_id), get_message('reservation_cancelled')


def handle_delete_fixed_assignment(principal, req: DeleteFixedAssignmentRequest) -> tuple:
    result = delete_fixed_assignment(principal, req.fixed_assignment_id, req.release_date)
    if result['deleted']:
        return result, get_message('assignment_deleted')
    return result, get_message('assignment_day_released', date=req.release_date.isoformat())


# =============================================================================
# QUERIES
# =============================================================================

def handle_list_my_reservations(principal, req: DateWindowRequest) -> tuple:
    return list_my_reservations(principal, req.date_from, req.date_to), None


def handle_list_room_reservations(principal, req: RoomReservationsRequest) -> tuple:
    if not get_room_by_id(req.room_id):
        raise NotFound('Room not found', room_id=req.room_id)
    status = req.status.value if req.status else None
    return list_room_reservations(principal, req.room_id, req.date_from, req.date_to, status), None


def handle_list_pending_approvals(principal, req: EmptyRequest) -> tuple:
    return list_pending_approvals(principal), None


def handle_list_fixed_assignments(principal, req: FixedAssignmentsQuery) -> tuple:
    return list_fixed_assignments(principal, req.room_id, req.date_from, req.date_to), None


def handle_check_availability(principal, req: CheckAvailabilityRequest) -> tuple:
    cell = get_cell_by_id(req.cell_id)
    if not cell:
        raise NotFound('Desk not found', cell_id=req.cell_id)
    if not has_room_access(principal, cell['room_id']):
        raise Forbidden('You do not have access to this room', room_id=cell['room_id'])
    if req.date_end < req.date_start:
        raise InvalidRequest('date_end must not be before date_start')

    availability = get_cell_availability(req.cell_id, req.date_start, req.date_end,
                                         req.time_segment)
    return availability, None


def handle_room_availability(principal, req: RoomAvailabilityRequest) -> tuple:
    if not get_room_by_id(req.room_id):
        raise NotFound('Room not found', room_id=req.room_id)
    if not has_room_access(principal, req.room_id):
        raise Forbidden('You do not have access to this room', room_id=req.room_id)
    return get_room_availability_map(req.room_id, req.date_from, req.date_to), None


def handle_reservation_history(principal, req: ReservationHistoryRequest) -> tuple:
    reservation = get_reservation_by_id(req.reservation_id)
    if not reservation:
        raise NotFound('Reservation not found', reservation_id=req.reservation_id)
    if reservation['user_id'] != principal.id and not has_room_access(principal, reservation['room_id']):
        raise Forbidden('You do not have access to this reservation',
                        reservation_id=req.reservation_id)
    return get_status_history(req.reservation_id), None


# =============================================================================
# REGISTRY
# =============================================================================

RESERVATION_OPERATIONS = {
    'create': (BookDeskRequest, handle_create),
    'request': (BookDeskRequest, handle_request),
    'create_fixed_assignment': (CreateFixedAssignmentRequest, handle_create_fixed_assignment),
    'create_daily_assignments': (DailyAssignmentsRequest, handle_create_daily_assignments),
    'approve': (ReservationActionRequest, handle_approve),
    'reject': (ReservationActionRequest, handle_reject),
    'cancel': (ReservationActionRequest, handle_cancel),
    'delete_fixed_assignment': (DeleteFixedAssignmentRequest, handle_delete_fixed_assignment),
    'list_my_reservations': (DateWindowRequest, handle_list_my_reservations),
    'list_room_reservations': (RoomReservationsRequest, handle_list_room_reservations),
    'list_pending_approvals': (EmptyRequest, handle_list_pending_approvals),
    'list_fixed_assignments': (FixedAssignmentsQuery, handle_list_fixed_assignments),
    'check_availability': (CheckAvailabilityRequest, handle_check_availability),
    'room_availability': (RoomAvailabilityRequest, handle_room_availability),
    'reservation_history': (ReservationHistoryRequest, handle_reservation_history),
}
