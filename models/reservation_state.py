"""
Reservation state management functions.
Handles status transitions, their authorization guards, and history.
"""

import logging
import sqlite3
from enum import Enum

from database import get_db
from .room_access import is_room_admin
from utils.errors import (
    AlreadyCancelled, Forbidden, InvalidTransition, NotFound, map_integrity_error
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

class ReservationStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    CANCELLED = 'cancelled'


VALID_TRANSITIONS = {
    ReservationStatus.PENDING: frozenset({
        ReservationStatus.APPROVED,
        ReservationStatus.REJECTED,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.APPROVED: frozenset({ReservationStatus.CANCELLED}),
    ReservationStatus.REJECTED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}

# Statuses that occupy a desk for conflict and exclusivity purposes
ACTIVE_STATUSES = (ReservationStatus.PENDING.value, ReservationStatus.APPROVED.value)


# =============================================================================
# TRANSITION VALIDATION
# =============================================================================

def validate_status_transition(current, target) -> None:
    """
    Validate a reservation status change.

    Args:
        current: Current status (ReservationStatus or its value)
        target: Requested status

    Raises:
        AlreadyCancelled: If cancelling an already cancelled reservation
        InvalidTransition: If the transition is not in VALID_TRANSITIONS
    """
    current = ReservationStatus(current)
    target = ReservationStatus(target)

    if target in VALID_TRANSITIONS[current]:
        return

    if current is ReservationStatus.CANCELLED and target is ReservationStatus.CANCELLED:
        raise AlreadyCancelled('Reservation is already cancelled')

    allowed = ', '.join(sorted(s.value for s in VALID_TRANSITIONS[current])) or 'none'
    raise InvalidTransition(
        f'Cannot change a {current.value} reservation to {target.value}. '
        f'Allowed transitions: {allowed}',
        current_status=current.value,
        requested_status=target.value
    )


def get_allowed_transitions(current) -> list:
    """Statuses reachable from the current one, sorted by value."""
    return sorted(s.value for s in VALID_TRANSITIONS[ReservationStatus(current)])


# =============================================================================
# HISTORY
# =============================================================================

def record_status_change(cursor, reservation_id: int, status, changed_by: int, notes: str = '') -> None:
    """Append a status history row on the caller's transaction cursor."""
    cursor.execute('''
        INSERT INTO reservation_status_history
        (reservation_id, status, changed_by, notes, created_at)
        VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
    ''', (reservation_id, ReservationStatus(status).value, changed_by, notes))


def get_status_history(reservation_id: int) -> list:
    """
    Get status change history for a reservation.

    Args:
        reservation_id: Reservation ID

    Returns:
        list: History entries, oldest first
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT h.*, u.username as changed_by_username
        FROM reservation_status_history h
        LEFT JOIN users u ON h.changed_by = u.id
        WHERE h.reservation_id = ?
        ORDER BY h.created_at, h.id
    ''', (reservation_id,))
    return [dict(r) for r in cursor.fetchall()]


# =============================================================================
# STATE TRANSITIONS
# =============================================================================

def _load_reservation(cursor, reservation_id: int) -> dict:
    cursor.execute('SELECT * FROM reservations WHERE id = ?', (reservation_id,))
    row = cursor.fetchone()
    if not row:
        raise NotFound('Reservation not found', reservation_id=reservation_id)
    return dict(row)


def _change_status(actor, reservation_id: int, target: ReservationStatus,
                   guard, notes: str = '') -> dict:
    """
    Run guard(reservation) and write the transition in one transaction.

    The guard raises to abort; nothing is written in that case.
    """
    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')
        reservation = _load_reservation(cursor, reservation_id)

        guard(reservation)
        validate_status_transition(reservation['status'], target)

        if target is ReservationStatus.APPROVED:
            # Another approved booking may have landed since the request
            from .reservation_availability import check_cell_conflict
            check_cell_conflict(
                reservation['cell_id'],
                reservation['date_start'],
                reservation['date_end'],
                reservation['time_segment'],
                reservation['user_id'],
                exclude_reservation_id=reservation_id
            )
            cursor.execute('''
                UPDATE reservations
                SET status = ?, approved_by = ?, approved_at = CURRENT_TIMESTAMP,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
            ''', (target.value, actor.id, reservation_id))
        else:
            cursor.execute('''
                UPDATE reservations
                SET status = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
            ''', (target.value, reservation_id))

        record_status_change(cursor, reservation_id, target, actor.id, notes)
        updated = _load_reservation(cursor, reservation_id)
        db.commit()

    except sqlite3.IntegrityError as e:
        db.rollback()
        logger.warning(f'Storage rejected {target.value} of reservation {reservation_id}: {e}')
        raise map_integrity_error(e) from e
    except Exception:
        db.rollback()
        raise

    logger.info(f'Reservation {reservation_id} {reservation["status"]} -> {target.value} '
                f'by user {actor.id}')
    return updated


def _require_room_admin(actor, action: str):
    def guard(reservation):
        if not is_room_admin(actor, reservation['room_id']):
            raise Forbidden(f'Only room admins can {action} reservations',
                            room_id=reservation['room_id'])
    return guard


def approve_reservation(actor, reservation_id: int, notes: str = '') -> dict:
    """
    Approve a pending reservation.

    Guard: actor is room admin (or global admin) of the reservation's room
    and the reservation is pending. The desk is re-validated against
    approved reservations and fixed assignments, so two pending requests for
    the same slot cannot both be approved.

    Args:
        actor: Principal approving
        reservation_id: Reservation ID
        notes: History note

    Returns:
        dict: Updated reservation

    Raises:
        NotFound, Forbidden, InvalidTransition, SlotConflict,
        FixedAssignmentConflict
    """
    return _change_status(actor, reservation_id, ReservationStatus.APPROVED,
                          _require_room_admin(actor, 'approve'), notes or 'Approved')


def reject_reservation(actor, reservation_id: int, notes: str = '') -> dict:
    """
    Reject a pending reservation. Same guard as approve_reservation.

    Raises:
        NotFound, Forbidden, InvalidTransition
    """
    return _change_status(actor, reservation_id, ReservationStatus.REJECTED,
                          _require_room_admin(actor, 'reject'), notes or 'Rejected')


def cancel_reservation(actor, reservation_id: int, notes: str = '') -> dict:
    """
    Cancel a pending or approved reservation.

    Guard: actor owns the reservation or is room admin of its room.
    Cancelling twice raises AlreadyCancelled and leaves the row untouched.

    Raises:
        NotFound, Forbidden, AlreadyCancelled, InvalidTransition
    """
    def guard(reservation):
        if reservation['user_id'] != actor.id and not is_room_admin(actor, reservation['room_id']):
            raise Forbidden('You can only cancel your own reservations',
                            reservation_id=reservation_id)

    return _change_status(actor, reservation_id, ReservationStatus.CANCELLED,
                          guard, notes or 'Cancelled')
