"""
Reservation CRUD operations.
Handles create and read for desk reservations. Reservations are never
deleted; they leave the active set through the state machine.
"""

import logging
import sqlite3

from database import get_db
from utils.datetime_helpers import TimeSegment, parse_date, parse_segment
from utils.errors import Forbidden, InvalidRequest, NotFound, map_integrity_error
from .room import BOOKABLE_CELL_TYPES, get_cell_by_id
from .user import get_user_by_id
from .room_access import has_room_access, is_room_admin
from .reservation_state import ReservationStatus, record_status_change
from .reservation_availability import check_cell_conflict, check_user_daily_exclusivity

logger = logging.getLogger(__name__)


# =============================================================================
# VALIDATION
# =============================================================================

def resolve_bookable_cell(cell_id: int) -> dict:
    """
    Load a cell and make sure a desk can be booked on it.

    Raises:
        NotFound: Unknown cell
        InvalidRequest: Cell is not a desk
    """
    cell = get_cell_by_id(cell_id)
    if not cell:
        raise NotFound('Desk not found', cell_id=cell_id)
    if cell['type'] not in BOOKABLE_CELL_TYPES:
        raise InvalidRequest(f'Cell type {cell["type"]} cannot be booked', cell_id=cell_id)
    return cell


def authorize_booking_for(actor, room_id: int, user_id: int) -> None:
    """
    Check that actor may book a desk in the room for user_id.

    Members book for themselves only; room admins book for anyone.

    Raises:
        Forbidden: No access to the room, or booking for someone else
            without admin rights
    """
    if not has_room_access(actor, room_id):
        raise Forbidden('You do not have access to this room', room_id=room_id)
    if user_id != actor.id and not is_room_admin(actor, room_id):
        raise Forbidden('Only room admins can book on behalf of other users',
                        room_id=room_id, user_id=user_id)


# =============================================================================
# CREATE
# =============================================================================

def _insert_reservation(
    actor,
    status: ReservationStatus,
    cell_id: int,
    date_start,
    date_end=None,
    time_segment=None,
    user_id: int = None,
    notes: str = ''
) -> dict:
    start = parse_date(date_start, 'date_start')
    end = parse_date(date_end, 'date_end') if date_end else start
    if end < start:
        raise InvalidRequest('date_end must not be before date_start',
                             date_start=start.isoformat(), date_end=end.isoformat())
    segment = parse_segment(time_segment)
    if segment is not TimeSegment.FULL and end != start:
        raise InvalidRequest('Half-day bookings cover a single day',
                             field='time_segment', date_start=start.isoformat(),
                             date_end=end.isoformat())
    user_id = user_id or actor.id

    cell = resolve_bookable_cell(cell_id)
    room_id = cell['room_id']
    authorize_booking_for(actor, room_id, user_id)
    if user_id != actor.id and not get_user_by_id(user_id):
        raise NotFound('User not found', user_id=user_id)

    reservation_type = 'day' if segment is TimeSegment.FULL else 'half_day'
    approved = status is ReservationStatus.APPROVED

    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')

        # Cell first, then the user's other bookings
        check_cell_conflict(cell_id, start, end, segment, user_id)
        check_user_daily_exclusivity(user_id, start, end)

        cursor.execute('''
            INSERT INTO reservations (
                room_id, cell_id, user_id, reservation_type, status,
                date_start, date_end, time_segment,
                approved_by, approved_at, created_at, updated_at
            ) VALUES (
                ?, ?, ?, ?, ?,
                ?, ?, ?,
                ?, CASE WHEN ? THEN CURRENT_TIMESTAMP END, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP
            )
        ''', (
            room_id, cell_id, user_id, reservation_type, status.value,
            start.isoformat(), end.isoformat(), segment.value,
            actor.id if approved else None, 1 if approved else 0
        ))
        reservation_id = cursor.lastrowid

        record_status_change(cursor, reservation_id, status, actor.id,
                             notes or 'Reservation created')
        db.commit()

    except sqlite3.IntegrityError as e:
        db.rollback()
        logger.warning(f'Storage rejected reservation on cell {cell_id}: {e}')
        raise map_integrity_error(e) from e
    except Exception:
        db.rollback()
        raise

    logger.info(f'Reservation {reservation_id} created ({status.value}) on cell {cell_id} '
                f'for user {user_id} by user {actor.id}')
    return get_reservation_by_id(reservation_id)


def create_reservation(actor, cell_id: int, date_start, date_end=None,
                       time_segment=None, user_id: int = None, notes: str = '') -> dict:
    """
    Book a desk directly. The reservation is approved on creation.

    Args:
        actor: Principal performing the booking
        cell_id: Desk cell ID
        date_start: First day
        date_end: Last day, inclusive (default date_start)
        time_segment: AM, PM or FULL (default FULL)
        user_id: User the desk is for (default actor)
        notes: History note

    Returns:
        dict: Created reservation

    Raises:
        NotFound, InvalidRequest, Forbidden, FixedAssignmentConflict,
        SlotConflict, DuplicateBookingError
    """
    return _insert_reservation(actor, ReservationStatus.APPROVED, cell_id, date_start,
                               date_end, time_segment, user_id, notes)


def request_reservation(actor, cell_id: int, date_start, date_end=None,
                        time_segment=None, user_id: int = None, notes: str = '') -> dict:
    """
    Request a desk. The reservation stays pending until a room admin
    approves or rejects it. Same guards as create_reservation.
    """
    return _insert_reservation(actor, ReservationStatus.PENDING, cell_id, date_start,
                               date_end, time_segment, user_id, notes)


# =============================================================================
# READ
# =============================================================================

def get_reservation_by_id(reservation_id: int) -> dict:
    """
    Get reservation by ID with user, room and desk details.

    Args:
        reservation_id: Reservation ID

    Returns:
        dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT r.*,
               u.username, u.full_name,
               rm.name as room_name,
               c.label as cell_label, c.x as cell_x, c.y as cell_y
        FROM reservations r
        JOIN users u ON r.user_id = u.id
        JOIN rooms rm ON r.room_id = rm.id
        JOIN room_cells c ON r.cell_id = c.id
        WHERE r.id = ?
    ''', (reservation_id,))
    row = cursor.fetchone()
    return dict(row) if row else None
