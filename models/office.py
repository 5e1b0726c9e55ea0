"""
Office and office booking data access functions.

Offices are booked by time slot rather than by day. Slots use 15-minute
granularity and are half-open, so a booking ending at 10:00 does not
collide with one starting at 10:00.
"""

import logging

from database import get_db
from utils.datetime_helpers import format_timestamp, parse_timestamp
from utils.errors import Forbidden, InvalidRequest, NotFound, SlotConflict

logger = logging.getLogger(__name__)

SLOT_MINUTES = 15


# =============================================================================
# OFFICES
# =============================================================================

def create_office(name: str, location: str, created_by: int, is_shared: bool = False) -> int:
    """
    Create an office.

    Args:
        name: Office name
        location: Building/floor description
        created_by: Creating user ID
        is_shared: Shared offices are bookable by every user

    Returns:
        int: New office ID
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO offices (name, location, is_shared, created_by)
        VALUES (?, ?, ?, ?)
    ''', (name, location, 1 if is_shared else 0, created_by))
    db.commit()
    return cursor.lastrowid


def get_office(office_id: int) -> dict:
    """Get office by ID, or None."""
    db = get_db()
    row = db.execute('SELECT * FROM offices WHERE id = ?', (office_id,)).fetchone()
    return dict(row) if row else None


def get_all_offices(shared_only: bool = False) -> list:
    """Get offices ordered by name."""
    db = get_db()
    query = 'SELECT * FROM offices'
    if shared_only:
        query += ' WHERE is_shared = 1'
    query += ' ORDER BY name'
    return [dict(row) for row in db.execute(query).fetchall()]


def _require_office_access(actor, office_id: int) -> dict:
    office = get_office(office_id)
    if not office:
        raise NotFound('Office not found', office_id=office_id)
    if not actor.is_admin and not office['is_shared']:
        raise Forbidden('This office is not available for booking', office_id=office_id)
    return office


# =============================================================================
# VALIDATION
# =============================================================================

def validate_slot(start_time, end_time) -> tuple:
    """
    Parse and validate a booking slot.

    Returns:
        tuple: (start, end) as naive UTC datetimes

    Raises:
        InvalidRequest: Unparseable time, not on a 15-minute boundary, or
            end not after start
    """
    start = parse_timestamp(start_time, 'start_time')
    end = parse_timestamp(end_time, 'end_time')

    for value in (start, end):
        if value.minute % SLOT_MINUTES or value.second or value.microsecond:
            raise InvalidRequest(
                f'Booking times must be in {SLOT_MINUTES}-minute increments',
                start_time=format_timestamp(start),
                end_time=format_timestamp(end)
            )

    if end <= start:
        raise InvalidRequest('End time must be after start time',
                             start_time=format_timestamp(start),
                             end_time=format_timestamp(end))
    return start, end


def find_conflicting_booking(office_id: int, start, end, exclude_booking_id: int = None):
    """First booking of the office overlapping [start, end), or None."""
    db = get_db()
    query = '''
        SELECT * FROM office_bookings
        WHERE office_id = ?
          AND start_time < ? AND end_time > ?
    '''
    params = [office_id, format_timestamp(end), format_timestamp(start)]

    if exclude_booking_id:
        query += ' AND id != ?'
        params.append(exclude_booking_id)

    row = db.execute(query + ' ORDER BY start_time LIMIT 1', params).fetchone()
    return dict(row) if row else None


# =============================================================================
# BOOKINGS
# =============================================================================

def _insert_booking(actor, office_id: int, start_time, end_time, admin_block: bool) -> dict:
    start, end = validate_slot(start_time, end_time)

    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')

        conflict = find_conflicting_booking(office_id, start, end)
        if conflict:
            raise SlotConflict(
                'This time slot is already booked',
                office_id=office_id,
                booking_id=conflict['id'],
                start_time=conflict['start_time'],
                end_time=conflict['end_time']
            )

        cursor.execute('''
            INSERT INTO office_bookings
            (office_id, user_id, start_time, end_time, is_admin_block, created_by)
            VALUES (?, ?, ?, ?, ?, ?)
        ''', (
            office_id, None if admin_block else actor.id,
            format_timestamp(start), format_timestamp(end),
            1 if admin_block else 0, actor.id
        ))
        booking_id = cursor.lastrowid
        db.commit()

    except Exception:
        db.rollback()
        raise

    logger.info(f'Office {office_id} {"blocked" if admin_block else "booked"} '
                f'{format_timestamp(start)} to {format_timestamp(end)} by user {actor.id}')
    return get_office_booking(booking_id)


def create_office_booking(actor, office_id: int, start_time, end_time) -> dict:
    """
    Book an office slot for the caller.

    Raises:
        NotFound, Forbidden, InvalidRequest, SlotConflict
    """
    _require_office_access(actor, office_id)
    return _insert_booking(actor, office_id, start_time, end_time, admin_block=False)


def create_admin_block(actor, office_id: int, start_time, end_time) -> dict:
    """
    Block an office slot without a user (global admins only).

    Raises:
        Forbidden, NotFound, InvalidRequest, SlotConflict
    """
    if not actor.is_admin:
        raise Forbidden('Only admins can create admin blocks')
    if not get_office(office_id):
        raise NotFound('Office not found', office_id=office_id)
    return _insert_booking(actor, office_id, start_time, end_time, admin_block=True)


def get_office_booking(booking_id: int) -> dict:
    """Get booking by ID with booker details, or None."""
    db = get_db()
    row = db.execute('''
        SELECT b.*, u.username, u.full_name, o.name as office_name
        FROM office_bookings b
        LEFT JOIN users u ON b.user_id = u.id
        JOIN offices o ON b.office_id = o.id
        WHERE b.id = ?
    ''', (booking_id,)).fetchone()
    return dict(row) if row else None


def list_by_office(actor, office_id: int, start_time=None, end_time=None) -> list:
    """
    List bookings of an office, optionally those overlapping a window.

    Raises:
        NotFound, Forbidden
    """
    _require_office_access(actor, office_id)

    query = '''
        SELECT b.*, u.username, u.full_name
        FROM office_bookings b
        LEFT JOIN users u ON b.user_id = u.id
        WHERE b.office_id = ?
    '''
    params = [office_id]

    if start_time:
        query += ' AND b.end_time > ?'
        params.append(format_timestamp(parse_timestamp(start_time, 'start_time')))
    if end_time:
        query += ' AND b.start_time < ?'
        params.append(format_timestamp(parse_timestamp(end_time, 'end_time')))

    query += ' ORDER BY b.start_time'
    db = get_db()
    return [dict(row) for row in db.execute(query, params).fetchall()]


def list_by_user(actor) -> list:
    """List the caller's office bookings, earliest first."""
    db = get_db()
    rows = db.execute('''
        SELECT b.*, o.name as office_name, o.location as office_location
        FROM office_bookings b
        JOIN offices o ON b.office_id = o.id
        WHERE b.user_id = ?
        ORDER BY b.start_time
    ''', (actor.id,)).fetchall()
    return [dict(row) for row in rows]


def delete_office_booking(actor, booking_id: int) -> bool:
    """
    Delete a booking. Users delete their own bookings; admins delete any.

    Raises:
        NotFound, Forbidden
    """
    booking = get_office_booking(booking_id)
    if not booking:
        raise NotFound('Booking not found', booking_id=booking_id)
    if not actor.is_admin and booking['user_id'] != actor.id:
        raise Forbidden('You can only delete your own bookings', booking_id=booking_id)

    db = get_db()
    db.execute('DELETE FROM office_bookings WHERE id = ?', (booking_id,))
    db.commit()

    logger.info(f'Office booking {booking_id} deleted by user {actor.id}')
    return True
