"""
Desk availability checking and per-user duplicate detection.
Conflict predicates shared by every booking path live here.
"""

import logging

from database import get_db
from utils.datetime_helpers import (
    TimeSegment, expand_days, parse_date, parse_segment, segments_conflict
)
from utils.errors import DuplicateBookingError, FixedAssignmentConflict, SlotConflict
from .reservation_state import ACTIVE_STATUSES

logger = logging.getLogger(__name__)


def _iso_range(start, end) -> tuple:
    return parse_date(start, 'date_start').isoformat(), parse_date(end, 'date_end').isoformat()


# =============================================================================
# CELL CONFLICTS
# =============================================================================

def get_fixed_assignments_on_cell(cell_id: int, start, end) -> list:
    """Fixed assignments on a cell overlapping the inclusive day range."""
    date_start, date_end = _iso_range(start, end)
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT fa.*, u.username as assigned_username
        FROM fixed_assignments fa
        JOIN users u ON fa.assigned_to = u.id
        WHERE fa.cell_id = ?
          AND fa.date_start <= ? AND fa.date_end >= ?
        ORDER BY fa.date_start
    ''', (cell_id, date_end, date_start))
    return [dict(row) for row in cursor.fetchall()]


def get_approved_on_cell(cell_id: int, start, end, exclude_reservation_id: int = None) -> list:
    """Approved reservations on a cell overlapping the inclusive day range."""
    date_start, date_end = _iso_range(start, end)
    db = get_db()
    cursor = db.cursor()

    query = '''
        SELECT r.*, u.username
        FROM reservations r
        JOIN users u ON r.user_id = u.id
        WHERE r.cell_id = ?
          AND r.status = 'approved'
          AND r.date_start <= ? AND r.date_end >= ?
    '''
    params = [cell_id, date_end, date_start]

    if exclude_reservation_id:
        query += ' AND r.id != ?'
        params.append(exclude_reservation_id)

    query += ' ORDER BY r.date_start'
    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


def check_cell_conflict(
    cell_id: int,
    start,
    end,
    segment,
    requesting_user_id: int,
    exclude_reservation_id: int = None
) -> None:
    """
    Reject a booking that would collide on a desk.

    Fixed assignments are checked first: a cell assigned to someone else on
    any day of the range blocks the booking whatever the segment. Then
    approved reservations whose segment conflicts block it. Pending,
    rejected and cancelled reservations never block.

    Args:
        cell_id: Desk cell ID
        start: First day (date or YYYY-MM-DD)
        end: Last day, inclusive
        segment: AM, PM or FULL
        requesting_user_id: User the booking is for
        exclude_reservation_id: Reservation to ignore (re-validation on approve)

    Raises:
        FixedAssignmentConflict: Cell assigned to another user in the range
        SlotConflict: An approved reservation holds a conflicting segment
    """
    segment = parse_segment(segment)

    for assignment in get_fixed_assignments_on_cell(cell_id, start, end):
        if assignment['assigned_to'] != requesting_user_id:
            logger.info(f'Cell {cell_id} blocked by fixed assignment {assignment["id"]}')
            raise FixedAssignmentConflict(
                f'Desk is assigned to {assignment["assigned_username"]} '
                f'from {assignment["date_start"]} to {assignment["date_end"]}',
                cell_id=cell_id,
                fixed_assignment_id=assignment['id'],
                date_start=assignment['date_start'],
                date_end=assignment['date_end']
            )

    for reservation in get_approved_on_cell(cell_id, start, end, exclude_reservation_id):
        if segments_conflict(reservation['time_segment'], segment):
            logger.info(f'Cell {cell_id} blocked by reservation {reservation["id"]}')
            raise SlotConflict(
                f'Desk is already booked ({reservation["time_segment"]}) '
                f'from {reservation["date_start"]} to {reservation["date_end"]}',
                cell_id=cell_id,
                reservation_id=reservation['id'],
                time_segment=reservation['time_segment'],
                date_start=reservation['date_start'],
                date_end=reservation['date_end']
            )


def get_cell_availability(cell_id: int, start, end, segment=None) -> dict:
    """
    Report whether a desk can be booked, without raising.

    Returns:
        dict: {
            'available': bool,
            'conflicts': [approved reservations with a conflicting segment],
            'fixed_assignments': [overlapping fixed assignments]
        }
    """
    segment = parse_segment(segment)
    conflicts = [
        r for r in get_approved_on_cell(cell_id, start, end)
        if segments_conflict(r['time_segment'], segment)
    ]
    assignments = get_fixed_assignments_on_cell(cell_id, start, end)

    return {
        'available': not conflicts and not assignments,
        'conflicts': conflicts,
        'fixed_assignments': assignments
    }


def get_room_availability_map(room_id: int, date_from, date_to) -> dict:
    """
    Build the free segments of every desk in a room, day by day.

    Args:
        room_id: Room ID
        date_from: First day
        date_to: Last day, inclusive

    Returns:
        dict: {
            'YYYY-MM-DD': {cell_id: ['AM', 'PM', 'FULL'] or subset, ...}
        }
        A cell covered by a fixed assignment has no free segment.
    """
    from .room import get_cells_by_room

    start = parse_date(date_from, 'date_from')
    end = parse_date(date_to, 'date_to')
    cells = get_cells_by_room(room_id, bookable_only=True)

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT cell_id, date_start, date_end, time_segment
        FROM reservations
        WHERE room_id = ? AND status = 'approved'
          AND date_start <= ? AND date_end >= ?
    ''', (room_id, end.isoformat(), start.isoformat()))
    reservations = cursor.fetchall()

    cursor.execute('''
        SELECT cell_id, date_start, date_end
        FROM fixed_assignments
        WHERE room_id = ?
          AND date_start <= ? AND date_end >= ?
    ''', (room_id, end.isoformat(), start.isoformat()))
    assignments = cursor.fetchall()

    availability = {}
    for day in expand_days(start, end):
        day_iso = day.isoformat()
        taken = {}
        for row in reservations:
            if row['date_start'] <= day_iso <= row['date_end']:
                taken.setdefault(row['cell_id'], set()).add(row['time_segment'])
        for row in assignments:
            if row['date_start'] <= day_iso <= row['date_end']:
                taken.setdefault(row['cell_id'], set()).add(TimeSegment.FULL.value)

        availability[day_iso] = {
            cell['id']: [
                seg.value for seg in TimeSegment
                if not any(segments_conflict(seg, t) for t in taken.get(cell['id'], ()))
            ]
            for cell in cells
        }

    return availability


# =============================================================================
# DUPLICATE DETECTION
# =============================================================================

def check_user_daily_exclusivity(user_id: int, start, end, exclude_reservation_id: int = None) -> None:
    """
    Reject a second active booking for the same user on the same day.

    Pending and approved reservations count, in any room, and so do fixed
    assignments held by the user. Global admins booking for themselves are
    bound by the same rule.

    Args:
        user_id: User the booking is for
        start: First day
        end: Last day, inclusive
        exclude_reservation_id: Reservation to ignore

    Raises:
        DuplicateBookingError: With source 'reservation' or 'fixed_assignment'
    """
    date_start, date_end = _iso_range(start, end)
    db = get_db()
    cursor = db.cursor()

    placeholders = ','.join('?' * len(ACTIVE_STATUSES))
    query = f'''
        SELECT id, room_id, status, date_start, date_end
        FROM reservations
        WHERE user_id = ?
          AND status IN ({placeholders})
          AND date_start <= ? AND date_end >= ?
    '''
    params = [user_id, *ACTIVE_STATUSES, date_end, date_start]

    if exclude_reservation_id:
        query += ' AND id != ?'
        params.append(exclude_reservation_id)

    cursor.execute(query + ' ORDER BY date_start LIMIT 1', params)
    existing = cursor.fetchone()
    if existing:
        logger.info(f'User {user_id} already booked by reservation {existing["id"]}')
        raise DuplicateBookingError(
            f'User already has a {existing["status"]} reservation '
            f'from {existing["date_start"]} to {existing["date_end"]}',
            source='reservation',
            user_id=user_id,
            room_id=existing['room_id'],
            reservation_id=existing['id'],
            date_start=existing['date_start'],
            date_end=existing['date_end']
        )

    cursor.execute('''
        SELECT id, room_id, date_start, date_end
        FROM fixed_assignments
        WHERE assigned_to = ?
          AND date_start <= ? AND date_end >= ?
        ORDER BY date_start LIMIT 1
    ''', (user_id, date_end, date_start))
    assignment = cursor.fetchone()
    if assignment:
        logger.info(f'User {user_id} already holds fixed assignment {assignment["id"]}')
        raise DuplicateBookingError(
            f'User already has a fixed assignment '
            f'from {assignment["date_start"]} to {assignment["date_end"]}',
            source='fixed_assignment',
            user_id=user_id,
            room_id=assignment['room_id'],
            fixed_assignment_id=assignment['id'],
            date_start=assignment['date_start'],
            date_end=assignment['date_end']
        )
