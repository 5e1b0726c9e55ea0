"""
Fixed assignment data access functions.

A fixed assignment is a standing claim of one user on a desk for a
contiguous range of days. It never goes through approval; it is removed
entirely or narrowed one day at a time.
"""

import logging
import sqlite3
from datetime import timedelta

from database import get_db
from utils.datetime_helpers import add_one_year, day_count, parse_date
from utils.errors import (
    FixedAssignmentConflict, Forbidden, InvalidRequest, NotFound, RangeTooLong,
    SlotConflict, map_integrity_error
)
from .room_access import is_room_admin
from .user import get_user_by_id
from .reservation_availability import (
    check_user_daily_exclusivity, get_approved_on_cell, get_fixed_assignments_on_cell
)

logger = logging.getLogger(__name__)


# =============================================================================
# VALIDATION
# =============================================================================

def validate_assignment_range(date_start, date_end) -> tuple:
    """
    Parse an assignment range and enforce the one-year bound.

    The end may be at most the same calendar day one year later, so a span
    crossing 29 February can cover 366 days.

    Returns:
        tuple: (start, end) as dates

    Raises:
        InvalidRequest: Unparseable dates or end before start
        RangeTooLong: End later than one year after start
    """
    start = parse_date(date_start, 'date_start')
    end = parse_date(date_end, 'date_end')

    if end < start:
        raise InvalidRequest('date_end must not be before date_start',
                             date_start=start.isoformat(), date_end=end.isoformat())

    limit = add_one_year(start)
    if end > limit:
        raise RangeTooLong(
            f'Assignments can span at most one year (until {limit.isoformat()}), '
            f'requested {day_count(start, end)} days',
            date_start=start.isoformat(),
            date_end=end.isoformat(),
            max_date_end=limit.isoformat()
        )
    return start, end


# =============================================================================
# CREATE
# =============================================================================

def create_fixed_assignment(actor, cell_id: int, assigned_to: int, date_start, date_end) -> dict:
    """
    Assign a desk to a user for a range of days.

    Args:
        actor: Principal creating the assignment (room admin)
        cell_id: Desk cell ID
        assigned_to: Assignee user ID
        date_start: First day
        date_end: Last day, inclusive

    Returns:
        dict: Created fixed assignment

    Raises:
        InvalidRequest, RangeTooLong, NotFound, Forbidden,
        FixedAssignmentConflict, SlotConflict, DuplicateBookingError
    """
    from .reservation_crud import resolve_bookable_cell

    start, end = validate_assignment_range(date_start, date_end)
    cell = resolve_bookable_cell(cell_id)
    room_id = cell['room_id']

    if not is_room_admin(actor, room_id):
        raise Forbidden('Only room admins can assign desks', room_id=room_id)
    if not get_user_by_id(assigned_to):
        raise NotFound('User not found', user_id=assigned_to)

    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')

        existing = get_fixed_assignments_on_cell(cell_id, start, end)
        if existing:
            first = existing[0]
            raise FixedAssignmentConflict(
                f'Desk is already assigned to {first["assigned_username"]} '
                f'from {first["date_start"]} to {first["date_end"]}',
                cell_id=cell_id,
                fixed_assignment_id=first['id'],
                date_start=first['date_start'],
                date_end=first['date_end']
            )

        # The assignee's own bookings surface through the exclusivity check
        for reservation in get_approved_on_cell(cell_id, start, end):
            if reservation['user_id'] != assigned_to:
                raise SlotConflict(
                    f'Desk is booked by {reservation["username"]} '
                    f'from {reservation["date_start"]} to {reservation["date_end"]}',
                    cell_id=cell_id,
                    reservation_id=reservation['id'],
                    date_start=reservation['date_start'],
                    date_end=reservation['date_end']
                )

        check_user_daily_exclusivity(assigned_to, start, end)

        cursor.execute('''
            INSERT INTO fixed_assignments
            (cell_id, room_id, assigned_to, date_start, date_end, created_by, created_at)
            VALUES (?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
        ''', (cell_id, room_id, assigned_to, start.isoformat(), end.isoformat(), actor.id))
        assignment_id = cursor.lastrowid
        db.commit()

    except sqlite3.IntegrityError as e:
        db.rollback()
        logger.warning(f'Storage rejected fixed assignment on cell {cell_id}: {e}')
        raise map_integrity_error(e) from e
    except Exception:
        db.rollback()
        raise

    logger.info(f'Fixed assignment {assignment_id}: cell {cell_id} -> user {assigned_to} '
                f'{start} to {end} by user {actor.id}')
    return get_fixed_assignment_by_id(assignment_id)


# =============================================================================
# READ
# =============================================================================

def get_fixed_assignment_by_id(assignment_id: int) -> dict:
    """Get fixed assignment by ID with assignee and desk details, or None."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT fa.*,
               u.username as assigned_username, u.full_name as assigned_full_name,
               rm.name as room_name, c.label as cell_label
        FROM fixed_assignments fa
        JOIN users u ON fa.assigned_to = u.id
        JOIN rooms rm ON fa.room_id = rm.id
        JOIN room_cells c ON fa.cell_id = c.id
        WHERE fa.id = ?
    ''', (assignment_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


# =============================================================================
# DELETE / RELEASE
# =============================================================================

def _load_assignment(cursor, assignment_id: int) -> dict:
    cursor.execute('SELECT * FROM fixed_assignments WHERE id = ?', (assignment_id,))
    row = cursor.fetchone()
    if not row:
        raise NotFound('Fixed assignment not found', fixed_assignment_id=assignment_id)
    return dict(row)


def delete_fixed_assignment(actor, assignment_id: int, release_date=None) -> dict:
    """
    Delete a fixed assignment, or release a single day of it.

    Without release_date the row is deleted. With release_date:
    - single-day assignment: row deleted
    - first day: date_start moves forward one day
    - last day: date_end moves back one day
    - inner day: row keeps the days before, a new row takes the days after

    The row is read, checked and rewritten inside one transaction.

    Args:
        actor: Principal (assignee or room admin)
        assignment_id: Fixed assignment ID
        release_date: Day to release (optional)

    Returns:
        dict: {
            'deleted': bool,
            'assignment': remaining row or None,
            'created': new row of a split or None
        }

    Raises:
        NotFound, Forbidden, InvalidRequest
    """
    day = parse_date(release_date, 'date') if release_date else None

    db = get_db()
    cursor = db.cursor()
    deleted = False
    created_id = None

    try:
        cursor.execute('BEGIN IMMEDIATE')
        assignment = _load_assignment(cursor, assignment_id)

        if assignment['assigned_to'] != actor.id and not is_room_admin(actor, assignment['room_id']):
            raise Forbidden('Only the assignee or a room admin can release this desk',
                            fixed_assignment_id=assignment_id)

        start = parse_date(assignment['date_start'])
        end = parse_date(assignment['date_end'])

        if day and not (start <= day <= end):
            raise InvalidRequest(
                f'{day.isoformat()} is outside the assignment range '
                f'{start.isoformat()} to {end.isoformat()}',
                fixed_assignment_id=assignment_id,
                date=day.isoformat()
            )

        if day is None or start == end:
            cursor.execute('DELETE FROM fixed_assignments WHERE id = ?', (assignment_id,))
            deleted = True
        elif day == start:
            cursor.execute('UPDATE fixed_assignments SET date_start = ? WHERE id = ?',
                           ((day + timedelta(days=1)).isoformat(), assignment_id))
        elif day == end:
            cursor.execute('UPDATE fixed_assignments SET date_end = ? WHERE id = ?',
                           ((day - timedelta(days=1)).isoformat(), assignment_id))
        else:
            # Narrow first so the new row does not overlap it
            cursor.execute('UPDATE fixed_assignments SET date_end = ? WHERE id = ?',
                           ((day - timedelta(days=1)).isoformat(), assignment_id))
            cursor.execute('''
                INSERT INTO fixed_assignments
                (cell_id, room_id, assigned_to, date_start, date_end, created_by, created_at)
                VALUES (?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
            ''', (
                assignment['cell_id'], assignment['room_id'], assignment['assigned_to'],
                (day + timedelta(days=1)).isoformat(), end.isoformat(),
                assignment['created_by']
            ))
            created_id = cursor.lastrowid

        db.commit()

    except sqlite3.IntegrityError as e:
        db.rollback()
        logger.warning(f'Storage rejected release of fixed assignment {assignment_id}: {e}')
        raise map_integrity_error(e) from e
    except Exception:
        db.rollback()
        raise

    logger.info(f'Fixed assignment {assignment_id} '
                f'{"deleted" if deleted else "released " + day.isoformat()} by user {actor.id}')

    return {
        'deleted': deleted,
        'assignment': None if deleted else get_fixed_assignment_by_id(assignment_id),
        'created': get_fixed_assignment_by_id(created_id) if created_id else None
    }
