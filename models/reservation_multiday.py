"""
Multi-day desk assignment as individual day reservations.

Admin "assign for N days" requests materialize as one approved FULL-day
reservation per calendar day, inserted as a single batch.
"""

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date

from database import get_db
from utils.datetime_helpers import TimeSegment, expand_days, parse_date
from utils.errors import Forbidden, NotFound, map_integrity_error
from .room_access import is_room_admin
from .user import get_user_by_id
from .reservation_state import ReservationStatus, record_status_change
from .reservation_availability import check_cell_conflict, check_user_daily_exclusivity
from .fixed_assignment import validate_assignment_range

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationDraft:
    """A reservation row ready to be inserted."""
    room_id: int
    cell_id: int
    user_id: int
    day: date
    approved_by: int
    time_segment: TimeSegment = TimeSegment.FULL
    status: ReservationStatus = ReservationStatus.APPROVED
    reservation_type: str = 'day'


def expand_assignment_to_reservations(assignment) -> list:
    """
    Expand an assignment range into one draft per calendar day.

    Args:
        assignment: dict with cell_id, room_id, assigned_to, date_start,
            date_end and created_by

    Returns:
        list[ReservationDraft]: Ascending by day, FULL and approved,
            approved_by set to the creator
    """
    start = parse_date(assignment['date_start'], 'date_start')
    end = parse_date(assignment['date_end'], 'date_end')

    return [
        ReservationDraft(
            room_id=assignment['room_id'],
            cell_id=assignment['cell_id'],
            user_id=assignment['assigned_to'],
            day=day,
            approved_by=assignment['created_by']
        )
        for day in expand_days(start, end)
    ]


def create_daily_assignment_reservations(actor, cell_id: int, user_id: int,
                                         date_start, date_end) -> list:
    """
    Assign a desk to a user as approved day reservations.

    The user's exclusivity and the desk's availability are checked for the
    whole range before any row is written; the drafts are then inserted in
    one transaction, so a storage rejection on any day leaves nothing behind.

    Args:
        actor: Principal (room admin of the desk's room)
        cell_id: Desk cell ID
        user_id: Target user
        date_start: First day
        date_end: Last day, inclusive

    Returns:
        list: Created reservation IDs, one per day

    Raises:
        InvalidRequest, RangeTooLong, NotFound, Forbidden,
        DuplicateBookingError, FixedAssignmentConflict, SlotConflict
    """
    from .reservation_crud import resolve_bookable_cell

    start, end = validate_assignment_range(date_start, date_end)
    cell = resolve_bookable_cell(cell_id)

    if not is_room_admin(actor, cell['room_id']):
        raise Forbidden('Only room admins can assign desks', room_id=cell['room_id'])
    if not get_user_by_id(user_id):
        raise NotFound('User not found', user_id=user_id)

    drafts = expand_assignment_to_reservations({
        'room_id': cell['room_id'],
        'cell_id': cell_id,
        'assigned_to': user_id,
        'date_start': start,
        'date_end': end,
        'created_by': actor.id
    })

    db = get_db()
    cursor = db.cursor()
    created_ids = []

    try:
        cursor.execute('BEGIN IMMEDIATE')

        check_user_daily_exclusivity(user_id, start, end)
        check_cell_conflict(cell_id, start, end, TimeSegment.FULL, user_id)

        for draft in drafts:
            cursor.execute('''
                INSERT INTO reservations (
                    room_id, cell_id, user_id, reservation_type, status,
                    date_start, date_end, time_segment,
                    approved_by, approved_at, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?,
                          CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
            ''', (
                draft.room_id, draft.cell_id, draft.user_id, draft.reservation_type,
                draft.status.value, draft.day.isoformat(), draft.day.isoformat(),
                draft.time_segment.value, draft.approved_by
            ))
            reservation_id = cursor.lastrowid
            created_ids.append(reservation_id)
            record_status_change(cursor, reservation_id, draft.status, actor.id,
                                 'Daily assignment')

        db.commit()

    except sqlite3.IntegrityError as e:
        db.rollback()
        logger.warning(f'Storage rejected daily assignment on cell {cell_id}: {e}')
        raise map_integrity_error(e) from e
    except Exception:
        db.rollback()
        raise

    logger.info(f'Daily assignment: cell {cell_id} -> user {user_id}, '
                f'{len(created_ids)} days from {start} by user {actor.id}')
    return created_ids
