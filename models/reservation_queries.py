"""
Reservation query functions.
Handles the listings behind the booking screens.
"""

from database import get_db
from utils.datetime_helpers import TimeSegment, parse_date
from utils.errors import Forbidden
from .room_access import get_admin_room_ids, has_room_access
from .reservation_state import ReservationStatus


def _date_filter(query: str, params: list, alias: str, date_from=None, date_to=None) -> str:
    """Append an inclusive overlap filter on {alias}.date_start/date_end."""
    if date_from:
        query += f' AND {alias}.date_end >= ?'
        params.append(parse_date(date_from, 'date_from').isoformat())
    if date_to:
        query += f' AND {alias}.date_start <= ?'
        params.append(parse_date(date_to, 'date_to').isoformat())
    return query


# =============================================================================
# LIST QUERIES
# =============================================================================

def list_my_reservations(actor, date_from=None, date_to=None) -> list:
    """
    List the caller's reservations merged with their fixed assignments.

    Fixed assignments are shaped like reservations: type 'fixed_assignment',
    status approved, segment FULL, approved by their creator.

    Args:
        actor: Principal
        date_from: Only bookings ending on or after this day
        date_to: Only bookings starting on or before this day

    Returns:
        list: Bookings, most recent date_start first
    """
    db = get_db()
    cursor = db.cursor()

    params = [actor.id]
    query = _date_filter('''
        SELECT r.*, 'reservation' as type,
               rm.name as room_name, c.label as cell_label, c.type as cell_type
        FROM reservations r
        JOIN rooms rm ON r.room_id = rm.id
        JOIN room_cells c ON r.cell_id = c.id
        WHERE r.user_id = ?
    ''', params, 'r', date_from, date_to)
    cursor.execute(query, params)
    reservations = [dict(row) for row in cursor.fetchall()]

    params = [actor.id]
    query = _date_filter('''
        SELECT fa.*, rm.name as room_name, c.label as cell_label, c.type as cell_type
        FROM fixed_assignments fa
        JOIN rooms rm ON fa.room_id = rm.id
        JOIN room_cells c ON fa.cell_id = c.id
        WHERE fa.assigned_to = ?
    ''', params, 'fa', date_from, date_to)
    cursor.execute(query, params)

    assignments = []
    for row in cursor.fetchall():
        assignment = dict(row)
        assignment.update({
            'type': 'fixed_assignment',
            'user_id': assignment['assigned_to'],
            'status': ReservationStatus.APPROVED.value,
            'time_segment': TimeSegment.FULL.value,
            'approved_by': assignment['created_by'],
            'approved_at': assignment['created_at'],
        })
        assignments.append(assignment)

    combined = reservations + assignments
    combined.sort(key=lambda b: b['date_start'], reverse=True)
    return combined


def list_room_reservations(actor, room_id: int, date_from=None, date_to=None,
                           status: str = None) -> list:
    """
    List the reservations of a room.

    Args:
        actor: Principal with access to the room
        room_id: Room ID
        date_from: Only reservations ending on or after this day
        date_to: Only reservations starting on or before this day
        status: Optional status filter

    Returns:
        list: Reservations with user and desk details, latest first

    Raises:
        Forbidden: No access to the room
    """
    if not has_room_access(actor, room_id):
        raise Forbidden('You do not have access to this room', room_id=room_id)

    db = get_db()
    cursor = db.cursor()

    params = [room_id]
    query = _date_filter('''
        SELECT r.*, u.username, u.full_name,
               c.label as cell_label, c.type as cell_type, c.x as cell_x, c.y as cell_y
        FROM reservations r
        JOIN users u ON r.user_id = u.id
        JOIN room_cells c ON r.cell_id = c.id
        WHERE r.room_id = ?
    ''', params, 'r', date_from, date_to)

    if status:
        query += ' AND r.status = ?'
        params.append(ReservationStatus(status).value)

    query += ' ORDER BY r.date_start DESC, r.id DESC'
    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


def list_pending_approvals(actor) -> list:
    """
    List pending reservations the caller can approve.

    Global admins see every room; room admins see their rooms; anyone else
    gets an empty list.

    Returns:
        list: Pending reservations, oldest request first
    """
    db = get_db()
    cursor = db.cursor()

    query = '''
        SELECT r.*, u.username, u.full_name,
               rm.name as room_name, c.label as cell_label, c.type as cell_type
        FROM reservations r
        JOIN users u ON r.user_id = u.id
        JOIN rooms rm ON r.room_id = rm.id
        JOIN room_cells c ON r.cell_id = c.id
        WHERE r.status = 'pending'
    '''
    params = []

    if not actor.is_admin:
        room_ids = get_admin_room_ids(actor.id)
        if not room_ids:
            return []
        placeholders = ','.join('?' * len(room_ids))
        query += f' AND r.room_id IN ({placeholders})'
        params.extend(room_ids)

    query += ' ORDER BY r.created_at, r.id'
    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


def list_fixed_assignments(actor, room_id: int = None, date_from=None, date_to=None) -> list:
    """
    List fixed assignments of a room, or the caller's own without room_id.

    Raises:
        Forbidden: No access to the room
    """
    db = get_db()
    cursor = db.cursor()

    query = '''
        SELECT fa.*, u.username as assigned_username, u.full_name as assigned_full_name,
               rm.name as room_name, c.label as cell_label
        FROM fixed_assignments fa
        JOIN users u ON fa.assigned_to = u.id
        JOIN rooms rm ON fa.room_id = rm.id
        JOIN room_cells c ON fa.cell_id = c.id
        WHERE 1=1
    '''
    params = []

    if room_id is not None:
        if not has_room_access(actor, room_id):
            raise Forbidden('You do not have access to this room', room_id=room_id)
        query += ' AND fa.room_id = ?'
        params.append(room_id)
    else:
        query += ' AND fa.assigned_to = ?'
        params.append(actor.id)

    query = _date_filter(query, params, 'fa', date_from, date_to)
    query += ' ORDER BY fa.date_start, fa.cell_id'
    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]
