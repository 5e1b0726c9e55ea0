"""
Room access resolution.

Decides whether a principal is a global admin, a room admin or a plain
member of a room. Pure lookups; every mutating booking operation calls one
of these before touching state.
"""

from database import get_db

ROOM_ROLES = ('admin', 'member')


def get_room_role(user_id: int, room_id: int):
    """
    Get the room_access role of a user in a room.

    Returns:
        str or None: 'admin', 'member', or None without access
    """
    db = get_db()
    row = db.execute('''
        SELECT role FROM room_access
        WHERE room_id = ? AND user_id = ?
    ''', (room_id, user_id)).fetchone()
    return row['role'] if row else None


def is_room_admin(principal, room_id: int) -> bool:
    """
    Check admin rights on a room.

    Args:
        principal: Caller (needs .id and .role)
        room_id: Room ID

    Returns:
        bool: True for global admins or room_access role 'admin'
    """
    if principal.role == 'admin':
        return True
    return get_room_role(principal.id, room_id) == 'admin'


def has_room_access(principal, room_id: int) -> bool:
    """True for global admins or any room_access row, regardless of role."""
    if principal.role == 'admin':
        return True
    return get_room_role(principal.id, room_id) is not None


def get_admin_room_ids(user_id: int) -> list:
    """IDs of the rooms where the user has room_access role 'admin'."""
    db = get_db()
    rows = db.execute('''
        SELECT room_id FROM room_access
        WHERE user_id = ? AND role = 'admin'
        ORDER BY room_id
    ''', (user_id,)).fetchall()
    return [row['room_id'] for row in rows]


def get_room_members(room_id: int) -> list:
    """Users with access to a room, with their room role."""
    db = get_db()
    rows = db.execute('''
        SELECT u.id, u.username, u.full_name, ra.role
        FROM room_access ra
        JOIN users u ON ra.user_id = u.id
        WHERE ra.room_id = ?
        ORDER BY ra.role, u.username
    ''', (room_id,)).fetchall()
    return [dict(row) for row in rows]


def grant_room_access(room_id: int, user_id: int, role: str = 'member') -> None:
    """
    Grant (or change) a user's role in a room.

    Raises:
        ValueError: If role is unknown
    """
    if role not in ROOM_ROLES:
        raise ValueError(f'Unknown room role: {role}')

    db = get_db()
    db.execute('''
        INSERT INTO room_access (room_id, user_id, role)
        VALUES (?, ?, ?)
        ON CONFLICT(room_id, user_id) DO UPDATE SET role = excluded.role
    ''', (room_id, user_id, role))
    db.commit()


def revoke_room_access(room_id: int, user_id: int) -> bool:
    """Remove a user's access to a room. Returns True if a row was removed."""
    db = get_db()
    cursor = db.execute('DELETE FROM room_access WHERE room_id = ? AND user_id = ?',
                        (room_id, user_id))
    db.commit()
    return cursor.rowcount > 0
