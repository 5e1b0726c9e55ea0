"""
User model and data access functions.
Wraps user rows as the Principal passed through the booking engine.
"""

from database import get_db
from utils.validators import validate_username

USER_ROLES = ('admin', 'user')


class Principal:
    """
    Authenticated caller of an engine operation.
    Wraps a users row with the properties Flask-Login expects.
    """

    def __init__(self, user_dict):
        """
        Initialize Principal from database row.

        Args:
            user_dict: Dictionary with user data from database
        """
        self.id = user_dict['id']
        self.username = user_dict['username']
        self.full_name = user_dict.get('full_name')
        self.role = user_dict.get('role', 'user')
        self.active = user_dict.get('active', 1)

    @property
    def is_admin(self):
        """Global admins have admin rights on every room."""
        return self.role == 'admin'

    @property
    def is_authenticated(self):
        """Required by Flask-Login."""
        return True

    @property
    def is_active(self):
        """Required by Flask-Login."""
        return self.active == 1

    @property
    def is_anonymous(self):
        """Required by Flask-Login."""
        return False

    def get_id(self):
        """Required by Flask-Login. Returns user ID as string."""
        return str(self.id)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'username': self.username,
            'full_name': self.full_name,
            'role': self.role
        }

    def __repr__(self):
        return f'<Principal {self.id} {self.username} ({self.role})>'


def get_user_by_id(user_id: int) -> dict:
    """
    Get user by ID.

    Args:
        user_id: User ID

    Returns:
        User dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM users WHERE id = ?', (user_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_user_by_username(username: str) -> dict:
    """Get user by username, or None."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM users WHERE username = ?', (username,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_all_users(active_only: bool = True) -> list:
    """
    Get all users.

    Args:
        active_only: If True, only return active users

    Returns:
        List of user dicts
    """
    db = get_db()
    cursor = db.cursor()

    query = 'SELECT * FROM users'
    if active_only:
        query += ' WHERE active = 1'
    query += ' ORDER BY username'

    cursor.execute(query)
    return [dict(row) for row in cursor.fetchall()]


def create_user(username: str, full_name: str, role: str = 'user') -> int:
    """
    Create new user.

    Args:
        username: Unique username
        full_name: Display name
        role: 'admin' or 'user'

    Returns:
        New user ID

    Raises:
        ValueError: If username is invalid or taken, or role is unknown
    """
    if not validate_username(username):
        raise ValueError(f'Invalid username: {username}')
    if role not in USER_ROLES:
        raise ValueError(f'Unknown role: {role}')
    if get_user_by_username(username):
        raise ValueError(f'Username already exists: {username}')

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO users (username, full_name, role)
        VALUES (?, ?, ?)
    ''', (username, full_name, role))
    db.commit()
    return cursor.lastrowid


def set_user_active(user_id: int, active: bool) -> bool:
    """Activate or deactivate a user. Returns True if a row changed."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('UPDATE users SET active = ? WHERE id = ?', (1 if active else 0, user_id))
    db.commit()
    return cursor.rowcount > 0
