"""
Session resolution.

Sessions are issued by the external auth collaborator; this module only
stores tokens and resolves them to an active Principal.
"""

import secrets
from datetime import timedelta, timezone

from flask import current_app

from database import get_db
from models.user import Principal
from utils.datetime_helpers import get_now


def _utc_now() -> str:
    return get_now().astimezone(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')


def create_session(user_id: int, hours: int = None) -> str:
    """
    Issue a session token for a user.

    Args:
        user_id: User ID
        hours: Lifetime in hours (default SESSION_TIMEOUT_HOURS)

    Returns:
        str: Session token
    """
    if hours is None:
        hours = current_app.config.get('SESSION_TIMEOUT_HOURS', 8)

    token = secrets.token_urlsafe(32)
    expires_at = (get_now().astimezone(timezone.utc) + timedelta(hours=hours)).strftime('%Y-%m-%d %H:%M:%S')

    db = get_db()
    db.execute('''
        INSERT INTO user_sessions (user_id, session_token, expires_at)
        VALUES (?, ?, ?)
    ''', (user_id, token, expires_at))
    db.commit()
    return token


def resolve_principal(token: str):
    """
    Resolve a session token to its Principal.

    Unknown or expired tokens and inactive users resolve to None, which the
    caller treats as unauthenticated.

    Args:
        token: Session token from the request header

    Returns:
        Principal or None
    """
    if not token:
        return None

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT u.*
        FROM user_sessions s
        JOIN users u ON s.user_id = u.id
        WHERE s.session_token = ?
          AND s.expires_at > ?
          AND u.active = 1
    ''', (token, _utc_now()))
    row = cursor.fetchone()
    return Principal(dict(row)) if row else None
