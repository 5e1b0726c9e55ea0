"""
Route decorators for authentication and authorization.
"""

from functools import wraps
from flask_login import login_required, current_user

from utils.errors import Forbidden


def admin_required(func):
    """
    Decorator to require a global admin for a route.

    Usage:
        @api_bp.route('/offices', methods=['POST'])
        @login_required
        @admin_required
        def create_office():
            ...
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        if not current_user.is_admin:
            raise Forbidden('Admin rights required')
        return func(*args, **kwargs)
    return wrapper


# Re-export login_required for convenience
__all__ = ['login_required', 'admin_required']
