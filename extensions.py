"""
Flask extensions initialization.
Extensions are initialized here and then initialized with the app in app.py.
"""

from flask import current_app, request
from flask_login import LoginManager

from utils.api_response import api_booking_error
from utils.errors import Unauthenticated
from utils.messages import get_message

# Initialize Flask-Login
login_manager = LoginManager()


@login_manager.request_loader
def load_principal_from_request(req):
    """
    Resolve the session token header to a Principal for Flask-Login.

    Args:
        req: Current request

    Returns:
        Principal or None if the token is missing, unknown, expired or
        belongs to an inactive user
    """
    from models.session import resolve_principal

    header = current_app.config.get('SESSION_HEADER', 'X-Session-Token')
    return resolve_principal(req.headers.get(header))


@login_manager.unauthorized_handler
def unauthorized():
    """JSON 401 instead of a login redirect."""
    current_app.logger.info(f'Unauthenticated request to {request.path}')
    return api_booking_error(Unauthenticated(get_message('authentication_required')))
