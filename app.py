"""
DeskFlow - Desk & Office Booking Engine
Flask application factory and initialization
"""

import os
import click
import logging
from flask import Flask, g
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import configuration
from config import config

# Import extensions
from extensions import login_manager

# Import database functions
from database import close_db, init_db

from utils.api_response import api_booking_error, api_error
from utils.errors import BookingError
from utils.messages import get_message


def create_app(config_name=None):
    """
    Application factory for Flask app.

    Args:
        config_name: Configuration name ('development', 'production', 'test')

    Returns:
        Flask application instance
    """
    # Determine config
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Create Flask app
    app = Flask(__name__)

    # Load configuration
    config_class = config[config_name]
    if hasattr(config_class, 'validate'):
        config_class.validate()
    app.config.from_object(config_class)

    # Initialize extensions
    initialize_extensions(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_cli_commands(app)

    # Register teardown handlers
    register_teardown_handlers(app)

    # Configure logging
    configure_logging(app)

    return app


def initialize_extensions(app):
    """Initialize Flask extensions."""
    login_manager.init_app(app)


def register_blueprints(app):
    """Register Flask blueprints."""
    from blueprints.api.routes import api_bp

    app.register_blueprint(api_bp, url_prefix='/api')


def register_error_handlers(app):
    """Register error handlers."""

    @app.errorhandler(BookingError)
    def booking_error(error):
        """Render engine errors as JSON envelopes."""
        app.logger.info(f'{error.kind}: {error.message}')
        return api_booking_error(error)

    @app.errorhandler(404)
    def not_found_error(error):
        """Handle 404 errors."""
        return api_error(get_message('not_found'), status=404, kind='NotFound')

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        # Rollback database on error
        db = g.get('db')
        if db:
            db.rollback()
        app.logger.error('Unhandled error, transaction rolled back',
                         exc_info=getattr(error, 'original_exception', None))
        return api_error(get_message('internal_error'), status=500, kind='InternalError')


def register_cli_commands(app):
    """Register Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db_command():
        """Initialize database with schema and seed data."""
        click.echo('Initializing database...')
        with app.app_context():
            init_db()
        click.echo('Database initialized successfully!')

    @app.cli.command('create-user')
    @click.argument('username')
    @click.argument('full_name')
    @click.option('--role', type=click.Choice(['admin', 'user']), default='user')
    def create_user_command(username, full_name, role):
        """Create a new user."""
        from models.user import create_user

        with app.app_context():
            try:
                user_id = create_user(username=username, full_name=full_name, role=role)
                click.echo(f'User created successfully! ID: {user_id}')
            except ValueError as e:
                click.echo(f'Error creating user: {e}', err=True)

    @app.cli.command('issue-session')
    @click.argument('username')
    @click.option('--hours', type=int, default=None, help='Session lifetime in hours')
    def issue_session_command(username, hours):
        """Issue a session token for a user."""
        from models.user import get_user_by_username
        from models.session import create_session

        with app.app_context():
            user = get_user_by_username(username)
            if not user:
                click.echo(f'User not found: {username}', err=True)
                return
            token = create_session(user['id'], hours=hours)
            click.echo(token)

    @app.cli.command('create-room')
    @click.argument('name')
    @click.argument('grid_width', type=int)
    @click.argument('grid_height', type=int)
    @click.option('--description', default=None)
    def create_room_command(name, grid_width, grid_height, description):
        """Create a room with a desk grid."""
        from models.room import create_room

        with app.app_context():
            try:
                room_id = create_room(name, grid_width, grid_height, description=description)
                click.echo(f'Room created successfully! ID: {room_id}')
            except ValueError as e:
                click.echo(f'Error creating room: {e}', err=True)

    @app.cli.command('add-desk')
    @click.argument('room_id', type=int)
    @click.argument('x', type=int)
    @click.argument('y', type=int)
    @click.option('--type', 'cell_type', default='desk')
    @click.option('--label', default=None)
    def add_desk_command(room_id, x, y, cell_type, label):
        """Add a cell (desk by default) to a room grid."""
        from models.room import create_cell

        with app.app_context():
            try:
                cell_id = create_cell(room_id, x, y, cell_type=cell_type, label=label)
                click.echo(f'Cell created successfully! ID: {cell_id}')
            except ValueError as e:
                click.echo(f'Error creating cell: {e}', err=True)

    @app.cli.command('grant-access')
    @click.argument('room_id', type=int)
    @click.argument('username')
    @click.option('--role', type=click.Choice(['admin', 'member']), default='member')
    def grant_access_command(room_id, username, role):
        """Give a user access to a room."""
        from models.user import get_user_by_username
        from models.room_access import grant_room_access

        with app.app_context():
            user = get_user_by_username(username)
            if not user:
                click.echo(f'User not found: {username}', err=True)
                return
            grant_room_access(room_id, user['id'], role)
            click.echo(f'{username} is now {role} of room {room_id}')

    @app.cli.command('revoke-access')
    @click.argument('room_id', type=int)
    @click.argument('username')
    def revoke_access_command(room_id, username):
        """Remove a user's access to a room."""
        from models.user import get_user_by_username
        from models.room_access import revoke_room_access

        with app.app_context():
            user = get_user_by_username(username)
            if not user or not revoke_room_access(room_id, user['id']):
                click.echo(f'No access found for {username} in room {room_id}', err=True)
                return
            click.echo(f'Access of {username} to room {room_id} revoked')

    @app.cli.command('create-office')
    @click.argument('name')
    @click.argument('location')
    @click.option('--shared/--private', default=False)
    @click.option('--created-by', default='admin', help='Username recorded as creator')
    def create_office_command(name, location, shared, created_by):
        """Create an office bookable by time slot."""
        from models.office import create_office
        from models.user import get_user_by_username

        with app.app_context():
            creator = get_user_by_username(created_by)
            if not creator:
                click.echo(f'User not found: {created_by}', err=True)
                return
            office_id = create_office(name, location, creator['id'], is_shared=shared)
            click.echo(f'Office created successfully! ID: {office_id}')


def register_teardown_handlers(app):
    """Register teardown handlers."""

    @app.teardown_appcontext
    def teardown_db(error):
        """Close database connection at end of request."""
        close_db(error)


def configure_logging(app):
    """Configure application logging."""
    if not app.debug and not app.testing:
        # Production logging
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = logging.FileHandler('logs/deskflow.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        # Engine modules log through their own loggers
        logging.getLogger('models').addHandler(file_handler)
        logging.getLogger('models').setLevel(logging.INFO)

        app.logger.setLevel(logging.INFO)
        app.logger.info('DeskFlow startup')
    else:
        # Development logging
        app.logger.setLevel(logging.DEBUG)


# Create application instance for development server
if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', debug=True)
