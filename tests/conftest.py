"""
Pytest configuration and fixtures.
Every test gets its own SQLite file with a fresh schema.
"""

import os
import pytest

os.environ['FLASK_ENV'] = 'test'


@pytest.fixture
def app(tmp_path):
    """Create test application with isolated database."""
    from app import create_app
    from database import init_db

    app = create_app('test')
    app.config['TESTING'] = True
    app.config['DATABASE_PATH'] = str(tmp_path / 'deskflow_test.db')

    with app.app_context():
        init_db()

    # Requests push their own app context, so the login state never leaks
    # from one request to the next.
    yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def booking_data(app):
    """
    Users, rooms and desks shared by the booking tests.

    Room "Open Space": alice and bob members, ralph room admin.
    Room "Quiet Room": alice and bob members.
    olga has no room access. admin is the seeded global admin.
    """
    from models.user import create_user, get_user_by_username
    from models.room import create_room, create_cell
    from models.room_access import grant_room_access

    with app.app_context():
        admin_id = get_user_by_username('admin')['id']
        alice = create_user('alice', 'Alice Member')
        bob = create_user('bob', 'Bob Member')
        ralph = create_user('ralph', 'Ralph Room Admin')
        olga = create_user('olga', 'Olga Outsider')

        room1 = create_room('Open Space', 10, 10, created_by=admin_id)
        room2 = create_room('Quiet Room', 5, 5, created_by=admin_id)

        desk_a1 = create_cell(room1, 0, 0, 'desk', 'A1')
        desk_a2 = create_cell(room1, 1, 0, 'desk', 'A2')
        desk_a3 = create_cell(room1, 2, 0, 'premium_desk', 'A3')
        wall = create_cell(room1, 0, 1, 'wall')
        desk_b1 = create_cell(room2, 0, 0, 'desk', 'B1')

        grant_room_access(room1, alice, 'member')
        grant_room_access(room1, bob, 'member')
        grant_room_access(room1, ralph, 'admin')
        grant_room_access(room2, alice, 'member')
        grant_room_access(room2, bob, 'member')

    return {
        'admin': admin_id,
        'alice': alice,
        'bob': bob,
        'ralph': ralph,
        'olga': olga,
        'room1': room1,
        'room2': room2,
        'desk_a1': desk_a1,
        'desk_a2': desk_a2,
        'desk_a3': desk_a3,
        'wall': wall,
        'desk_b1': desk_b1,
    }


@pytest.fixture
def principal(app):
    """Build the Principal of a user ID (call inside an app context)."""
    from models.user import Principal, get_user_by_id

    def _principal(user_id):
        return Principal(get_user_by_id(user_id))

    return _principal


@pytest.fixture
def auth_headers(app):
    """Issue a session for a user and return the request headers."""
    from models.session import create_session

    def _headers(user_id, hours=None):
        with app.app_context():
            token = create_session(user_id, hours=hours)
        return {app.config['SESSION_HEADER']: token}

    return _headers


@pytest.fixture
def call_operation(client, auth_headers):
    """POST an operation to an endpoint as a user; returns the response."""

    def _call(user_id, operation, data=None, endpoint='/api/reservations'):
        return client.post(
            endpoint,
            json={'operation': operation, 'data': data or {}},
            headers=auth_headers(user_id)
        )

    return _call
