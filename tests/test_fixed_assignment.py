"""
Tests for fixed desk assignments: creation bounds, conflicts and day release.
"""

import sqlite3

import pytest


def _assign(principal, booking_data, start='2024-01-01', end='2024-01-10',
            cell='desk_a2', user='alice'):
    from models.reservation import create_fixed_assignment

    return create_fixed_assignment(principal(booking_data['ralph']), booking_data[cell],
                                   booking_data[user], start, end)


class TestRangeValidation:

    def test_one_year_allowed(self):
        from models.reservation import validate_assignment_range
        from datetime import date

        assert validate_assignment_range('2023-03-01', '2024-03-01') == (
            date(2023, 3, 1), date(2024, 3, 1)
        )

    def test_leap_span_allowed(self):
        from models.reservation import validate_assignment_range

        start, end = validate_assignment_range('2024-01-01', '2025-01-01')
        assert (end - start).days == 366

    def test_one_day_too_long(self):
        from models.reservation import validate_assignment_range
        from utils.errors import RangeTooLong

        with pytest.raises(RangeTooLong) as exc_info:
            validate_assignment_range('2024-02-29', '2025-03-01')
        assert exc_info.value.details['max_date_end'] == '2025-02-28'

    def test_end_before_start(self):
        from models.reservation import validate_assignment_range
        from utils.errors import InvalidRequest

        with pytest.raises(InvalidRequest):
            validate_assignment_range('2024-01-10', '2024-01-01')


class TestCreate:

    def test_room_admin_assigns(self, app, booking_data, principal):
        with app.app_context():
            assignment = _assign(principal, booking_data)

        assert assignment['assigned_to'] == booking_data['alice']
        assert assignment['room_id'] == booking_data['room1']
        assert assignment['created_by'] == booking_data['ralph']
        assert assignment['assigned_username'] == 'alice'

    def test_member_cannot_assign(self, app, booking_data, principal):
        from models.reservation import create_fixed_assignment
        from utils.errors import Forbidden

        with app.app_context():
            with pytest.raises(Forbidden):
                create_fixed_assignment(principal(booking_data['alice']),
                                        booking_data['desk_a2'], booking_data['alice'],
                                        '2024-01-01', '2024-01-10')

    def test_unknown_assignee(self, app, booking_data, principal):
        from models.reservation import create_fixed_assignment
        from utils.errors import NotFound

        with app.app_context():
            with pytest.raises(NotFound):
                create_fixed_assignment(principal(booking_data['ralph']),
                                        booking_data['desk_a2'], 9999,
                                        '2024-01-01', '2024-01-10')

    def test_400_days_rejected_without_rows(self, app, booking_data, principal):
        from database import get_db
        from utils.errors import RangeTooLong

        with app.app_context():
            with pytest.raises(RangeTooLong):
                _assign(principal, booking_data, '2024-01-01', '2025-02-03')
            count = get_db().execute('SELECT COUNT(*) FROM fixed_assignments').fetchone()[0]
        assert count == 0

    def test_overlapping_assignment_on_cell(self, app, booking_data, principal):
        from utils.errors import FixedAssignmentConflict

        with app.app_context():
            _assign(principal, booking_data)
            with pytest.raises(FixedAssignmentConflict):
                _assign(principal, booking_data, '2024-01-10', '2024-01-20', user='bob')

    def test_adjacent_assignment_allowed(self, app, booking_data, principal):
        with app.app_context():
            _assign(principal, booking_data)
            following = _assign(principal, booking_data, '2024-01-11', '2024-01-20', user='bob')
        assert following['date_start'] == '2024-01-11'

    def test_other_users_approved_booking_blocks(self, app, booking_data, principal):
        from models.reservation import create_reservation
        from utils.errors import SlotConflict

        with app.app_context():
            create_reservation(principal(booking_data['bob']), booking_data['desk_a2'],
                               '2024-01-05', time_segment='PM')
            with pytest.raises(SlotConflict):
                _assign(principal, booking_data)

    def test_assignee_already_booked(self, app, booking_data, principal):
        from models.reservation import create_reservation
        from utils.errors import DuplicateBookingError

        with app.app_context():
            create_reservation(principal(booking_data['alice']), booking_data['desk_b1'],
                               '2024-01-03')
            with pytest.raises(DuplicateBookingError):
                _assign(principal, booking_data)

    def test_assignee_holding_another_desk(self, app, booking_data, principal):
        from utils.errors import DuplicateBookingError

        with app.app_context():
            _assign(principal, booking_data, cell='desk_a1')
            with pytest.raises(DuplicateBookingError) as exc_info:
                _assign(principal, booking_data, '2024-01-10', '2024-01-12')
        assert exc_info.value.details['source'] == 'fixed_assignment'


class TestDeleteAndRelease:

    def test_middle_day_splits(self, app, booking_data, principal):
        from database import get_db
        from models.reservation import delete_fixed_assignment, get_cell_availability

        with app.app_context():
            assignment = _assign(principal, booking_data)
            result = delete_fixed_assignment(principal(booking_data['ralph']),
                                             assignment['id'], '2024-01-05')
            rows = get_db().execute('''
                SELECT date_start, date_end, assigned_to, cell_id, created_by
                FROM fixed_assignments ORDER BY date_start
            ''').fetchall()
            released = get_cell_availability(booking_data['desk_a2'], '2024-01-05', '2024-01-05')
            still_taken = get_cell_availability(booking_data['desk_a2'], '2024-01-06', '2024-01-06')

        assert result['deleted'] is False
        assert (result['assignment']['date_start'], result['assignment']['date_end']) == \
            ('2024-01-01', '2024-01-04')
        assert (result['created']['date_start'], result['created']['date_end']) == \
            ('2024-01-06', '2024-01-10')
        assert [tuple(r) for r in rows] == [
            ('2024-01-01', '2024-01-04', booking_data['alice'], booking_data['desk_a2'],
             booking_data['ralph']),
            ('2024-01-06', '2024-01-10', booking_data['alice'], booking_data['desk_a2'],
             booking_data['ralph']),
        ]
        assert released['available'] is True
        assert still_taken['available'] is False

    def test_released_day_can_be_booked(self, app, booking_data, principal):
        from models.reservation import delete_fixed_assignment, create_reservation

        with app.app_context():
            assignment = _assign(principal, booking_data)
            delete_fixed_assignment(principal(booking_data['alice']), assignment['id'],
                                    '2024-01-05')
            reservation = create_reservation(principal(booking_data['bob']),
                                             booking_data['desk_a2'], '2024-01-05')
        assert reservation['status'] == 'approved'

    def test_first_day(self, app, booking_data, principal):
        from models.reservation import delete_fixed_assignment

        with app.app_context():
            assignment = _assign(principal, booking_data)
            result = delete_fixed_assignment(principal(booking_data['ralph']),
                                             assignment['id'], '2024-01-01')
        assert result['assignment']['date_start'] == '2024-01-02'
        assert result['created'] is None

    def test_last_day(self, app, booking_data, principal):
        from models.reservation import delete_fixed_assignment

        with app.app_context():
            assignment = _assign(principal, booking_data)
            result = delete_fixed_assignment(principal(booking_data['ralph']),
                                             assignment['id'], '2024-01-10')
        assert result['assignment']['date_end'] == '2024-01-09'
        assert result['created'] is None

    def test_single_day_assignment_deleted(self, app, booking_data, principal):
        from models.reservation import delete_fixed_assignment, get_fixed_assignment_by_id

        with app.app_context():
            assignment = _assign(principal, booking_data, '2024-01-05', '2024-01-05')
            result = delete_fixed_assignment(principal(booking_data['ralph']),
                                             assignment['id'], '2024-01-05')
            assert get_fixed_assignment_by_id(assignment['id']) is None
        assert result['deleted'] is True

    def test_whole_row(self, app, booking_data, principal):
        from models.reservation import delete_fixed_assignment, get_fixed_assignment_by_id

        with app.app_context():
            assignment = _assign(principal, booking_data)
            result = delete_fixed_assignment(principal(booking_data['alice']), assignment['id'])
            assert get_fixed_assignment_by_id(assignment['id']) is None
        assert result == {'deleted': True, 'assignment': None, 'created': None}

    def test_date_outside_range(self, app, booking_data, principal):
        from models.reservation import delete_fixed_assignment
        from utils.errors import InvalidRequest

        with app.app_context():
            assignment = _assign(principal, booking_data)
            with pytest.raises(InvalidRequest):
                delete_fixed_assignment(principal(booking_data['ralph']),
                                        assignment['id'], '2024-01-11')

    def test_other_member_forbidden(self, app, booking_data, principal):
        from models.reservation import delete_fixed_assignment
        from utils.errors import Forbidden

        with app.app_context():
            assignment = _assign(principal, booking_data)
            with pytest.raises(Forbidden):
                delete_fixed_assignment(principal(booking_data['bob']), assignment['id'])

    def test_unknown_assignment(self, app, booking_data, principal):
        from models.reservation import delete_fixed_assignment
        from utils.errors import NotFound

        with app.app_context():
            with pytest.raises(NotFound):
                delete_fixed_assignment(principal(booking_data['admin']), 9999)

    def test_release_reads_current_row(self, app, booking_data, principal, monkeypatch):
        from database import get_db
        from models import fixed_assignment
        from models.reservation import delete_fixed_assignment, get_fixed_assignment_by_id
        from utils.errors import InvalidRequest

        with app.app_context():
            ralph = principal(booking_data['ralph'])
            assignment = _assign(principal, booking_data)
            before = get_fixed_assignment_by_id(assignment['id'])
            delete_fixed_assignment(ralph, assignment['id'], '2024-01-03')

            # A caller still holding the pre-split row asks for its last day
            monkeypatch.setattr(fixed_assignment, 'get_fixed_assignment_by_id',
                                lambda assignment_id: before)
            with pytest.raises(InvalidRequest):
                delete_fixed_assignment(ralph, assignment['id'], '2024-01-10')

            rows = get_db().execute(
                'SELECT id, date_start, date_end FROM fixed_assignments ORDER BY id'
            ).fetchall()

        assert [tuple(r)[1:] for r in rows] == [
            ('2024-01-01', '2024-01-02'),
            ('2024-01-04', '2024-01-10'),
        ]


class TestFixedAssignmentStorageGuards:
    """Triggers reject assignment rows that bypass the engine checks."""

    def test_trigger_rejects_regrowing_a_split_row(self, app, booking_data, principal):
        from database import get_db
        from models.reservation import delete_fixed_assignment
        from utils.errors import FixedAssignmentConflict, map_integrity_error

        with app.app_context():
            assignment = _assign(principal, booking_data)
            delete_fixed_assignment(principal(booking_data['ralph']), assignment['id'],
                                    '2024-01-03')
            db = get_db()
            with pytest.raises(sqlite3.IntegrityError) as exc_info:
                db.execute("UPDATE fixed_assignments SET date_end = '2024-01-09' WHERE id = ?",
                           (assignment['id'],))
            db.rollback()
            end = db.execute('SELECT date_end FROM fixed_assignments WHERE id = ?',
                             (assignment['id'],)).fetchone()[0]

        assert isinstance(map_integrity_error(exc_info.value), FixedAssignmentConflict)
        assert end == '2024-01-02'

    def test_trigger_rejects_assignee_overlap(self, app, booking_data, principal):
        from database import get_db
        from utils.errors import DuplicateBookingError, map_integrity_error

        with app.app_context():
            first = _assign(principal, booking_data, '2024-01-01', '2024-01-05')
            _assign(principal, booking_data, '2024-01-06', '2024-01-10', cell='desk_a1')
            db = get_db()
            with pytest.raises(sqlite3.IntegrityError) as exc_info:
                db.execute("UPDATE fixed_assignments SET date_end = '2024-01-07' WHERE id = ?",
                           (first['id'],))
            db.rollback()

        assert isinstance(map_integrity_error(exc_info.value), DuplicateBookingError)

    def test_trigger_allows_narrowing(self, app, booking_data, principal):
        from database import get_db

        with app.app_context():
            assignment = _assign(principal, booking_data)
            db = get_db()
            db.execute("UPDATE fixed_assignments SET date_end = '2024-01-08' WHERE id = ?",
                       (assignment['id'],))
            db.commit()
            end = db.execute('SELECT date_end FROM fixed_assignments WHERE id = ?',
                             (assignment['id'],)).fetchone()[0]

        assert end == '2024-01-08'
