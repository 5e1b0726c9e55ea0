"""
Tests for day-by-day assignment expansion.
"""

from datetime import date

import pytest


class TestExpandAssignment:

    def test_one_draft_per_day(self):
        from models.reservation import expand_assignment_to_reservations
        from models.reservation_state import ReservationStatus
        from utils.datetime_helpers import TimeSegment

        drafts = expand_assignment_to_reservations({
            'room_id': 1, 'cell_id': 2, 'assigned_to': 3,
            'date_start': '2024-02-27', 'date_end': '2024-03-01', 'created_by': 4
        })

        assert [d.day for d in drafts] == [
            date(2024, 2, 27), date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)
        ]
        assert all(d.time_segment is TimeSegment.FULL for d in drafts)
        assert all(d.status is ReservationStatus.APPROVED for d in drafts)
        assert {(d.room_id, d.cell_id, d.user_id, d.approved_by) for d in drafts} == {(1, 2, 3, 4)}

    def test_drafts_are_immutable(self):
        from dataclasses import FrozenInstanceError
        from models.reservation import expand_assignment_to_reservations

        draft = expand_assignment_to_reservations({
            'room_id': 1, 'cell_id': 2, 'assigned_to': 3,
            'date_start': '2024-01-01', 'date_end': '2024-01-01', 'created_by': 4
        })[0]
        with pytest.raises(FrozenInstanceError):
            draft.user_id = 5


class TestDailyAssignments:

    def test_creates_one_reservation_per_day(self, app, booking_data, principal):
        from database import get_db
        from models.reservation import create_daily_assignment_reservations

        with app.app_context():
            ids = create_daily_assignment_reservations(principal(booking_data['ralph']),
                                                       booking_data['desk_a1'],
                                                       booking_data['bob'],
                                                       '2024-06-03', '2024-06-07')
            rows = get_db().execute('''
                SELECT date_start, date_end, status, time_segment, approved_by
                FROM reservations ORDER BY date_start
            ''').fetchall()

        assert len(ids) == 5
        assert [r['date_start'] for r in rows] == [
            '2024-06-03', '2024-06-04', '2024-06-05', '2024-06-06', '2024-06-07'
        ]
        assert all(r['date_start'] == r['date_end'] for r in rows)
        assert {(r['status'], r['time_segment'], r['approved_by']) for r in rows} == {
            ('approved', 'FULL', booking_data['ralph'])
        }

    def test_member_forbidden(self, app, booking_data, principal):
        from models.reservation import create_daily_assignment_reservations
        from utils.errors import Forbidden

        with app.app_context():
            with pytest.raises(Forbidden):
                create_daily_assignment_reservations(principal(booking_data['alice']),
                                                     booking_data['desk_a1'],
                                                     booking_data['alice'],
                                                     '2024-06-03', '2024-06-07')

    def test_one_busy_day_rejects_whole_range(self, app, booking_data, principal):
        from database import get_db
        from models.reservation import create_reservation, create_daily_assignment_reservations
        from utils.errors import SlotConflict

        with app.app_context():
            create_reservation(principal(booking_data['alice']), booking_data['desk_a1'],
                               '2024-06-05', time_segment='PM')
            with pytest.raises(SlotConflict):
                create_daily_assignment_reservations(principal(booking_data['ralph']),
                                                     booking_data['desk_a1'],
                                                     booking_data['bob'],
                                                     '2024-06-03', '2024-06-07')
            count = get_db().execute('SELECT COUNT(*) FROM reservations').fetchone()[0]
        assert count == 1

    def test_user_booked_elsewhere(self, app, booking_data, principal):
        from models.reservation import create_reservation, create_daily_assignment_reservations
        from utils.errors import DuplicateBookingError

        with app.app_context():
            create_reservation(principal(booking_data['bob']), booking_data['desk_b1'],
                               '2024-06-07')
            with pytest.raises(DuplicateBookingError):
                create_daily_assignment_reservations(principal(booking_data['ralph']),
                                                     booking_data['desk_a1'],
                                                     booking_data['bob'],
                                                     '2024-06-03', '2024-06-07')

    def test_range_limit(self, app, booking_data, principal):
        from models.reservation import create_daily_assignment_reservations
        from utils.errors import RangeTooLong

        with app.app_context():
            with pytest.raises(RangeTooLong):
                create_daily_assignment_reservations(principal(booking_data['ralph']),
                                                     booking_data['desk_a1'],
                                                     booking_data['bob'],
                                                     '2024-01-01', '2025-01-02')

    def test_cancelling_every_day_frees_the_desk(self, app, booking_data, principal):
        from models.reservation import (
            create_daily_assignment_reservations, cancel_reservation,
            get_cell_availability, get_room_availability_map
        )

        with app.app_context():
            ralph = principal(booking_data['ralph'])
            ids = create_daily_assignment_reservations(ralph, booking_data['desk_a1'],
                                                       booking_data['bob'],
                                                       '2024-06-03', '2024-06-09')
            assert not get_cell_availability(booking_data['desk_a1'],
                                             '2024-06-03', '2024-06-09')['available']

            for reservation_id in ids:
                cancel_reservation(principal(booking_data['bob']), reservation_id)

            availability = get_cell_availability(booking_data['desk_a1'],
                                                 '2024-06-03', '2024-06-09')
            room_map = get_room_availability_map(booking_data['room1'],
                                                 '2024-06-03', '2024-06-09')

        assert availability['available'] is True
        assert all(day[booking_data['desk_a1']] == ['AM', 'PM', 'FULL']
                   for day in room_map.values())
