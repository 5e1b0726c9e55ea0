"""
Tests for the reservation operation endpoint.
"""


class TestBookingScenarios:

    def test_half_day_on_full_day_conflicts(self, booking_data, call_operation):
        desk = booking_data['desk_a1']
        first = call_operation(booking_data['alice'], 'create', {
            'cell_id': desk, 'date_start': '2024-06-10', 'date_end': '2024-06-10',
            'time_segment': 'FULL'
        })
        assert first.status_code == 200

        second = call_operation(booking_data['bob'], 'create', {
            'cell_id': desk, 'date_start': '2024-06-10', 'time_segment': 'AM'
        })
        assert second.status_code == 409
        payload = second.get_json()
        assert payload['success'] is False
        assert payload['kind'] == 'SlotConflict'
        assert payload['reservation_id'] == first.get_json()['data']['id']

    def test_opposite_half_days_coexist(self, booking_data, call_operation):
        desk = booking_data['desk_a1']
        call_operation(booking_data['alice'], 'create', {
            'cell_id': desk, 'date_start': '2024-06-10', 'time_segment': 'AM'
        })
        response = call_operation(booking_data['bob'], 'create', {
            'cell_id': desk, 'date_start': '2024-06-10', 'time_segment': 'PM'
        })
        assert response.status_code == 200
        payload = response.get_json()
        assert payload['data']['status'] == 'approved'
        assert payload['message'] == 'Reservation created'

    def test_second_room_same_day(self, booking_data, call_operation):
        call_operation(booking_data['bob'], 'create', {
            'cell_id': booking_data['desk_a1'], 'date_start': '2024-07-01'
        })
        response = call_operation(booking_data['bob'], 'create', {
            'cell_id': booking_data['desk_b1'], 'date_start': '2024-07-01'
        })
        assert response.status_code == 409
        payload = response.get_json()
        assert payload['kind'] == 'DuplicateBookingError'
        assert payload['source'] == 'reservation'

    def test_release_middle_day(self, booking_data, call_operation):
        created = call_operation(booking_data['ralph'], 'create_fixed_assignment', {
            'cell_id': booking_data['desk_a2'], 'assigned_to': booking_data['alice'],
            'date_start': '2024-01-01', 'date_end': '2024-01-10'
        })
        assert created.status_code == 200
        assignment_id = created.get_json()['data']['id']

        released = call_operation(booking_data['ralph'], 'delete_fixed_assignment', {
            'fixed_assignment_id': assignment_id, 'date': '2024-01-05'
        })
        assert released.status_code == 200
        data = released.get_json()['data']
        assert data['assignment']['date_end'] == '2024-01-04'
        assert data['created']['date_start'] == '2024-01-06'
        assert data['created']['date_end'] == '2024-01-10'
        assert released.get_json()['message'] == 'Desk released on 2024-01-05'

        availability = call_operation(booking_data['bob'], 'check_availability', {
            'cell_id': booking_data['desk_a2'], 'date_start': '2024-01-05'
        })
        assert availability.get_json()['data']['available'] is True

    def test_assignment_longer_than_a_year(self, app, booking_data, call_operation):
        from database import get_db

        response = call_operation(booking_data['ralph'], 'create_fixed_assignment', {
            'cell_id': booking_data['desk_a2'], 'assigned_to': booking_data['alice'],
            'date_start': '2024-01-01', 'date_end': '2025-02-03'
        })
        assert response.status_code == 400
        assert response.get_json()['kind'] == 'RangeTooLong'

        with app.app_context():
            count = get_db().execute('SELECT COUNT(*) FROM fixed_assignments').fetchone()[0]
        assert count == 0


class TestLifecycle:

    def test_request_then_approve(self, booking_data, call_operation):
        requested = call_operation(booking_data['alice'], 'request', {
            'cell_id': booking_data['desk_a1'], 'date_start': '2024-06-10',
            'notes': '  near the window  '
        })
        assert requested.status_code == 200
        reservation_id = requested.get_json()['data']['id']
        assert requested.get_json()['data']['status'] == 'pending'

        pending = call_operation(booking_data['ralph'], 'list_pending_approvals')
        assert [r['id'] for r in pending.get_json()['data']] == [reservation_id]

        forbidden = call_operation(booking_data['bob'], 'approve',
                                   {'reservation_id': reservation_id})
        assert forbidden.status_code == 403

        approved = call_operation(booking_data['ralph'], 'approve',
                                  {'reservation_id': reservation_id})
        assert approved.status_code == 200
        assert approved.get_json()['data']['status'] == 'approved'

        history = call_operation(booking_data['alice'], 'reservation_history',
                                 {'reservation_id': reservation_id})
        entries = history.get_json()['data']
        assert [h['status'] for h in entries] == ['pending', 'approved']
        assert entries[0]['notes'] == 'near the window'

    def test_reject(self, booking_data, call_operation):
        requested = call_operation(booking_data['alice'], 'request', {
            'cell_id': booking_data['desk_a1'], 'date_start': '2024-06-10'
        })
        reservation_id = requested.get_json()['data']['id']

        rejected = call_operation(booking_data['ralph'], 'reject',
                                  {'reservation_id': reservation_id, 'notes': 'Closed'})
        assert rejected.get_json()['data']['status'] == 'rejected'

        again = call_operation(booking_data['ralph'], 'approve',
                               {'reservation_id': reservation_id})
        assert again.status_code == 409
        payload = again.get_json()
        assert payload['kind'] == 'InvalidTransition'
        assert payload['current_status'] == 'rejected'

    def test_cancel_twice(self, booking_data, call_operation):
        created = call_operation(booking_data['alice'], 'create', {
            'cell_id': booking_data['desk_a1'], 'date_start': '2024-06-10'
        })
        reservation_id = created.get_json()['data']['id']

        first = call_operation(booking_data['alice'], 'cancel',
                               {'reservation_id': reservation_id})
        second = call_operation(booking_data['alice'], 'cancel',
                                {'reservation_id': reservation_id})
        assert first.status_code == 200
        assert second.status_code == 409
        assert second.get_json()['kind'] == 'AlreadyCancelled'

    def test_daily_assignments(self, booking_data, call_operation):
        response = call_operation(booking_data['ralph'], 'create_daily_assignments', {
            'cell_id': booking_data['desk_a1'], 'user_id': booking_data['bob'],
            'date_start': '2024-06-03', 'date_end': '2024-06-05'
        })
        assert response.status_code == 200
        payload = response.get_json()
        assert payload['data']['count'] == 3
        assert payload['message'] == 'Desk assigned for 3 days'

        mine = call_operation(booking_data['bob'], 'list_my_reservations')
        assert len(mine.get_json()['data']) == 3


class TestQueries:

    def test_room_reservations(self, booking_data, call_operation):
        call_operation(booking_data['alice'], 'create', {
            'cell_id': booking_data['desk_a1'], 'date_start': '2024-06-10'
        })
        response = call_operation(booking_data['bob'], 'list_room_reservations', {
            'room_id': booking_data['room1'], 'status': 'approved'
        })
        assert response.status_code == 200
        assert [r['username'] for r in response.get_json()['data']] == ['alice']

    def test_room_reservations_bad_status(self, booking_data, call_operation):
        response = call_operation(booking_data['bob'], 'list_room_reservations', {
            'room_id': booking_data['room1'], 'status': 'archived'
        })
        assert response.status_code == 400

    def test_room_reservations_unknown_room(self, booking_data, call_operation):
        response = call_operation(booking_data['admin'], 'list_room_reservations',
                                  {'room_id': 999})
        assert response.status_code == 404

    def test_room_availability(self, booking_data, call_operation):
        call_operation(booking_data['alice'], 'create', {
            'cell_id': booking_data['desk_a1'], 'date_start': '2024-06-10',
            'time_segment': 'AM'
        })
        response = call_operation(booking_data['bob'], 'room_availability', {
            'room_id': booking_data['room1'], 'date_from': '2024-06-10'
        })
        assert response.status_code == 200
        day = response.get_json()['data']['2024-06-10']
        assert day[str(booking_data['desk_a1'])] == ['PM']
        assert day[str(booking_data['desk_a2'])] == ['AM', 'PM', 'FULL']

    def test_room_availability_window_limit(self, booking_data, call_operation):
        response = call_operation(booking_data['bob'], 'room_availability', {
            'room_id': booking_data['room1'], 'date_from': '2024-01-01',
            'date_to': '2024-06-30'
        })
        assert response.status_code == 400

    def test_outsider_cannot_see_room(self, booking_data, call_operation):
        response = call_operation(booking_data['olga'], 'room_availability', {
            'room_id': booking_data['room1'], 'date_from': '2024-06-10'
        })
        assert response.status_code == 403

    def test_history_of_other_room_hidden(self, booking_data, call_operation):
        created = call_operation(booking_data['alice'], 'create', {
            'cell_id': booking_data['desk_b1'], 'date_start': '2024-06-10'
        })
        response = call_operation(booking_data['ralph'], 'reservation_history', {
            'reservation_id': created.get_json()['data']['id']
        })
        assert response.status_code == 403

    def test_fixed_assignments(self, booking_data, call_operation):
        call_operation(booking_data['ralph'], 'create_fixed_assignment', {
            'cell_id': booking_data['desk_a2'], 'assigned_to': booking_data['alice'],
            'date_start': '2024-01-01', 'date_end': '2024-01-10'
        })
        room = call_operation(booking_data['bob'], 'list_fixed_assignments',
                              {'room_id': booking_data['room1']})
        own = call_operation(booking_data['alice'], 'list_fixed_assignments')
        assert len(room.get_json()['data']) == 1
        assert len(own.get_json()['data']) == 1


class TestPayloadValidation:

    def test_missing_cell(self, booking_data, call_operation):
        response = call_operation(booking_data['alice'], 'create', {'date_start': '2024-06-10'})
        assert response.status_code == 400
        payload = response.get_json()
        assert payload['kind'] == 'InvalidRequest'
        assert payload['field'] == 'cell_id'

    def test_bad_date(self, booking_data, call_operation):
        response = call_operation(booking_data['alice'], 'create', {
            'cell_id': booking_data['desk_a1'], 'date_start': '10/06/2024'
        })
        assert response.status_code == 400
        assert response.get_json()['field'] == 'date_start'

    def test_bad_segment(self, booking_data, call_operation):
        response = call_operation(booking_data['alice'], 'create', {
            'cell_id': booking_data['desk_a1'], 'date_start': '2024-06-10',
            'time_segment': 'NIGHT'
        })
        assert response.status_code == 400

    def test_boolean_id_rejected(self, booking_data, call_operation):
        response = call_operation(booking_data['alice'], 'cancel', {'reservation_id': True})
        assert response.status_code == 400
