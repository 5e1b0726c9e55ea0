"""
Typed request payloads for the operation endpoints.

Each operation name maps to one frozen dataclass. from_payload() reads the
JSON "data" object, checks required fields and coerces types, so handlers
only ever see validated values.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from models.reservation_state import ReservationStatus
from utils.datetime_helpers import TimeSegment, parse_date, parse_segment
from utils.errors import InvalidRequest
from utils.validators import optional_int, require_int, require_value, sanitize_input


def _optional_date(data: dict, field: str) -> Optional[date]:
    value = data.get(field)
    return parse_date(value, field) if value else None


# =============================================================================
# RESERVATIONS
# =============================================================================

@dataclass(frozen=True)
class BookDeskRequest:
    """create / request: book a desk for a day range and segment."""

    cell_id: int
    date_start: date
    date_end: date
    time_segment: TimeSegment = TimeSegment.FULL
    user_id: Optional[int] = None
    notes: str = ''

    @classmethod
    def from_payload(cls, data: dict) -> 'BookDeskRequest':
        date_start = parse_date(require_value(data, 'date_start'), 'date_start')
        return cls(
            cell_id=require_int(data, 'cell_id'),
            date_start=date_start,
            date_end=_optional_date(data, 'date_end') or date_start,
            time_segment=parse_segment(data.get('time_segment')),
            user_id=optional_int(data, 'user_id'),
            notes=sanitize_input(data.get('notes'), max_length=500)
        )


@dataclass(frozen=True)
class CreateFixedAssignmentRequest:
    """create_fixed_assignment: standing claim of a user on a desk."""

    cell_id: int
    assigned_to: int
    date_start: date
    date_end: date

    @classmethod
    def from_payload(cls, data: dict) -> 'CreateFixedAssignmentRequest':
        return cls(
            cell_id=require_int(data, 'cell_id'),
            assigned_to=require_int(data, 'assigned_to'),
            date_start=parse_date(require_value(data, 'date_start'), 'date_start'),
            date_end=parse_date(require_value(data, 'date_end'), 'date_end')
        )


@dataclass(frozen=True)
class DailyAssignmentsRequest:
    """create_daily_assignments: one approved reservation per day."""

    cell_id: int
    user_id: int
    date_start: date
    date_end: date

    @classmethod
    def from_payload(cls, data: dict) -> 'DailyAssignmentsRequest':
        return cls(
            cell_id=require_int(data, 'cell_id'),
            user_id=require_int(data, 'user_id'),
            date_start=parse_date(require_value(data, 'date_start'), 'date_start'),
            date_end=parse_date(require_value(data, 'date_end'), 'date_end')
        )


@dataclass(frozen=True)
class ReservationActionRequest:
    """approve / reject / cancel a reservation."""

    reservation_id: int
    notes: str = ''

    @classmethod
    def from_payload(cls, data: dict) -> 'ReservationActionRequest':
        return cls(
            reservation_id=require_int(data, 'reservation_id'),
            notes=sanitize_input(data.get('notes'), max_length=500)
        )


@dataclass(frozen=True)
class DeleteFixedAssignmentRequest:
    """delete_fixed_assignment: whole row, or a single day when date is set."""

    fixed_assignment_id: int
    release_date: Optional[date] = None

    @classmethod
    def from_payload(cls, data: dict) -> 'DeleteFixedAssignmentRequest':
        return cls(
            fixed_assignment_id=require_int(data, 'fixed_assignment_id'),
            release_date=_optional_date(data, 'date')
        )


@dataclass(frozen=True)
class DateWindowRequest:
    """list_my_reservations: optional inclusive day window."""

    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @classmethod
    def from_payload(cls, data: dict) -> 'DateWindowRequest':
        return cls(
            date_from=_optional_date(data, 'date_from'),
            date_to=_optional_date(data, 'date_to')
        )


@dataclass(frozen=True)
class RoomReservationsRequest:
    """list_room_reservations."""

    room_id: int
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    status: Optional[ReservationStatus] = None

    @classmethod
    def from_payload(cls, data: dict) -> 'RoomReservationsRequest':
        status = data.get('status')
        if status:
            try:
                status = ReservationStatus(status)
            except ValueError:
                raise InvalidRequest(f'Unknown status: {status}', field='status')
        return cls(
            room_id=require_int(data, 'room_id'),
            date_from=_optional_date(data, 'date_from'),
            date_to=_optional_date(data, 'date_to'),
            status=status or None
        )


@dataclass(frozen=True)
class EmptyRequest:
    """Operations without parameters."""

    @classmethod
    def from_payload(cls, data: dict) -> 'EmptyRequest':
        return cls()


@dataclass(frozen=True)
class FixedAssignmentsQuery:
    """list_fixed_assignments: a room's, or the caller's own."""

    room_id: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @classmethod
    def from_payload(cls, data: dict) -> 'FixedAssignmentsQuery':
        return cls(
            room_id=optional_int(data, 'room_id'),
            date_from=_optional_date(data, 'date_from'),
            date_to=_optional_date(data, 'date_to')
        )


@dataclass(frozen=True)
class CheckAvailabilityRequest:
    """check_availability: can this desk be booked for range and segment."""

    cell_id: int
    date_start: date
    date_end: date
    time_segment: TimeSegment = TimeSegment.FULL

    @classmethod
    def from_payload(cls, data: dict) -> 'CheckAvailabilityRequest':
        date_start = parse_date(require_value(data, 'date_start'), 'date_start')
        return cls(
            cell_id=require_int(data, 'cell_id'),
            date_start=date_start,
            date_end=_optional_date(data, 'date_end') or date_start,
            time_segment=parse_segment(data.get('time_segment'))
        )


@dataclass(frozen=True)
class RoomAvailabilityRequest:
    """room_availability: free segments of every desk, day by day."""

    room_id: int
    date_from: date
    date_to: date

    @classmethod
    def from_payload(cls, data: dict) -> 'RoomAvailabilityRequest':
        date_from = parse_date(require_value(data, 'date_from'), 'date_from')
        date_to = _optional_date(data, 'date_to') or date_from
        if date_to < date_from:
            raise InvalidRequest('date_to must not be before date_from')
        if (date_to - date_from).days > 62:
            raise InvalidRequest('Availability window is limited to 63 days')
        return cls(room_id=require_int(data, 'room_id'), date_from=date_from, date_to=date_to)


@dataclass(frozen=True)
class ReservationHistoryRequest:
    """reservation_history."""

    reservation_id: int

    @classmethod
    def from_payload(cls, data: dict) -> 'ReservationHistoryRequest':
        return cls(reservation_id=require_int(data, 'reservation_id'))


# =============================================================================
# OFFICE BOOKINGS
# =============================================================================

@dataclass(frozen=True)
class OfficeWindowRequest:
    """list_by_office: bookings overlapping an optional time window."""

    office_id: int
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @classmethod
    def from_payload(cls, data: dict) -> 'OfficeWindowRequest':
        return cls(
            office_id=require_int(data, 'office_id'),
            start_time=data.get('start_time') or None,
            end_time=data.get('end_time') or None
        )


@dataclass(frozen=True)
class OfficeSlotRequest:
    """create / create_admin_block: an office time slot."""

    office_id: int
    start_time: str
    end_time: str

    @classmethod
    def from_payload(cls, data: dict) -> 'OfficeSlotRequest':
        return cls(
            office_id=require_int(data, 'office_id'),
            start_time=require_value(data, 'start_time'),
            end_time=require_value(data, 'end_time')
        )


@dataclass(frozen=True)
class OfficeBookingRef:
    """delete: an existing office booking."""

    booking_id: int

    @classmethod
    def from_payload(cls, data: dict) -> 'OfficeBookingRef':
        return cls(booking_id=require_int(data, 'booking_id'))
