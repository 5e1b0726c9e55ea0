"""
Booking engine error kinds.

Every guard in the engine raises one of these. The API layer renders them
with api_error() as {"success": false, "error": message, "kind": kind, ...}.
"""

import sqlite3


class BookingError(Exception):
    """Base class for structured engine errors."""

    status = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def kind(self) -> str:
        return type(self).__name__


class Unauthenticated(BookingError):
    """Missing, unknown or expired session, or inactive user."""
    status = 401


class Forbidden(BookingError):
    """Principal lacks room-admin rights or ownership for the action."""
    status = 403


class NotFound(BookingError):
    status = 404


class InvalidRequest(BookingError):
    """Malformed payload, unknown operation or unparseable value."""
    status = 400


class InvalidTransition(BookingError):
    status = 409


class SlotConflict(BookingError):
    status = 409


class FixedAssignmentConflict(BookingError):
    status = 409


class DuplicateBookingError(BookingError):
    status = 409


class RangeTooLong(BookingError):
    status = 400


class AlreadyCancelled(BookingError):
    status = 409


# Messages raised by the schema triggers (RAISE(ABORT, ...))
_TRIGGER_ERRORS = {
    'slot_conflict': (SlotConflict, 'The desk was booked by a concurrent request'),
    'fixed_assignment_conflict': (
        FixedAssignmentConflict, 'The desk was assigned by a concurrent request'
    ),
    'duplicate_booking': (
        DuplicateBookingError, 'The user was booked elsewhere by a concurrent request'
    ),
}


def map_integrity_error(error: sqlite3.IntegrityError) -> BookingError:
    """
    Translate a storage-level rejection into the matching engine error.

    Args:
        error: IntegrityError raised by sqlite3

    Returns:
        BookingError: The mapped error

    Raises:
        sqlite3.IntegrityError: If the failure is not one of the booking guards
    """
    text = str(error)
    for marker, (error_class, message) in _TRIGGER_ERRORS.items():
        if marker in text:
            return error_class(message, storage_rejected=True)
    raise error
