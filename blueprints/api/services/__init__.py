"""API services package."""

from blueprints.api.services.reservation_service import (  # noqa: F401
    dispatch_operation,
    RESERVATION_OPERATIONS,
)
from blueprints.api.services.office_service import OFFICE_BOOKING_OPERATIONS  # noqa: F401
