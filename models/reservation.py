"""
Reservation data access functions.
Handles desk reservations, fixed assignments, state management and
availability checking.

This module re-exports the functions of the split modules:
- reservation_state.py: Status enum, transitions and history
- reservation_availability.py: Cell conflicts and per-user exclusivity
- reservation_crud.py: Create and read
- reservation_queries.py: Listings
- reservation_multiday.py: Day-by-day assignment expansion
- fixed_assignment.py: Standing desk assignments and day release
"""

# =============================================================================
# RE-EXPORTS
# =============================================================================

# State management
from .reservation_state import (
    ReservationStatus,
    VALID_TRANSITIONS,
    ACTIVE_STATUSES,
    validate_status_transition,
    get_allowed_transitions,
    approve_reservation,
    reject_reservation,
    cancel_reservation,
    get_status_history,
)

# Availability
from .reservation_availability import (
    check_cell_conflict,
    check_user_daily_exclusivity,
    get_cell_availability,
    get_room_availability_map,
)

# CRUD operations
from .reservation_crud import (
    create_reservation,
    request_reservation,
    get_reservation_by_id,
)

# Queries
from .reservation_queries import (
    list_my_reservations,
    list_room_reservations,
    list_pending_approvals,
    list_fixed_assignments,
)

# Multi-day assignments
from .reservation_multiday import (
    ReservationDraft,
    expand_assignment_to_reservations,
    create_daily_assignment_reservations,
)

# Fixed assignments
from .fixed_assignment import (
    validate_assignment_range,
    create_fixed_assignment,
    get_fixed_assignment_by_id,
    delete_fixed_assignment,
)
