"""
Centralized API messages.
Success text returned with engine operations.
"""

MESSAGES = {
    # Reservations
    'reservation_created': 'Reservation created',
    'reservation_requested': 'Reservation requested, waiting for approval',
    'reservation_approved': 'Reservation approved',
    'reservation_rejected': 'Reservation rejected',
    'reservation_cancelled': 'Reservation cancelled',

    # Fixed assignments
    'assignment_created': 'Desk assigned from {date_start} to {date_end}',
    'daily_assignments_created': 'Desk assigned for {days} days',
    'assignment_deleted': 'Fixed assignment deleted',
    'assignment_day_released': 'Desk released on {date}',

    # Offices
    'office_booking_created': 'Office booked',
    'office_block_created': 'Office slot blocked',
    'office_booking_deleted': 'Office booking deleted',

    # Errors
    'unknown_operation': 'Unknown operation: {operation}',
    'invalid_payload': 'Request body must be a JSON object with an operation',
    'authentication_required': 'Authentication required',
    'internal_error': 'Internal server error',
    'not_found': 'Resource not found',
}


def get_message(key: str, **kwargs) -> str:
    """
    Get message with optional formatting.

    Args:
        key: Message key
        **kwargs: Format parameters

    Returns:
        Formatted message or key if not found
    """
    message = MESSAGES.get(key, key)
    if kwargs:
        return message.format(**kwargs)
    return message
