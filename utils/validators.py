"""
Input validation helper functions.
Coerce JSON payload fields, raising InvalidRequest on bad input.
"""

import re

from utils.errors import InvalidRequest


def require_int(data: dict, field: str) -> int:
    """
    Read a required positive integer field.

    Args:
        data: Request payload
        field: Field name

    Returns:
        int: Field value

    Raises:
        InvalidRequest: If missing or not a positive integer
    """
    if data.get(field) is None:
        raise InvalidRequest(f'{field} is required', field=field)
    return _to_int(data[field], field)


def optional_int(data: dict, field: str):
    """Read an optional positive integer field (None when absent)."""
    if data.get(field) is None:
        return None
    return _to_int(data[field], field)


def _to_int(value, field: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise InvalidRequest(f'{field} must be an integer', field=field)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidRequest(f'{field} must be an integer', field=field)
    if number <= 0:
        raise InvalidRequest(f'{field} must be positive', field=field)
    return number


def require_value(data: dict, field: str):
    """Read a required field of any type."""
    value = data.get(field)
    if value is None or value == '':
        raise InvalidRequest(f'{field} is required', field=field)
    return value


def validate_username(username: str) -> bool:
    """
    Validate username format: 3-32 letters, digits, dots, dashes or underscores.

    Args:
        username: Username to validate

    Returns:
        True if valid
    """
    if not username:
        return False
    return bool(re.match(r'^[A-Za-z0-9._-]{3,32}$', username))


def sanitize_input(text: str, max_length: int = None) -> str:
    """
    Sanitize text input by trimming and limiting length.

    Args:
        text: Text to sanitize
        max_length: Maximum length (optional)

    Returns:
        Sanitized text
    """
    if not text:
        return ''

    sanitized = str(text).strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
