"""
Date/time helpers for the booking engine.

Holds the temporal primitives every conflict check is built on: inclusive
range overlap, half-day segment conflicts and day expansion.
"""

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from zoneinfo import ZoneInfo

from flask import current_app

from utils.errors import InvalidRequest


class TimeSegment(str, Enum):
    """Part of the day a desk booking covers."""

    AM = 'AM'
    PM = 'PM'
    FULL = 'FULL'


# =============================================================================
# CLOCK
# =============================================================================

def get_timezone() -> ZoneInfo:
    """Get the configured timezone."""
    tz_name = current_app.config.get('TIMEZONE', 'Europe/Rome')
    return ZoneInfo(tz_name)


def get_today() -> date:
    """Get today's date in the configured timezone."""
    return datetime.now(get_timezone()).date()


def get_now() -> datetime:
    """Get current datetime in the configured timezone."""
    return datetime.now(get_timezone())


# =============================================================================
# PARSING
# =============================================================================

def parse_date(value, field: str = 'date') -> date:
    """
    Coerce a payload value to a calendar date.

    Datetimes are truncated to their date; no timezone normalization happens.

    Args:
        value: date, datetime or 'YYYY-MM-DD' string
        field: Field name used in the error message

    Returns:
        date: Parsed date

    Raises:
        InvalidRequest: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise InvalidRequest(f'Invalid {field}: {value!r} (expected YYYY-MM-DD)', field=field)


def parse_segment(value) -> TimeSegment:
    """Coerce a payload value to a TimeSegment (default FULL)."""
    if value is None:
        return TimeSegment.FULL
    if isinstance(value, TimeSegment):
        return value
    try:
        return TimeSegment(str(value).upper())
    except ValueError:
        raise InvalidRequest(
            f'Invalid time_segment: {value!r} (expected AM, PM or FULL)',
            field='time_segment'
        )


def parse_timestamp(value, field: str = 'time') -> datetime:
    """
    Parse an ISO timestamp and normalize it to naive UTC.

    Naive input is interpreted in the configured timezone.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            raise InvalidRequest(f'Invalid {field}: {value!r}', field=field)
    else:
        raise InvalidRequest(f'Invalid {field}: {value!r}', field=field)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=get_timezone())
    return parsed.astimezone(timezone.utc).replace(tzinfo=None)


def format_timestamp(value: datetime) -> str:
    """Storage format for office booking timestamps."""
    return value.strftime('%Y-%m-%d %H:%M:%S')


# =============================================================================
# RANGES
# =============================================================================

def overlaps(a_start, a_end, b_start, b_end, inclusive: bool = True) -> bool:
    """
    Check whether two ranges overlap.

    Day ranges are inclusive on both ends, so a booking ending on the 10th
    collides with one starting on the 10th. Timestamp ranges use
    inclusive=False, where touching slots (end == start) do not collide.
    """
    if inclusive:
        return a_start <= b_end and b_start <= a_end
    return a_start < b_end and b_start < a_end


def segments_conflict(a, b) -> bool:
    """FULL conflicts with anything; AM and PM only with themselves."""
    a = TimeSegment(a)
    b = TimeSegment(b)
    return a is TimeSegment.FULL or b is TimeSegment.FULL or a is b


def expand_days(start: date, end: date):
    """
    Yield every calendar day from start to end, inclusive, ascending.

    Each call returns a fresh generator, so the sequence can be restarted.
    """
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def add_one_year(value: date) -> date:
    """Same calendar day one year later (29 Feb maps to 28 Feb)."""
    try:
        return value.replace(year=value.year + 1)
    except ValueError:
        return value.replace(year=value.year + 1, day=28)


def day_count(start: date, end: date) -> int:
    """Number of calendar days in an inclusive range."""
    return (end - start).days + 1
