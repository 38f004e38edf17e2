# File: utils/dt_utils.py
"""Date and time utilities for LifeQuest.

Pure Python date/time functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Functions:
    - dt_now_utc: Get current datetime in UTC
    - dt_to_iso: Serialize a datetime as a UTC ISO string
    - as_utc / as_local: Timezone conversion
    - start_of_local_day / end_of_local_day: Calendar day boundaries
    - days_between: Whole calendar days between two instants
    - dt_parse_date: Parse date strings
    - dt_parse: Normalize datetime inputs (datetime, date, ISO or free-form string)
    - dt_from_epoch_ms: Convert epoch milliseconds
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
import logging
from zoneinfo import ZoneInfo

from dateutil import parser as dateutil_parser

# Module-level logger (no HA dependency)
_LOGGER = logging.getLogger(__name__)

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

SECONDS_PER_DAY = 86400


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the default timezone for all dt_utils functions.

    Call this during integration setup to configure the user's timezone.
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


def dt_to_iso(dt_obj: datetime) -> str:
    """Serialize a datetime as an ISO 8601 string in UTC.

    Everything written to storage goes through here so stored timestamps
    share one representation.

    Example:
        datetime(2025, 4, 7, 9, 30, tzinfo=New_York) → "2025-04-07T13:30:00+00:00"
    """
    return as_utc(dt_obj).isoformat()


# ==============================================================================
# Timezone Conversion
# ==============================================================================


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC timezone.

    Naive datetimes are assumed to be in the default timezone.
    """
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=DEFAULT_TIME_ZONE)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to local timezone.

    Naive datetimes are assumed to be in UTC.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(tz_info)


def start_of_local_day(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Get the start of day (00:00:00) for a datetime in local timezone.

    DST-safe: the local date is taken first and midnight is rebuilt in the
    target zone rather than subtracting a fixed offset.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    local_dt = as_local(dt_obj, tz_info)
    return datetime.combine(local_dt.date(), datetime.min.time(), tzinfo=tz_info)


def end_of_local_day(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Get the last microsecond of the local calendar day containing dt_obj."""
    tz_info = tz or DEFAULT_TIME_ZONE
    local_dt = as_local(dt_obj, tz_info)
    next_day = datetime.combine(
        local_dt.date() + timedelta(days=1), datetime.min.time(), tzinfo=tz_info
    )
    return next_day - timedelta(microseconds=1)


def days_between(first: datetime, second: datetime, tz: ZoneInfo | None = None) -> int:
    """Return the absolute number of calendar days between two instants.

    Both instants are normalized to local midnight before comparing and the
    difference is rounded to the nearest whole day, so a 23 or 25 hour DST day
    still counts as one.
    """
    first_midnight = start_of_local_day(first, tz)
    second_midnight = start_of_local_day(second, tz)
    diff_seconds = abs((second_midnight - first_midnight).total_seconds())
    return round(diff_seconds / SECONDS_PER_DAY)


# ==============================================================================
# Date/Time Parsing
# ==============================================================================


def dt_parse_date(date_str: str | None) -> date | None:
    """Safely parse a date string into a `datetime.date`.

    Accepts "2025-04-07", "04/07/2025", "07/04/2025" and "2025/04/07".

    Returns:
        datetime.date or None if parsing fails.
    """
    if not date_str or not isinstance(date_str, str):
        return None

    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass

    for fmt in ("%m/%d/%Y", "%d/%m/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    return None


def dt_from_epoch_ms(value: float) -> datetime | None:
    """Convert epoch milliseconds to an aware UTC datetime.

    Returns None for values outside the representable range.
    """
    try:
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def dt_parse(
    dt_input: str | date | datetime | None,
    default_tzinfo: ZoneInfo | None = None,
) -> datetime | None:
    """Normalize various datetime input formats to an aware datetime.

    Handles datetime and date objects, ISO strings, the common date formats
    understood by dt_parse_date, and finally free-form strings via dateutil
    ("Mon, 07 Apr 2025 14:30:00 GMT", "April 7 2025 2pm").

    Args:
        dt_input: String, date or datetime to normalize, or None
        default_tzinfo: Timezone to use if the input is naive
                        (defaults to DEFAULT_TIME_ZONE if None)

    Returns:
        Timezone-aware datetime, or None if the input could not be parsed.
    """
    if not dt_input:
        return None

    tz_info = default_tzinfo or DEFAULT_TIME_ZONE
    result: datetime | None = None

    if isinstance(dt_input, datetime):
        result = dt_input
    elif isinstance(dt_input, date):
        result = datetime.combine(dt_input, datetime.min.time())
    elif isinstance(dt_input, str):
        try:
            result = datetime.fromisoformat(dt_input)
        except ValueError:
            parsed_date = dt_parse_date(dt_input)
            if parsed_date:
                result = datetime.combine(parsed_date, datetime.min.time())
            else:
                try:
                    result = dateutil_parser.parse(dt_input)
                except (ValueError, OverflowError) as err:
                    _LOGGER.debug("DEBUG: Unable to parse datetime '%s': %s", dt_input, err)
                    return None
    else:
        return None

    if result.tzinfo is None:
        result = result.replace(tzinfo=tz_info)

    return result

