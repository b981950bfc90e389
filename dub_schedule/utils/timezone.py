"""
Date and Time utilities

This module handles all date/time conversions and parsing for airing timestamps.
Centralizes all date parsing logic to maintain consistency across the application.
"""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo
import logging

logger = logging.getLogger(__name__)


class DateFormatError(ValueError):
    """Raised when date format is invalid"""
    pass


def _normalize_iso8601_string(date_str: str) -> str:
    """Normalize ISO8601 string by replacing 'Z' with '+00:00'

    Args:
        date_str: ISO8601 datetime string

    Returns:
        Normalized string with explicit timezone offset
    """
    return date_str.replace('Z', '+00:00') if date_str.endswith('Z') else date_str


def parse_iso8601_to_utc(date_str: str) -> datetime:
    """
    Parse ISO8601 date string and convert to UTC datetime

    This is the single source of truth for date parsing across the application.

    Args:
        date_str: ISO8601 datetime string (e.g., '2024-01-01T12:00:00Z' or '2024-01-01T12:00:00.000+01:00')

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateFormatError: If the date string format is invalid
    """
    try:
        normalized = _normalize_iso8601_string(date_str)
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (ValueError, AttributeError, TypeError) as e:
        raise DateFormatError(f"Invalid ISO8601 datetime format: '{date_str}'") from e


def format_iso_utc(dt: datetime) -> str:
    """Render a datetime as an ISO8601 UTC string with millisecond precision and 'Z' suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.strftime('%Y-%m-%dT%H:%M:%S.') + f"{dt_utc.microsecond // 1000:03d}Z"


def format_time_of_day(dt: datetime, target_tz: str = "UTC") -> str:
    """
    Render the 24-hour wall-clock time of an instant in the target timezone

    Args:
        dt: Timezone-aware datetime
        target_tz: Target timezone (IANA format or 'UTC')

    Returns:
        Time formatted as 'HH:MM'
    """
    if target_tz == "UTC":
        local = dt.astimezone(timezone.utc)
    else:
        local = dt.astimezone(ZoneInfo(target_tz))
    return local.strftime('%H:%M')
