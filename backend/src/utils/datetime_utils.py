"""
Datetime utilities for consistent timezone handling across the application.

This module provides utilities to ensure all datetime operations use timezone-aware
datetimes consistently. Session times are stored and compared in UTC; clients send
ISO-8601 strings with an offset or a trailing "Z".
"""

import logging
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        Current datetime with UTC timezone
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in UTC.

    Args:
        dt: Datetime to normalize

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # If naive, assume it's already UTC
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime_string_to_utc(dt_str: str) -> datetime:
    """
    Parse an ISO format datetime string and convert to UTC.

    Handles:
    - ISO format with offset (e.g., "2025-10-25T12:00:00+02:00")
    - ISO format with Z (e.g., "2025-10-25T10:00:00Z", "2025-10-25T10:00:00.000Z")
    - ISO format without timezone (assumed UTC)
    - Date-only strings (midnight UTC)

    Args:
        dt_str: ISO format datetime string

    Returns:
        Datetime object in UTC

    Raises:
        ValueError: If datetime string cannot be parsed
    """
    if not dt_str or not dt_str.strip():
        raise ValueError("Datetime string cannot be empty")

    candidate = dt_str.strip()
    if candidate.endswith(('Z', 'z')):
        candidate = candidate[:-1] + '+00:00'

    try:
        dt = datetime.fromisoformat(candidate)
    except ValueError as e:
        raise ValueError(f"Invalid datetime string format: {dt_str}") from e

    result = ensure_utc(dt)
    if result is None:
        raise ValueError(f"Invalid datetime string format: {dt_str}")
    return result


def parse_datetime_to_utc(v: str | datetime) -> datetime:
    """
    Parse datetime from string or return datetime object, ensuring UTC.

    Args:
        v: Either a datetime string or a datetime object

    Returns:
        Datetime object in UTC

    Raises:
        ValueError: If datetime string cannot be parsed
    """
    if isinstance(v, str):
        return parse_datetime_string_to_utc(v)

    result = ensure_utc(v)
    if result is None:
        raise ValueError("Cannot parse None datetime")
    return result


def format_iso_utc(dt: Optional[datetime]) -> Optional[str]:
    """
    Format a datetime as an ISO-8601 UTC string with a trailing "Z".

    Example: 2025-10-25T10:00:00Z
    """
    normalized = ensure_utc(dt)
    if normalized is None:
        return None
    return normalized.replace(tzinfo=None).isoformat() + 'Z'


def format_datetime(dt: datetime) -> str:
    """
    Format datetime for user-facing notification text.

    Formats as "Sat, Oct 25 2025 at 10:00 AM UTC".

    Args:
        dt: Datetime to format (naive values are treated as UTC)

    Returns:
        Formatted datetime string
    """
    local_datetime = ensure_utc(dt)
    if local_datetime is None:
        raise ValueError("Cannot format None datetime")

    hour_12 = local_datetime.hour % 12 or 12
    period = 'AM' if local_datetime.hour < 12 else 'PM'
    return (
        f"{local_datetime.strftime('%a, %b')} {local_datetime.day} {local_datetime.year} "
        f"at {hour_12}:{local_datetime.minute:02d} {period} UTC"
    )
