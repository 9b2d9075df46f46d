"""
Clock and timestamp utilities.

Profile timestamps are always handled as timezone-aware UTC datetimes.
Store records may carry ISO-8601 strings; these helpers normalize them
and provide the wall clock used by the session gate.
"""

from datetime import datetime, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """Current wall-clock time as a UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Return value as an aware UTC datetime.

    Naive datetimes are interpreted as UTC rather than local time, since
    the profile store writes UTC timestamps.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse a store timestamp into an aware UTC datetime.

    Args:
        value: ISO-8601 string (a trailing "Z" is accepted), datetime, or None

    Returns:
        Aware UTC datetime, or None when value is None or an empty string

    Raises:
        ValueError: If a string cannot be parsed as ISO-8601
        TypeError: If value is neither a string nor a datetime
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return ensure_utc(datetime.fromisoformat(text))
    raise TypeError(f"Unsupported timestamp type: {type(value).__name__}")


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format a timestamp as ISO-8601 for store records and logs."""
    if value is None:
        return None
    return ensure_utc(value).isoformat()


def format_audit_time(value: datetime) -> str:
    """Human-readable timestamp embedded in audit status reasons."""
    return ensure_utc(value).strftime("%Y-%m-%d %H:%M:%S UTC")
