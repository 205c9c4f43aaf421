"""
UTC time helpers.

The domain works exclusively with timezone-aware UTC datetimes. SQLite hands
back naive values, so anything read from the store passes through
ensure_utc() before it is compared with the clock.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pigeonpost.errors import ValidationError


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any, field_name: str = 'timestamp') -> datetime:
    """
    Parse an ISO-8601 timestamp from a request body.

    Accepts a trailing 'Z' and naive values (read as UTC). Raises
    ValidationError for anything else.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field_name} must be an ISO-8601 timestamp')

    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f'{field_name} must be an ISO-8601 timestamp')

    return ensure_utc(parsed)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """Wire representation of a timestamp (UTC, ISO-8601)."""
    if value is None:
        return None
    return ensure_utc(value).isoformat()
