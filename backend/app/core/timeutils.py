"""
Time helpers for booking windows.

All instants are handled as timezone-aware UTC datetimes. Naive values
(from callers or from databases that drop the offset) are read as UTC.
"""

from datetime import datetime, timezone
from typing import Union

from backend.app.core.exceptions import InvalidTimeInputError


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(value: Union[str, datetime]) -> datetime:
    """
    Parse an ISO-8601 instant.

    Accepts a trailing ``Z`` as well as explicit offsets.

    Raises:
        InvalidTimeInputError: If the value is not a valid ISO-8601 instant
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidTimeInputError(value)

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidTimeInputError(value)
    return ensure_utc(parsed)


def isoformat_utc(value: datetime) -> str:
    """Render an instant as ISO-8601 with a ``Z`` suffix."""
    return ensure_utc(value).isoformat().replace("+00:00", "Z")
