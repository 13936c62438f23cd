"""
Timestamp helpers.

The API speaks ISO 8601 in UTC (`2025-03-01T09:30:00.000Z`). These helpers
keep every comparison timezone-aware so refund windows and calendar ranges
do not drift with the host's local timezone.
"""

from datetime import datetime, timezone
from typing import Optional, Union


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an API timestamp into an aware datetime.

    Accepts a `Z` suffix, explicit offsets and naive values (treated as UTC).
    Datetime inputs are normalised the same way; None passes through.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(value: datetime) -> str:
    """Format a datetime the way the API expects (`YYYY-MM-DDTHH:MM:SS.mmmZ`)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc_value = value.astimezone(timezone.utc)
    return utc_value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_value.microsecond // 1000:03d}Z"
