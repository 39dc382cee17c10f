import re
from datetime import datetime, timezone
from typing import Any, Optional

INVALID_DATE_LABEL = "Invalid date"

# fromisoformat before 3.11 only takes 3 or 6 fractional digits
_FRACTION = re.compile(r"([T ]\d{2}:\d{2}:\d{2})\.(\d+)")


def parse_iso(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 string, keeping its timezone if it has one.

    Returns None for missing or unparseable input.
    """
    if not value or not isinstance(value, str):
        return None
    text = _FRACTION.sub(
        lambda m: f"{m.group(1)}.{(m.group(2) + '000000')[:6]}",
        value.strip().replace("Z", "+00:00"),
    )
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 string into a naive local-time datetime.

    Aware values are converted to the local timezone, naive values are taken
    as already local. Returns None for missing or unparseable input.
    """
    parsed = parse_iso(value)
    if parsed is not None and parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_label(value: Optional[datetime]) -> str:
    """Human-readable date label, or the invalid-date sentinel."""
    if value is None:
        return INVALID_DATE_LABEL
    return value.strftime("%Y-%m-%d %H:%M:%S")
