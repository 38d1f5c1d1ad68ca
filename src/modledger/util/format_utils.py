from datetime import datetime, timezone
from typing import Dict

# Label for a mute without an end
PERMANENT_DURATION = "Till the end of time"

# Choices offered by /mute, in seconds
DURATIONS: Dict[str, int] = {
    "60 secs": 60,
    "5 mins": 5 * 60,
    "10 mins": 10 * 60,
    "30 mins": 30 * 60,
    "1 hour": 60 * 60,
    "2 hours": 2 * 60 * 60,
    "1 day": 24 * 60 * 60,
    "1 week": 7 * 24 * 60 * 60,
    PERMANENT_DURATION: 0,
}

DURATION_CHOICES = list(DURATIONS.keys())

_UNITS = (
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def parse_duration_label(label: str) -> int:
    """Return the seconds for a DURATION_CHOICES label, 0 (permanent) if unknown."""
    return DURATIONS.get(label, 0)


def format_duration(seconds: int | None) -> str:
    """
    Long-form duration: ``90`` -> ``"1 minute"``, ``7200`` -> ``"2 hours"``.

    Uses the largest unit that fits and rounds down. Zero or None is permanent.
    """
    if not seconds:
        return PERMANENT_DURATION
    for unit, size in _UNITS:
        if seconds >= size:
            amount = seconds // size
            return f"{amount} {unit}{'s' if amount != 1 else ''}"
    return f"{seconds} seconds"


def humanize_timestamp(value: datetime) -> str:
    """Return ``YYYY-MM-DD HH:MM:SS UTC``; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
