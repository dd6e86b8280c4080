"""Human-friendly time references for recent-activity filtering.

Accepted ``since`` forms:
- ISO dates: "2025-01-15", "2025-01-15T14:30:00"
- Relative: "30 minutes ago", "2 days ago", "1 month ago"
- Named: "today", "yesterday", "last week", "last month", "last year"
"""

import re
from datetime import datetime, timedelta, timezone

from dateutil import parser as dateparser
from dateutil.relativedelta import relativedelta

from .constants import (
    SECONDS_PER_DAY,
    SECONDS_PER_HOUR,
    SECONDS_PER_MINUTE,
    SECONDS_PER_MONTH,
    SECONDS_PER_WEEK,
    SECONDS_PER_YEAR,
)

_AGO_RE = re.compile(r"^(\d+)\s*(second|minute|hour|day|week|month|year)s?\s+ago$")

_UNIT_DELTAS = {
    "second": lambda n: timedelta(seconds=n),
    "minute": lambda n: timedelta(minutes=n),
    "hour": lambda n: timedelta(hours=n),
    "day": lambda n: timedelta(days=n),
    "week": lambda n: timedelta(weeks=n),
    "month": lambda n: relativedelta(months=n),
    "year": lambda n: relativedelta(years=n),
}

# Largest unit first
_DISPLAY_UNITS = (
    (SECONDS_PER_YEAR, "year"),
    (SECONDS_PER_MONTH, "month"),
    (SECONDS_PER_WEEK, "week"),
    (SECONDS_PER_DAY, "day"),
    (SECONDS_PER_HOUR, "hour"),
    (SECONDS_PER_MINUTE, "minute"),
)


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_time_reference(ref: str, now: datetime | None = None) -> datetime:
    """Parse a time reference into a timezone-aware datetime.

    Raises:
        ValueError: If the reference cannot be parsed
    """
    if now is None:
        now = datetime.now(timezone.utc)

    if not isinstance(ref, str):
        raise ValueError(f"Time reference must be a string, got {type(ref).__name__}")
    text = ref.strip()
    ref = text.lower()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

    named = {
        "now": now,
        "today": midnight,
        "yesterday": midnight - timedelta(days=1),
        "last week": now - timedelta(weeks=1),
        "last month": now - relativedelta(months=1),
        "last year": now - relativedelta(years=1),
    }
    if ref in named:
        return named[ref]

    ago = _AGO_RE.match(ref)
    if ago:
        return now - _UNIT_DELTAS[ago.group(2)](int(ago.group(1)))

    try:
        parsed = dateparser.parse(text)
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Cannot parse time reference: {ref}") from e
    if parsed is None:
        raise ValueError(f"Cannot parse time reference: {ref}")
    return as_utc(parsed)


def format_relative_time(dt: datetime, now: datetime | None = None) -> str:
    """Format a datetime as "3 hours ago", "2 weeks ago", etc."""
    if now is None:
        now = datetime.now(timezone.utc)

    seconds = int((now - as_utc(dt)).total_seconds())
    if seconds < 0:
        return "in the future"

    for unit_seconds, unit in _DISPLAY_UNITS:
        if seconds >= unit_seconds:
            amount = seconds // unit_seconds
            return f"{amount} {unit}{'s' if amount != 1 else ''} ago"
    return f"{seconds} seconds ago"
