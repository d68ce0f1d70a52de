"""
Date/time parsing and conversion utilities, framework-agnostic.

All datetimes handled by the service layer are timezone-aware UTC. MongoDB
hands back naive datetimes unless the client is created with tz_aware=True,
so ensure_utc() is applied at comparison sites that may see either.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional

SECONDS_PER_DAY = 24 * 60 * 60


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return *dt* as an aware UTC datetime; naive values are assumed UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a date/time value into a timezone-aware UTC datetime.

    Accepts:
    - ``None`` → ``None``
    - ``datetime`` → normalised to UTC
    - ``int`` / ``float`` → treated as Unix epoch seconds
    - ``str`` ending in ``"Z"`` → converted to ``+00:00`` before parsing
    - Any ISO 8601 string (``datetime.fromisoformat``)

    Naive datetimes (no ``tzinfo``) are assumed to be UTC.

    Returns:
        A timezone-aware ``datetime`` in UTC, or ``None`` if *value* is ``None``
        or cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(int(value), tz=timezone.utc)
        raw = str(value)
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        return ensure_utc(datetime.fromisoformat(raw))
    except (ValueError, OSError, OverflowError):
        return None


def whole_days_since(start: datetime, now: Optional[datetime] = None) -> int:
    """Number of complete days elapsed since *start* (floored)."""
    now = now or utc_now()
    elapsed = (now - ensure_utc(start)).total_seconds()
    return math.floor(elapsed / SECONDS_PER_DAY)


def days_since(start: datetime, now: Optional[datetime] = None) -> int:
    """Days elapsed since *start*, rounded up (a partial day counts as one)."""
    now = now or utc_now()
    elapsed = (now - ensure_utc(start)).total_seconds()
    return math.ceil(elapsed / SECONDS_PER_DAY)


def days_until(end: datetime, now: Optional[datetime] = None) -> int:
    """Days remaining until *end*, rounded up and clamped at zero."""
    now = now or utc_now()
    remaining = (ensure_utc(end) - now).total_seconds()
    return max(math.ceil(remaining / SECONDS_PER_DAY), 0)
