"""Timezone-aware time helpers.

SQLite hands back naive datetimes while PostgreSQL returns aware ones, so
every comparison against a stored timestamp goes through ensure_utc().
"""

from datetime import datetime, timezone
from typing import Optional


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


def is_past(value: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True when value is set and not after now."""
    if value is None:
        return False
    return ensure_utc(value) <= ensure_utc(now or utcnow())


def isoformat(value: Optional[datetime]) -> Optional[str]:
    value = ensure_utc(value)
    return value.isoformat() if value else None
