"""
Shared primitives: identifiers and timestamps.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional


def generate_id() -> str:
    """Generate a new opaque row identifier."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as SQLite returns them) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def strictly_after(previous: Optional[datetime]) -> datetime:
    """Now, or one microsecond past ``previous`` if the clock has not moved on.

    Keeps ``created_at`` a strict total order for rows written in quick
    succession.
    """
    now = utc_now()
    if previous is None:
        return now
    floor = as_utc(previous) + timedelta(microseconds=1)
    return now if now >= floor else floor
