"""
Time helpers.

All ledger timestamps are UTC. Drivers differ in whether they return aware
datetimes (asyncpg) or naive ones (SQLite), so values read back from the
database go through `as_utc` before being compared.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
