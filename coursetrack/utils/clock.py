"""
Time helpers

Timestamps are naive UTC everywhere so values read back from SQLite and
values created in memory compare cleanly.
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_iso(value: datetime) -> str:
    return value.isoformat()
