from datetime import datetime, timezone
from typing import Callable

# A zero-argument provider of the current instant
Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current wall-clock time in UTC"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (e.g. read back from SQLite); convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class FixedClock:
    """Clock frozen at a given instant. Used by tests and by `cli.py --as-of`."""

    def __init__(self, now: datetime):
        self.now = ensure_utc(now)

    def __call__(self) -> datetime:
        return self.now
