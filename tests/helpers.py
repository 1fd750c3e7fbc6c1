"""Shared time helpers for tests."""

from datetime import datetime, timedelta, timezone

BASE_TIME = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day: int = 0) -> datetime:
    """Aware timestamp on the fixed test day (Sunday 1 March 2026, UTC)."""
    return BASE_TIME.replace(hour=hour, minute=minute) + timedelta(days=day)
