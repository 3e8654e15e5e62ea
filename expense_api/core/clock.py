from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import settings


try:
    LOCAL_ZONE = ZoneInfo(settings.TIMEZONE)
except (ZoneInfoNotFoundError, ValueError):
    LOCAL_ZONE = ZoneInfo("UTC")


def now_local_naive() -> datetime:
    """Return naive datetime normalized to configured local timezone."""
    return datetime.now(LOCAL_ZONE).replace(tzinfo=None)


class Clock:
    """Source of the current instant for services that depend on wall time."""

    def now(self) -> datetime:
        return now_local_naive()

    def today(self) -> date:
        return self.now().date()


class FixedClock(Clock):
    """Clock pinned to a single instant. Used by tests and backfill scripts."""

    def __init__(self, instant: datetime) -> None:
        self.instant = instant

    def now(self) -> datetime:
        return self.instant
