"""Clock capability used wherever "now" or "today" matters."""

from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Protocol

from . import config


class Clock(Protocol):
    """Source of the current shop-local time.

    Scheduling rules, "due today" filters and the once-per-day closure notice
    all depend on wall-clock local time. Components take a Clock instead of
    calling datetime.now() so tests can pin the moment.
    """

    def now(self) -> datetime:
        """Return the current time as a timezone-aware local datetime."""
        ...

    def today(self) -> date:
        """Return the current local calendar date."""
        ...


class SystemClock:
    """Clock backed by the system time in the configured shop timezone."""

    def __init__(self, tz: tzinfo | None = None):
        self.tz = tz or config.local_timezone()

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock frozen at a given moment; can be moved forward manually."""

    def __init__(self, moment: datetime, tz: tzinfo | None = None):
        self.tz = tz or config.local_timezone()
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self.tz)
        self._moment = moment

    def now(self) -> datetime:
        return self._moment.astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def advance(self, **kwargs: float) -> None:
        """Move the clock forward, e.g. advance(seconds=3)."""
        self._moment = self._moment + timedelta(**kwargs)

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self.tz)
        self._moment = moment
