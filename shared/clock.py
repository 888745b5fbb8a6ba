"""
Clocks for schedule evaluation.

Schedule dates are stored as naive wall-clock times in the store timezone,
so ``now()`` returns the same kind of value: the current time converted to
that zone with tzinfo dropped. Every comparison therefore happens in one
zone no matter where the server runs.
"""

from datetime import datetime, timedelta, tzinfo
from typing import Optional


def to_store_time(moment: datetime, zone: Optional[tzinfo]) -> datetime:
    """Convert an aware datetime to naive store time; naive values pass through."""
    if moment.tzinfo is None:
        return moment
    if zone is not None:
        moment = moment.astimezone(zone)
    return moment.replace(tzinfo=None)


class Clock:
    """Wall clock pinned to the store timezone."""

    def __init__(self, zone: tzinfo):
        self.zone = zone

    def now(self) -> datetime:
        return datetime.now(self.zone).replace(tzinfo=None)


class FixedClock(Clock):
    """
    Clock that only moves when told to.

    Used by tests and the demo to put ``now`` on either side of a window.
    """

    def __init__(self, moment: datetime, zone: Optional[tzinfo] = None):
        super().__init__(zone)
        self._moment = to_store_time(moment, zone)

    def now(self) -> datetime:
        return self._moment

    def set(self, moment: datetime) -> None:
        self._moment = to_store_time(moment, self.zone)

    def advance(self, **kwargs) -> datetime:
        """Move forward by ``timedelta(**kwargs)`` and return the new time."""
        self._moment = self._moment + timedelta(**kwargs)
        return self._moment
