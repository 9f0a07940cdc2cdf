"""
Time sources.

Everything that compares against "now" takes an optional clock so callers
and tests can pin the current instant instead of patching global time.
"""

from datetime import datetime, timedelta

from django.utils import timezone


class Clock:
    """Interface: ``now()`` returns an aware datetime."""

    def now(self) -> datetime:
        raise NotImplementedError

    def today(self):
        return timezone.localdate(self.now())


class SystemClock(Clock):

    def now(self) -> datetime:
        return timezone.now()


class FixedClock(Clock):
    """Clock frozen at a given instant until moved explicitly."""

    def __init__(self, instant: datetime):
        self.set(instant)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        if timezone.is_naive(instant):
            instant = timezone.make_aware(instant)
        self._instant = instant

    def advance(self, **kwargs) -> datetime:
        self._instant = self._instant + timedelta(**kwargs)
        return self._instant


system_clock = SystemClock()


def get_clock(clock=None) -> Clock:
    return clock if clock is not None else system_clock
