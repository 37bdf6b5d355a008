"""
Injectable time source.

The engine never reads the wall clock directly; callers pass a Clock (any
zero-argument callable returning a datetime) so tests can pin "now".
"""

from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

from shared.config.settings import settings

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current local time in the configured restaurant timezone."""
    return datetime.now(ZoneInfo(settings.timezone))


def local_time(at: datetime) -> datetime:
    """
    Wall time used for rule evaluation.

    Naive datetimes are taken as restaurant-local already; aware ones are
    converted to the configured timezone first.
    """
    if at.tzinfo is None:
        return at
    return at.astimezone(ZoneInfo(settings.timezone))


def fixed_clock(moment: datetime) -> Clock:
    """A clock frozen at `moment`."""

    def _now() -> datetime:
        return moment

    return _now
