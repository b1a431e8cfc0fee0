"""Trading session boundaries.

Session-scoped indicators (VWAP) reset whenever the calendar date of a bar,
taken in one fixed reference timezone, changes.
"""

from datetime import datetime, tzinfo
from functools import lru_cache
from typing import Optional, Union

import pytz

DEFAULT_SESSION_TIMEZONE = "America/New_York"


@lru_cache(maxsize=16)
def _zone(name: str) -> tzinfo:
    return pytz.timezone(name)


def session_key_of(
    time_seconds: float,
    timezone: Union[str, tzinfo] = DEFAULT_SESSION_TIMEZONE,
) -> Optional[str]:
    """Return the session key (ISO calendar date) for an epoch timestamp.

    Args:
        time_seconds: Bar time in epoch seconds.
        timezone: IANA timezone name or tzinfo the date is taken in.

    Returns:
        Date string such as ``"2024-03-08"``, or None when the timestamp
        has no representable local date.
    """
    zone = _zone(timezone) if isinstance(timezone, str) else timezone
    try:
        local = datetime.fromtimestamp(time_seconds, tz=zone)
    except (ValueError, OverflowError, OSError):
        return None
    return local.date().isoformat()


class SessionClock:
    """Session key lookups bound to one timezone."""

    def __init__(self, timezone: str = DEFAULT_SESSION_TIMEZONE):
        self.timezone = timezone
        self._zone = _zone(timezone)

    def key(self, time_seconds: float) -> Optional[str]:
        return session_key_of(time_seconds, self._zone)

    def same_session(self, a: float, b: float) -> bool:
        key = self.key(a)
        return key is not None and key == self.key(b)
