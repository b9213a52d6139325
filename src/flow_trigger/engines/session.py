"""
Session window filter.

Bars carry exchange-local time. The window test uses hhmm integers
(hour*100 + minute) with closed [start, end] semantics, so 07:45 and 11:00
are both inside the default window.
"""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo


class SessionFilter:
    """Stateless time-of-day gate."""

    def __init__(self, start: int = 745, end: int = 1100, timezone: Optional[str] = None):
        self.start = start
        self.end = end
        self.tz: Optional[ZoneInfo] = ZoneInfo(timezone) if timezone else None

    @staticmethod
    def hhmm(timestamp: datetime) -> int:
        return timestamp.hour * 100 + timestamp.minute

    def is_active(self, timestamp: datetime) -> bool:
        """
        True iff the bar time lies in [start, end].

        Naive timestamps are taken as already exchange-local. Aware ones are
        converted to the configured timezone first, when one is set.
        """
        if self.tz is not None and timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone(self.tz)
        t = self.hhmm(timestamp)
        return self.start <= t <= self.end
