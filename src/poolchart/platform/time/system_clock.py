from __future__ import annotations

from datetime import datetime, timezone

from poolchart.contexts.chart_feed.application.ports.clock import Clock


class SystemClock(Clock):
    """
    SystemClock — platform Clock implementation backed by system time.

    Returns datetime.now(timezone.utc).
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
