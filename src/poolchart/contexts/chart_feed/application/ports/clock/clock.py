from __future__ import annotations

from datetime import datetime
from typing import Protocol


class Clock(Protocol):
    """
    Clock — source of "now" for the chart_feed application layer, in UTC.

    Contract:
    - now() -> timezone-aware datetime in UTC
    """

    def now(self) -> datetime:
        ...
