from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class Bar:
    """
    Bar — one OHLCV record for a fixed time bucket, as handed to the chart.

    Fields:
    - time: bucket start, epoch milliseconds
    - open/high/low/close: prices (possibly market-cap scaled)
    - volume: quote volume, absent for feeds without a trustworthy volume

    No OHLC validation happens here: upstream numbers are trusted and aggregation
    must never fail on them. Use `is_consistent()` to check the OHLC ordering.
    """

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    def is_consistent(self) -> bool:
        """True when `low <= min(open, close) <= max(open, close) <= high`."""
        return self.low <= min(self.open, self.close) <= max(self.open, self.close) <= self.high

    def as_dict(self) -> dict:
        """Serialize to the chart widget bar shape (volume omitted when absent)."""
        payload = {
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
        }
        if self.volume is not None:
            payload["volume"] = self.volume
        return payload
