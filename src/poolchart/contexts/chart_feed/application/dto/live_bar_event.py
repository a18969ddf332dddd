from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LiveBarEvent:
    """
    One real-time bar update delivered by the live transport.

    Fields:
    - pool_id: pool the update belongs to
    - time: bucket start of the update, epoch seconds
    - open/high/low/close: OHLC values already computed upstream
    """

    pool_id: str
    time: int
    open: float
    high: float
    low: float
    close: float
