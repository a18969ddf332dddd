from __future__ import annotations

from typing import Protocol

from poolchart.contexts.chart_feed.application.dto import EnrichedRow


class EnrichedHistorySource(Protocol):
    """
    Time-range OHLCV query against the enriched feed.

    Contract:
    - fetch_range(base_address, quote_address, frame, time_from, time_to) -> rows

    Semantics:
    - Rows come oldest-first; there is no pagination cursor.
    - Implementations raise on transport or payload errors and never retry.
    """

    def fetch_range(
        self,
        *,
        base_address: str,
        quote_address: str,
        frame: str,
        time_from: int,
        time_to: int,
    ) -> tuple[EnrichedRow, ...]:
        ...
