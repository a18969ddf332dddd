from __future__ import annotations

from typing import Optional, Protocol

from poolchart.contexts.chart_feed.application.dto import HistoryPage


class KlineHistorySource(Protocol):
    """
    Paginated kline history of one launchpad pool.

    Contract:
    - fetch_page(pool_id, interval, limit, cursor) -> HistoryPage of `KlineRow`

    Semantics:
    - Rows come newest-first; `cursor=None` requests the newest page.
    - Implementations raise on transport or payload errors and never retry.
    """

    def fetch_page(
        self,
        *,
        pool_id: str,
        interval: str,
        limit: int,
        cursor: Optional[str],
    ) -> HistoryPage:
        ...
