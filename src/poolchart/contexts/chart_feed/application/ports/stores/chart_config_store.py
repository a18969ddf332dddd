from __future__ import annotations

from typing import Optional, Protocol

from poolchart.contexts.chart_feed.application.dto import ChartConfig, FeedVariant


class ChartConfigStore(Protocol):
    """
    Saved chart preferences, kept separately for each feed variant.

    Contract:
    - get(variant) -> ChartConfig | None
    - save(variant, config) -> None
    """

    def get(self, variant: FeedVariant) -> Optional[ChartConfig]:
        ...

    def save(self, variant: FeedVariant, config: ChartConfig) -> None:
        ...
