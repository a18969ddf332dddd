from __future__ import annotations

import logging
from typing import Optional

from poolchart.contexts.chart_feed.application.dto import ChartConfig, FeedVariant
from poolchart.contexts.chart_feed.application.ports.stores import ChartConfigStore

log = logging.getLogger(__name__)


class InMemoryChartConfigStore(ChartConfigStore):
    """
    Process-local chart preferences, one record per feed variant.

    Writes replace the previous record; `save_count` counts writes that changed it.
    """

    def __init__(self, initial: dict[FeedVariant, ChartConfig] | None = None) -> None:
        self._configs: dict[FeedVariant, ChartConfig] = dict(initial or {})
        self._save_count = 0

    @property
    def save_count(self) -> int:
        return self._save_count

    def get(self, variant: FeedVariant) -> Optional[ChartConfig]:
        return self._configs.get(variant)

    def save(self, variant: FeedVariant, config: ChartConfig) -> None:
        if self._configs.get(variant) == config:
            return
        self._configs[variant] = config
        self._save_count += 1
        log.debug("chart config saved variant=%s resolution=%s", variant.value, config.resolution)
