from .bar_bucketer import (
    BarBucketer,
    BarFoldStrategy,
    EnrichedBarFold,
    KlineBarFold,
    bucketer_for,
)
from .broadcast_channel import BroadcastChannel
from .historical_fetcher import (
    KLINE_PAGE_LIMIT,
    USDC_MINT,
    HistoricalFetcher,
    enriched_addresses,
    enriched_frame,
    kline_interval,
)
from .live_bar_merger import LiveBarMerger, LiveMergeOutcome, LiveMergeResult
from .readiness_gate import DataReadinessGate, ReadinessOutcome
from .scheduled_task import ScheduledTask, schedule, schedule_periodic

__all__ = [
    "BarBucketer",
    "BarFoldStrategy",
    "BroadcastChannel",
    "DataReadinessGate",
    "EnrichedBarFold",
    "HistoricalFetcher",
    "KLINE_PAGE_LIMIT",
    "KlineBarFold",
    "LiveBarMerger",
    "LiveMergeOutcome",
    "LiveMergeResult",
    "ReadinessOutcome",
    "ScheduledTask",
    "USDC_MINT",
    "bucketer_for",
    "enriched_addresses",
    "enriched_frame",
    "kline_interval",
    "schedule",
    "schedule_periodic",
]
