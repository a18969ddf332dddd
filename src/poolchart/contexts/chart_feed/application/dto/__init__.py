from .chart_config import ChartConfig
from .history import BarsResult, HistoryPage, PeriodParams
from .live_bar_event import LiveBarEvent
from .raw_samples import EnrichedRow, KlineRow, RawSample
from .symbol_context import NATIVE_MINT, FeedVariant, SymbolContext
from .symbol_descriptor import DatafeedConfiguration, SymbolDescriptor

__all__ = [
    "BarsResult",
    "ChartConfig",
    "DatafeedConfiguration",
    "EnrichedRow",
    "FeedVariant",
    "HistoryPage",
    "KlineRow",
    "LiveBarEvent",
    "NATIVE_MINT",
    "PeriodParams",
    "RawSample",
    "SymbolContext",
    "SymbolDescriptor",
]
