from .enriched_history_source import EnrichedHistorySource
from .kline_history_source import KlineHistorySource
from .readiness_probe import ReadinessProbe

__all__ = ["EnrichedHistorySource", "KlineHistorySource", "ReadinessProbe"]
