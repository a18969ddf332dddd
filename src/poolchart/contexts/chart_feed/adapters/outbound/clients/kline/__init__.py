from .kline_history_source import RestKlineHistorySource, RestKlineReadinessProbe, map_kline_row

__all__ = ["RestKlineHistorySource", "RestKlineReadinessProbe", "map_kline_row"]
