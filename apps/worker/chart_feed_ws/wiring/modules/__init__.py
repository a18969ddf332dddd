from .chart_feed_ws import (
    ChartFeedWsApp,
    ChartFeedWsMetrics,
    LoggingSeriesSink,
    build_chart_feed_ws_app,
)

__all__ = [
    "ChartFeedWsApp",
    "ChartFeedWsMetrics",
    "LoggingSeriesSink",
    "build_chart_feed_ws_app",
]
