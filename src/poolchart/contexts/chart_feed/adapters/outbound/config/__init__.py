from .runtime_config import (
    ChartFeedRuntimeConfig,
    EnrichedSourceConfig,
    KlineSourceConfig,
    LiveConfig,
    LiveReconnectConfig,
    ReadinessConfig,
    SessionConfig,
    load_chart_feed_runtime_config,
)

__all__ = [
    "ChartFeedRuntimeConfig",
    "EnrichedSourceConfig",
    "KlineSourceConfig",
    "LiveConfig",
    "LiveReconnectConfig",
    "ReadinessConfig",
    "SessionConfig",
    "load_chart_feed_runtime_config",
]
