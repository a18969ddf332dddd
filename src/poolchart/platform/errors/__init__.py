from .chart_feed_error import (
    CannotResolveSymbol,
    ChartFeedError,
    UnknownResolution,
    UpstreamUnavailable,
)

__all__ = [
    "CannotResolveSymbol",
    "ChartFeedError",
    "UnknownResolution",
    "UpstreamUnavailable",
]
