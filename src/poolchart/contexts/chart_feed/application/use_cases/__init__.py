from .chart_session import ChartSession
from .datafeed import (
    ChartDatafeed,
    DatafeedHooks,
    DatafeedPhase,
    DatafeedSessionState,
    Subscription,
    build_symbol_descriptor,
)

__all__ = [
    "ChartDatafeed",
    "ChartSession",
    "DatafeedHooks",
    "DatafeedPhase",
    "DatafeedSessionState",
    "Subscription",
    "build_symbol_descriptor",
]
