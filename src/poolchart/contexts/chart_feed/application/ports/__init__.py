"""
Application layer ports for the chart_feed bounded context.

Ports define external dependencies used by use-cases and services.
"""

from .clock import Clock
from .feeds import LiveConnection
from .sinks import ChartSeriesSink
from .sources import EnrichedHistorySource, KlineHistorySource, ReadinessProbe
from .stores import ChartConfigStore

__all__ = [
    "ChartConfigStore",
    "ChartSeriesSink",
    "Clock",
    "EnrichedHistorySource",
    "KlineHistorySource",
    "LiveConnection",
    "ReadinessProbe",
]
