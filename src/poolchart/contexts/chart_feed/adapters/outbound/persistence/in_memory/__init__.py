from .chart_config_store import InMemoryChartConfigStore

__all__ = ["InMemoryChartConfigStore"]
