from .chart_config_store import ChartConfigStore

__all__ = ["ChartConfigStore"]
