from .chart_series_sink import ChartSeriesSink

__all__ = ["ChartSeriesSink"]
