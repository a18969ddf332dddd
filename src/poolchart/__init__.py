"""
poolchart — resolution-bucketed OHLCV bar feed for pool price charts.
"""
