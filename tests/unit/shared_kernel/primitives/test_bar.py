from __future__ import annotations

from poolchart.shared_kernel.primitives import Bar


def test_bar_as_dict_omits_missing_volume() -> None:
    """Ensure chart payload contains volume only when the bar carries one."""
    bar = Bar(time=60_000, open=1.0, high=2.0, low=0.5, close=1.5)
    assert bar.as_dict() == {"time": 60_000, "open": 1.0, "high": 2.0, "low": 0.5, "close": 1.5}

    with_volume = Bar(time=60_000, open=1.0, high=2.0, low=0.5, close=1.5, volume=3.0)
    assert with_volume.as_dict()["volume"] == 3.0


def test_bar_accepts_inconsistent_prices_without_raising() -> None:
    """Ensure upstream numbers are trusted and only reported as inconsistent."""
    bar = Bar(time=0, open=5.0, high=1.0, low=2.0, close=3.0)
    assert bar.is_consistent() is False
    assert Bar(time=0, open=1.0, high=2.0, low=0.5, close=1.5).is_consistent() is True
