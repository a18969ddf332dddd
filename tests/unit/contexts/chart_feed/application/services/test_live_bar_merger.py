from __future__ import annotations

from poolchart.contexts.chart_feed.application.dto import LiveBarEvent
from poolchart.contexts.chart_feed.application.services import LiveBarMerger, LiveMergeOutcome
from poolchart.shared_kernel.primitives import Bar, Resolution


def _event(t: int, o: float, h: float, l: float, c: float) -> LiveBarEvent:  # noqa: E741
    return LiveBarEvent(pool_id="pool", time=t, open=o, high=h, low=l, close=c)


def test_merge_sequence_yields_one_bar_per_bucket() -> None:
    """Ensure events at [100, 100, 160, 160, 220] with 60s width produce exactly 3 bars."""
    merger = LiveBarMerger()
    res = Resolution("1")
    events = [
        _event(100, 1.0, 2.0, 0.8, 1.5),
        _event(100, 1.4, 2.5, 0.6, 1.7),
        _event(160, 1.7, 1.9, 1.6, 1.8),
        _event(160, 1.8, 2.2, 1.5, 2.0),
        _event(220, 2.0, 2.1, 1.9, 2.05),
    ]

    current = None
    emitted: list[Bar] = []
    for event in events:
        result = merger.merge(event, res, current)
        assert result.emitted
        current = result.bar
        emitted.append(result.bar)

    by_time: dict[int, Bar] = {}
    for bar in emitted:
        by_time[bar.time] = bar
    assert sorted(by_time) == [60_000, 120_000, 180_000]
    assert by_time[60_000] == Bar(time=60_000, open=1.0, high=2.5, low=0.6, close=1.7)
    assert [b.time for b in emitted] == sorted(b.time for b in emitted)


def test_same_bucket_event_updates_current_bar() -> None:
    merger = LiveBarMerger()
    current = Bar(time=60_000, open=1.0, high=2.0, low=0.5, close=1.5)
    result = merger.merge(_event(90, 9.0, 1.8, 0.7, 1.6), Resolution("1"), current)
    assert result.outcome is LiveMergeOutcome.UPDATED
    assert result.bar == Bar(time=60_000, open=1.0, high=2.0, low=0.5, close=1.6)


def test_stale_event_is_dropped_without_touching_bar() -> None:
    """Ensure an event from an earlier bucket leaves the current bar unchanged."""
    dropped: list[int] = []
    merger = LiveBarMerger(on_stale_dropped=lambda: dropped.append(1))
    current = Bar(time=120_000, open=1.0, high=2.0, low=0.5, close=1.5, volume=3.0)
    result = merger.merge(_event(60, 100.0, 200.0, 0.01, 150.0), Resolution("1"), current)
    assert result.outcome is LiveMergeOutcome.DROPPED
    assert result.emitted is False
    assert result.bar is current
    assert dropped == [1]


def test_first_event_without_current_bar_starts_new_bar() -> None:
    result = LiveBarMerger().merge(_event(330, 1.0, 2.0, 0.5, 1.5), Resolution("5"), None)
    assert result.outcome is LiveMergeOutcome.NEW
    assert result.bar == Bar(time=300_000, open=1.0, high=2.0, low=0.5, close=1.5)
