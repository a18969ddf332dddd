from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional

from poolchart.contexts.chart_feed.application.dto import LiveBarEvent
from poolchart.shared_kernel.primitives import Bar, Resolution


class LiveMergeOutcome(str, Enum):
    NEW = "new"
    UPDATED = "updated"
    DROPPED = "dropped"


@dataclass(frozen=True, slots=True)
class LiveMergeResult:
    """
    Result of merging one live event.

    Fields:
    - bar: current bar after the merge (unchanged input bar when dropped; may be
      `None` only when there was no current bar and the event was dropped)
    - outcome: what the merge did
    """

    bar: Optional[Bar]
    outcome: LiveMergeOutcome

    @property
    def emitted(self) -> bool:
        return self.outcome is not LiveMergeOutcome.DROPPED


class LiveBarMerger:
    """
    Decide whether a live event mutates the in-progress bar or starts a new one.

    Parameters:
    - on_stale_dropped: optional callback invoked when an older-bucket event is dropped.

    Assumptions/Invariants:
    - Events are processed strictly in arrival order, one call per event.
    - Bar times seen downstream are non-decreasing.
    """

    def __init__(self, *, on_stale_dropped: Callable[[], None] | None = None) -> None:
        self._on_stale_dropped = on_stale_dropped

    def merge(
        self,
        event: LiveBarEvent,
        resolution: Resolution,
        current_bar: Optional[Bar],
    ) -> LiveMergeResult:
        """
        Merge one live event into the current bar.

        Parameters:
        - event: live OHLC update; `event.time` in epoch seconds.
        - resolution: chart resolution used to align the event to its bucket.
        - current_bar: bar currently open on the chart, or `None`.

        Returns:
        - `LiveMergeResult` with the bar to show and the merge outcome.

        Assumptions/Invariants:
        - Same bucket: close replaced, high/low widened, open kept.
        - Later bucket: previous bar becomes immutable, new bar from event values.
        - Earlier bucket: stale event, state untouched.

        Errors/Exceptions:
        - None.

        Side effects:
        - Invokes `on_stale_dropped` for dropped events.
        """
        bucket_ms = resolution.bucket_start_ms(event.time)

        if current_bar is None or bucket_ms > current_bar.time:
            return LiveMergeResult(bar=_bar_from_event(event, bucket_ms), outcome=LiveMergeOutcome.NEW)

        if bucket_ms == current_bar.time:
            updated = replace(
                current_bar,
                close=event.close,
                high=max(current_bar.high, event.high),
                low=min(current_bar.low, event.low),
            )
            return LiveMergeResult(bar=updated, outcome=LiveMergeOutcome.UPDATED)

        if self._on_stale_dropped is not None:
            self._on_stale_dropped()
        return LiveMergeResult(bar=current_bar, outcome=LiveMergeOutcome.DROPPED)


def _bar_from_event(event: LiveBarEvent, bucket_ms: int) -> Bar:
    return Bar(
        time=bucket_ms,
        open=event.open,
        high=event.high,
        low=event.low,
        close=event.close,
    )
