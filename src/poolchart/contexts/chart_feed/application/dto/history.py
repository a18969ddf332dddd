from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from poolchart.contexts.chart_feed.application.dto.raw_samples import RawSample
from poolchart.shared_kernel.primitives import Bar


@dataclass(frozen=True, slots=True)
class PeriodParams:
    """
    Historical window requested by the chart.

    Fields:
    - from_s/to_s: epoch seconds, half-open `[from_s, to_s)`
    - first_data_request: true for the first page of a new historical session
    """

    from_s: int
    to_s: int
    first_data_request: bool

    def __post_init__(self) -> None:
        if self.from_s > self.to_s:
            raise ValueError(f"PeriodParams requires from_s <= to_s, got {self.from_s} > {self.to_s}")  # noqa: E501


@dataclass(frozen=True, slots=True)
class HistoryPage:
    """
    One page of raw samples in upstream order plus the cursor of the next page.

    `next_cursor=None` means history is exhausted for this session.
    """

    samples: tuple[RawSample, ...]
    next_cursor: Optional[str] = None


@dataclass(frozen=True, slots=True)
class BarsResult:
    """
    Consumer-facing historical read outcome.

    Fields:
    - bars: ascending by `time`
    - no_data: terminal "nothing (more) to show" flag; never an error
    - discarded: the response arrived for a symbol/session that is no longer active
    """

    bars: tuple[Bar, ...] = ()
    no_data: bool = False
    discarded: bool = False

    @classmethod
    def empty(cls) -> BarsResult:
        return cls(bars=(), no_data=True)

    @classmethod
    def stale(cls) -> BarsResult:
        return cls(bars=(), no_data=False, discarded=True)
