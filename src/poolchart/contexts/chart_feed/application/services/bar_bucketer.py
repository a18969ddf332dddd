from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Generic, Iterable, Optional, Protocol, TypeVar

from poolchart.contexts.chart_feed.application.dto import EnrichedRow, FeedVariant, KlineRow
from poolchart.shared_kernel.primitives import Bar

SampleT = TypeVar("SampleT", contravariant=True)


class BarFoldStrategy(Protocol[SampleT]):
    """
    Per-feed rules used by `BarBucketer` to fold raw samples into bars.

    Contract:
    - sample_time(sample) -> epoch seconds of the sample
    - closes_accumulator(bucket_ms, accumulator) -> True when the sample starts a new bar
    - open_bar(sample, bucket_ms) -> fresh accumulator
    - fold(accumulator, sample) -> accumulator with the sample applied
    - finalize(bars) -> bars after whole-page adjustments
    """

    def sample_time(self, sample: SampleT) -> int:
        ...

    def closes_accumulator(self, bucket_ms: int, accumulator: Bar) -> bool:
        ...

    def open_bar(self, sample: SampleT, bucket_ms: int) -> Bar:
        ...

    def fold(self, accumulator: Bar, sample: SampleT) -> Bar:
        ...

    def finalize(self, bars: list[Bar]) -> list[Bar]:
        ...


@dataclass(frozen=True, slots=True)
class EnrichedBarFold:
    """
    Fold rules of the enriched feed.

    Parameters:
    - multiplier: price multiplier (total supply in market-cap mode, else 1).

    Assumptions/Invariants:
    - Feed is ascending: only a strictly later bucket closes the accumulator,
      a late sample from an earlier bucket is absorbed by the current bar.
    - Quote volume is summed per bucket.
    """

    multiplier: float = 1.0

    def sample_time(self, sample: EnrichedRow) -> int:
        return sample.unix_time

    def closes_accumulator(self, bucket_ms: int, accumulator: Bar) -> bool:
        return bucket_ms > accumulator.time

    def open_bar(self, sample: EnrichedRow, bucket_ms: int) -> Bar:
        m = self.multiplier
        return Bar(
            time=bucket_ms,
            open=sample.o * m,
            high=sample.h * m,
            low=sample.l * m,
            close=sample.c * m,
            volume=sample.v_quote,
        )

    def fold(self, accumulator: Bar, sample: EnrichedRow) -> Bar:
        m = self.multiplier
        return replace(
            accumulator,
            close=sample.c * m,
            low=min(sample.l * m, accumulator.low),
            high=max(sample.h * m, accumulator.high),
            volume=(accumulator.volume or 0.0) + (sample.v_quote or 0.0),
        )

    def finalize(self, bars: list[Bar]) -> list[Bar]:
        return bars


@dataclass(frozen=True, slots=True)
class KlineBarFold:
    """
    Fold rules of the launchpad kline feed.

    Parameters:
    - init_pool_price: launch price of the pool; when a page yields a single bar,
      its open/low are clamped down to it so a malformed first print does not
      hide the launch level. `None` disables the clamp.

    Assumptions/Invariants:
    - Feed is descending: only a strictly earlier bucket closes the accumulator.
      Non-monotonic input can therefore split one bucket into several bars.
    - Rows carry no trustworthy volume, bars are emitted without volume.
    """

    init_pool_price: Optional[float] = None

    def sample_time(self, sample: KlineRow) -> int:
        return sample.t

    def closes_accumulator(self, bucket_ms: int, accumulator: Bar) -> bool:
        return bucket_ms < accumulator.time

    def open_bar(self, sample: KlineRow, bucket_ms: int) -> Bar:
        return Bar(
            time=bucket_ms,
            open=sample.o,
            high=max(sample.o, sample.l, sample.h, sample.c),
            low=min(sample.o, sample.l, sample.h, sample.c),
            close=sample.c,
        )

    def fold(self, accumulator: Bar, sample: KlineRow) -> Bar:
        return replace(
            accumulator,
            close=sample.c,
            low=min(sample.l, accumulator.low),
            high=max(sample.h, accumulator.high),
        )

    def finalize(self, bars: list[Bar]) -> list[Bar]:
        if len(bars) != 1 or self.init_pool_price is None:
            return bars
        only = bars[0]
        return [
            replace(
                only,
                open=min(self.init_pool_price, only.open),
                low=min(self.init_pool_price, only.low),
            )
        ]


class BarBucketer(Generic[SampleT]):
    """
    Fold an ordered page of raw samples into fixed-width OHLCV bars.

    Parameters:
    - strategy: feed-specific fold rules, chosen at construction time.

    Assumptions/Invariants:
    - Samples are consumed in the order given; the feed's native order is honoured
      and never re-sorted.
    - Output bars keep that order; every `bar.time` is a multiple of the bucket
      width in milliseconds.
    - Pure: the same input always produces the same bars.
    """

    def __init__(self, strategy: BarFoldStrategy[SampleT]) -> None:
        self._strategy = strategy

    @property
    def strategy(self) -> BarFoldStrategy[SampleT]:
        return self._strategy

    def bucket(self, samples: Iterable[SampleT], bucket_seconds: int) -> list[Bar]:
        """
        Bucket samples into bars.

        Parameters:
        - samples: raw rows in upstream order.
        - bucket_seconds: bucket width in seconds.

        Returns:
        - Bars in upstream order, the last one possibly still forming.

        Assumptions/Invariants:
        - Sample times are epoch seconds.

        Errors/Exceptions:
        - Raises `ValueError` when `bucket_seconds` is not positive.

        Side effects:
        - None.
        """
        if bucket_seconds <= 0:
            raise ValueError(f"bucket_seconds must be > 0, got {bucket_seconds}")

        strategy = self._strategy
        bars: list[Bar] = []
        accumulator: Bar | None = None

        for sample in samples:
            bucket_ms = (strategy.sample_time(sample) // bucket_seconds) * bucket_seconds * 1000
            if accumulator is not None and strategy.closes_accumulator(bucket_ms, accumulator):
                bars.append(accumulator)
                accumulator = None

            if accumulator is None:
                accumulator = strategy.open_bar(sample, bucket_ms)
                continue
            accumulator = strategy.fold(accumulator, sample)

        if accumulator is not None:
            bars.append(accumulator)
        return strategy.finalize(bars)


def bucketer_for(
    variant: FeedVariant,
    *,
    multiplier: float = 1.0,
    init_pool_price: Optional[float] = None,
) -> BarBucketer:
    """
    Build the bucketer matching a feed variant.

    Parameters:
    - variant: feed variant of the chart.
    - multiplier: enriched price multiplier.
    - init_pool_price: kline single-bar clamp level.

    Returns:
    - `BarBucketer` bound to the variant's fold strategy.
    """
    if variant is FeedVariant.ENRICHED:
        return BarBucketer(EnrichedBarFold(multiplier=multiplier))
    return BarBucketer(KlineBarFold(init_pool_price=init_pool_price))
