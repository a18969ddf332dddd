from __future__ import annotations

from typing import Protocol, Sequence

from poolchart.shared_kernel.primitives import Bar


class ChartSeriesSink(Protocol):
    """
    Rendering side of a chart: candle series plus volume histogram.

    Contract:
    - set_bars(bars, volumes) -> None   (bars ascending, volumes aligned by time)
    - update_bar(bar) -> None           (replace or append the last candle)
    """

    def set_bars(self, bars: Sequence[Bar], volumes: Sequence[tuple[int, float]]) -> None:
        ...

    def update_bar(self, bar: Bar) -> None:
        ...
