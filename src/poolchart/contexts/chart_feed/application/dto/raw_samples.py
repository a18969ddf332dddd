from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True, slots=True)
class KlineRow:
    """
    One row of the launchpad kline feed (newest-first on the wire).

    Fields:
    - t: sample time, epoch seconds
    - o/h/l/c: prices
    - v_a/v_b/v_u: per-row volumes; not trusted for chart volume
    """

    t: int
    o: float
    h: float
    l: float  # noqa: E741
    c: float
    v_a: Optional[float] = None
    v_b: Optional[float] = None
    v_u: Optional[float] = None


@dataclass(frozen=True, slots=True)
class EnrichedRow:
    """
    One row of the enriched OHLCV feed (oldest-first on the wire).

    Fields:
    - unix_time: sample time, epoch seconds
    - o/h/l/c: prices in quote units
    - v_quote: quote volume of the row
    """

    unix_time: int
    o: float
    h: float
    l: float  # noqa: E741
    c: float
    v_quote: float = 0.0


RawSample = Union[KlineRow, EnrichedRow]
