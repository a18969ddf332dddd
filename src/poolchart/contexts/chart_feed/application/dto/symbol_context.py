from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Wrapped SOL mint, used when the quote mint is not known.
NATIVE_MINT = "So11111111111111111111111111111111111111112"


class FeedVariant(str, Enum):
    """Upstream family a chart is fed from."""

    KLINE = "kline"
    ENRICHED = "enriched"


@dataclass(frozen=True, slots=True)
class SymbolContext:
    """
    Pool/token metadata resolved once per chart session.

    Parameters:
    - pool_id: pool identifier; for the enriched feed `"{base}_{quote}"`, optionally
      suffixed with `marketcap` to request market-cap scaling when `supply` is known.
    - base_mint/base_symbol/base_decimals: traded token.
    - quote_mint/quote_symbol/quote_decimals: quote token; mint defaults to wSOL.
    - supply: total base supply, used as market-cap multiplier.
    - curve_variant: bonding-curve type of a launchpad pool.
    - variant: which upstream family feeds this chart.

    Assumptions/Invariants:
    - Holds no mutable aggregation state.
    """

    pool_id: str
    base_mint: str
    base_symbol: str
    base_decimals: int
    quote_mint: str = NATIVE_MINT
    quote_symbol: str = "SOL"
    quote_decimals: Optional[int] = None
    supply: Optional[float] = None
    curve_variant: int = 0
    variant: FeedVariant = FeedVariant.KLINE

    def __post_init__(self) -> None:
        if not self.pool_id.strip():
            raise ValueError("SymbolContext requires non-empty pool_id")
        if self.base_decimals < 0:
            raise ValueError(f"SymbolContext.base_decimals must be >= 0, got {self.base_decimals}")  # noqa: E501
        if not self.quote_mint:
            object.__setattr__(self, "quote_mint", NATIVE_MINT)

    @property
    def is_market_cap(self) -> bool:
        """Enriched `marketcap` pool with a known supply; without supply prices stay raw."""
        return (
            self.variant is FeedVariant.ENRICHED
            and "marketcap" in self.pool_id
            and self.supply is not None
        )

    @property
    def scale_multiplier(self) -> float:
        """Price multiplier for the enriched feed (supply in market-cap mode, else 1)."""
        if self.is_market_cap:
            return float(self.supply)
        return 1.0
