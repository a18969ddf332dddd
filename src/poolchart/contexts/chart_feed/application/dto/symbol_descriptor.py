from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class DatafeedConfiguration:
    """Capabilities announced to the chart widget on `on_ready`."""

    supported_resolutions: tuple[str, ...] = ("1", "5", "15")
    exchanges: tuple[str, ...] = ()
    symbols_types: tuple[str, ...] = ()
    supports_group_request: bool = True
    supports_marks: bool = False
    supports_search: bool = False
    supports_timescale_marks: bool = False


@dataclass(frozen=True, slots=True)
class SymbolDescriptor:
    """
    Symbol description returned by symbol resolution.

    Only the fields the chart widget reads are kept; display-only fields use the
    widget's naming so `as_dict()` can be handed over as-is.
    """

    pool_id: str
    base_mint: str
    quote_mint: str
    ticker: str
    decimals: int
    pricescale: int
    exchange: str
    supported_resolutions: tuple[str, ...]
    timezone: str = "Etc/UTC"
    type: str = "Raydium Lauchpad pool"
    session: str = "24x7"
    minmov: int = 1
    has_intraday: bool = True
    has_no_volume: bool = True
    has_weekly_and_monthly: bool = False
    volume_precision: int = 0
    data_status: str = "endofday"
    format: str = "price"
    intraday_multipliers: tuple[str, ...] = field(default=("1", "5", "15"))

    @property
    def name(self) -> str:
        return self.ticker

    @property
    def full_name(self) -> str:
        return self.ticker

    @property
    def description(self) -> str:
        return f"{self.ticker} pool"

    @property
    def listed_exchange(self) -> str:
        return self.exchange

    def as_dict(self) -> dict:
        return {
            "poolId": self.pool_id,
            "mintA": self.base_mint,
            "mintB": self.quote_mint,
            "ticker": self.ticker,
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "type": self.type,
            "session": self.session,
            "timezone": self.timezone,
            "exchange": self.exchange,
            "listed_exchange": self.listed_exchange,
            "minmov": self.minmov,
            "pricescale": self.pricescale,
            "has_intraday": self.has_intraday,
            "has_no_volume": self.has_no_volume,
            "has_weekly_and_monthly": self.has_weekly_and_monthly,
            "supported_resolutions": list(self.supported_resolutions),
            "intraday_multipliers": list(self.intraday_multipliers),
            "volume_precision": self.volume_precision,
            "data_status": self.data_status,
            "decimals": self.decimals,
            "format": self.format,
        }
