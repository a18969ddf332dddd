from __future__ import annotations

from typing import Optional

from poolchart.contexts.chart_feed.application.dto import (
    FeedVariant,
    HistoryPage,
    PeriodParams,
    SymbolContext,
)
from poolchart.contexts.chart_feed.application.ports.sources import (
    EnrichedHistorySource,
    KlineHistorySource,
)
from poolchart.shared_kernel.primitives import Resolution, bucket_seconds_of

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
KLINE_PAGE_LIMIT = 300
KLINE_INTERVAL_RESOLUTIONS: tuple[str, ...] = ("1", "5", "15")
_KLINE_FALLBACK_INTERVAL = "5m"
_ENRICHED_FALLBACK_FRAME = "15m"


def kline_interval(
    resolution: Resolution,
    supported: tuple[str, ...] = KLINE_INTERVAL_RESOLUTIONS,
) -> str:
    """Upstream interval for the kline feed; coarse resolutions are built from 5m rows."""
    if resolution.label in supported:
        return f"{resolution.label}m"
    return _KLINE_FALLBACK_INTERVAL


def enriched_frame(resolution: Resolution) -> str:
    """
    Upstream frame label for the enriched feed.

    Daily and longer resolutions are requested natively, minute resolutions up to
    15m as `"{n}m"`, anything in between is built from 15m rows.
    """
    width = resolution.bucket_seconds
    if width >= bucket_seconds_of("1D"):
        return resolution.label
    if width <= bucket_seconds_of("15"):
        return f"{resolution.label}m"
    return _ENRICHED_FALLBACK_FRAME


def enriched_addresses(context: SymbolContext, *, usdc_mint: str = USDC_MINT) -> tuple[str, str]:
    """
    Split an enriched pool id into `(base_address, quote_address)`.

    Market-cap pools are quoted in USDC whatever the second segment says.
    """
    parts = context.pool_id.split("_")
    base = parts[0]
    if context.is_market_cap:
        return (base, usdc_mint)
    if len(parts) < 2 or not parts[1]:
        raise ValueError(f"enriched pool_id must look like '<base>_<quote>', got {context.pool_id!r}")  # noqa: E501
    return (base, parts[1])


class HistoricalFetcher:
    """
    Fetch one page of raw history for a symbol from the matching upstream.

    Parameters:
    - kline_source: paginated kline feed.
    - enriched_source: enriched time-range feed, optional when no enriched chart is served.
    - page_limit: kline page size.
    - usdc_mint: quote mint used in market-cap mode.

    Assumptions/Invariants:
    - The first page of a session is requested with `cursor=None`.
    - The enriched feed has no cursor: every page reports `next_cursor=None`.
    - Enriched rows outside `[from_s, to_s)` are dropped.
    """

    def __init__(
        self,
        *,
        kline_source: KlineHistorySource,
        enriched_source: Optional[EnrichedHistorySource] = None,
        page_limit: int = KLINE_PAGE_LIMIT,
        usdc_mint: str = USDC_MINT,
    ) -> None:
        if kline_source is None:  # type: ignore[truthy-bool]
            raise ValueError("HistoricalFetcher requires kline_source")
        if page_limit <= 0:
            raise ValueError(f"page_limit must be > 0, got {page_limit}")
        self._kline_source = kline_source
        self._enriched_source = enriched_source
        self._page_limit = page_limit
        self._usdc_mint = usdc_mint

    def fetch_page(
        self,
        context: SymbolContext,
        resolution: Resolution,
        period: PeriodParams,
        cursor: Optional[str],
    ) -> HistoryPage:
        """
        Fetch one page of raw samples.

        Parameters:
        - context: resolved symbol context.
        - resolution: chart resolution.
        - period: requested window.
        - cursor: pagination cursor, `None` for the first page.

        Returns:
        - `HistoryPage` in upstream order.

        Assumptions/Invariants:
        - Blocking call; async callers run it in a worker thread.

        Errors/Exceptions:
        - Propagates source errors unchanged.
        - Raises `ValueError` for an enriched pool id without quote segment.
        - Raises `RuntimeError` when an enriched chart has no enriched source wired.

        Side effects:
        - One upstream HTTP request.
        """
        if context.variant is FeedVariant.ENRICHED:
            return self._fetch_enriched(context, resolution, period)
        return self._kline_source.fetch_page(
            pool_id=context.pool_id,
            interval=kline_interval(resolution),
            limit=self._page_limit,
            cursor=cursor,
        )

    def _fetch_enriched(
        self,
        context: SymbolContext,
        resolution: Resolution,
        period: PeriodParams,
    ) -> HistoryPage:
        if self._enriched_source is None:
            raise RuntimeError("enriched history source is not configured")

        base, quote = enriched_addresses(context, usdc_mint=self._usdc_mint)
        rows = self._enriched_source.fetch_range(
            base_address=base,
            quote_address=quote,
            frame=enriched_frame(resolution),
            time_from=period.from_s,
            time_to=period.to_s,
        )
        in_range = tuple(r for r in rows if period.from_s <= r.unix_time < period.to_s)
        return HistoryPage(samples=in_range, next_cursor=None)
