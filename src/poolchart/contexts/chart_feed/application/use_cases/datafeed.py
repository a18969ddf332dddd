from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Optional, Union

from poolchart.contexts.chart_feed.application.dto import (
    BarsResult,
    DatafeedConfiguration,
    FeedVariant,
    LiveBarEvent,
    PeriodParams,
    SymbolContext,
    SymbolDescriptor,
)
from poolchart.contexts.chart_feed.application.ports.feeds import LiveConnection
from poolchart.contexts.chart_feed.application.services import (
    BroadcastChannel,
    HistoricalFetcher,
    LiveBarMerger,
    bucketer_for,
)
from poolchart.platform.errors import CannotResolveSymbol, UpstreamUnavailable
from poolchart.shared_kernel.primitives import Bar, Resolution

log = logging.getLogger(__name__)

ENRICHED_EXCHANGE = "birdeye"
KLINE_EXCHANGE = "Raydium"


class DatafeedPhase(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    READY = "ready"
    DISPOSED = "disposed"


@dataclass(slots=True)
class DatafeedSessionState:
    """
    Mutable historical-session state owned by one `ChartDatafeed`.

    Fields:
    - next_cursor: pagination cursor of the active session (`None` = start or exhausted)
    - last_bars: pool id -> most recent historical bar, seeds live continuity
    - generation: bumped on every symbol switch/teardown, stale responses compare it
    - active_pool_id: pool currently bound to the chart
    """

    next_cursor: Optional[str] = None
    last_bars: dict[str, Bar] = field(default_factory=dict)
    generation: int = 0
    active_pool_id: Optional[str] = None

    def begin(self, pool_id: Optional[str]) -> None:
        self.generation += 1
        self.next_cursor = None
        self.active_pool_id = pool_id


@dataclass(frozen=True, slots=True)
class DatafeedHooks:
    """
    Optional metric/logging hooks for datafeed runtime.

    Parameters:
    - on_history_page: callback invoked with the bar count of every delivered page.
    - on_history_error: callback invoked when a page fetch fails.
    - on_history_discarded: callback invoked when a late page is thrown away.
    - on_live_bar: callback invoked for every bar pushed to a live subscriber.
    - on_stale_live_event: callback invoked when an older-bucket live event is dropped.
    """

    on_history_page: Callable[[int], None] | None = None
    on_history_error: Callable[[], None] | None = None
    on_history_discarded: Callable[[], None] | None = None
    on_live_bar: Callable[[], None] | None = None
    on_stale_live_event: Callable[[], None] | None = None


@dataclass(slots=True)
class Subscription:
    subscriber_id: str
    pool_id: str
    resolution: Resolution
    on_realtime: Callable[[Bar], None]
    current_bar: Optional[Bar] = None
    on_reset_cache_needed: Optional[Callable[[], None]] = None


SymbolRef = Union[SymbolDescriptor, str]


class ChartDatafeed:
    """
    Chart-facing datafeed: symbol resolution, history pages, live subscriptions.

    Parameters:
    - symbol_context: metadata of the charted pool; `None` when not loaded yet.
    - connection: live transport of this chart instance.
    - fetcher: historical page fetcher.
    - init_pool_price: kline single-bar clamp level.
    - state: explicit session state, a fresh one by default.
    - hooks: optional metrics/logging hooks.
    - timezone: IANA timezone announced in symbol descriptors.

    Assumptions/Invariants:
    - One live connection per instance; a symbol switch closes the previous one first.
    - `get_bars` calls are serialised; a page for a symbol or session that is no
      longer active is discarded without touching cursor or cache.
    - Only this class writes `DatafeedSessionState`.
    """

    configuration_data = DatafeedConfiguration()

    def __init__(
        self,
        *,
        symbol_context: Optional[SymbolContext],
        connection: LiveConnection,
        fetcher: HistoricalFetcher,
        init_pool_price: Optional[float] = None,
        state: DatafeedSessionState | None = None,
        hooks: DatafeedHooks | None = None,
        timezone: str = "Etc/UTC",
    ) -> None:
        if connection is None:  # type: ignore[truthy-bool]
            raise ValueError("ChartDatafeed requires connection")
        if fetcher is None:  # type: ignore[truthy-bool]
            raise ValueError("ChartDatafeed requires fetcher")

        self._context = symbol_context
        self._connection = connection
        self._fetcher = fetcher
        self._init_pool_price = init_pool_price
        self._session = state if state is not None else DatafeedSessionState()
        self._hooks = hooks if hooks is not None else DatafeedHooks()
        self._timezone = timezone

        self._phase = DatafeedPhase.IDLE
        self._active_context: Optional[SymbolContext] = None
        self._connection_open = False
        self._fetch_lock = asyncio.Lock()
        self._subscriptions: dict[str, Subscription] = {}
        self._merger = LiveBarMerger(on_stale_dropped=self._hooks.on_stale_live_event)
        self._live_channel: BroadcastChannel[LiveBarEvent] = BroadcastChannel("live-bars")
        self._live_channel.subscribe(self._route_live_event)

    @property
    def phase(self) -> DatafeedPhase:
        return self._phase

    @property
    def session(self) -> DatafeedSessionState:
        return self._session

    @property
    def active_context(self) -> Optional[SymbolContext]:
        return self._active_context

    def on_ready(self) -> DatafeedConfiguration:
        return self.configuration_data

    def search_symbols(self, user_input: str, exchange: str = "", symbol_type: str = "") -> list:
        _ = (user_input, exchange, symbol_type)
        return []

    def resolve_symbol(self, symbol_name: str) -> SymbolDescriptor:
        """
        Describe the pool and bind the live connection to it.

        Parameters:
        - symbol_name: pool id requested by the chart.

        Returns:
        - `SymbolDescriptor` for the chart widget.

        Assumptions/Invariants:
        - Any previous connection of this instance is closed before the new one opens.
        - A new historical session starts: cursor reset, subscriptions dropped.

        Errors/Exceptions:
        - Raises `CannotResolveSymbol` when no symbol context is available.
        - Raises `RuntimeError` after `dispose()`.

        Side effects:
        - Closes/opens the live connection.
        """
        if self._phase is DatafeedPhase.DISPOSED:
            raise RuntimeError("datafeed is disposed")

        self._phase = DatafeedPhase.RESOLVING
        if self._context is None:
            log.info("cannot resolve symbol %s: no symbol context", symbol_name)
            self._phase = DatafeedPhase.IDLE
            raise CannotResolveSymbol(symbol_name)

        context = self._context
        if context.pool_id != symbol_name:
            context = replace(context, pool_id=symbol_name)
        descriptor = build_symbol_descriptor(
            context,
            supported_resolutions=self.configuration_data.supported_resolutions,
            timezone=self._timezone,
        )

        self._close_connection()
        self._subscriptions.clear()
        self._session.begin(symbol_name)
        self._active_context = context
        self._connection.open(symbol_name, self._live_channel.publish)
        self._connection_open = True
        self._phase = DatafeedPhase.READY

        log.info("symbol resolved pool=%s ticker=%s", symbol_name, descriptor.ticker)
        return descriptor

    async def get_bars(
        self,
        symbol: SymbolRef,
        resolution: str,
        period: PeriodParams,
    ) -> BarsResult:
        """
        Load one page of historical bars.

        Parameters:
        - symbol: resolved descriptor or pool id.
        - resolution: chart resolution label.
        - period: requested window and first-request flag.

        Returns:
        - `BarsResult` with bars ascending by time, `no_data=True` when the
          session is exhausted or the page is empty, `discarded=True` when the
          symbol or session changed while the page was in flight.

        Assumptions/Invariants:
        - A non-first request with no cursor is answered without a network call.
        - Cursor and last-bar cache are committed only for a successful, current page.
        - On the first request the cache is seeded with the first bar in upstream
          order (most recent bucket for the newest-first kline feed).

        Errors/Exceptions:
        - Raises `UnknownResolution` for unsupported labels.
        - Raises `UpstreamUnavailable` when the fetch fails; nothing is committed.

        Side effects:
        - One upstream request in a worker thread; session state updates.
        """
        res = Resolution(resolution)
        pool_id = _pool_id_of(symbol)

        async with self._fetch_lock:
            session = self._session
            context = self._active_context
            if (
                self._phase is not DatafeedPhase.READY
                or context is None
                or pool_id != session.active_pool_id
            ):
                log.info("get_bars for inactive symbol pool=%s ignored", pool_id)
                return BarsResult.stale()

            if period.first_data_request:
                session.next_cursor = None
            elif session.next_cursor is None:
                return BarsResult.empty()

            generation = session.generation
            cursor = session.next_cursor
            log.debug(
                "get_bars pool=%s resolution=%s from=%s to=%s first=%s cursor=%s",
                pool_id,
                res.label,
                period.from_s,
                period.to_s,
                period.first_data_request,
                cursor,
            )

            try:
                page = await asyncio.to_thread(self._fetcher.fetch_page, context, res, period, cursor)
            except Exception as exc:  # noqa: BLE001
                _emit_simple(self._hooks.on_history_error)
                log.warning("history fetch failed pool=%s", pool_id, exc_info=True)
                raise UpstreamUnavailable(pool_id, str(exc) or type(exc).__name__) from exc

            if (
                self._phase is not DatafeedPhase.READY
                or generation != session.generation
                or pool_id != session.active_pool_id
            ):
                _emit_simple(self._hooks.on_history_discarded)
                log.info("late history page for pool=%s discarded", pool_id)
                return BarsResult.stale()

            bucketer = bucketer_for(
                context.variant,
                multiplier=context.scale_multiplier,
                init_pool_price=self._init_pool_price,
            )
            bars = bucketer.bucket(page.samples, res.bucket_seconds)
            session.next_cursor = page.next_cursor

            if not bars:
                return BarsResult.empty()

            if period.first_data_request:
                session.last_bars[pool_id] = bars[0]

            if context.variant is FeedVariant.KLINE:
                bars.reverse()

            if self._hooks.on_history_page is not None:
                self._hooks.on_history_page(len(bars))
            log.debug("get_bars pool=%s returned %s bar(s)", pool_id, len(bars))
            return BarsResult(bars=tuple(bars), no_data=False)

    def subscribe_bars(
        self,
        symbol: SymbolRef,
        resolution: str,
        on_realtime: Callable[[Bar], None],
        subscriber_id: str,
        on_reset_cache_needed: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Attach a live subscriber seeded with the cached last historical bar.

        Parameters:
        - symbol: resolved descriptor or pool id.
        - resolution: chart resolution label.
        - on_realtime: receives every new/updated bar.
        - subscriber_id: caller-chosen subscription key.
        - on_reset_cache_needed: stored for the chart widget, not invoked here.

        Returns:
        - None.

        Assumptions/Invariants:
        - The enriched feed has no live tail: subscribing is a no-op.
        - Re-using a subscriber id replaces the previous subscription.

        Errors/Exceptions:
        - Raises `UnknownResolution` for unsupported labels.

        Side effects:
        - Registers the subscription.
        """
        res = Resolution(resolution)
        pool_id = _pool_id_of(symbol)

        if _is_enriched(symbol, self._active_context):
            log.info("enriched pool %s has no live tail, subscribe skipped", pool_id)
            return
        if self._phase is DatafeedPhase.DISPOSED:
            log.info("subscribe on disposed datafeed ignored subscriber=%s", subscriber_id)
            return

        self._subscriptions[subscriber_id] = Subscription(
            subscriber_id=subscriber_id,
            pool_id=pool_id,
            resolution=res,
            on_realtime=on_realtime,
            current_bar=self._session.last_bars.get(pool_id),
            on_reset_cache_needed=on_reset_cache_needed,
        )
        log.info("subscribed subscriber=%s pool=%s resolution=%s", subscriber_id, pool_id, res)

    def unsubscribe_bars(self, subscriber_id: str) -> None:
        if self._subscriptions.pop(subscriber_id, None) is not None:
            log.info("unsubscribed subscriber=%s", subscriber_id)

    def subscription(self, subscriber_id: str) -> Optional[Subscription]:
        return self._subscriptions.get(subscriber_id)

    def dispose(self) -> None:
        """
        Tear the datafeed down: drop subscriptions, close the connection once.

        Safe to call multiple times; in-flight history pages are discarded.
        """
        if self._phase is DatafeedPhase.DISPOSED:
            return
        self._phase = DatafeedPhase.DISPOSED
        self._subscriptions.clear()
        self._session.begin(None)
        self._active_context = None
        self._close_connection()
        self._live_channel.clear()
        log.info("datafeed disposed")

    def _close_connection(self) -> None:
        if not self._connection_open:
            return
        self._connection_open = False
        self._connection.close()

    def _route_live_event(self, event: LiveBarEvent) -> None:
        if event.pool_id != self._session.active_pool_id:
            return
        for sub in list(self._subscriptions.values()):
            if sub.pool_id != event.pool_id:
                continue
            result = self._merger.merge(event, sub.resolution, sub.current_bar)
            if not result.emitted or result.bar is None:
                continue
            sub.current_bar = result.bar
            _emit_simple(self._hooks.on_live_bar)
            sub.on_realtime(result.bar)


def build_symbol_descriptor(
    context: SymbolContext,
    *,
    supported_resolutions: tuple[str, ...],
    timezone: str = "Etc/UTC",
) -> SymbolDescriptor:
    """
    Build the chart symbol descriptor for a pool.

    Parameters:
    - context: resolved symbol context.
    - supported_resolutions: resolutions announced to the chart.
    - timezone: IANA timezone string.

    Returns:
    - `SymbolDescriptor`; price decimals are `9 + base_decimals // 2`.
    """
    decimals = 9 + context.base_decimals // 2
    quote_symbol = _display_symbol(context.quote_symbol)
    exchange = ENRICHED_EXCHANGE if context.variant is FeedVariant.ENRICHED else KLINE_EXCHANGE
    return SymbolDescriptor(
        pool_id=context.pool_id,
        base_mint=context.base_mint,
        quote_mint=context.quote_mint,
        ticker=f"{context.base_symbol}-{quote_symbol}",
        decimals=decimals,
        pricescale=10**decimals,
        exchange=exchange,
        supported_resolutions=supported_resolutions,
        timezone=timezone,
    )


def _display_symbol(symbol: str) -> str:
    if not symbol:
        return "SOL"
    return "SOL" if symbol.upper() == "WSOL" else symbol


def _pool_id_of(symbol: SymbolRef) -> str:
    if isinstance(symbol, SymbolDescriptor):
        return symbol.pool_id
    return symbol


def _is_enriched(symbol: SymbolRef, context: Optional[SymbolContext]) -> bool:
    if isinstance(symbol, SymbolDescriptor):
        return symbol.exchange == ENRICHED_EXCHANGE
    return context is not None and context.variant is FeedVariant.ENRICHED


def _emit_simple(callback: Callable[[], None] | None) -> None:
    if callback is not None:
        callback()
