from __future__ import annotations

import logging
from typing import Callable, Optional

from poolchart.contexts.chart_feed.application.dto import (
    ChartConfig,
    FeedVariant,
    PeriodParams,
    SymbolContext,
    SymbolDescriptor,
)
from poolchart.contexts.chart_feed.application.ports.clock import Clock
from poolchart.contexts.chart_feed.application.ports.sinks import ChartSeriesSink
from poolchart.contexts.chart_feed.application.ports.stores import ChartConfigStore
from poolchart.contexts.chart_feed.application.services import (
    BroadcastChannel,
    DataReadinessGate,
    ReadinessOutcome,
    ScheduledTask,
    schedule,
    schedule_periodic,
)
from poolchart.contexts.chart_feed.application.use_cases.datafeed import ChartDatafeed
from poolchart.platform.errors import UnknownResolution, UpstreamUnavailable
from poolchart.shared_kernel.primitives import Bar, Resolution

log = logging.getLogger(__name__)

DEFAULT_KLINE_RESOLUTION = "5"
DEFAULT_ENRICHED_RESOLUTION = "15"
DEFAULT_HISTORY_WINDOW_S = 24 * 60 * 60
DEFAULT_CONFIG_SAVE_INTERVAL_S = 1.0


class ChartSession:
    """
    Headless lifecycle of one chart instance.

    Parameters:
    - datafeed: datafeed bound to this chart instance.
    - context: metadata of the charted pool.
    - sink: rendering side receiving bars and volumes.
    - config_store: saved chart preferences per feed variant.
    - clock: UTC clock used to build the initial history window.
    - readiness_gate: gate used before loading a freshly created kline pool.
    - refresh_channel: channel of base mints whose charts must reload.
    - need_refresh: run the readiness gate before the first load.
    - theme: theme token saved along with the resolution.
    - history_window_s: initial history window length.
    - config_save_interval_s: auto-save period.
    - subscriber_id: live subscription key, derived from the pool id by default.

    Assumptions/Invariants:
    - `start()` and `close()` run on the event loop; `close()` is idempotent.
    - Historical failures keep whatever the sink already shows.
    - Live bars are applied only after a load delivered bars.
    """

    def __init__(
        self,
        *,
        datafeed: ChartDatafeed,
        context: SymbolContext,
        sink: ChartSeriesSink,
        config_store: ChartConfigStore,
        clock: Clock,
        readiness_gate: DataReadinessGate | None = None,
        refresh_channel: BroadcastChannel[str] | None = None,
        need_refresh: bool = False,
        theme: str = "dark",
        history_window_s: int = DEFAULT_HISTORY_WINDOW_S,
        config_save_interval_s: float = DEFAULT_CONFIG_SAVE_INTERVAL_S,
        subscriber_id: str | None = None,
    ) -> None:
        if history_window_s <= 0:
            raise ValueError(f"history_window_s must be > 0, got {history_window_s}")

        self._datafeed = datafeed
        self._context = context
        self._sink = sink
        self._config_store = config_store
        self._clock = clock
        self._gate = readiness_gate
        self._refresh_channel = refresh_channel
        self._need_refresh = need_refresh
        self._theme = theme
        self._history_window_s = history_window_s
        self._config_save_interval_s = config_save_interval_s
        self._subscriber_id = subscriber_id or f"chart-{context.pool_id}"

        self._resolution = self._initial_resolution()
        self._descriptor: Optional[SymbolDescriptor] = None
        self._gate_task: Optional[ScheduledTask] = None
        self._load_task: Optional[ScheduledTask] = None
        self._autosave_task: Optional[ScheduledTask] = None
        self._unsubscribe_refresh: Optional[Callable[[], None]] = None
        self._last_bar: Optional[Bar] = None
        self._last_outcome: Optional[ReadinessOutcome] = None
        self._started = False
        self._closed = False

    @property
    def resolution(self) -> str:
        return self._resolution

    @property
    def last_bar(self) -> Optional[Bar]:
        return self._last_bar

    @property
    def readiness_outcome(self) -> Optional[ReadinessOutcome]:
        return self._last_outcome

    @property
    def gate_task(self) -> Optional[ScheduledTask]:
        return self._gate_task

    @property
    def load_task(self) -> Optional[ScheduledTask]:
        return self._load_task

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """
        Resolve the pool, start auto-save, then load history (after the gate if needed).

        Errors/Exceptions:
        - Propagates `CannotResolveSymbol` from the datafeed.

        Side effects:
        - Opens the live connection, spawns background tasks.
        """
        if self._started or self._closed:
            return
        self._started = True

        self._descriptor = self._datafeed.resolve_symbol(self._context.pool_id)
        if self._refresh_channel is not None:
            self._unsubscribe_refresh = self._refresh_channel.subscribe(self._on_refresh_requested)
        self._autosave_task = schedule_periodic(
            self._save_config,
            interval_s=self._config_save_interval_s,
            name=f"chart-config-autosave-{self._context.pool_id}",
        )

        if self._need_refresh and self._gate_enabled():
            self._start_gate()
            return
        await self.load()

    async def load(self) -> None:
        """
        Load the initial history window and attach the live tail.

        Side effects:
        - Pushes bars/volumes to the sink, (re)subscribes live bars for kline charts.
        """
        if self._closed or self._descriptor is None:
            return

        to_s = int(self._clock.now().timestamp())
        period = PeriodParams(
            from_s=to_s - self._history_window_s,
            to_s=to_s,
            first_data_request=True,
        )
        try:
            result = await self._datafeed.get_bars(self._descriptor, self._resolution, period)
        except UpstreamUnavailable:
            log.exception("chart history load failed pool=%s", self._context.pool_id)
            return

        if self._closed or result.discarded or not result.bars:
            return

        bars = list(result.bars)
        self._sink.set_bars(bars, [(b.time, b.volume or 0.0) for b in bars])
        self._last_bar = bars[-1]

        if self._context.variant is FeedVariant.KLINE:
            self._datafeed.unsubscribe_bars(self._subscriber_id)
            self._datafeed.subscribe_bars(
                self._descriptor,
                self._resolution,
                self._on_live_bar,
                self._subscriber_id,
            )

    def request_refresh(self) -> None:
        """Re-run the readiness gate and reload once data exists (kline charts only)."""
        if self._closed or not self._started or not self._gate_enabled():
            return
        self._start_gate()

    def close(self) -> None:
        """
        Tear the chart down.

        Side effects:
        - Cancels gate/load/auto-save tasks, drops the live subscription,
          disposes the datafeed (closing its connection once).
        """
        if self._closed:
            return
        self._closed = True

        for task in (self._gate_task, self._load_task, self._autosave_task):
            if task is not None:
                task.cancel()
        if self._unsubscribe_refresh is not None:
            self._unsubscribe_refresh()
            self._unsubscribe_refresh = None
        self._datafeed.unsubscribe_bars(self._subscriber_id)
        self._datafeed.dispose()
        log.info("chart session closed pool=%s", self._context.pool_id)

    def _initial_resolution(self) -> str:
        default = (
            DEFAULT_ENRICHED_RESOLUTION
            if self._context.variant is FeedVariant.ENRICHED
            else DEFAULT_KLINE_RESOLUTION
        )
        saved = self._config_store.get(self._context.variant)
        if saved is None or not saved.resolution:
            return default
        try:
            return Resolution(saved.resolution).label
        except UnknownResolution:
            log.warning("saved resolution %r is not supported, using %s", saved.resolution, default)
            return default

    def _gate_enabled(self) -> bool:
        return self._gate is not None and self._context.variant is FeedVariant.KLINE

    def _start_gate(self) -> None:
        assert self._gate is not None
        if self._gate_task is not None:
            self._gate_task.cancel()
        self._gate_task = self._gate.start(self._context.pool_id, self._on_gate_proceed)

    def _on_gate_proceed(self, outcome: ReadinessOutcome) -> None:
        if self._closed:
            return
        self._last_outcome = outcome
        log.info("readiness gate done pool=%s outcome=%s", self._context.pool_id, outcome.value)
        if self._load_task is not None:
            self._load_task.cancel()
        self._load_task = schedule(self.load, name=f"chart-load-{self._context.pool_id}")

    def _on_refresh_requested(self, mint: str) -> None:
        if mint and mint == self._context.base_mint:
            self.request_refresh()

    def _on_live_bar(self, bar: Bar) -> None:
        if self._closed:
            return
        self._last_bar = bar
        self._sink.update_bar(bar)

    def _save_config(self) -> None:
        self._config_store.save(
            self._context.variant,
            ChartConfig(resolution=self._resolution, theme=self._theme),
        )
