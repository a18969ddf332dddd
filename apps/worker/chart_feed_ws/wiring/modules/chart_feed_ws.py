from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, start_http_server

from poolchart.contexts.chart_feed.adapters.outbound.clients.common_http import RequestsHttpClient
from poolchart.contexts.chart_feed.adapters.outbound.clients.enriched import (
    RestEnrichedHistorySource,
)
from poolchart.contexts.chart_feed.adapters.outbound.clients.kline import (
    RestKlineHistorySource,
    RestKlineReadinessProbe,
)
from poolchart.contexts.chart_feed.adapters.outbound.clients.live import (
    LiveStreamHooks,
    WsLiveBarStream,
)
from poolchart.contexts.chart_feed.adapters.outbound.config import (
    ChartFeedRuntimeConfig,
    load_chart_feed_runtime_config,
)
from poolchart.contexts.chart_feed.adapters.outbound.persistence.in_memory import (
    InMemoryChartConfigStore,
)
from poolchart.contexts.chart_feed.application.dto import SymbolContext
from poolchart.contexts.chart_feed.application.ports.sinks import ChartSeriesSink
from poolchart.contexts.chart_feed.application.services import (
    BroadcastChannel,
    DataReadinessGate,
    HistoricalFetcher,
)
from poolchart.contexts.chart_feed.application.use_cases import (
    ChartDatafeed,
    ChartSession,
    DatafeedHooks,
)
from poolchart.platform.time import SystemClock
from poolchart.shared_kernel.primitives import Bar

log = logging.getLogger(__name__)


class ChartFeedWsMetrics:
    """
    Prometheus metrics bundle for the chart feed worker.

    Parameters:
    - registry: collector registry, the process-wide default unless given.

    Assumptions/Invariants:
    - Metrics are instantiated once per registry.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.live_connected = Gauge(
            "chart_live_connected",
            "Current number of active live bar connections",
            registry=registry,
        )
        self.live_reconnects_total = Counter(
            "chart_live_reconnects_total", "Live bar stream reconnect count", registry=registry
        )
        self.live_messages_total = Counter(
            "chart_live_messages_total", "Received live bar frames", registry=registry
        )
        self.live_errors_total = Counter(
            "chart_live_errors_total", "Live bar stream errors", registry=registry
        )
        self.live_malformed_total = Counter(
            "chart_live_malformed_total", "Live frames without a usable bar", registry=registry
        )
        self.live_bars_total = Counter(
            "chart_live_bars_total", "Live bars pushed to the chart", registry=registry
        )
        self.live_stale_total = Counter(
            "chart_live_stale_total", "Live events dropped as older than the current bar", registry=registry  # noqa: E501
        )

        self.history_pages_total = Counter(
            "chart_history_pages_total", "Historical pages delivered", registry=registry
        )
        self.history_bars_total = Counter(
            "chart_history_bars_total", "Historical bars delivered", registry=registry
        )
        self.history_errors_total = Counter(
            "chart_history_errors_total", "Historical page fetch failures", registry=registry
        )
        self.history_discarded_total = Counter(
            "chart_history_discarded_total", "Late historical pages discarded", registry=registry
        )
        self.readiness_probes_total = Counter(
            "chart_readiness_probes_total", "Readiness probes issued", registry=registry
        )

        self._live_connection_count = 0

    def live_connection_state(self, state: int) -> None:
        if state == 1:
            self._live_connection_count += 1
        else:
            self._live_connection_count = max(self._live_connection_count - 1, 0)
        self.live_connected.set(self._live_connection_count)

    def on_history_page(self, bars: int) -> None:
        self.history_pages_total.inc()
        self.history_bars_total.inc(bars)

    def on_readiness_probe(self, attempt: int, has_data: bool) -> None:
        _ = (attempt, has_data)
        self.readiness_probes_total.inc()

    def datafeed_hooks(self) -> DatafeedHooks:
        return DatafeedHooks(
            on_history_page=self.on_history_page,
            on_history_error=self.history_errors_total.inc,
            on_history_discarded=self.history_discarded_total.inc,
            on_live_bar=self.live_bars_total.inc,
            on_stale_live_event=self.live_stale_total.inc,
        )

    def live_stream_hooks(self) -> LiveStreamHooks:
        return LiveStreamHooks(
            on_connected=self.live_connection_state,
            on_reconnect=self.live_reconnects_total.inc,
            on_message=self.live_messages_total.inc,
            on_error=self.live_errors_total.inc,
            on_malformed=self.live_malformed_total.inc,
        )


class LoggingSeriesSink(ChartSeriesSink):
    """
    Headless chart sink: keeps the rendered series in memory and logs every change.
    """

    def __init__(self, pool_id: str) -> None:
        self._pool_id = pool_id
        self._bars: list[Bar] = []
        self._volumes: list[tuple[int, float]] = []

    @property
    def bars(self) -> tuple[Bar, ...]:
        return tuple(self._bars)

    @property
    def volumes(self) -> tuple[tuple[int, float], ...]:
        return tuple(self._volumes)

    def set_bars(self, bars: Sequence[Bar], volumes: Sequence[tuple[int, float]]) -> None:
        self._bars = list(bars)
        self._volumes = list(volumes)
        log.info("chart series set pool=%s bars=%s", self._pool_id, len(self._bars))

    def update_bar(self, bar: Bar) -> None:
        if self._bars and self._bars[-1].time == bar.time:
            self._bars[-1] = bar
        else:
            self._bars.append(bar)
        log.info(
            "chart bar pool=%s time=%s o=%s h=%s l=%s c=%s",
            self._pool_id,
            bar.time,
            bar.open,
            bar.high,
            bar.low,
            bar.close,
        )


class ChartFeedWsApp:
    """
    Runtime orchestrator of one headless chart: history load, live tail, metrics.

    Parameters:
    - session: wired chart session.
    - refresh_channel: channel used to request a readiness refresh for a base mint.
    - metrics: worker metrics bundle.
    - metrics_port: HTTP port for `/metrics`; `0` disables the endpoint.
    - http: shared REST client, closed together with the session.
    """

    def __init__(
        self,
        *,
        session: ChartSession,
        refresh_channel: BroadcastChannel[str],
        metrics: ChartFeedWsMetrics,
        metrics_port: int,
        http: Optional[RequestsHttpClient] = None,
    ) -> None:
        if metrics_port < 0:
            raise ValueError("metrics_port must be >= 0")
        self._session = session
        self._refresh_channel = refresh_channel
        self._metrics = metrics
        self._metrics_port = metrics_port
        self._http = http

    @property
    def session(self) -> ChartSession:
        return self._session

    @property
    def refresh_channel(self) -> BroadcastChannel[str]:
        return self._refresh_channel

    async def run(self, stop_event: asyncio.Event) -> None:
        """
        Start the chart and serve until stop event is set.

        Errors/Exceptions:
        - Propagates `CannotResolveSymbol` raised while starting the chart.

        Side effects:
        - Starts metrics server, opens the live connection, loads history.
        - Closes the session and the REST client on exit.
        """
        if self._metrics_port > 0:
            start_http_server(self._metrics_port)
            log.info("metrics server started on port %s", self._metrics_port)

        try:
            await self._session.start()
            await stop_event.wait()
            log.info("worker shutdown requested")
        finally:
            self._session.close()
            if self._http is not None:
                self._http.close()


def build_chart_feed_ws_app(
    *,
    config_path: str,
    context: SymbolContext,
    metrics_port: int,
    need_refresh: bool = False,
    metrics: Optional[ChartFeedWsMetrics] = None,
) -> ChartFeedWsApp:
    """
    Build a fully wired chart feed worker app.

    Parameters:
    - config_path: path to `chart_feed.yaml`.
    - context: metadata of the pool to chart.
    - metrics_port: Prometheus HTTP port.
    - need_refresh: run the readiness gate before the first load.
    - metrics: metrics bundle, a default-registry one unless given.

    Returns:
    - Ready-to-run worker app instance.

    Errors/Exceptions:
    - Propagates config parsing errors.

    Side effects:
    - Creates HTTP session and Prometheus metric objects.
    """
    config = load_chart_feed_runtime_config(Path(config_path))
    metrics = metrics if metrics is not None else ChartFeedWsMetrics()
    return _build_app(
        config=config,
        context=context,
        metrics=metrics,
        metrics_port=metrics_port,
        need_refresh=need_refresh,
    )


def _build_app(
    *,
    config: ChartFeedRuntimeConfig,
    context: SymbolContext,
    metrics: ChartFeedWsMetrics,
    metrics_port: int,
    need_refresh: bool,
) -> ChartFeedWsApp:
    http = RequestsHttpClient()
    kline_source = RestKlineHistorySource(
        base_url=config.kline.base_url,
        http=http,
        timeout_s=config.kline.timeout_s,
    )
    enriched_source = RestEnrichedHistorySource(
        base_url=config.enriched.base_url,
        http=http,
        timeout_s=config.enriched.timeout_s,
    )
    fetcher = HistoricalFetcher(
        kline_source=kline_source,
        enriched_source=enriched_source,
        page_limit=config.kline.page_limit,
        usdc_mint=config.enriched.usdc_mint,
    )
    connection = WsLiveBarStream(
        url=config.live.url,
        ping_interval_s=config.live.ping_interval_s,
        pong_timeout_s=config.live.pong_timeout_s,
        reconnect=config.live.reconnect,
        hooks=metrics.live_stream_hooks(),
    )
    datafeed = ChartDatafeed(
        symbol_context=context,
        connection=connection,
        fetcher=fetcher,
        init_pool_price=config.session.init_pool_price,
        hooks=metrics.datafeed_hooks(),
    )
    gate = DataReadinessGate(
        probe=RestKlineReadinessProbe(
            base_url=config.kline.base_url,
            http=http,
            timeout_s=config.kline.timeout_s,
        ),
        interval_s=config.readiness.interval_s,
        max_attempts=config.readiness.max_attempts,
        on_probe=metrics.on_readiness_probe,
    )
    refresh_channel: BroadcastChannel[str] = BroadcastChannel("chart-refresh")
    session = ChartSession(
        datafeed=datafeed,
        context=context,
        sink=LoggingSeriesSink(context.pool_id),
        config_store=InMemoryChartConfigStore(),
        clock=SystemClock(),
        readiness_gate=gate,
        refresh_channel=refresh_channel,
        need_refresh=need_refresh,
        theme=config.session.theme,
        history_window_s=config.session.history_window_s,
        config_save_interval_s=config.session.config_save_interval_s,
    )
    return ChartFeedWsApp(
        session=session,
        refresh_channel=refresh_channel,
        metrics=metrics,
        metrics_port=metrics_port,
        http=http,
    )
