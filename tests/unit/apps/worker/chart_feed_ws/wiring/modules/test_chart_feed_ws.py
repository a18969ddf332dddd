from __future__ import annotations

import asyncio

import pytest
from prometheus_client import CollectorRegistry

from apps.worker.chart_feed_ws.wiring.modules import (
    ChartFeedWsApp,
    ChartFeedWsMetrics,
    LoggingSeriesSink,
    build_chart_feed_ws_app,
)
from poolchart.contexts.chart_feed.application.dto import SymbolContext
from poolchart.contexts.chart_feed.application.services import BroadcastChannel
from poolchart.shared_kernel.primitives import Bar

_CONFIG = """
version: 1
chart_feed:
  kline: { base_url: "https://history.example", timeout_s: 10.0, page_limit: 300 }
  enriched: { base_url: "https://enriched.example", timeout_s: 10.0 }
  live:
    url: "wss://live.example/bars"
    ping_interval_s: 20.0
    pong_timeout_s: 10.0
    reconnect: { min_delay_s: 0.5, max_delay_s: 30.0, factor: 2.0, jitter_s: 0.2 }
  readiness: { interval_s: 1.0, max_attempts: 15 }
  session: { config_save_interval_s: 1.0, history_window_s: 86400 }
"""


class _FakeSession:
    def __init__(self) -> None:
        self.started = 0
        self.closed = 0

    async def start(self) -> None:
        self.started += 1

    def close(self) -> None:
        self.closed += 1


class _FailingSession(_FakeSession):
    async def start(self) -> None:
        raise RuntimeError("history down")


class _FakeHttpClient:
    def __init__(self) -> None:
        self.closed = 0

    def close(self) -> None:
        self.closed += 1


def _context() -> SymbolContext:
    return SymbolContext(pool_id="pool", base_mint="BASE", base_symbol="TOK", base_decimals=6)


def test_build_app_wires_session_from_config(tmp_path):
    path = tmp_path / "chart_feed.yaml"
    path.write_text(_CONFIG, encoding="utf-8")

    app = build_chart_feed_ws_app(
        config_path=str(path),
        context=_context(),
        metrics_port=0,
        metrics=ChartFeedWsMetrics(registry=CollectorRegistry()),
    )

    assert isinstance(app, ChartFeedWsApp)
    assert app.session.resolution == "5"
    assert app.session.closed is False


def test_app_runs_session_until_stop_and_closes_it():
    async def _scenario() -> _FakeSession:
        session = _FakeSession()
        app = ChartFeedWsApp(
            session=session,
            refresh_channel=BroadcastChannel("refresh"),
            metrics=ChartFeedWsMetrics(registry=CollectorRegistry()),
            metrics_port=0,
        )
        stop_event = asyncio.Event()
        stop_event.set()
        await app.run(stop_event)
        return session

    session = asyncio.run(_scenario())
    assert session.started == 1
    assert session.closed == 1


def test_app_closes_rest_client_when_session_start_fails():
    http = _FakeHttpClient()

    async def _scenario() -> None:
        app = ChartFeedWsApp(
            session=_FailingSession(),
            refresh_channel=BroadcastChannel("refresh"),
            metrics=ChartFeedWsMetrics(registry=CollectorRegistry()),
            metrics_port=0,
            http=http,
        )
        await app.run(asyncio.Event())

    with pytest.raises(RuntimeError):
        asyncio.run(_scenario())
    assert http.closed == 1


def test_metrics_hooks_update_counters():
    registry = CollectorRegistry()
    metrics = ChartFeedWsMetrics(registry=registry)

    hooks = metrics.datafeed_hooks()
    hooks.on_history_page(3)
    hooks.on_history_error()
    live = metrics.live_stream_hooks()
    live.on_connected(1)
    live.on_connected(1)
    live.on_connected(0)

    assert registry.get_sample_value("chart_history_pages_total") == 1.0
    assert registry.get_sample_value("chart_history_bars_total") == 3.0
    assert registry.get_sample_value("chart_history_errors_total") == 1.0
    assert registry.get_sample_value("chart_live_connected") == 1.0


def test_logging_sink_replaces_or_appends_last_bar():
    sink = LoggingSeriesSink("pool")
    sink.set_bars([Bar(time=60_000, open=1, high=2, low=0.5, close=1.5)], [(60_000, 0.0)])

    sink.update_bar(Bar(time=60_000, open=1, high=3, low=0.5, close=2.5))
    sink.update_bar(Bar(time=120_000, open=2.5, high=2.6, low=2.4, close=2.5))

    assert [b.time for b in sink.bars] == [60_000, 120_000]
    assert sink.bars[0].close == 2.5
    assert sink.volumes == ((60_000, 0.0),)
