from __future__ import annotations

import asyncio
import json

import pytest

from poolchart.contexts.chart_feed.adapters.outbound.clients.live import (
    LiveStreamHooks,
    WsLiveBarStream,
    build_live_stream_url,
    parse_live_bar_message,
)
from poolchart.contexts.chart_feed.adapters.outbound.config import LiveReconnectConfig
from poolchart.contexts.chart_feed.application.dto import LiveBarEvent


class _FakeSocket:
    """Websocket fake replaying scripted frames, then idling until cancelled."""

    def __init__(self, frames: list) -> None:
        self._frames = list(frames)

    async def recv(self):
        if self._frames:
            frame = self._frames.pop(0)
            if isinstance(frame, Exception):
                raise frame
            return frame
        await asyncio.Event().wait()
        return ""


class _FakeConnection:
    def __init__(self, socket: _FakeSocket) -> None:
        self._socket = socket

    async def __aenter__(self) -> _FakeSocket:
        return self._socket

    async def __aexit__(self, *_exc) -> None:
        return None


class _FakeConnect:
    """`websockets.connect` fake handing out one scripted socket per attempt."""

    def __init__(self, sockets: list[_FakeSocket]) -> None:
        self._sockets = list(sockets)
        self.calls: list[tuple[str, dict]] = []

    def __call__(self, url: str, **kwargs) -> _FakeConnection:
        self.calls.append((url, kwargs))
        return _FakeConnection(self._sockets.pop(0))


def _reconnect() -> LiveReconnectConfig:
    return LiveReconnectConfig(min_delay_s=0.01, max_delay_s=0.02, factor=2.0, jitter_s=0.0)


def _frame(**item) -> str:
    base = {"poolId": "pool", "t": 60, "o": 1, "h": 2, "l": 0.5, "c": 1.5}
    base.update(item)
    return json.dumps(base)


def test_parse_single_object_frame() -> None:
    events = parse_live_bar_message(_frame(vA=3, vU=None))
    assert events == [LiveBarEvent(pool_id="pool", time=60, open=1.0, high=2.0, low=0.5, close=1.5)]


def test_parse_wrapped_list_skips_malformed_and_foreign_items() -> None:
    payload = json.dumps(
        {
            "data": [
                {"poolId": "pool", "t": 60, "o": 1, "h": 2, "l": 0.5, "c": 1.5},
                {"poolId": "pool", "t": "bad", "o": 1, "h": 2, "l": 0.5, "c": 1.5},
                {"poolId": "other", "t": 60, "o": 1, "h": 2, "l": 0.5, "c": 1.5},
                {"poolId": "pool", "t": 120, "o": 1, "h": 2, "l": 0.5},
                {"poolId": "pool", "t": 120, "o": "2", "h": "3", "l": "1", "c": "2.5"},
            ]
        }
    )
    events = parse_live_bar_message(payload, pool_id="pool")
    assert [e.time for e in events] == [60, 120]
    assert events[1].close == 2.5


def test_parse_malformed_payload_returns_empty() -> None:
    assert parse_live_bar_message("not json") == []
    assert parse_live_bar_message(json.dumps(42)) == []
    assert parse_live_bar_message(json.dumps({"poolId": "pool", "t": True, "o": 1})) == []


def test_build_live_stream_url_appends_pool_id() -> None:
    assert build_live_stream_url("wss://live/bars", "pool") == "wss://live/bars?poolId=pool"
    assert build_live_stream_url("wss://live/bars?v=2", "a/b") == "wss://live/bars?v=2&poolId=a%2Fb"


def test_stream_delivers_events_and_close_stops_it() -> None:
    """Ensure frames reach the callback in order and close tears the task down."""

    async def _scenario():
        connect = _FakeConnect([_FakeSocket([_frame(t=60), "garbage", _frame(t=61, c=1.7)])])
        states: list[int] = []
        malformed: list[int] = []
        stream = WsLiveBarStream(
            url="wss://live/bars",
            ping_interval_s=20.0,
            pong_timeout_s=10.0,
            reconnect=_reconnect(),
            hooks=LiveStreamHooks(on_connected=states.append, on_malformed=lambda: malformed.append(1)),  # noqa: E501
            connect=connect,
        )
        received: list[LiveBarEvent] = []
        stream.open("pool", received.append)
        for _ in range(100):
            if len(received) == 2:
                break
            await asyncio.sleep(0.01)
        assert stream.is_open
        stream.close()
        stream.close()
        await asyncio.sleep(0.05)
        return connect, received, states, malformed, stream

    connect, received, states, malformed, stream = asyncio.run(_scenario())

    assert [e.close for e in received] == [1.5, 1.7]
    assert connect.calls == [
        ("wss://live/bars?poolId=pool", {"ping_interval": 20.0, "ping_timeout": 10.0})
    ]
    assert states == [1, 0]
    assert malformed == [1]
    assert stream.is_open is False
    assert stream.pool_id is None


def test_stream_reconnects_after_receive_error() -> None:
    async def _scenario():
        connect = _FakeConnect(
            [
                _FakeSocket([_frame(t=60), ConnectionError("dropped")]),
                _FakeSocket([_frame(t=120)]),
            ]
        )
        errors: list[int] = []
        reconnects: list[int] = []
        stream = WsLiveBarStream(
            url="wss://live/bars",
            ping_interval_s=20.0,
            pong_timeout_s=10.0,
            reconnect=_reconnect(),
            hooks=LiveStreamHooks(
                on_error=lambda: errors.append(1),
                on_reconnect=lambda: reconnects.append(1),
            ),
            connect=connect,
        )
        received: list[LiveBarEvent] = []
        stream.open("pool", received.append)
        for _ in range(100):
            if len(received) == 2:
                break
            await asyncio.sleep(0.01)
        stream.close()
        await asyncio.sleep(0.01)
        return received, errors, reconnects, connect

    received, errors, reconnects, connect = asyncio.run(_scenario())

    assert [e.time for e in received] == [60, 120]
    assert errors == [1]
    assert reconnects == [1]
    assert len(connect.calls) == 2


def test_open_twice_without_close_is_rejected() -> None:
    async def _scenario() -> None:
        stream = WsLiveBarStream(
            url="wss://live/bars",
            ping_interval_s=20.0,
            pong_timeout_s=10.0,
            reconnect=_reconnect(),
            connect=_FakeConnect([_FakeSocket([])]),
        )
        stream.open("pool", lambda _e: None)
        try:
            with pytest.raises(RuntimeError):
                stream.open("other", lambda _e: None)
        finally:
            stream.close()
            await asyncio.sleep(0)

    asyncio.run(_scenario())
