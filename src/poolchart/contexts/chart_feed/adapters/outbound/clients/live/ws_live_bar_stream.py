from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Optional
from urllib.parse import quote

import websockets

from poolchart.contexts.chart_feed.adapters.outbound.config.runtime_config import (
    LiveReconnectConfig,
)
from poolchart.contexts.chart_feed.application.dto import LiveBarEvent
from poolchart.contexts.chart_feed.application.ports.feeds import LiveConnection

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LiveStreamHooks:
    """
    Optional metric/logging hooks for the live bar stream.

    Parameters:
    - on_connected: callback invoked with `1` on connect and `0` on disconnect.
    - on_reconnect: callback invoked on reconnect attempts.
    - on_message: callback invoked for every received WS frame.
    - on_error: callback invoked on connection/processing errors.
    - on_malformed: callback invoked for frames carrying no usable bar.
    """

    on_connected: Callable[[int], None] | None = None
    on_reconnect: Callable[[], None] | None = None
    on_message: Callable[[], None] | None = None
    on_error: Callable[[], None] | None = None
    on_malformed: Callable[[], None] | None = None


class WsLiveBarStream(LiveConnection):
    """
    LiveConnection streaming bar updates of one pool over a websocket.

    Parameters:
    - url: base websocket URL from runtime config.
    - ping_interval_s: websocket ping interval.
    - pong_timeout_s: websocket pong timeout.
    - reconnect: reconnect policy from runtime config.
    - hooks: optional metrics/logging hooks.
    - connect: websocket connect factory, `websockets.connect` by default.

    Assumptions/Invariants:
    - `open()` is called from inside a running event loop.
    - Frames for other pools are ignored.
    - Events are delivered in arrival order on the event loop.
    """

    def __init__(
        self,
        *,
        url: str,
        ping_interval_s: float,
        pong_timeout_s: float,
        reconnect: LiveReconnectConfig,
        hooks: LiveStreamHooks | None = None,
        connect: Callable[..., Any] | None = None,
    ) -> None:
        if not url.strip():
            raise ValueError("WsLiveBarStream requires url")

        self._url = url
        self._ping_interval_s = ping_interval_s
        self._pong_timeout_s = pong_timeout_s
        self._reconnect = reconnect
        self._hooks = hooks if hooks is not None else LiveStreamHooks()
        self._connect = connect if connect is not None else websockets.connect

        self._pool_id: Optional[str] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def pool_id(self) -> Optional[str]:
        return self._pool_id

    @property
    def is_open(self) -> bool:
        return self._task is not None and not self._task.done()

    def open(self, pool_id: str, on_event: Callable[[LiveBarEvent], None]) -> None:
        """
        Start streaming `pool_id` in a background task.

        Errors/Exceptions:
        - Raises `RuntimeError` when a stream is already open or no loop is running.

        Side effects:
        - Spawns the reconnect loop task.
        """
        if self.is_open:
            raise RuntimeError(f"live stream already open for pool={self._pool_id}")

        loop = asyncio.get_running_loop()
        self._pool_id = pool_id
        self._stop_event = asyncio.Event()
        self._task = loop.create_task(
            self._run(pool_id, on_event, self._stop_event),
            name=f"live-bars-{pool_id}",
        )
        log.info("live stream opened pool=%s", pool_id)

    def close(self) -> None:
        if self._task is None:
            return
        assert self._stop_event is not None
        self._stop_event.set()
        if not self._task.done():
            self._task.cancel()
        log.info("live stream closed pool=%s", self._pool_id)
        self._task = None
        self._stop_event = None
        self._pool_id = None

    async def _run(
        self,
        pool_id: str,
        on_event: Callable[[LiveBarEvent], None],
        stop_event: asyncio.Event,
    ) -> None:
        delay = self._reconnect.min_delay_s
        first_connect = True
        stream_url = build_live_stream_url(self._url, pool_id)

        while not stop_event.is_set():
            connected = False
            try:
                async with self._connect(
                    stream_url,
                    ping_interval=self._ping_interval_s,
                    ping_timeout=self._pong_timeout_s,
                ) as socket:
                    _emit_connected(self._hooks.on_connected, 1)
                    connected = True
                    if not first_connect:
                        _emit_simple(self._hooks.on_reconnect)
                    first_connect = False
                    delay = self._reconnect.min_delay_s

                    while not stop_event.is_set():
                        payload = await _recv_or_stop(socket, stop_event)
                        if payload is None:
                            break

                        _emit_simple(self._hooks.on_message)
                        events = parse_live_bar_message(payload, pool_id=pool_id)
                        if not events:
                            _emit_simple(self._hooks.on_malformed)
                        for event in events:
                            on_event(event)
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                _emit_simple(self._hooks.on_error)
                log.exception("live bar stream failed for pool=%s", pool_id)
            finally:
                if connected:
                    _emit_connected(self._hooks.on_connected, 0)

            if stop_event.is_set():
                break

            await asyncio.sleep(
                _next_delay(delay, self._reconnect.max_delay_s, self._reconnect.jitter_s)
            )
            delay = min(delay * self._reconnect.factor, self._reconnect.max_delay_s)


def parse_live_bar_message(payload: str, *, pool_id: str | None = None) -> list[LiveBarEvent]:
    """
    Parse one live frame into bar events.

    Parameters:
    - payload: websocket JSON text; an object, a list of objects, or either
      wrapped in `{"data": ...}`.
    - pool_id: when given, items for other pools are dropped.

    Returns:
    - Events in frame order; malformed items are skipped.

    Errors/Exceptions:
    - None; malformed payloads produce an empty list.
    """
    try:
        envelope = json.loads(payload)
    except (json.JSONDecodeError, TypeError):
        return []

    if isinstance(envelope, dict) and "data" in envelope and "t" not in envelope:
        envelope = envelope["data"]

    items = envelope if isinstance(envelope, list) else [envelope]
    events: list[LiveBarEvent] = []
    for item in items:
        event = _parse_item(item)
        if event is None:
            continue
        if pool_id is not None and event.pool_id != pool_id:
            continue
        events.append(event)
    return events


def build_live_stream_url(base_url: str, pool_id: str) -> str:
    """Append the `poolId` query parameter to the configured live URL."""
    sep = "&" if "?" in base_url else "?"
    return f"{base_url}{sep}poolId={quote(pool_id, safe='')}"


def _parse_item(item: Any) -> LiveBarEvent | None:
    if not isinstance(item, dict):
        return None
    pool_id = item.get("poolId")
    if not isinstance(pool_id, str) or not pool_id:
        return None
    t = _to_int(item.get("t"))
    if t is None:
        return None
    values = [_to_float_or_none(item.get(k)) for k in ("o", "h", "l", "c")]
    if any(v is None for v in values):
        return None
    o, h, l, c = values
    return LiveBarEvent(pool_id=pool_id, time=t, open=o, high=h, low=l, close=c)


def _to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_float_or_none(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _emit_connected(callback: Callable[[int], None] | None, value: int) -> None:
    if callback is None:
        return
    callback(value)


def _emit_simple(callback: Callable[[], None] | None) -> None:
    if callback is None:
        return
    callback()


def _next_delay(current: float, max_delay: float, jitter_s: float) -> float:
    capped = min(current, max_delay)
    return capped + random.random() * jitter_s


async def _recv_or_stop(socket: Any, stop_event: asyncio.Event) -> str | None:
    """
    Receive one websocket frame or return early on shutdown signal.

    Returns:
    - Payload text, or `None` when stop is requested.

    Errors/Exceptions:
    - Propagates websocket receive errors to the reconnect loop.
    """
    recv_task = asyncio.ensure_future(socket.recv())
    stop_task = asyncio.ensure_future(stop_event.wait())
    done, pending = await asyncio.wait(
        {recv_task, stop_task},
        return_when=asyncio.FIRST_COMPLETED,
    )
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)

    if stop_task in done and stop_event.is_set():
        recv_task.cancel()
        await asyncio.gather(recv_task, return_exceptions=True)
        return None
    result = recv_task.result()
    if isinstance(result, bytes):
        return result.decode("utf-8")
    return str(result)
