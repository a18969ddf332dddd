from __future__ import annotations

from typing import Callable, Protocol

from poolchart.contexts.chart_feed.application.dto import LiveBarEvent


class LiveConnection(Protocol):
    """
    Real-time transport of one chart instance.

    Contract:
    - open(pool_id, on_event) -> None
    - close() -> None

    Semantics:
    - At most one pool is streamed at a time; `open` is only called after `close`.
    - `on_event` is invoked on the event loop, in arrival order.
    - `close` is idempotent.
    """

    def open(self, pool_id: str, on_event: Callable[[LiveBarEvent], None]) -> None:
        ...

    def close(self) -> None:
        ...
