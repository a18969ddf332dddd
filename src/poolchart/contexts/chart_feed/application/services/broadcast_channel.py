from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class BroadcastChannel(Generic[T]):
    """
    Explicit publish/subscribe channel owned by one chart instance.

    Parameters:
    - name: channel name used in logs.

    Assumptions/Invariants:
    - Listeners are called synchronously, in subscription order.
    - A failing listener is logged and does not prevent delivery to the others.
    - Channels are never shared between chart instances.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._listeners: dict[int, Callable[[T], None]] = {}
        self._next_token = 0

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
        - Idempotent unsubscribe callable.
        """
        token = self._next_token
        self._next_token += 1
        self._listeners[token] = listener

        def _unsubscribe() -> None:
            self._listeners.pop(token, None)

        return _unsubscribe

    def publish(self, message: T) -> None:
        for listener in list(self._listeners.values()):
            try:
                listener(message)
            except Exception:  # noqa: BLE001
                log.exception("channel %s listener failed", self._name)

    def clear(self) -> None:
        self._listeners.clear()
