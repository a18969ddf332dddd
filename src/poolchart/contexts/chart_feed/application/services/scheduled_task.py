from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

log = logging.getLogger(__name__)


class ScheduledTask:
    """
    Cancellable handle around one background asyncio task.

    Parameters:
    - task: task created on the running event loop.

    Assumptions/Invariants:
    - `cancel()` is idempotent and safe after the task has finished.
    """

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait until the task finishes; a cancelled task returns quietly."""
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._cancelled:
                raise


def schedule(coro_factory: Callable[[], Awaitable[None]], *, name: str) -> ScheduledTask:
    """
    Run a coroutine in the background and return its cancellable handle.

    Parameters:
    - coro_factory: zero-argument callable producing the coroutine.
    - name: asyncio task name.

    Returns:
    - `ScheduledTask` handle.

    Assumptions/Invariants:
    - Called from inside a running event loop.

    Errors/Exceptions:
    - Raises `RuntimeError` when no event loop is running.

    Side effects:
    - Spawns one asyncio task.
    """
    return ScheduledTask(asyncio.create_task(_run(coro_factory), name=name))


def schedule_periodic(
    callback: Callable[[], None],
    *,
    interval_s: float,
    name: str,
) -> ScheduledTask:
    """
    Invoke `callback` every `interval_s` seconds until the handle is cancelled.

    Parameters:
    - callback: synchronous, quick side-effect function.
    - interval_s: delay before each invocation, in seconds.
    - name: asyncio task name.

    Returns:
    - `ScheduledTask` handle.

    Assumptions/Invariants:
    - The first call happens after one full interval.
    - A failing callback is logged and does not stop the schedule.

    Errors/Exceptions:
    - Raises `ValueError` for non-positive interval.

    Side effects:
    - Spawns one asyncio task.
    """
    if interval_s <= 0:
        raise ValueError(f"interval_s must be > 0, got {interval_s}")

    async def _loop() -> None:
        while True:
            await asyncio.sleep(interval_s)
            try:
                callback()
            except Exception:  # noqa: BLE001
                log.exception("periodic task %s callback failed", name)

    return schedule(_loop, name=name)


async def _run(coro_factory: Callable[[], Awaitable[None]]) -> None:
    await coro_factory()
