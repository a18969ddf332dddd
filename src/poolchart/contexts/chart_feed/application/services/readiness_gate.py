from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable

from poolchart.contexts.chart_feed.application.ports.sources import ReadinessProbe
from poolchart.contexts.chart_feed.application.services.scheduled_task import (
    ScheduledTask,
    schedule,
)

log = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 1.0
DEFAULT_MAX_ATTEMPTS = 15


class ReadinessOutcome(str, Enum):
    READY = "ready"
    EMPTY = "empty"


class DataReadinessGate:
    """
    Bounded polling loop that waits until a freshly created pool has any data.

    Parameters:
    - probe: "has at least one sample" check.
    - interval_s: delay before every probe.
    - max_attempts: probe budget; when exhausted the gate proceeds in EMPTY state.
    - on_probe: optional callback `(attempt, has_data)` for metrics.

    Assumptions/Invariants:
    - Never loops past `max_attempts` probes.
    - EMPTY is a terminal state, not an error.
    - A cancelled gate issues no further probes and never reports an outcome.
    """

    def __init__(
        self,
        *,
        probe: ReadinessProbe,
        interval_s: float = DEFAULT_INTERVAL_S,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        on_probe: Callable[[int, bool], None] | None = None,
    ) -> None:
        if probe is None:  # type: ignore[truthy-bool]
            raise ValueError("DataReadinessGate requires probe")
        if interval_s < 0:
            raise ValueError(f"interval_s must be >= 0, got {interval_s}")
        if max_attempts <= 0:
            raise ValueError(f"max_attempts must be > 0, got {max_attempts}")

        self._probe = probe
        self._interval_s = interval_s
        self._max_attempts = max_attempts
        self._on_probe = on_probe

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def wait_for_data(self, pool_id: str) -> ReadinessOutcome:
        """
        Poll until the probe reports data or the attempt budget is spent.

        Parameters:
        - pool_id: pool to probe.

        Returns:
        - READY on the first positive probe, EMPTY after `max_attempts` negatives.

        Assumptions/Invariants:
        - Probe runs in a worker thread; the event loop is never blocked.

        Errors/Exceptions:
        - Propagates `asyncio.CancelledError` when the surrounding task is cancelled.

        Side effects:
        - Issues up to `max_attempts` probe calls.
        """
        for attempt in range(1, self._max_attempts + 1):
            await asyncio.sleep(self._interval_s)
            has_data = await asyncio.to_thread(self._probe_once, pool_id)
            log.debug("readiness probe pool=%s attempt=%s has_data=%s", pool_id, attempt, has_data)
            if self._on_probe is not None:
                self._on_probe(attempt, has_data)
            if has_data:
                return ReadinessOutcome.READY

        log.info("readiness gate exhausted pool=%s attempts=%s", pool_id, self._max_attempts)
        return ReadinessOutcome.EMPTY

    def start(
        self,
        pool_id: str,
        on_proceed: Callable[[ReadinessOutcome], None],
    ) -> ScheduledTask:
        """
        Run `wait_for_data` in the background and report its outcome once.

        Parameters:
        - pool_id: pool to probe.
        - on_proceed: invoked with the outcome unless the handle was cancelled first.

        Returns:
        - Cancellable task handle.

        Assumptions/Invariants:
        - Called from inside a running event loop.

        Errors/Exceptions:
        - None.

        Side effects:
        - Spawns one asyncio task.
        """

        async def _run() -> None:
            outcome = await self.wait_for_data(pool_id)
            on_proceed(outcome)

        return schedule(_run, name=f"readiness-gate-{pool_id}")

    def _probe_once(self, pool_id: str) -> bool:
        try:
            return bool(self._probe.has_data(pool_id))
        except Exception:  # noqa: BLE001
            log.warning("readiness probe failed pool=%s", pool_id, exc_info=True)
            return False
