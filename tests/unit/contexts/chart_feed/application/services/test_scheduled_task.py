from __future__ import annotations

import asyncio

import pytest

from poolchart.contexts.chart_feed.application.services import schedule, schedule_periodic


def test_periodic_task_keeps_running_after_callback_failure() -> None:
    """Ensure a failing tick is logged and later ticks still run."""

    async def _scenario() -> int:
        calls: list[int] = []

        def _tick() -> None:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")

        handle = schedule_periodic(_tick, interval_s=0.01, name="test-periodic")
        await asyncio.sleep(0.15)
        handle.cancel()
        await handle.wait()
        return len(calls)

    assert asyncio.run(_scenario()) >= 2


def test_periodic_task_first_tick_waits_one_interval() -> None:
    async def _scenario() -> int:
        calls: list[int] = []
        handle = schedule_periodic(lambda: calls.append(1), interval_s=10.0, name="test-slow")
        await asyncio.sleep(0.01)
        handle.cancel()
        await handle.wait()
        return len(calls)

    assert asyncio.run(_scenario()) == 0


def test_cancel_is_idempotent_after_completion() -> None:
    async def _scenario() -> bool:
        ran: list[int] = []

        async def _work() -> None:
            ran.append(1)

        handle = schedule(_work, name="test-once")
        await handle.wait()
        handle.cancel()
        handle.cancel()
        return handle.done and ran == [1]

    assert asyncio.run(_scenario()) is True


def test_periodic_rejects_non_positive_interval() -> None:
    async def _scenario() -> None:
        schedule_periodic(lambda: None, interval_s=0, name="bad")

    with pytest.raises(ValueError):
        asyncio.run(_scenario())
