from __future__ import annotations

import asyncio

import pytest

from poolchart.contexts.chart_feed.application.services import DataReadinessGate, ReadinessOutcome


class _ScriptedProbe:
    """Readiness probe fake answering from a script, `False` once exhausted."""

    def __init__(self, answers: list[bool] | None = None, *, error: Exception | None = None) -> None:
        self._answers = list(answers or [])
        self._error = error
        self.calls: list[str] = []

    def has_data(self, pool_id: str) -> bool:
        self.calls.append(pool_id)
        if self._error is not None:
            raise self._error
        if self._answers:
            return self._answers.pop(0)
        return False


def test_gate_stops_after_exactly_fifteen_attempts() -> None:
    """Ensure a pool that never gets data is probed 15 times and reported EMPTY."""
    probe = _ScriptedProbe()
    seen: list[tuple[int, bool]] = []
    gate = DataReadinessGate(probe=probe, interval_s=0, on_probe=lambda a, d: seen.append((a, d)))

    outcome = asyncio.run(gate.wait_for_data("pool"))

    assert outcome is ReadinessOutcome.EMPTY
    assert len(probe.calls) == 15
    assert [a for a, _ in seen] == list(range(1, 16))


def test_gate_stops_on_first_positive_probe() -> None:
    probe = _ScriptedProbe([False, False, True])
    gate = DataReadinessGate(probe=probe, interval_s=0)

    outcome = asyncio.run(gate.wait_for_data("pool"))

    assert outcome is ReadinessOutcome.READY
    assert probe.calls == ["pool", "pool", "pool"]


def test_failing_probe_counts_as_no_data() -> None:
    """Ensure probe exceptions never escape the gate."""
    probe = _ScriptedProbe(error=RuntimeError("HTTP 500"))
    gate = DataReadinessGate(probe=probe, interval_s=0, max_attempts=3)

    assert asyncio.run(gate.wait_for_data("pool")) is ReadinessOutcome.EMPTY
    assert len(probe.calls) == 3


def test_start_reports_outcome_once() -> None:
    async def _scenario() -> list[ReadinessOutcome]:
        outcomes: list[ReadinessOutcome] = []
        gate = DataReadinessGate(probe=_ScriptedProbe([True]), interval_s=0)
        handle = gate.start("pool", outcomes.append)
        await handle.wait()
        assert handle.done
        return outcomes

    assert asyncio.run(_scenario()) == [ReadinessOutcome.READY]


def test_cancelled_gate_never_proceeds() -> None:
    """Ensure cancelling the handle stops probing and suppresses the outcome callback."""

    async def _scenario() -> tuple[list[ReadinessOutcome], _ScriptedProbe]:
        outcomes: list[ReadinessOutcome] = []
        probe = _ScriptedProbe()
        gate = DataReadinessGate(probe=probe, interval_s=0.05)
        handle = gate.start("pool", outcomes.append)
        await asyncio.sleep(0)
        handle.cancel()
        handle.cancel()
        await handle.wait()
        await asyncio.sleep(0.2)
        assert handle.cancelled
        return outcomes, probe

    outcomes, probe = asyncio.run(_scenario())
    assert outcomes == []
    assert probe.calls == []


def test_gate_rejects_invalid_budget() -> None:
    with pytest.raises(ValueError):
        DataReadinessGate(probe=_ScriptedProbe(), max_attempts=0)
    with pytest.raises(ValueError):
        DataReadinessGate(probe=_ScriptedProbe(), interval_s=-1)
