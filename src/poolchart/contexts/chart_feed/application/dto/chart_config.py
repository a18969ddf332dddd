from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ChartConfig:
    """Persisted chart preferences, one record per feed variant."""

    resolution: str
    theme: str
