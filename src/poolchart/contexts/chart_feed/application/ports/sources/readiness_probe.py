from __future__ import annotations

from typing import Protocol


class ReadinessProbe(Protocol):
    """
    Lightweight "does this pool have at least one sample yet" check.

    Contract:
    - has_data(pool_id) -> bool

    Semantics:
    - Any failure is reported as `False`, never raised.
    """

    def has_data(self, pool_id: str) -> bool:
        ...
