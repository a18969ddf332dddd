from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class ChartFeedError(Exception):
    """
    ChartFeedError — canonical error contract for datafeed boundaries.

    Related:
      - src/poolchart/contexts/chart_feed/application/use_cases/datafeed.py
      - apps/worker/chart_feed_ws/wiring/modules/chart_feed_ws.py
    """

    code: str
    message: str
    details: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        """
        Validate canonical error fields and freeze details into a sorted flat mapping.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            `code` is a stable machine-readable token.
        Raises:
            ValueError: If `code` or `message` are blank.
            TypeError: If `details` is not mapping-compatible when provided.
        Side Effects:
            Mutates internal frozen dataclass slot `details` with a normalized copy.
        """
        normalized_code = self.code.strip()
        normalized_message = self.message.strip()
        if not normalized_code:
            raise ValueError("ChartFeedError.code must be non-empty")
        if not normalized_message:
            raise ValueError("ChartFeedError.message must be non-empty")

        object.__setattr__(self, "code", normalized_code)
        object.__setattr__(self, "message", normalized_message)

        if self.details is None:
            return
        if not isinstance(self.details, Mapping):
            raise TypeError("ChartFeedError.details must be a mapping when provided")
        normalized_details = {
            str(key): _plain_value(value)
            for key, value in sorted(self.details.items(), key=lambda item: str(item[0]))
        }
        object.__setattr__(self, "details", normalized_details)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def to_payload(self) -> dict[str, Any]:
        """
        Build deterministic error payload representation.

        Args:
            None.
        Returns:
            dict[str, Any]: `{"error": {"code", "message", "details"}}` payload.
        Assumptions:
            `details` payload is already normalized during object initialization.
        Raises:
            None.
        Side Effects:
            None.
        """
        details_payload: Mapping[str, Any] = self.details if self.details is not None else {}
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": dict(details_payload),
            }
        }


class UnknownResolution(ChartFeedError):
    """Resolution label outside of the supported table (caller bug)."""

    __slots__ = ()

    def __init__(self, label: str) -> None:
        super().__init__(
            code="unknown_resolution",
            message=f"Unsupported resolution={label!r}",
            details={"label": label},
        )


class CannotResolveSymbol(ChartFeedError):
    """Symbol context is missing, the chart cannot describe the pool."""

    __slots__ = ()

    def __init__(self, symbol: str) -> None:
        super().__init__(
            code="cannot_resolve_symbol",
            message=f"cannot resolve symbol {symbol!r}",
            details={"symbol": symbol},
        )


class UpstreamUnavailable(ChartFeedError):
    """Historical fetch failed on transport or payload parsing; never retried here."""

    __slots__ = ()

    def __init__(self, symbol: str, reason: str) -> None:
        super().__init__(
            code="upstream_unavailable",
            message=f"history upstream unavailable for {symbol!r}: {reason}",
            details={"symbol": symbol, "reason": reason},
        )


def _plain_value(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)
