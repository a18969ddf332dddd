from __future__ import annotations

import pytest

from poolchart.platform.errors import (
    CannotResolveSymbol,
    ChartFeedError,
    UnknownResolution,
    UpstreamUnavailable,
)


def test_chart_feed_error_payload_is_deterministic() -> None:
    """Ensure details are sorted by key and non-scalar values are stringified."""
    err = ChartFeedError(
        code=" upstream_unavailable ",
        message=" failed ",
        details={"status": 500, "cause": TimeoutError("read timed out")},
    )
    assert err.code == "upstream_unavailable"
    assert str(err) == "upstream_unavailable: failed"
    payload = err.to_payload()
    assert payload == {
        "error": {
            "code": "upstream_unavailable",
            "message": "failed",
            "details": {"cause": "read timed out", "status": 500},
        }
    }
    assert list(payload["error"]["details"].keys()) == ["cause", "status"]


def test_chart_feed_error_rejects_blank_code() -> None:
    """Ensure blank code is a programming error."""
    with pytest.raises(ValueError):
        ChartFeedError(code=" ", message="x")


def test_subclasses_carry_stable_codes() -> None:
    """Ensure every datafeed error exposes its machine-readable code and details."""
    assert UnknownResolution("7").code == "unknown_resolution"
    assert CannotResolveSymbol("pool").details == {"symbol": "pool"}
    err = UpstreamUnavailable("pool", "HTTP 500")
    assert err.code == "upstream_unavailable"
    assert err.details == {"reason": "HTTP 500", "symbol": "pool"}
    assert isinstance(err, ChartFeedError)
    with pytest.raises(UpstreamUnavailable):
        raise err
