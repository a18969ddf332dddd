from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from poolchart.contexts.chart_feed.adapters.outbound.clients.common_http import HttpClient
from poolchart.contexts.chart_feed.application.dto import HistoryPage, KlineRow
from poolchart.contexts.chart_feed.application.ports.sources import (
    KlineHistorySource,
    ReadinessProbe,
)

log = logging.getLogger(__name__)

_KLINE_PATH = "/kline"
_PROBE_INTERVAL = "1m"


@dataclass(frozen=True, slots=True)
class RestKlineHistorySource(KlineHistorySource):
    """
    KlineHistorySource over the launchpad history host.

    GET {base_url}/kline?poolId=..&interval=..&limit=..[&nextPageKey=..]
    -> {"rows": [{"t", "o", "h", "l", "c", "vA", "vB", "vU"}, ...], "nextPageKey": ...}

    Important:
    - rows come newest-first and are returned in that order
    - missing/empty `nextPageKey` means the history is exhausted
    """

    base_url: str
    http: HttpClient
    timeout_s: float = 10.0

    def fetch_page(
        self,
        *,
        pool_id: str,
        interval: str,
        limit: int,
        cursor: Optional[str],
    ) -> HistoryPage:
        params: dict[str, Any] = {"poolId": pool_id, "interval": interval, "limit": limit}
        if cursor:
            params["nextPageKey"] = cursor

        resp = self.http.get_json(
            url=self.base_url.rstrip("/") + _KLINE_PATH,
            params=params,
            timeout_s=self.timeout_s,
        )
        body = resp.body
        if not isinstance(body, dict):
            raise RuntimeError(f"Unexpected kline payload type: {type(body).__name__}")

        rows_raw = body.get("rows") or []
        if not isinstance(rows_raw, list):
            raise RuntimeError(f"Unexpected kline rows: {rows_raw!r}")

        rows = tuple(map_kline_row(item) for item in rows_raw)
        next_key = body.get("nextPageKey")
        return HistoryPage(samples=rows, next_cursor=str(next_key) if next_key else None)


@dataclass(frozen=True, slots=True)
class RestKlineReadinessProbe(ReadinessProbe):
    """
    ReadinessProbe asking the history host for a single 1m row.

    Any failure (transport, status, payload) counts as "no data yet".
    """

    base_url: str
    http: HttpClient
    timeout_s: float = 5.0

    def has_data(self, pool_id: str) -> bool:
        try:
            resp = self.http.get_json(
                url=self.base_url.rstrip("/") + _KLINE_PATH,
                params={"poolId": pool_id, "interval": _PROBE_INTERVAL, "limit": 1},
                timeout_s=self.timeout_s,
            )
        except Exception:  # noqa: BLE001
            log.debug("kline probe failed pool=%s", pool_id, exc_info=True)
            return False

        body = resp.body
        if not isinstance(body, dict):
            return False
        rows = body.get("rows")
        return isinstance(rows, list) and len(rows) > 0


def map_kline_row(item: Any) -> KlineRow:
    """
    Map one kline JSON row to `KlineRow`.

    Raises `RuntimeError` for rows without time or OHLC fields.
    """
    if not isinstance(item, dict):
        raise RuntimeError(f"Invalid kline row: {item!r}")
    try:
        return KlineRow(
            t=int(item["t"]),
            o=float(item["o"]),
            h=float(item["h"]),
            l=float(item["l"]),
            c=float(item["c"]),
            v_a=_to_float_or_none(item.get("vA")),
            v_b=_to_float_or_none(item.get("vB")),
            v_u=_to_float_or_none(item.get("vU")),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise RuntimeError(f"Invalid kline row: {item!r}") from e


def _to_float_or_none(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
