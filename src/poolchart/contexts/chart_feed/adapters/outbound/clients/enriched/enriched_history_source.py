from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from poolchart.contexts.chart_feed.adapters.outbound.clients.common_http import HttpClient
from poolchart.contexts.chart_feed.application.dto import EnrichedRow
from poolchart.contexts.chart_feed.application.ports.sources import EnrichedHistorySource

_OHLCV_PATH = "/defi/ohlcv/base_quote"


@dataclass(frozen=True, slots=True)
class RestEnrichedHistorySource(EnrichedHistorySource):
    """
    EnrichedHistorySource over the enriched OHLCV proxy.

    GET {base_url}/defi/ohlcv/base_quote
        ?base_address=..&quote_address=..&type=..&time_from=..&time_to=..
    -> {"data": {"items": [{"unixTime", "o", "h", "l", "c", "vQuote"}, ...]}}

    Important:
    - items come oldest-first and are returned in that order
    - a missing items list is an empty result, not an error
    """

    base_url: str
    http: HttpClient
    timeout_s: float = 10.0

    def fetch_range(
        self,
        *,
        base_address: str,
        quote_address: str,
        frame: str,
        time_from: int,
        time_to: int,
    ) -> tuple[EnrichedRow, ...]:
        resp = self.http.get_json(
            url=self.base_url.rstrip("/") + _OHLCV_PATH,
            params={
                "base_address": base_address,
                "quote_address": quote_address,
                "type": frame,
                "time_from": time_from,
                "time_to": time_to,
            },
            timeout_s=self.timeout_s,
        )
        body = resp.body
        if not isinstance(body, dict):
            raise RuntimeError(f"Unexpected enriched payload type: {type(body).__name__}")

        container = body.get("data") if isinstance(body.get("data"), dict) else body
        items = container.get("items") or []
        if not isinstance(items, list):
            raise RuntimeError(f"Unexpected enriched items: {items!r}")
        return tuple(map_enriched_item(item) for item in items)


def map_enriched_item(item: Any) -> EnrichedRow:
    """
    Map one enriched JSON item to `EnrichedRow`; a missing `vQuote` counts as 0.

    Raises `RuntimeError` for items without time or OHLC fields.
    """
    if not isinstance(item, dict):
        raise RuntimeError(f"Invalid enriched item: {item!r}")
    try:
        v_quote = item.get("vQuote")
        return EnrichedRow(
            unix_time=int(item["unixTime"]),
            o=float(item["o"]),
            h=float(item["h"]),
            l=float(item["l"]),
            c=float(item["c"]),
            v_quote=float(v_quote) if v_quote is not None else 0.0,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise RuntimeError(f"Invalid enriched item: {item!r}") from e
