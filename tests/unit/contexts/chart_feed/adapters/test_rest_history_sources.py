from __future__ import annotations

import pytest

from poolchart.contexts.chart_feed.adapters.outbound.clients.common_http import HttpResponse
from poolchart.contexts.chart_feed.adapters.outbound.clients.enriched import (
    RestEnrichedHistorySource,
)
from poolchart.contexts.chart_feed.adapters.outbound.clients.kline import (
    RestKlineHistorySource,
    RestKlineReadinessProbe,
)
from poolchart.contexts.chart_feed.application.dto import EnrichedRow, KlineRow


class FakeHttp:
    def __init__(self, body=None, error: Exception | None = None):
        self.body = body
        self.error = error
        self.calls = []

    def get_json(self, *, url, params, timeout_s):
        self.calls.append((url, dict(params), timeout_s))
        if self.error is not None:
            raise self.error
        return HttpResponse(status_code=200, headers={}, body=self.body)


def test_kline_first_page_has_no_cursor_param():
    http = FakeHttp(
        {
            "rows": [
                {"t": 120, "o": "1.0", "h": "2.0", "l": "0.5", "c": "1.5", "vA": "3", "vU": None},
                {"t": 60, "o": 0.9, "h": 1.1, "l": 0.8, "c": 1.0},
            ],
            "nextPageKey": "abc",
        }
    )
    source = RestKlineHistorySource(base_url="https://history.example/", http=http, timeout_s=7.0)

    page = source.fetch_page(pool_id="pool", interval="5m", limit=300, cursor=None)

    assert http.calls == [
        ("https://history.example/kline", {"poolId": "pool", "interval": "5m", "limit": 300}, 7.0)
    ]
    assert page.samples == (
        KlineRow(t=120, o=1.0, h=2.0, l=0.5, c=1.5, v_a=3.0),
        KlineRow(t=60, o=0.9, h=1.1, l=0.8, c=1.0),
    )
    assert page.next_cursor == "abc"


def test_kline_next_page_sends_cursor_and_reports_exhaustion():
    http = FakeHttp({"rows": [], "nextPageKey": ""})
    source = RestKlineHistorySource(base_url="https://history.example", http=http)

    page = source.fetch_page(pool_id="pool", interval="1m", limit=10, cursor="abc")

    assert http.calls[0][1]["nextPageKey"] == "abc"
    assert page.samples == ()
    assert page.next_cursor is None


def test_kline_unexpected_payload_raises():
    with pytest.raises(RuntimeError):
        RestKlineHistorySource(base_url="https://h", http=FakeHttp(["rows"])).fetch_page(
            pool_id="p", interval="1m", limit=1, cursor=None
        )
    with pytest.raises(RuntimeError):
        RestKlineHistorySource(base_url="https://h", http=FakeHttp({"rows": [{"t": 1}]})).fetch_page(  # noqa: E501
            pool_id="p", interval="1m", limit=1, cursor=None
        )


def test_readiness_probe_asks_for_one_minute_row():
    http = FakeHttp({"rows": [{"t": 60, "o": 1, "h": 1, "l": 1, "c": 1}]})
    probe = RestKlineReadinessProbe(base_url="https://h", http=http)

    assert probe.has_data("pool") is True
    assert http.calls[0][1] == {"poolId": "pool", "interval": "1m", "limit": 1}
    assert RestKlineReadinessProbe(base_url="https://h", http=FakeHttp({"rows": []})).has_data("p") is False  # noqa: E501


def test_readiness_probe_failure_counts_as_no_data():
    http = FakeHttp(error=RuntimeError("HTTP 500"))
    assert RestKlineReadinessProbe(base_url="https://h", http=http).has_data("pool") is False


def test_enriched_source_reads_wrapped_items():
    http = FakeHttp(
        {
            "success": True,
            "data": {
                "items": [
                    {"unixTime": 1000, "o": 1, "h": 2, "l": 0.5, "c": 1.5, "vQuote": 10},
                    {"unixTime": 1030, "o": 1.5, "h": 1.8, "l": 1.2, "c": 1.6},
                ]
            },
        }
    )
    source = RestEnrichedHistorySource(base_url="https://enriched.example", http=http)

    rows = source.fetch_range(
        base_address="BASE",
        quote_address="QUOTE",
        frame="1m",
        time_from=960,
        time_to=1200,
    )

    url, params, _ = http.calls[0]
    assert url == "https://enriched.example/defi/ohlcv/base_quote"
    assert params == {
        "base_address": "BASE",
        "quote_address": "QUOTE",
        "type": "1m",
        "time_from": 960,
        "time_to": 1200,
    }
    assert rows == (
        EnrichedRow(unix_time=1000, o=1.0, h=2.0, l=0.5, c=1.5, v_quote=10.0),
        EnrichedRow(unix_time=1030, o=1.5, h=1.8, l=1.2, c=1.6, v_quote=0.0),
    )


def test_enriched_source_accepts_bare_items_and_missing_list():
    bare = RestEnrichedHistorySource(
        base_url="https://e",
        http=FakeHttp({"items": [{"unixTime": 60, "o": 1, "h": 1, "l": 1, "c": 1}]}),
    )
    assert len(bare.fetch_range(base_address="A", quote_address="B", frame="1m", time_from=0, time_to=1)) == 1  # noqa: E501

    empty = RestEnrichedHistorySource(base_url="https://e", http=FakeHttp({"data": {}}))
    assert empty.fetch_range(base_address="A", quote_address="B", frame="1m", time_from=0, time_to=1) == ()  # noqa: E501
