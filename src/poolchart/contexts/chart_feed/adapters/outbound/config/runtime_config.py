from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from poolchart.contexts.chart_feed.application.services.historical_fetcher import (
    KLINE_PAGE_LIMIT,
    USDC_MINT,
)

_ALLOWED_THEMES = {"dark", "light"}


@dataclass(frozen=True, slots=True)
class KlineSourceConfig:
    base_url: str
    timeout_s: float
    page_limit: int

    def __post_init__(self) -> None:
        _require_non_empty("kline.base_url", self.base_url)
        _require_positive("kline.timeout_s", self.timeout_s)
        _require_positive_int("kline.page_limit", self.page_limit)


@dataclass(frozen=True, slots=True)
class EnrichedSourceConfig:
    base_url: str
    timeout_s: float
    usdc_mint: str

    def __post_init__(self) -> None:
        _require_non_empty("enriched.base_url", self.base_url)
        _require_positive("enriched.timeout_s", self.timeout_s)
        _require_non_empty("enriched.usdc_mint", self.usdc_mint)


@dataclass(frozen=True, slots=True)
class LiveReconnectConfig:
    min_delay_s: float
    max_delay_s: float
    factor: float
    jitter_s: float

    def __post_init__(self) -> None:
        _require_positive("live.reconnect.min_delay_s", self.min_delay_s)
        _require_positive("live.reconnect.max_delay_s", self.max_delay_s)
        _require_positive("live.reconnect.factor", self.factor)
        _require_non_negative("live.reconnect.jitter_s", self.jitter_s)
        if self.min_delay_s > self.max_delay_s:
            raise ValueError(
                f"live.reconnect.min_delay_s must be <= live.reconnect.max_delay_s, got {self.min_delay_s} > {self.max_delay_s}"  # noqa: E501
            )


@dataclass(frozen=True, slots=True)
class LiveConfig:
    url: str
    ping_interval_s: float
    pong_timeout_s: float
    reconnect: LiveReconnectConfig

    def __post_init__(self) -> None:
        _require_non_empty("live.url", self.url)
        _require_positive("live.ping_interval_s", self.ping_interval_s)
        _require_positive("live.pong_timeout_s", self.pong_timeout_s)


@dataclass(frozen=True, slots=True)
class ReadinessConfig:
    interval_s: float
    max_attempts: int

    def __post_init__(self) -> None:
        _require_non_negative("readiness.interval_s", self.interval_s)
        _require_positive_int("readiness.max_attempts", self.max_attempts)


@dataclass(frozen=True, slots=True)
class SessionConfig:
    config_save_interval_s: float
    history_window_s: int
    init_pool_price: float | None
    theme: str

    def __post_init__(self) -> None:
        _require_positive("session.config_save_interval_s", self.config_save_interval_s)
        _require_positive_int("session.history_window_s", self.history_window_s)
        if self.init_pool_price is not None:
            _require_positive("session.init_pool_price", self.init_pool_price)
        if self.theme not in _ALLOWED_THEMES:
            raise ValueError(f"session.theme must be one of {_ALLOWED_THEMES}, got {self.theme!r}")


@dataclass(frozen=True, slots=True)
class ChartFeedRuntimeConfig:
    version: int
    kline: KlineSourceConfig
    enriched: EnrichedSourceConfig
    live: LiveConfig
    readiness: ReadinessConfig
    session: SessionConfig


def load_chart_feed_runtime_config(path: str | Path) -> ChartFeedRuntimeConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"chart_feed config not found: {p}")

    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("chart_feed config must be a YAML mapping at top-level")

    version = _get_int(data, "version", required=True)
    cf = _get_mapping(data, "chart_feed", required=True)

    kline_map = _get_mapping(cf, "kline", required=True)
    kline = KlineSourceConfig(
        base_url=_get_str(kline_map, "base_url", required=True),
        timeout_s=_get_float(kline_map, "timeout_s", required=True),
        page_limit=_get_int(kline_map, "page_limit", required=False) or KLINE_PAGE_LIMIT,
    )

    enriched_map = _get_mapping(cf, "enriched", required=True)
    enriched = EnrichedSourceConfig(
        base_url=_get_str(enriched_map, "base_url", required=True),
        timeout_s=_get_float(enriched_map, "timeout_s", required=True),
        usdc_mint=_get_str(enriched_map, "usdc_mint", required=False) or USDC_MINT,
    )

    live_map = _get_mapping(cf, "live", required=True)
    reconnect_map = _get_mapping(live_map, "reconnect", required=True)
    live = LiveConfig(
        url=_get_str(live_map, "url", required=True),
        ping_interval_s=_get_float(live_map, "ping_interval_s", required=True),
        pong_timeout_s=_get_float(live_map, "pong_timeout_s", required=True),
        reconnect=LiveReconnectConfig(
            min_delay_s=_get_float(reconnect_map, "min_delay_s", required=True),
            max_delay_s=_get_float(reconnect_map, "max_delay_s", required=True),
            factor=_get_float(reconnect_map, "factor", required=True),
            jitter_s=_get_float(reconnect_map, "jitter_s", required=True),
        ),
    )

    readiness_map = _get_mapping(cf, "readiness", required=True)
    readiness = ReadinessConfig(
        interval_s=_get_float(readiness_map, "interval_s", required=True),
        max_attempts=_get_int(readiness_map, "max_attempts", required=True),
    )

    session_map = _get_mapping(cf, "session", required=True)
    session = SessionConfig(
        config_save_interval_s=_get_float(session_map, "config_save_interval_s", required=True),
        history_window_s=_get_int(session_map, "history_window_s", required=True),
        init_pool_price=(
            _get_float(session_map, "init_pool_price", required=False)
            if session_map.get("init_pool_price") is not None
            else None
        ),
        theme=_get_str(session_map, "theme", required=False) or "dark",
    )

    return ChartFeedRuntimeConfig(
        version=version,
        kline=kline,
        enriched=enriched,
        live=live,
        readiness=readiness,
        session=session,
    )


def _get_mapping(d: Mapping[str, Any], key: str, *, required: bool) -> Mapping[str, Any]:
    v = d.get(key)
    if v is None:
        if required:
            raise ValueError(f"missing required key: {key}")
        return {}
    if not isinstance(v, dict):
        raise ValueError(f"expected mapping at key '{key}', got {type(v).__name__}")
    return v


def _get_str(d: Mapping[str, Any], key: str, *, required: bool) -> str:
    v = d.get(key)
    if v is None:
        if required:
            raise ValueError(f"missing required key: {key}")
        return ""
    if not isinstance(v, str):
        raise ValueError(f"expected string at key '{key}', got {type(v).__name__}")
    if not v.strip():
        raise ValueError(f"key '{key}' must be non-empty")
    return v


def _get_int(d: Mapping[str, Any], key: str, *, required: bool) -> int:
    v = d.get(key)
    if v is None:
        if required:
            raise ValueError(f"missing required key: {key}")
        return 0
    if isinstance(v, bool):
        raise ValueError(f"expected int at key '{key}', got bool")
    if not isinstance(v, int):
        raise ValueError(f"expected int at key '{key}', got {type(v).__name__}")
    return v


def _get_float(d: Mapping[str, Any], key: str, *, required: bool) -> float:
    v = d.get(key)
    if v is None:
        if required:
            raise ValueError(f"missing required key: {key}")
        return 0.0
    if isinstance(v, bool):
        raise ValueError(f"expected float at key '{key}', got bool")
    if isinstance(v, (int, float)):
        return float(v)
    raise ValueError(f"expected float at key '{key}', got {type(v).__name__}")


def _require_non_empty(name: str, s: str) -> None:
    if not isinstance(s, str) or not s.strip():
        raise ValueError(f"{name} must be a non-empty string")


def _require_positive(name: str, x: float) -> None:
    if x <= 0:
        raise ValueError(f"{name} must be > 0, got {x}")


def _require_non_negative(name: str, x: float) -> None:
    if x < 0:
        raise ValueError(f"{name} must be >= 0, got {x}")


def _require_positive_int(name: str, x: int) -> None:
    if x <= 0:
        raise ValueError(f"{name} must be > 0, got {x}")
