from __future__ import annotations

import argparse
import asyncio
import logging
import signal

from apps.worker.chart_feed_ws.wiring.modules import build_chart_feed_ws_app
from poolchart.contexts.chart_feed.application.dto import FeedVariant, SymbolContext


def _configure_logging() -> None:
    """
    Configure process-wide logging defaults.

    Assumptions/Invariants:
    - Logging is configured once at process start.

    Side effects:
    - Sets root logging handlers/format.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _build_parser() -> argparse.ArgumentParser:
    """
    Build CLI parser for the chart feed worker process.

    Returns:
    - Configured argument parser.

    Assumptions/Invariants:
    - Defaults target local development setup.
    """
    parser = argparse.ArgumentParser(prog="chart-feed-ws-worker")
    parser.add_argument(
        "--config",
        default="configs/dev/chart_feed.yaml",
        help="Path to chart_feed.yaml",
    )
    parser.add_argument("--pool-id", required=True, help="Pool to chart")
    parser.add_argument("--base-mint", required=True, help="Mint of the traded token")
    parser.add_argument("--base-symbol", default="TOKEN", help="Ticker of the traded token")
    parser.add_argument("--base-decimals", type=int, default=6, help="Decimals of the traded token")
    parser.add_argument("--quote-symbol", default="SOL", help="Ticker of the quote token")
    parser.add_argument(
        "--supply",
        type=float,
        default=None,
        help="Total base supply, used by market-cap enriched charts",
    )
    parser.add_argument(
        "--variant",
        choices=[v.value for v in FeedVariant],
        default=FeedVariant.KLINE.value,
        help="Upstream family feeding the chart",
    )
    parser.add_argument(
        "--need-refresh",
        action="store_true",
        help="Wait for a freshly created pool to have data before loading",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=9211,
        help="Prometheus metrics HTTP port (0 disables it)",
    )
    return parser


def _symbol_context(args: argparse.Namespace) -> SymbolContext:
    return SymbolContext(
        pool_id=args.pool_id,
        base_mint=args.base_mint,
        base_symbol=args.base_symbol,
        base_decimals=args.base_decimals,
        quote_symbol=args.quote_symbol,
        supply=args.supply,
        variant=FeedVariant(args.variant),
    )


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    """
    Install SIGTERM/SIGINT handlers that trigger cooperative shutdown.

    Assumptions/Invariants:
    - Called from main asyncio event loop.

    Side effects:
    - Registers process signal handlers.
    """
    loop = asyncio.get_running_loop()

    def _mark_stop() -> None:
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _mark_stop)
        except NotImplementedError:
            signal.signal(sig, lambda *_args: _mark_stop())


async def _run_async(args: argparse.Namespace) -> int:
    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    app = build_chart_feed_ws_app(
        config_path=args.config,
        context=_symbol_context(args),
        metrics_port=args.metrics_port,
        need_refresh=args.need_refresh,
    )
    await app.run(stop_event)
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    Entrypoint for the chart feed worker process.

    Parameters:
    - argv: optional command-line arguments excluding program name.

    Returns:
    - Process exit code; non-zero on runtime failures.

    Side effects:
    - Initializes logging and runs asyncio loop.
    """
    _configure_logging()
    args = _build_parser().parse_args(argv)
    try:
        return asyncio.run(_run_async(args))
    except Exception:  # noqa: BLE001
        logging.getLogger(__name__).exception("chart-feed-ws-worker failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
