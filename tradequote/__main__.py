from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from secrets import token_hex
from typing import Any

import httpx

from tradequote import __version__
from tradequote.config import AppConfig, ConfigError, load_config
from tradequote.market.catalog import AssetCatalog
from tradequote.market.errors import NoProviderAvailable
from tradequote.market.manager import MarketDataManager
from tradequote.models.market import FindAllMarketArgs, HistoryTimeframe
from tradequote.obs.logging import LogSettings, build_logger, log_event
from tradequote.obs.metrics import write_metrics
from tradequote.providers.factory import build_market_providers

EXIT_OK = 0
EXIT_NO_DATA = 1
EXIT_CONFIG_ERROR = 2


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Market data and trade quote CLI")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--config", required=True, help="Path to config YAML")
        sub.add_argument("--log-level", default="INFO", help="Logging level")
        sub.add_argument("--log-file", help="Optional JSONL log file")
        sub.add_argument("--metrics", help="Write provider HTTP metrics JSON to this path")

    price_parser = subparsers.add_parser("price", help="Market data for one asset")
    add_common(price_parser)
    price_parser.add_argument("--asset-id", required=True, help="CAIP-19 asset id")

    history_parser = subparsers.add_parser("history", help="Price history for one asset")
    add_common(history_parser)
    history_parser.add_argument("--asset-id", required=True, help="CAIP-19 asset id")
    history_parser.add_argument(
        "--timeframe",
        default=HistoryTimeframe.DAY.value,
        choices=[timeframe.value for timeframe in HistoryTimeframe],
    )

    markets_parser = subparsers.add_parser("markets", help="Market data for the top assets by market cap")
    add_common(markets_parser)
    markets_parser.add_argument("--count", type=int, default=250)
    markets_parser.add_argument("--page", type=int, default=1)

    volume_parser = subparsers.add_parser("top-volume", help="Asset ids ordered by 24h volume")
    add_common(volume_parser)
    volume_parser.add_argument("--count", type=int, default=100)

    return parser.parse_args(argv)


def generate_session_id() -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%SZ")
    return f"{timestamp}_{token_hex(3)}"


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


async def _run_command(
    args: argparse.Namespace,
    config: AppConfig,
    logger: logging.Logger,
    transport: httpx.AsyncBaseTransport | None,
) -> int:
    provider_set = build_market_providers(config.market, logger=logger, transport=transport)
    catalog = AssetCatalog.from_config(config.assets)
    manager = MarketDataManager(
        provider_set.providers,
        relation_resolver=catalog,
        assets_by_id=catalog,
        pool_provider=config.market.pool_provider,
        volume_provider=config.market.volume_provider,
        logger=logger,
    )

    try:
        if args.command == "price":
            data = await manager.find_by_asset_id(args.asset_id)
            if data is None:
                return EXIT_NO_DATA
            _print_json({"assetId": args.asset_id, **data.to_payload()})
            return EXIT_OK

        if args.command == "history":
            points = await manager.find_price_history_by_asset_id(args.asset_id, HistoryTimeframe(args.timeframe))
            _print_json([{"date": point.date, "price": str(point.price)} for point in points])
            return EXIT_OK if points else EXIT_NO_DATA

        if args.command == "markets":
            try:
                markets = await manager.find_all(FindAllMarketArgs(count=args.count, page=args.page))
            except NoProviderAvailable as exc:
                log_event(logger, logging.ERROR, "market_unavailable", str(exc))
                return EXIT_NO_DATA
            _print_json({asset_id: data.to_payload() for asset_id, data in markets.items()})
            return EXIT_OK

        if args.command == "top-volume":
            asset_ids = await manager.find_all_sorted_by_volume_desc(args.count)
            _print_json(asset_ids)
            return EXIT_OK if asset_ids else EXIT_NO_DATA

        raise ValueError(f"Unsupported command: {args.command}")
    finally:
        if args.metrics:
            write_metrics(
                Path(args.metrics),
                [(client.provider, client.metrics) for client in provider_set.clients],
            )
        await provider_set.aclose()


def main(argv: list[str] | None = None, *, transport: httpx.AsyncBaseTransport | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    session_id = generate_session_id()

    logger = build_logger(
        LogSettings(
            level=args.log_level.upper(),
            session_id=session_id,
            log_file=Path(args.log_file) if args.log_file else None,
            jsonl=True,
        )
    )

    try:
        loaded = load_config(Path(args.config))
    except ConfigError as exc:
        log_event(logger, logging.ERROR, "config_invalid", str(exc))
        return EXIT_CONFIG_ERROR

    if not loaded.config.obs.log_jsonl:
        logger = build_logger(
            LogSettings(
                level=args.log_level.upper(),
                session_id=session_id,
                log_file=Path(args.log_file) if args.log_file else None,
                jsonl=False,
            )
        )

    log_event(logger, logging.INFO, "session_start", "Session started", command=args.command, version=__version__)
    exit_code = asyncio.run(_run_command(args, loaded.config, logger, transport))
    log_event(logger, logging.INFO, "session_end", "Session finished", command=args.command, exit_code=exit_code)
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
