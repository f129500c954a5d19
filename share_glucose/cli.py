"""Command-line access to a Dexcom Share account.

Credentials and display settings come from ``DEXCOM_SHARE_*`` environment
variables and may be overridden per invocation::

    share-glucose --region us latest
    share-glucose history --minutes 180 --max-count 36 --summary
    share-glucose watch --iterations 3

Results are printed as JSON.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from api_clients.share_client import DEFAULT_HISTORY_MAX_COUNT, LATEST_WINDOW_MINUTES, GlucoseClient

from .config import ShareConfig, load_config_from_env
from .display import elapsed_minutes, trend_arrow, trend_description
from .errors import ShareClientError
from .history import summarize_history
from .models import FormattedReading
from .monitor import GlucoseMonitor, MonitorUpdate


def reading_to_dict(reading: FormattedReading, now: datetime | None = None) -> dict[str, Any]:
    return {
        "value": reading.value,
        "unit": reading.unit.value,
        "trend": reading.trend.value,
        "trend_arrow": trend_arrow(reading.trend),
        "trend_description": trend_description(reading.trend),
        "timestamp": reading.timestamp.isoformat(),
        "delta": reading.formatted_delta,
        "raw_value": reading.raw_value,
        "minutes_ago": elapsed_minutes(reading, now),
    }


def _update_to_dict(update: MonitorUpdate) -> dict[str, Any]:
    return {
        "polled_at": update.polled_at.isoformat(),
        "reading": reading_to_dict(update.reading, update.polled_at) if update.reading else None,
        "band": update.band.value if update.band else None,
        "color": update.color,
        "label": update.label,
        "detail": update.detail,
        "lines": list(update.lines),
    }


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Read glucose values from Dexcom Share")
    parser.add_argument("--username", help="Share username (default: $DEXCOM_SHARE_USERNAME)")
    parser.add_argument("--password", help="Share password (default: $DEXCOM_SHARE_PASSWORD)")
    parser.add_argument("--region", help="us or ous; aliases such as 'outside us' are accepted")
    parser.add_argument("--unit", help="mg/dL or mmol/L")
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug logging")
    parser.add_argument("--indent", type=int, default=None, help="Pretty-print JSON with the given indent")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("latest", help="Print the most recent reading")

    history = commands.add_parser("history", help="Print readings from a time window")
    history.add_argument("--minutes", type=int, default=LATEST_WINDOW_MINUTES, help="Window length in minutes")
    history.add_argument("--max-count", type=int, default=DEFAULT_HISTORY_MAX_COUNT, help="Maximum readings")
    history.add_argument("--summary", action="store_true", help="Print summary statistics instead of readings")

    watch = commands.add_parser("watch", help="Poll the latest reading at the configured interval")
    watch.add_argument("--interval", type=int, default=None, help="Seconds between polls")
    watch.add_argument("--iterations", type=int, default=None, help="Stop after this many polls")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ShareConfig:
    return load_config_from_env().with_overrides(
        username=args.username,
        password=args.password,
        region=args.region,
        unit=args.unit,
        enable_debug_logs=args.debug,
        update_interval=getattr(args, "interval", None),
    )


def configure_logging(config: ShareConfig) -> None:
    level = logging.DEBUG if config.enable_debug_logs else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


async def run_latest(client: GlucoseClient) -> dict[str, Any]:
    return reading_to_dict(await client.get_latest_glucose())


async def run_history(client: GlucoseClient, config: ShareConfig, args: argparse.Namespace) -> Any:
    readings = await client.get_historical_glucose(args.minutes, args.max_count)
    if not args.summary:
        return [reading_to_dict(reading) for reading in readings]
    summary = summarize_history(readings, config.thresholds)
    if summary is None:
        return None
    payload = asdict(summary)
    payload["unit"] = summary.unit.value
    payload["range_fractions"] = {band.value: share for band, share in summary.range_fractions.items()}
    return payload


async def run_watch(config: ShareConfig, args: argparse.Namespace) -> None:
    monitor = GlucoseMonitor(config)

    def emit(update: MonitorUpdate) -> None:
        print(json.dumps(_update_to_dict(update), indent=args.indent), flush=True)

    await monitor.run(emit, iterations=args.iterations)


async def _dispatch(config: ShareConfig, args: argparse.Namespace) -> Any:
    client = GlucoseClient.from_config(config)
    if args.command == "latest":
        return await run_latest(client)
    return await run_history(client, config, args)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        config = build_config(args)
    except ValidationError as e:
        raise SystemExit(f"Invalid configuration: {e}") from None
    configure_logging(config)

    if args.command == "watch":
        try:
            asyncio.run(run_watch(config, args))
        except KeyboardInterrupt:
            return 0
        return 0

    try:
        result = asyncio.run(_dispatch(config, args))
    except ShareClientError as e:
        print(json.dumps({"error": e.kind.value, "message": str(e)}, indent=args.indent))
        return 1
    print(json.dumps(result, indent=args.indent))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
