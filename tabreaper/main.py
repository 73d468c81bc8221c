"""Command line entrypoint for tabreaper."""

from __future__ import annotations

import argparse
import asyncio
import datetime as dt
import json
import os
import sys
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from .config import AppConfig, load_config
from .errors import InvalidSettings, TabReaperError
from .expiry.clock import Clock, FixedClock, SystemClock
from .expiry.history import HistoryLog, filter_history
from .expiry.host import FakeHost, Host
from .expiry.schemas import TrackedItem
from .expiry.service import ExpiryService
from .expiry.settings import SettingsProvider
from .logging_utils import configure_logging
from .observability.metrics import SweepMetrics
from .storage.database import DatabaseManager
from .storage.kv import LOCAL_AREA, SYNC_AREA, SqlKeyValueStore


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="tabreaper")
    p.add_argument(
        "--config",
        default=os.environ.get("TABREAPER_CONFIG", "tabreaper.yml"),
        help="Path to config YAML (default: tabreaper.yml or TABREAPER_CONFIG).",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("print-config", help="Load config and print resolved values.")

    settings = sub.add_parser("settings", help="Show or change expiry settings.")
    settings_sub = settings.add_subparsers(dest="settings_cmd", required=True)
    settings_sub.add_parser("show")
    settings_set = settings_sub.add_parser("set")
    settings_set.add_argument("--timeout", type=int)
    settings_set.add_argument("--unit", choices=["minutes", "hours", "days"])
    settings_set.add_argument("--history-limit", type=int, dest="history_limit")

    history = sub.add_parser("history", help="Inspect the log of evicted items.")
    history_sub = history.add_subparsers(dest="history_cmd", required=True)
    history_list = history_sub.add_parser("list")
    history_list.add_argument("--query", default=None, help="Space separated search terms.")
    history_list.add_argument("--json", action="store_true", dest="as_json")
    history_remove = history_sub.add_parser("remove")
    history_remove.add_argument("entry_id")
    history_sub.add_parser("clear")

    simulate = sub.add_parser(
        "simulate", help="Run the janitor and one sweep against a snapshot of live items."
    )
    simulate.add_argument("--items", required=True, type=Path, help="JSON list of live items.")
    simulate.add_argument("--now-ms", type=int, default=None, dest="now_ms")

    return p.parse_args(argv)


def _stores(config: AppConfig) -> tuple[SqlKeyValueStore, SqlKeyValueStore]:
    db = DatabaseManager(config.database)
    timeout_s = config.engine.store_timeout_s
    return (
        SqlKeyValueStore(db, area=LOCAL_AREA, timeout_s=timeout_s),
        SqlKeyValueStore(db, area=SYNC_AREA, timeout_s=timeout_s),
    )


def build_service(config: AppConfig, host: Host, *, clock: Clock | None = None) -> ExpiryService:
    """Wire an expiry service over the configured database for an embedding host."""

    local_store, sync_store = _stores(config)
    metrics = SweepMetrics()
    if config.observability.prometheus_port:
        metrics.start(config.observability.prometheus_port)
    return ExpiryService(
        config.engine,
        store=local_store,
        settings_store=sync_store,
        host=host,
        clock=clock,
        metrics=metrics,
    )


async def _settings_cmd(config: AppConfig, args: argparse.Namespace) -> int:
    _, sync_store = _stores(config)
    provider = SettingsProvider(sync_store)
    if args.settings_cmd == "set":
        try:
            settings = await provider.update(
                timeout=args.timeout, unit=args.unit, history_limit=args.history_limit
            )
        except InvalidSettings as exc:
            logger.error("Settings rejected: {}", exc)
            return 2
    else:
        settings = await provider.load()
    print(json.dumps(settings.to_record(), indent=2, sort_keys=True))
    return 0


async def _history_cmd(config: AppConfig, args: argparse.Namespace) -> int:
    local_store, sync_store = _stores(config)
    history = HistoryLog(local_store, SettingsProvider(sync_store))
    if args.history_cmd == "clear":
        await history.clear()
        return 0
    if args.history_cmd == "remove":
        if not await history.remove_by_id(args.entry_id):
            logger.info("No history entry with id {}", args.entry_id)
        return 0
    entries = filter_history(await history.list(), args.query)
    if args.as_json:
        print(json.dumps([entry.to_record() for entry in entries], indent=2))
        return 0
    for entry in entries:
        closed = dt.datetime.fromtimestamp(entry.closed_at / 1000, tz=dt.timezone.utc)
        print(f"{entry.id}  {closed:%Y-%m-%d %H:%M}  {entry.title}  {entry.url}")
    return 0


def _load_items(path: Path) -> list[TrackedItem]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("items", [])
    return [TrackedItem.model_validate(item) for item in raw]


async def _simulate_cmd(config: AppConfig, args: argparse.Namespace) -> int:
    try:
        items = _load_items(args.items)
    except (OSError, ValueError, ValidationError) as exc:
        logger.error("Cannot read items from {}: {}", args.items, exc)
        return 2
    config = config.model_copy(
        update={"engine": config.engine.model_copy(update={"janitor_on_start": False})}
    )
    clock = FixedClock(args.now_ms) if args.now_ms is not None else SystemClock()
    service = build_service(config, FakeHost(items), clock=clock)
    await service.start()
    try:
        removed = await service.janitor.run()
        report = await service.tick()
    finally:
        await service.stop()
    payload = {
        "janitor_removed": removed,
        "sweep": report.summary() if report else None,
        "health": service.health(),
    }
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0 if report is not None else 1


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    args = _parse_args(argv)

    config_path = Path(args.config)
    config = load_config(config_path)
    configure_logging(config.logging.log_dir, level=config.logging.level)

    if args.cmd == "print-config":
        logger.info("Resolved config loaded from {}", config_path)
        print(json.dumps(config.model_dump(mode="json"), indent=2, sort_keys=True))
        raise SystemExit(0)

    handlers = {
        "settings": _settings_cmd,
        "history": _history_cmd,
        "simulate": _simulate_cmd,
    }
    try:
        raise SystemExit(asyncio.run(handlers[args.cmd](config, args)))
    except TabReaperError as exc:
        logger.error("{} failed: {}", args.cmd, exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
