from __future__ import annotations

import argparse
import logging
import os
import signal
import sqlite3
import threading
from pathlib import Path
from typing import Sequence

from tabulate import tabulate

from dashboard_provisioner.bootstrap.container import Container
from dashboard_provisioner.config.logging_setup import configure_logging
from dashboard_provisioner.config.settings_loader import SettingsLoader
from dashboard_provisioner.domain.errors import ConfigError, ProvisioningError
from dashboard_provisioner.domain.models.reconcile_result import SyncReport
from dashboard_provisioner.infrastructure.scheduler.apscheduler_runner import APSchedulerRunner

_HEADERS = ("provider", "created", "updated", "skipped", "unprovisioned", "failed", "status")


def render_report(report: SyncReport) -> str:
    if report.skipped:
        return "Sync skipped: another cycle is still running"
    rows = [
        (
            item.provider,
            item.created,
            item.updated,
            item.skipped,
            item.unprovisioned,
            item.failed,
            "cancelled" if item.cancelled else "ok",
        )
        for item in report.results
    ]
    rows.extend(
        (name, "-", "-", "-", "-", "-", f"error: {message}") for name, message in report.errors
    )
    return tabulate(rows, headers=_HEADERS, tablefmt="rounded_grid")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dashboard_provisioner",
        description="Provision dashboards from JSON definition files.",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="settings file (defaults to $SETTINGS_FILE or configs/settings.ini)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="run a single sync pass and exit")
    mode.add_argument(
        "--purge",
        metavar="PROVIDER",
        help="delete every dashboard provisioned by PROVIDER and exit",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_settings = os.getenv("SETTINGS_FILE", "").strip()
    settings_file = args.settings or (Path(env_settings) if env_settings else None)
    try:
        config = SettingsLoader.load(settings_file)
    except ConfigError as exc:
        logging.basicConfig(level=logging.ERROR)
        logging.getLogger("dashboard_provisioner.worker").error("%s", exc)
        return 2

    configure_logging(config.user.log_level, config.paths.logs_dir / "app_errors.log")
    log = logging.getLogger("dashboard_provisioner.worker")

    container = Container(config)
    try:
        container.initialize()
    except (OSError, ValueError, sqlite3.Error) as exc:
        log.error("Failed to initialize the provisioning database: %s", exc)
        return 1

    if args.purge:
        provider = config.provider(args.purge)
        if provider is None:
            log.error("Unknown provider: %s", args.purge)
            return 2
        try:
            container.build_purge_use_case()(provider)
        except ProvisioningError as exc:
            log.error("Purge of provider %s failed: %s", provider.name, exc)
            return 1
        return 0

    stop_event = threading.Event()
    sync = container.build_sync_use_case(should_stop=stop_event.is_set)

    if args.once:
        report = sync()
        print(render_report(report))
        return 0 if report.ok else 1

    # Run one immediate cycle on startup.
    sync()

    scheduler = APSchedulerRunner()
    cron_expr = (config.user.sync_cron_expression or "").strip()
    if cron_expr:
        scheduler.schedule_cron("sync", cron_expr, sync)
        log.info("Scheduler configured with cron: '%s'", cron_expr)
    else:
        scheduler.schedule_interval("sync", config.user.sync_interval_seconds, sync)
        log.info("Scheduler configured with an interval of %ss", config.user.sync_interval_seconds)

    def _stop_handler(_signum: int, _frame: object) -> None:
        stop_event.set()

    signal.signal(signal.SIGTERM, _stop_handler)
    signal.signal(signal.SIGINT, _stop_handler)

    scheduler.start()
    log.info("Service started with %d providers", len(config.providers))

    while not stop_event.wait(0.5):
        pass

    scheduler.shutdown()
    log.info("Service stopped")
    return 0
