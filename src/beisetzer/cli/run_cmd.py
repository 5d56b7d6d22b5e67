"""beisetzer run / scan / init-db: drive the reconciliation loop."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from beisetzer.errors import ConnectivityError

log = logging.getLogger(__name__)


def run_cmd(
    once: Annotated[
        bool, typer.Option("--once", help="Perform a single scan and exit")
    ] = False,
):
    """Run the periodic reconciliation service."""
    from beisetzer.cli.app import setup_logging
    from beisetzer.config import get_settings
    from beisetzer.service import build_catalog, build_dispatcher, build_scheduler

    setup_logging()
    settings = get_settings()
    log.info("Starting Beisetzer...")

    catalog = build_catalog(settings)
    dispatcher = build_dispatcher(catalog, settings)
    scheduler = build_scheduler(catalog, dispatcher, settings)

    try:
        asyncio.run(scheduler.run(max_ticks=1 if once else None))
    except ConnectivityError as exc:
        log.error("%s", exc)
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down")
    finally:
        dispatcher.reconciler.close()
        catalog.close()


def scan_cmd():
    """Run one scan right away and print what changed."""
    from beisetzer.cli.app import is_json, setup_logging
    from beisetzer.config import get_settings
    from beisetzer.service import build_catalog, build_dispatcher, scan_once

    setup_logging()
    settings = get_settings()
    catalog = build_catalog(settings)
    dispatcher = build_dispatcher(catalog, settings)

    try:
        catalog.ping()
        report = asyncio.run(scan_once(catalog, dispatcher, timeout=settings.timeouts.database))
    except ConnectivityError as exc:
        log.error("%s", exc)
        raise typer.Exit(code=1)
    finally:
        dispatcher.reconciler.close()
        catalog.close()

    writes = {attr.value: n for attr, n in report.writes().items()}
    if is_json():
        print(
            json.dumps(
                {
                    "status": "ok",
                    "records": report.records,
                    "failed": report.failed,
                    "writes": writes,
                    "failures": [
                        {"id": o.record_id, "errors": o.errors}
                        for o in report.outcomes
                        if o.failed
                    ],
                },
                indent=2,
            )
        )
        return

    console = Console()
    table = Table(title=f"Scanned {report.records} publication(s)")
    table.add_column("Attribute")
    table.add_column("Writes", justify="right")
    for name, n in writes.items():
        table.add_row(name, str(n))
    console.print(table)

    if report.failed:
        failures = Table(title=f"{report.failed} publication(s) with failures")
        failures.add_column("ID", justify="right")
        failures.add_column("Errors")
        for o in report.outcomes:
            if o.failed:
                failures.add_row(str(o.record_id), "\n".join(o.errors))
        console.print(failures)


def init_db_cmd():
    """Create the publications table if it does not exist."""
    from beisetzer.cli.app import setup_logging
    from beisetzer.service import build_catalog

    setup_logging()
    catalog = build_catalog()
    try:
        catalog.create_schema()
    finally:
        catalog.close()
    typer.echo("publications table ready")
