"""Service wiring: builds catalog, reconciler, dispatcher and scheduler from settings."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from beisetzer.config import Settings, get_settings
from beisetzer.errors import ConnectivityError
from beisetzer.models import ScanReport
from beisetzer.reconcile.dispatcher import Dispatcher
from beisetzer.reconcile.reconciler import Reconciler
from beisetzer.reconcile.scheduler import Scheduler
from beisetzer.stores.catalog import Catalog

log = logging.getLogger(__name__)


def build_catalog(settings: Settings | None = None) -> Catalog:
    settings = settings or get_settings()
    return Catalog(
        settings.database.sqlalchemy_url(),
        pool_size=settings.dispatcher.concurrency,
        timeout=settings.timeouts.database,
    )


def build_dispatcher(catalog: Catalog, settings: Settings | None = None) -> Dispatcher:
    settings = settings or get_settings()
    reconciler = Reconciler(
        catalog,
        Path(settings.storage.root),
        image_prefix=settings.images.prefix,
        timeouts=settings.timeouts,
        extraction_workers=settings.dispatcher.concurrency,
    )
    return Dispatcher(reconciler, concurrency=settings.dispatcher.concurrency)


async def scan_once(catalog: Catalog, dispatcher: Dispatcher, *, timeout: float = 30.0) -> ScanReport:
    """List the whole catalog and reconcile every record."""
    records = await asyncio.wait_for(asyncio.to_thread(catalog.list_all), timeout)
    log.info("Scanning %d publication(s)", len(records))
    return await dispatcher.dispatch(records)


def build_scheduler(
    catalog: Catalog,
    dispatcher: Dispatcher,
    settings: Settings | None = None,
    *,
    settle: bool = True,
) -> Scheduler:
    settings = settings or get_settings()
    db_timeout = settings.timeouts.database

    async def _scan() -> ScanReport:
        return await scan_once(catalog, dispatcher, timeout=db_timeout)

    async def _check() -> None:
        try:
            await asyncio.wait_for(asyncio.to_thread(catalog.ping), db_timeout)
        except asyncio.TimeoutError as exc:
            raise ConnectivityError(f"Catalog did not answer within {db_timeout:.0f}s") from exc
        log.info("Connected to catalog")

    return Scheduler(
        _scan,
        interval=settings.scheduler.interval,
        settle_delay=settings.scheduler.settle_delay if settle else 0.0,
        startup_check=_check,
    )
