"""Periodic scan trigger with skip-on-overlap semantics."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from beisetzer.models import ScanReport

log = logging.getLogger(__name__)

ScanFn = Callable[[], Awaitable[ScanReport]]


class Scheduler:
    """Runs *scan* once after the settle delay and then every *interval* seconds.

    At most one scan is in flight.  A tick that fires while a scan is still
    running is skipped, not queued.
    """

    def __init__(
        self,
        scan: ScanFn,
        *,
        interval: float = 3600.0,
        settle_delay: float = 10.0,
        startup_check: Callable[[], Awaitable[None]] | None = None,
    ):
        self._scan = scan
        self.interval = interval
        self.settle_delay = settle_delay
        self._startup_check = startup_check
        self._current: asyncio.Task | None = None
        self.last_report: ScanReport | None = None
        self.ticks = 0
        self.skipped = 0

    @property
    def scan_active(self) -> bool:
        return self._current is not None and not self._current.done()

    def trigger(self) -> bool:
        """Start a scan unless one is already running. Returns True if started."""
        self.ticks += 1
        if self.scan_active:
            self.skipped += 1
            log.warning("Previous scan still running, skipping tick %d", self.ticks)
            return False
        self._current = asyncio.create_task(self._run_scan())
        return True

    async def wait_idle(self) -> None:
        """Wait for the in-flight scan, if any."""
        if self._current is not None:
            await asyncio.shield(self._current)

    async def run(self, *, max_ticks: int | None = None) -> None:
        """Settle, check connectivity, then tick forever (or *max_ticks* times).

        Errors raised by the startup check propagate to the caller.
        """
        if self.settle_delay > 0:
            log.info("Waiting %.0fs for dependent services to settle", self.settle_delay)
            await asyncio.sleep(self.settle_delay)

        if self._startup_check is not None:
            await self._startup_check()

        fired = 0
        while max_ticks is None or fired < max_ticks:
            self.trigger()
            fired += 1
            if max_ticks is not None and fired >= max_ticks:
                break
            await asyncio.sleep(self.interval)

        await self.wait_idle()

    async def _run_scan(self) -> None:
        log.info("Starting catalog scan")
        try:
            self.last_report = await self._scan()
        except Exception:
            log.exception("Catalog scan failed (will retry next tick)")
