"""Tests for beisetzer.reconcile.scheduler."""

from __future__ import annotations

import asyncio

import pytest

from beisetzer.errors import ConnectivityError
from beisetzer.models import ScanReport
from beisetzer.reconcile.scheduler import Scheduler


class GatedScan:
    """Scan double that blocks until released."""

    def __init__(self):
        self.calls = 0
        self.running = 0
        self.peak = 0
        self.release = asyncio.Event()

    async def __call__(self) -> ScanReport:
        self.calls += 1
        self.running += 1
        self.peak = max(self.peak, self.running)
        try:
            await self.release.wait()
            return ScanReport()
        finally:
            self.running -= 1


@pytest.mark.asyncio
async def test_tick_during_active_scan_is_skipped():
    scan = GatedScan()
    sched = Scheduler(scan, interval=0, settle_delay=0)

    assert sched.trigger() is True
    await asyncio.sleep(0)
    assert sched.scan_active

    assert sched.trigger() is False
    assert sched.trigger() is False
    assert sched.skipped == 2

    scan.release.set()
    await sched.wait_idle()
    assert not sched.scan_active
    assert scan.calls == 1
    assert isinstance(sched.last_report, ScanReport)


@pytest.mark.asyncio
async def test_new_scan_after_drain():
    scan = GatedScan()
    scan.release.set()
    sched = Scheduler(scan, interval=0, settle_delay=0)

    sched.trigger()
    await sched.wait_idle()
    assert sched.trigger() is True
    await sched.wait_idle()
    assert scan.calls == 2


@pytest.mark.asyncio
async def test_run_never_overlaps_slow_scans():
    scan = GatedScan()
    sched = Scheduler(scan, interval=0.01, settle_delay=0)

    runner = asyncio.create_task(sched.run(max_ticks=5))
    await asyncio.sleep(0.3)
    scan.release.set()
    await runner

    assert scan.peak == 1
    assert scan.calls == 1
    assert sched.skipped == 4


@pytest.mark.asyncio
async def test_startup_check_failure_propagates():
    scan = GatedScan()

    async def unreachable():
        raise ConnectivityError("db down")

    sched = Scheduler(scan, interval=0, settle_delay=0, startup_check=unreachable)
    with pytest.raises(ConnectivityError):
        await sched.run(max_ticks=1)
    assert scan.calls == 0


@pytest.mark.asyncio
async def test_settle_delay_precedes_first_scan():
    order: list[str] = []

    async def scan():
        order.append("scan")
        return ScanReport()

    async def check():
        order.append("check")

    sched = Scheduler(scan, interval=0, settle_delay=0.01, startup_check=check)
    await sched.run(max_ticks=1)
    assert order == ["check", "scan"]


@pytest.mark.asyncio
async def test_failing_scan_does_not_stop_loop():
    calls = 0

    async def flaky():
        nonlocal calls
        calls += 1
        if calls == 1:
            raise ConnectivityError("lost connection")
        return ScanReport()

    sched = Scheduler(flaky, interval=0.01, settle_delay=0)
    await sched.run(max_ticks=3)
    assert calls == 3
    assert sched.last_report is not None
