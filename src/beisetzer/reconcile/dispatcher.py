"""Fan a scan out over a fixed-size pool of reconcile workers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from beisetzer.models import Publication, RecordOutcome, ScanReport
from beisetzer.reconcile.reconciler import Reconciler

log = logging.getLogger(__name__)


class Dispatcher:
    """Runs ``reconciler.reconcile`` for every record, at most
    ``concurrency`` at a time.

    Records are handed to workers through a queue; a failing record never
    cancels or delays its siblings.
    """

    def __init__(self, reconciler: Reconciler, concurrency: int = 10):
        self.reconciler = reconciler
        self.concurrency = max(1, concurrency)

    async def dispatch(self, records: Sequence[Publication]) -> ScanReport:
        report = ScanReport()
        queue: asyncio.Queue[Publication | None] = asyncio.Queue()
        for record in records:
            queue.put_nowait(record)

        workers_count = min(self.concurrency, len(records)) or 1
        workers = [
            asyncio.create_task(self._worker(i + 1, queue, report.outcomes))
            for i in range(workers_count)
        ]

        await queue.join()
        for _ in workers:
            queue.put_nowait(None)
        await asyncio.gather(*workers)

        report.finished_at = datetime.now(timezone.utc)
        log.info(
            "Scan finished: %d record(s), %d write(s), %d with failures",
            report.records,
            report.total_writes,
            report.failed,
        )
        return report

    async def _worker(
        self,
        worker_id: int,
        queue: asyncio.Queue[Publication | None],
        outcomes: list[RecordOutcome],
    ) -> None:
        while True:
            record = await queue.get()
            try:
                if record is None:
                    return
                log.debug("Worker %d reconciling publication %s", worker_id, record.id)
                outcomes.append(await self._reconcile(record))
            finally:
                queue.task_done()

    async def _reconcile(self, record: Publication) -> RecordOutcome:
        try:
            return await self.reconciler.reconcile(record)
        except Exception as exc:
            log.exception("Reconciling publication %s failed (non-fatal)", record.id)
            return RecordOutcome(record_id=record.id, errors=[repr(exc)])
