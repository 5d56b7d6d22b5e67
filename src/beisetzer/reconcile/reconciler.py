"""Per-record reconciliation: derive → compare → write, one attribute at a time."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Any, Protocol

from beisetzer.config import TimeoutsConfig
from beisetzer.derive.extractors import extract_images, extract_text
from beisetzer.derive.hashing import derive_hash
from beisetzer.derive.images import ImageExtractor, derive_image
from beisetzer.derive.text import TextExtractor, derive_text
from beisetzer.errors import BeisetzerError, ExtractionError, PathEscapeError, ReadError, WriteError
from beisetzer.models import DerivedAttribute, Publication, RecordOutcome

log = logging.getLogger(__name__)


class CatalogWriter(Protocol):
    def update_attribute(self, record_id: int | str, attribute: DerivedAttribute, value: str) -> None: ...


class Reconciler:
    """Brings the derived attributes of one publication up to date.

    Database and file reads run on the loop's default executor; text and
    image extraction run on a dedicated pool of ``extraction_workers``
    threads.  A timed-out extraction thread cannot be killed, so the record
    is left alone until that thread has finished.  ``reconcile`` never raises.
    """

    def __init__(
        self,
        catalog: CatalogWriter,
        storage_root: Path | str,
        *,
        text_extractor: TextExtractor = extract_text,
        image_extractor: ImageExtractor = extract_images,
        image_prefix: str = "auto_",
        timeouts: TimeoutsConfig | None = None,
        extraction_workers: int = 4,
    ):
        self.catalog = catalog
        self.storage_root = Path(storage_root).resolve()
        self.text_extractor = text_extractor
        self.image_extractor = image_extractor
        self.image_prefix = image_prefix
        self.timeouts = timeouts or TimeoutsConfig()
        self._extract_pool = ThreadPoolExecutor(
            max_workers=max(1, extraction_workers),
            thread_name_prefix="beisetzer-extract",
        )
        self._stalled: dict[int | str, Future] = {}

    def resolve_path(self, relative: str) -> Path:
        """Join *relative* onto the storage root, refusing anything outside it."""
        if not relative or Path(relative).is_absolute():
            raise PathEscapeError(f"Not a relative path: {relative!r}")
        path = (self.storage_root / relative).resolve()
        if not path.is_relative_to(self.storage_root):
            raise PathEscapeError(f"{relative!r} escapes {self.storage_root}")
        return path

    def extraction_stalled(self, record_id: int | str) -> bool:
        """True while an extraction for *record_id* that timed out is still running."""
        future = self._stalled.get(record_id)
        if future is None:
            return False
        if future.done():
            del self._stalled[record_id]
            return False
        return True

    async def reconcile(self, record: Publication) -> RecordOutcome:
        outcome = RecordOutcome(record_id=record.id)
        try:
            path = self.resolve_path(record.path)
            await self._run(partial(_require_file, path), self.timeouts.filesystem, ReadError)
        except ReadError as exc:
            log.warning("Skipping publication %s: %s", record.id, exc)
            outcome.errors.append(str(exc))
            return outcome

        if not record.hash:
            await self._step(
                record, outcome, DerivedAttribute.HASH,
                partial(derive_hash, path, record.hash),
            )
        if record.path_zip and not record.hash_zip:
            await self._step(
                record, outcome, DerivedAttribute.HASH_ZIP,
                partial(self._derive_zip_hash, record.path_zip),
            )

        if self.extraction_stalled(record.id):
            log.warning("Skipping extraction for publication %s: previous extraction still running", record.id)
            outcome.errors.append("extraction: previous extraction still running")
            return outcome

        await self._step(
            record, outcome, DerivedAttribute.TEXT,
            partial(derive_text, path, record.text, self.text_extractor, password=record.password),
            extract=True,
        )
        if not record.path_img and not self.extraction_stalled(record.id):
            await self._step(
                record, outcome, DerivedAttribute.PATH_IMG,
                partial(
                    derive_image, path, record.path_img, self.image_extractor,
                    storage_root=self.storage_root,
                    prefix=self.image_prefix,
                    password=record.password,
                ),
                extract=True,
            )
        return outcome

    def close(self) -> None:
        """Stop the extraction pool without waiting for stuck threads."""
        self._extract_pool.shutdown(wait=False, cancel_futures=True)

    # -- Helpers -------------------------------------------------------------

    def _derive_zip_hash(self, relative: str) -> str | None:
        return derive_hash(self.resolve_path(relative), None)

    async def _step(
        self,
        record: Publication,
        outcome: RecordOutcome,
        attr: DerivedAttribute,
        derive: Callable[[], str | None],
        *,
        extract: bool = False,
    ) -> None:
        try:
            if extract:
                value = await self._extract(record.id, derive)
            else:
                value = await self._run(derive, self.timeouts.filesystem, ReadError)
        except BeisetzerError as exc:
            log.warning("Could not derive %s for publication %s: %s", attr.value, record.id, exc)
            outcome.errors.append(f"{attr.value}: {exc}")
            return
        except Exception as exc:
            log.exception("Unexpected error deriving %s for publication %s", attr.value, record.id)
            outcome.errors.append(f"{attr.value}: {exc!r}")
            return

        if value is None:
            return

        try:
            await self._run(
                partial(self.catalog.update_attribute, record.id, attr, value),
                self.timeouts.database,
                WriteError,
            )
        except BeisetzerError as exc:
            log.warning("Could not write %s for publication %s: %s", attr.value, record.id, exc)
            outcome.errors.append(f"{attr.value}: {exc}")
            return

        outcome.written.append(attr)
        log.info("Updated %s for publication %s", attr.value, record.id)

    async def _extract(self, record_id: int | str, fn: Callable[[], Any]) -> Any:
        timeout = self.timeouts.extraction
        future = self._extract_pool.submit(fn)
        try:
            return await asyncio.wait_for(asyncio.wrap_future(future), timeout)
        except asyncio.TimeoutError as exc:
            if not future.done():
                self._stalled[record_id] = future
            raise ExtractionError(f"timed out after {timeout:g}s") from exc

    @staticmethod
    async def _run(fn: Callable[[], Any], timeout: float, error: type[BeisetzerError]) -> Any:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn), timeout)
        except asyncio.TimeoutError as exc:
            raise error(f"timed out after {timeout:g}s") from exc


def _require_file(path: Path) -> None:
    if not path.is_file():
        raise ReadError(f"File not found: {path}")
