"""Representative image derivation (write-once).

The extractor dumps every embedded image of the source file into a
temporary directory; the largest one is kept next to the source file.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path

from beisetzer.errors import FilesystemError

log = logging.getLogger(__name__)

ImageExtractor = Callable[..., list[Path]]


def select_largest(candidates: list[Path]) -> Path | None:
    """Pick the candidate with the most bytes; first one wins on ties."""
    best: Path | None = None
    best_size = -1
    for candidate in candidates:
        size = candidate.stat().st_size
        if size > best_size:
            best, best_size = candidate, size
    return best


def derive_image(
    path: Path,
    current: str | None,
    extractor: ImageExtractor,
    *,
    storage_root: Path,
    prefix: str = "auto_",
    password: str | None = None,
) -> str | None:
    """Extract images from *path* and keep the largest one.

    Returns the new image path relative to *storage_root*, or None when an
    image is already set or the file contains no images.
    """
    if current:
        return None

    with tempfile.TemporaryDirectory(prefix="beisetzer-img-") as tmp:
        candidates = extractor(path, Path(tmp), password=password)
        if not candidates:
            log.debug("No images found in %s", path)
            return None

        chosen = select_largest(candidates)
        target = path.parent / f"{prefix}{path.stem}{chosen.suffix.lower()}"
        try:
            shutil.move(str(chosen), str(target))
        except OSError as exc:
            raise FilesystemError(f"Cannot move image to {target}: {exc}") from exc

    return target.relative_to(storage_root).as_posix()
