"""PyMuPDF-backed text and image extraction.

Both functions raise ExtractionError for anything PyMuPDF cannot open or
parse: corrupt files, unsupported formats, encrypted documents without a
working password.
"""

from __future__ import annotations

import logging
from pathlib import Path

import fitz  # PyMuPDF

from beisetzer.errors import ExtractionError, FilesystemError, ReadError

log = logging.getLogger(__name__)


def _open(path: Path, password: str | None = None) -> fitz.Document:
    if not path.is_file():
        raise ReadError(f"File not found: {path}")
    try:
        doc = fitz.open(str(path))
    except Exception as exc:  # fitz raises a mix of RuntimeError/FileDataError
        raise ExtractionError(f"Cannot open {path.name}: {exc}") from exc

    if doc.needs_pass and not (password and doc.authenticate(password)):
        doc.close()
        raise ExtractionError(f"{path.name} is encrypted")
    return doc


def extract_text(path: Path, *, password: str | None = None) -> str:
    """Plain text of every page, pages joined by newlines."""
    with _open(path, password) as doc:
        try:
            return "\n".join(page.get_text() for page in doc)
        except Exception as exc:
            raise ExtractionError(f"Text extraction failed for {path.name}: {exc}") from exc


def extract_images(path: Path, out_dir: Path, *, password: str | None = None) -> list[Path]:
    """Write every embedded image of *path* into *out_dir*.

    Returns the written files in document order.  Images shared between
    pages are written once.
    """
    written: list[Path] = []
    seen: set[int] = set()

    with _open(path, password) as doc:
        try:
            for page in doc:
                for info in page.get_images(full=True):
                    xref = info[0]
                    if xref in seen:
                        continue
                    seen.add(xref)
                    image = doc.extract_image(xref)
                    if not image or not image.get("image"):
                        continue
                    target = out_dir / f"page{page.number:04d}-{xref}.{image['ext']}"
                    target.write_bytes(image["image"])
                    written.append(target)
        except OSError as exc:
            raise FilesystemError(f"Cannot write extracted image: {exc}") from exc
        except Exception as exc:
            raise ExtractionError(f"Image extraction failed for {path.name}: {exc}") from exc

    log.debug("Extracted %d image(s) from %s", len(written), path.name)
    return written
