"""Full-text derivation (rewritten whenever the extracted text changes)."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

TextExtractor = Callable[..., str]


def derive_text(
    path: Path,
    current: str | None,
    extractor: TextExtractor,
    *,
    password: str | None = None,
) -> str | None:
    """Extract the text of *path* and return it if it differs from *current*.

    Returns None when the stored text is already up to date.  Extraction
    failures surface as ExtractionError from the extractor.
    """
    contents = extractor(path, password=password)
    if current is not None and contents == current:
        return None
    return contents
