"""Content hash derivation (write-once)."""

from __future__ import annotations

import hashlib
from pathlib import Path

from beisetzer.errors import ReadError

BLOCK_SIZE = 1 << 20


def file_sha256(path: Path) -> str:
    """Hex SHA-256 of a file, streamed in 1 MiB blocks."""
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for block in iter(lambda: f.read(BLOCK_SIZE), b""):
                digest.update(block)
    except OSError as exc:
        raise ReadError(f"Cannot read {path}: {exc}") from exc
    return digest.hexdigest()


def derive_hash(path: Path, current: str | None) -> str | None:
    """Return the digest to store, or None if a hash is already present.

    An existing hash is never recomputed, even if the file has changed since.
    """
    if current:
        return None
    return file_sha256(path)
