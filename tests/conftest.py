"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from beisetzer.errors import WriteError
from beisetzer.models import DerivedAttribute, Publication

# Ensure tests run from the project root so config.default.yaml is found
PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def _set_project_root(monkeypatch, tmp_path):
    """Point BEISETZER_ROOT at the project root and use tmp_path for data."""
    monkeypatch.setenv("BEISETZER_ROOT", str(PROJECT_ROOT))
    monkeypatch.setenv("BEISETZER_DATABASE__URL", f"sqlite:///{tmp_path / 'catalog.db'}")
    monkeypatch.setenv("BEISETZER_STORAGE__ROOT", str(tmp_path / "data"))
    for name in ("DB_USER", "DB_PASSWORD", "BEISETZER_DATABASE__USER", "BEISETZER_DATABASE__PASSWORD"):
        monkeypatch.delenv(name, raising=False)

    # Reset settings cache between tests
    from beisetzer.config import reset_settings
    reset_settings()


class FakeCatalog:
    """In-memory catalog double that records every write."""

    def __init__(self, records: list[Publication] | None = None, fail_ids: set = frozenset()):
        self.records = {r.id: r for r in records or []}
        self.fail_ids = set(fail_ids)
        self.writes: list[tuple[int | str, DerivedAttribute, str]] = []

    def list_all(self) -> list[Publication]:
        return [r.model_copy() for r in self.records.values()]

    def update_attribute(self, record_id, attribute, value) -> None:
        if record_id in self.fail_ids:
            raise WriteError(f"write refused for {record_id}")
        attr = DerivedAttribute(attribute)
        self.writes.append((record_id, attr, value))
        setattr(self.records[record_id], attr.value, value)

    def ping(self) -> None:
        pass


def fake_text(contents: str = "extracted text"):
    def _extract(path: Path, *, password: str | None = None) -> str:
        return contents

    return _extract


def fake_images(sizes: list[int]):
    """Image extractor double that writes one file per size into out_dir."""

    def _extract(path: Path, out_dir: Path, *, password: str | None = None) -> list[Path]:
        written = []
        for i, size in enumerate(sizes):
            p = out_dir / f"img{i}.png"
            p.write_bytes(b"\x00" * size)
            written.append(p)
        return written

    return _extract


@pytest.fixture
def storage(tmp_path) -> Path:
    root = tmp_path / "data"
    root.mkdir(exist_ok=True)
    return root


@pytest.fixture
def make_file(storage):
    def _make(relative: str, content: bytes = b"%PDF-1.4 fake") -> Path:
        path = storage / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return _make
