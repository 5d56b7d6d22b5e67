"""Shared domain models used across the system."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class DerivedAttribute(str, Enum):
    """Catalog columns owned by the service."""

    HASH = "hash"
    HASH_ZIP = "hash_zip"
    TEXT = "text"
    PATH_IMG = "path_img"


class Publication(BaseModel):
    """One row of the publications catalog."""

    id: int | str
    title: str | None = ""
    author: str | None = ""
    year: int | None = None
    keyword: str | None = None
    abstract: str | None = None
    path: str
    type: str | None = None
    hash: str | None = None
    path_zip: str | None = None
    hash_zip: str | None = None
    path_img: str | None = None
    path_url: str | None = None
    password: str | None = None
    text: str | None = None
    modified: datetime | None = None


class RecordOutcome(BaseModel):
    """What one reconciliation pass did to a single record."""

    record_id: int | str
    written: list[DerivedAttribute] = []
    errors: list[str] = []

    @property
    def failed(self) -> bool:
        return bool(self.errors)


class ScanReport(BaseModel):
    """Summary of one full catalog scan."""

    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    outcomes: list[RecordOutcome] = []

    @property
    def records(self) -> int:
        return len(self.outcomes)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    def writes(self) -> dict[DerivedAttribute, int]:
        """Number of writes per attribute."""
        counts = {attr: 0 for attr in DerivedAttribute}
        for outcome in self.outcomes:
            for attr in outcome.written:
                counts[attr] += 1
        return counts

    @property
    def total_writes(self) -> int:
        return sum(self.writes().values())
