"""SQLAlchemy-backed access to the publications catalog."""

from __future__ import annotations

import logging

from pydantic import ValidationError
from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.dialects.mysql import LONGTEXT
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError

from beisetzer.errors import ConnectivityError, WriteError
from beisetzer.models import DerivedAttribute, Publication

log = logging.getLogger(__name__)

metadata = MetaData()

publications = Table(
    "publications",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(512), nullable=False, default=""),
    Column("author", String(512), nullable=False, default=""),
    Column("year", Integer, nullable=True),
    Column("keyword", String(255), nullable=True),
    Column("abstract", Text, nullable=True),
    Column("path", String(1024), nullable=False),
    Column("hash", String(64), nullable=True),
    Column("type", String(64), nullable=True),
    Column("path_zip", String(1024), nullable=True),
    Column("hash_zip", String(64), nullable=True),
    Column("path_img", String(1024), nullable=True),
    Column("path_url", String(1024), nullable=True),
    Column("password", String(255), nullable=True),
    Column("text", Text().with_variant(LONGTEXT(), "mysql"), nullable=True),
    Column("modified", DateTime, nullable=True),
)


class Catalog:
    """Reads every publication and writes single derived attributes.

    The engine's connection pool is sized to ``pool_size`` so that each
    dispatcher worker can hold one connection.
    """

    def __init__(self, url: str | URL, *, pool_size: int = 10, timeout: float = 30.0):
        self.url = make_url(url) if isinstance(url, str) else url
        kwargs: dict = {"pool_pre_ping": True}
        if self.url.get_backend_name() == "sqlite":
            # Workers run in threads
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": timeout}
        else:
            kwargs.update(pool_size=pool_size, max_overflow=0, pool_timeout=timeout)
        self._engine = create_engine(self.url, **kwargs)

    # -- Reads ---------------------------------------------------------------

    def ping(self) -> None:
        """Raise ConnectivityError unless the store answers a trivial query."""
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise ConnectivityError(
                f"Cannot reach catalog at {self.url.render_as_string(hide_password=True)}: {exc}"
            ) from exc

    def list_all(self) -> list[Publication]:
        """Full unfiltered scan of the publications table."""
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(select(publications)).mappings().all()
        except SQLAlchemyError as exc:
            raise ConnectivityError(f"Listing publications failed: {exc}") from exc
        pubs: list[Publication] = []
        for r in rows:
            try:
                pubs.append(Publication.model_validate(dict(r)))
            except ValidationError as exc:
                log.warning("Skipping malformed publication row %s: %s", r.get("id"), exc)
        return pubs

    # -- Writes --------------------------------------------------------------

    def update_attribute(
        self, record_id: int | str, attribute: DerivedAttribute | str, value: str
    ) -> None:
        """Set one derived column of one publication."""
        attr = DerivedAttribute(attribute)
        stmt = (
            update(publications)
            .where(publications.c.id == record_id)
            .values({attr.value: value})
        )
        try:
            with self._engine.begin() as conn:
                result = conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise WriteError(f"Updating {attr.value} of publication {record_id} failed: {exc}") from exc
        if result.rowcount == 0:
            raise WriteError(f"Publication {record_id} no longer exists")

    def insert(self, pub: Publication) -> int | str:
        """Insert a publication row and return its id."""
        values = pub.model_dump(exclude_none=True)
        with self._engine.begin() as conn:
            result = conn.execute(insert(publications).values(**values))
        return result.inserted_primary_key[0]

    # -- Lifecycle -----------------------------------------------------------

    def create_schema(self) -> None:
        """Create the publications table if it does not exist yet."""
        metadata.create_all(self._engine)
        log.info("Ensured publications table exists")

    def close(self) -> None:
        self._engine.dispose()
