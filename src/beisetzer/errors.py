"""Error taxonomy for catalog access and derivation failures."""

from __future__ import annotations


class BeisetzerError(Exception):
    """Base class for all service errors."""


class ConnectivityError(BeisetzerError):
    """The catalog store cannot be reached or queried."""


class WriteError(BeisetzerError):
    """A single attribute update was rejected or failed."""


class ReadError(BeisetzerError):
    """A backing file is missing or unreadable."""


class PathEscapeError(ReadError):
    """A record's file path resolves outside the storage root."""


class FilesystemError(BeisetzerError):
    """Moving a derived file into place failed."""


class ExtractionError(BeisetzerError):
    """The extraction backend could not process a file."""
