"""Exceptions raised along the parsing pipeline."""
from __future__ import annotations

import zlib

MISSING_SOURCE_COMMENT = "the request must contain either a sourcebytes, sourceasset or sourceurl attribute"

# Low-level failures that mean the archive bytes themselves are unreadable
READ_ERRORS = (OSError, EOFError, zlib.error)


class ParserServiceError(Exception):
    pass


class MissingSource(ParserServiceError):
    """No candidate input could be opened for the request."""

    def __init__(self, message: str = MISSING_SOURCE_COMMENT):
        super().__init__(message)


class SourceFetchError(ParserServiceError):
    """A source candidate was present but fetching it failed."""


class AssetNotFound(SourceFetchError):
    def __init__(self, name: str):
        super().__init__(f"asset not found: {name}")
        self.name = name


class ParseFailure(ParserServiceError):
    """A parser could not turn one payload into documents."""


class ArchiveContainerError(ParserServiceError):
    """The WARC container is structurally broken; no further records can be read."""


class TruncatedArchive(OSError):
    """A compressed archive ended before its end-of-stream marker."""
