from __future__ import annotations

import logging
from collections.abc import Iterator

from warcio.archiveiterator import ArchiveIterator
from warcio.recordloader import ArchiveLoadFailed
from warcio.statusandheaders import StatusAndHeadersParserException

from warc_parser.errors import READ_ERRORS, ArchiveContainerError
from warc_parser.models import ArchiveRecord
from warc_parser.sources import ResolvedSource

CONTAINER_ERRORS = (ArchiveLoadFailed, StatusAndHeadersParserException) + READ_ERRORS


def _status_code(http_headers) -> int | None:
    try:
        return int(http_headers.get_statuscode())
    except (TypeError, ValueError):
        return None


def _payload_length(record) -> int | None:
    # warcio computes this from the WARC framing when it parsed an HTTP header
    length = getattr(record, "payload_length", -1)
    if length is not None and length >= 0:
        return length
    if record.http_headers is None:
        return None
    try:
        declared = int(record.http_headers.get_header("Content-Length"))
    except (TypeError, ValueError):
        return None
    return declared if declared >= 0 else None


def to_archive_record(record) -> ArchiveRecord:
    http_headers = record.http_headers
    return ArchiveRecord(
        record_type=record.rec_type or "",
        target_uri=record.rec_headers.get_header("WARC-Target-URI") or "",
        status=_status_code(http_headers) if http_headers is not None else None,
        headers=list(http_headers.headers) if http_headers is not None else [],
        payload=record.raw_stream,
        payload_length=_payload_length(record),
        warc_date=record.rec_headers.get_header("WARC-Date") or "",
    )


class ArchiveReader:
    """Lazily yields the records of one WARC container, then closes its source.

    A reader can be iterated once. Structural damage in the container surfaces
    as ArchiveContainerError; the source is closed in every case.
    """

    def __init__(self, source: ResolvedSource, logger: logging.Logger | None = None):
        self.source = source
        self.logger = logger or logging.getLogger(__name__)
        self.records_read = 0
        self._started = False

    def __iter__(self) -> Iterator[ArchiveRecord]:
        if self._started:
            raise RuntimeError("archive reader can only be iterated once, open the source again to rescan")
        self._started = True
        return self._records()

    def _records(self) -> Iterator[ArchiveRecord]:
        try:
            for warc_record in ArchiveIterator(self.source.stream):
                record = to_archive_record(warc_record)
                self.records_read += 1
                self.logger.debug("Record %d: %s %s", self.records_read, record.record_type, record.target_uri)
                try:
                    yield record
                finally:
                    record.close()
        except CONTAINER_ERRORS as exc:
            raise ArchiveContainerError(
                f"archive {self.source.name} unreadable after {self.records_read} records: {exc}"
            ) from exc
        finally:
            self.close()

    def close(self) -> None:
        self.source.close()

    def __enter__(self) -> ArchiveReader:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
