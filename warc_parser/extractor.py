"""
Payload extraction: decides whether a record is worth parsing and decodes its body.
"""
from __future__ import annotations

import logging
from typing import BinaryIO

from warcio.bufferedreaders import ChunkedDataReader

from warc_parser.errors import READ_ERRORS, ArchiveContainerError
from warc_parser.models import ArchiveRecord, ExtractedPayload
from warc_parser.parsers import DocumentParser
from warc_parser.utils import parse_content_type, parse_target_uri


def read_to_end(stream: BinaryIO, block_size: int = 8192) -> bytes:
    """Read until end of stream, whatever length was declared."""
    buffer = bytearray()
    while True:
        chunk = stream.read(block_size)
        if not chunk:
            break
        buffer += chunk
    return bytes(buffer)


def read_exactly(stream: BinaryIO, length: int, block_size: int = 8192) -> bytes:
    """Read `length` bytes, looping on short reads; shorter only if the stream ends first."""
    buffer = bytearray()
    while len(buffer) < length:
        chunk = stream.read(min(block_size, length - len(buffer)))
        if not chunk:
            break
        buffer += chunk
    return bytes(buffer)


class PayloadExtractor:
    def __init__(self, parser: DocumentParser, block_size: int = 8192, logger: logging.Logger | None = None):
        self.parser = parser
        self.block_size = block_size
        self.logger = logger or logging.getLogger(__name__)

    def extract(self, record: ArchiveRecord) -> ExtractedPayload | None:
        """Decoded payload of a parseable record, None for records that are skipped."""
        if record.record_type != "response":
            return None

        try:
            uri = parse_target_uri(record.target_uri)
        except ValueError as exc:
            self.logger.debug("Skipping record: %s", exc)
            return None

        if record.status != 200:
            self.logger.debug("Skipping %s: HTTP status %s", uri, record.status)
            return None

        mimetype, charset = parse_content_type(record.header("Content-Type"))
        if not self.parser.supports(mimetype):
            self.logger.debug("Skipping %s: no parser for %s", uri, mimetype)
            return None

        return ExtractedPayload(
            uri=uri,
            status=record.status,
            headers=list(record.headers),
            mimetype=mimetype,
            charset=charset,
            content=self.decode_body(record, uri),
            warc_date=record.warc_date,
        )

    def decode_body(self, record: ArchiveRecord, uri: str = "") -> bytes:
        if record.payload is None:
            return b""
        try:
            if record.is_chunked:
                return read_to_end(ChunkedDataReader(record.payload), self.block_size)
            if record.payload_length is None:
                return read_to_end(record.payload, self.block_size)
            content = read_exactly(record.payload, record.payload_length, self.block_size)
        except READ_ERRORS as exc:
            raise ArchiveContainerError(f"payload of {uri or record.target_uri} unreadable: {exc}") from exc

        if len(content) < record.payload_length:
            self.logger.warning(
                "Payload of %s truncated: %d of %d bytes", uri, len(content), record.payload_length
            )
        return content
