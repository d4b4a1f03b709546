from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, BinaryIO

from warc_parser.utils import get_header

HeaderLines = list[tuple[str, str]]


@dataclass
class SourceRequest:
    inline_bytes: bytes | None = None   # multipart part "sourcebytes"
    inline_text: str | None = None      # text field "sourcebytes"
    asset_name: str = ""                # "sourceasset"
    url: str = ""                       # "sourceurl"


@dataclass
class ArchiveRecord:
    record_type: str
    target_uri: str
    status: int | None                  # None for records without an HTTP header
    headers: HeaderLines
    payload: BinaryIO | None
    payload_length: int | None = None   # declared body length, if known
    warc_date: str = ""
    closed: bool = False

    def header(self, name: str) -> str | None:
        return get_header(self.headers, name)

    @property
    def is_chunked(self) -> bool:
        value = self.header("Transfer-Encoding")
        return value is not None and "chunked" in value.lower()

    def close(self) -> None:
        self.payload = None
        self.closed = True


@dataclass
class ExtractedPayload:
    uri: str
    status: int
    headers: HeaderLines
    mimetype: str
    charset: str | None
    content: bytes
    warc_date: str = ""


@dataclass
class RequestContext:
    url: str
    referer: str | None
    last_modified: datetime | None
    profile: str = "warc"
    depth: int = 0


@dataclass
class ResponseContext:
    status: int
    headers: HeaderLines
    content: bytes


@dataclass
class ResultEnvelope:
    success: bool
    documents: list[dict[str, Any]] = field(default_factory=list)
    comment: str | None = None
    partial: bool = False

    @classmethod
    def failure(cls, comment: str) -> ResultEnvelope:
        return cls(success=False, comment=comment)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.comment is not None:
            payload["comment"] = self.comment
        if self.partial:
            payload["partial"] = True
        payload["documents"] = self.documents
        return payload
