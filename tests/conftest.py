from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

import pytest

from warc_parser.config import Settings
from warc_parser.errors import ParseFailure
from warc_parser.pipeline import ParserPipeline
from warc_parser.storage.local import LocalAssetStore

REASONS = {200: "OK", 301: "Moved Permanently", 404: "Not Found", 500: "Internal Server Error"}


def chunk_encode(body: bytes, size: int = 7) -> bytes:
    out = b""
    for start in range(0, len(body), size):
        piece = body[start:start + size]
        out += b"%x\r\n" % len(piece) + piece + b"\r\n"
    return out + b"0\r\n\r\n"


class WarcBuilder:
    """Assembles uncompressed WARC/1.0 bytes record by record."""

    def __init__(self):
        self.parts: list[bytes] = []

    def record(self, record_type: str, block: bytes, uri: str | None = None,
               content_type: str = "application/http; msgtype=response") -> WarcBuilder:
        lines = [
            "WARC/1.0",
            f"WARC-Type: {record_type}",
            f"WARC-Record-ID: <urn:uuid:{uuid.uuid4()}>",
            "WARC-Date: 2017-04-01T12:00:00Z",
        ]
        if uri is not None:
            lines.append(f"WARC-Target-URI: {uri}")
        lines += [f"Content-Type: {content_type}", f"Content-Length: {len(block)}"]
        self.parts.append(("\r\n".join(lines) + "\r\n\r\n").encode() + block + b"\r\n\r\n")
        return self

    def warcinfo(self) -> WarcBuilder:
        return self.record("warcinfo", b"software: pytest\r\nformat: WARC File Format 1.0\r\n",
                           content_type="application/warc-fields")

    def response(self, uri: str, body: bytes, status: int = 200, content_type: str | None = "text/html; charset=utf-8",
                 chunked: bool = False, headers: tuple[tuple[str, str], ...] = ()) -> WarcBuilder:
        lines = [f"HTTP/1.1 {status} {REASONS.get(status, 'Status')}"]
        if content_type:
            lines.append(f"Content-Type: {content_type}")
        lines += [f"{name}: {value}" for name, value in headers]
        if chunked:
            lines.append("Transfer-Encoding: chunked")
            payload = chunk_encode(body)
        else:
            lines.append(f"Content-Length: {len(body)}")
            payload = body
        block = ("\r\n".join(lines) + "\r\n\r\n").encode() + payload
        return self.record("response", block, uri=uri)

    def request(self, uri: str) -> WarcBuilder:
        block = f"GET / HTTP/1.1\r\nHost: {uri.split('/')[2]}\r\n\r\n".encode()
        return self.record("request", block, uri=uri, content_type="application/http; msgtype=request")

    def raw(self, data: bytes) -> WarcBuilder:
        self.parts.append(data)
        return self

    def build(self) -> bytes:
        return b"".join(self.parts)


@dataclass
class FakeDocument:
    url: str
    mimetype: str
    text: str


class FakeParser:
    """Understands text/html and text/plain; payloads containing BROKEN fail to parse."""

    def __init__(self, mimetypes=("text/html", "text/plain")):
        self.mimetypes = set(mimetypes)
        self.calls = []

    def supports(self, mimetype):
        return mimetype in self.mimetypes

    def parse(self, url, mimetype, charset, timezone_offset, depth, content):
        self.calls.append({"url": url, "mimetype": mimetype, "charset": charset, "content": content})
        if b"BROKEN" in content:
            raise ParseFailure("cannot parse document")
        return [FakeDocument(url=url, mimetype=mimetype, text=content.decode(charset or "utf-8"))]


@pytest.fixture
def warc():
    return WarcBuilder()


@pytest.fixture
def fake_parser():
    return FakeParser()


@pytest.fixture
def asset_dir(tmp_path):
    path = tmp_path / "assets"
    path.mkdir()
    return path


@pytest.fixture
def test_settings():
    return Settings(_env_file=None, compressed_suffixes=[".gz"], read_block_size=5)


@pytest.fixture
def make_pipeline(asset_dir, fake_parser, test_settings):
    def factory(**kwargs):
        kwargs.setdefault("asset_store", LocalAssetStore(asset_dir))
        kwargs.setdefault("parser", fake_parser)
        kwargs.setdefault("config", test_settings)
        kwargs.setdefault("logger", logging.getLogger("warc_parser.tests"))
        return ParserPipeline(**kwargs)

    return factory
