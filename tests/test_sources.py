import gzip
import logging

import httpx
import pytest

from warc_parser.errors import MISSING_SOURCE_COMMENT, MissingSource, SourceFetchError, TruncatedArchive
from warc_parser.models import SourceRequest
from warc_parser.sources import (
    AssetSource,
    InlineBytesSource,
    InlineTextSource,
    ResolvedSource,
    SourceResolver,
    UrlSource,
)
from warc_parser.storage.base import AssetStore
from warc_parser.storage.local import LocalAssetStore


class BrokenStore(AssetStore):
    name = "broken"

    def load(self, asset_name):
        raise OSError("disk on fire")


class TrackingStream:
    def __init__(self):
        self.close_calls = 0

    def close(self):
        self.close_calls += 1


def _resolver(store, transport=None):
    return SourceResolver([
        InlineBytesSource(),
        InlineTextSource(),
        AssetSource(store),
        UrlSource(transport=transport),
    ])


def test_inline_bytes_win_over_everything(asset_dir):
    (asset_dir / "a.warc").write_bytes(b"asset")
    request = SourceRequest(inline_bytes=b"binary", inline_text="text", asset_name="a.warc")

    with _resolver(LocalAssetStore(asset_dir)).resolve(request) as source:
        assert source.origin == "sourcebytes"
        assert source.stream.read() == b"binary"


def test_inline_text_is_utf8_encoded(asset_dir):
    request = SourceRequest(inline_text="WARC/1.0 ä")

    with _resolver(LocalAssetStore(asset_dir)).resolve(request) as source:
        assert source.stream.read() == "WARC/1.0 ä".encode("utf-8")


def test_no_candidate_raises_missing_source(asset_dir):
    with pytest.raises(MissingSource) as excinfo:
        _resolver(LocalAssetStore(asset_dir)).resolve(SourceRequest())
    assert str(excinfo.value) == MISSING_SOURCE_COMMENT


def test_gz_asset_is_decompressed(asset_dir):
    (asset_dir / "crawl.warc.gz").write_bytes(gzip.compress(b"WARC/1.0 content"))

    with _resolver(LocalAssetStore(asset_dir)).resolve(SourceRequest(asset_name="crawl.warc.gz")) as source:
        assert source.stream.read() == b"WARC/1.0 content"


def test_asset_without_suffix_is_read_raw(asset_dir):
    compressed = gzip.compress(b"WARC/1.0 content")
    (asset_dir / "crawl.warc").write_bytes(compressed)

    with _resolver(LocalAssetStore(asset_dir)).resolve(SourceRequest(asset_name="crawl.warc")) as source:
        assert source.stream.read() == compressed


def test_failed_asset_falls_through_to_url(caplog):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"from url"))
    request = SourceRequest(asset_name="missing.warc", url="https://archive.example/crawl.warc")

    with caplog.at_level(logging.ERROR):
        with _resolver(BrokenStore(), transport).resolve(request) as source:
            assert source.origin == "sourceurl"
            assert source.stream.read() == b"from url"

    assert any("disk on fire" in r.getMessage() for r in caplog.records)


def test_missing_asset_is_logged_then_missing_source(asset_dir, caplog):
    with caplog.at_level(logging.ERROR):
        with pytest.raises(MissingSource):
            _resolver(LocalAssetStore(asset_dir)).resolve(SourceRequest(asset_name="nope.warc"))

    assert [r.levelno for r in caplog.records] == [logging.ERROR]
    assert "asset not found: nope.warc" in caplog.records[0].getMessage()


def test_url_http_error_is_a_fetch_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    with pytest.raises(SourceFetchError):
        UrlSource(transport=transport).open(SourceRequest(url="https://archive.example/gone.warc"))


@pytest.mark.parametrize("url", ["http://example.com:abc/a.warc", "http://[::1/a.warc"])
def test_malformed_url_is_a_fetch_error(url):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"unreachable"))
    with pytest.raises(SourceFetchError):
        UrlSource(transport=transport).open(SourceRequest(url=url))


def test_malformed_url_falls_through_to_missing_source(asset_dir, caplog):
    request = SourceRequest(asset_name="a\x00.warc", url="http://[::1/a.warc")

    with caplog.at_level(logging.ERROR):
        with pytest.raises(MissingSource):
            _resolver(LocalAssetStore(asset_dir)).resolve(request)

    assert [r.levelno for r in caplog.records] == [logging.ERROR, logging.ERROR]


def test_url_keeps_content_encoding_of_gz_archive():
    body = gzip.compress(b"WARC/1.0 remote")
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, content=body, headers={"Content-Encoding": "gzip"})
    )

    with UrlSource(transport=transport).open(SourceRequest(url="https://archive.example/crawl.warc.gz")) as source:
        assert source.stream.read() == b"WARC/1.0 remote"


def test_url_gz_suffix_checks_path_not_query():
    body = gzip.compress(b"WARC/1.0 remote")
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=body))

    source = UrlSource(transport=transport).open(SourceRequest(url="https://archive.example/crawl.warc.gz?x=1"))
    with source:
        assert source.stream.read() == b"WARC/1.0 remote"


def test_url_sends_user_agent():
    seen = {}

    def handler(request):
        seen["agent"] = request.headers["user-agent"]
        return httpx.Response(200, content=b"")

    source = UrlSource(user_agent="warc-parser-test", transport=httpx.MockTransport(handler)).open(
        SourceRequest(url="http://archive.example/a.warc")
    )
    source.close()
    assert seen["agent"] == "warc-parser-test"


def test_file_url(tmp_path):
    path = tmp_path / "land.nrw.warc.gz"
    path.write_bytes(gzip.compress(b"WARC/1.0 local"))

    with UrlSource().open(SourceRequest(url=path.as_uri())) as source:
        assert source.stream.read() == b"WARC/1.0 local"


def test_file_url_can_be_disabled(tmp_path):
    path = tmp_path / "a.warc"
    path.write_bytes(b"")
    with pytest.raises(SourceFetchError):
        UrlSource(allow_file_urls=False).open(SourceRequest(url=path.as_uri()))


def test_resolved_source_closes_once():
    stream = TrackingStream()
    source = ResolvedSource("test", "tracking", stream)

    source.close()
    source.close()

    assert stream.close_calls == 1
    assert source.closed


def test_truncated_gz_asset_raises_on_read(asset_dir):
    (asset_dir / "cut.warc.gz").write_bytes(gzip.compress(b"WARC/1.0 " * 200)[:-20])

    with _resolver(LocalAssetStore(asset_dir)).resolve(SourceRequest(asset_name="cut.warc.gz")) as source:
        with pytest.raises(TruncatedArchive):
            source.stream.read()
