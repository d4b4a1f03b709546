"""
Source resolution: picks the one input stream a request is parsed from.

Candidates are tried in a fixed order:
  1. sourcebytes uploaded as a binary part of a POST request
  2. sourcebytes given as a text field
  3. sourceasset, loaded from the asset store
  4. sourceurl, fetched over http(s) or read from a file:// path
"""
from __future__ import annotations

import gzip
import io
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import ExitStack
from typing import BinaryIO
from urllib.parse import urlsplit
from urllib.request import url2pathname

import httpx

from warc_parser.errors import MissingSource, SourceFetchError, TruncatedArchive
from warc_parser.models import SourceRequest
from warc_parser.storage.base import AssetStore
from warc_parser.utils import has_suffix, is_http_url


class ResolvedSource:
    """An open input stream plus everything that has to be released with it."""

    def __init__(self, origin: str, name: str, stream: BinaryIO, stack: ExitStack | None = None):
        self.origin = origin
        self.name = name
        self.stream = stream
        self._stack = stack or ExitStack()
        self._stack.callback(stream.close)
        self.closed = False

    def decompress(self) -> ResolvedSource:
        """Replace the stream with a gzip reader over it."""
        self.stream = _GunzipStream(self.stream)
        self._stack.callback(self.stream.close)
        return self

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._stack.close()

    def __enter__(self) -> ResolvedSource:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class _GunzipStream(io.RawIOBase):
    """Gzip reader that reports a cut-off member as TruncatedArchive.

    GzipFile signals truncation with EOFError, which warcio takes for a clean
    end of archive.
    """

    def __init__(self, fileobj: BinaryIO):
        self._gzip = gzip.GzipFile(fileobj=fileobj, mode="rb")

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        try:
            data = self._gzip.read1(len(buffer))
        except EOFError as exc:
            raise TruncatedArchive(f"compressed archive is truncated: {exc}") from exc
        size = len(data)
        buffer[:size] = data
        return size

    def close(self) -> None:
        if not self.closed:
            self._gzip.close()
        super().close()


class _ResponseStream(io.RawIOBase):
    """File-like view over a streaming httpx response, as sent on the wire."""

    def __init__(self, response: httpx.Response):
        # raw bytes: a .warc.gz served with Content-Encoding: gzip stays gzipped
        self._chunks: Iterator[bytes] = response.iter_raw()
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
            except httpx.HTTPError as exc:
                raise OSError(f"remote read failed: {exc}") from exc
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


class SourceStrategy(ABC):
    name: str

    @abstractmethod
    def open(self, request: SourceRequest) -> ResolvedSource | None:
        """Open the candidate, None when the request does not carry it.

        Raises SourceFetchError when the candidate is present but unreadable.
        """
        raise NotImplementedError


class InlineBytesSource(SourceStrategy):
    name = "sourcebytes"

    def open(self, request: SourceRequest) -> ResolvedSource | None:
        if request.inline_bytes is None:
            return None
        return ResolvedSource(self.name, "<upload>", io.BytesIO(request.inline_bytes))


class InlineTextSource(SourceStrategy):
    name = "sourcebytes-text"

    def open(self, request: SourceRequest) -> ResolvedSource | None:
        if request.inline_text is None:
            return None
        return ResolvedSource(self.name, "<text>", io.BytesIO(request.inline_text.encode("utf-8")))


class AssetSource(SourceStrategy):
    name = "sourceasset"

    def __init__(self, store: AssetStore, compressed_suffixes: Iterable[str] = (".gz",)):
        self.store = store
        self.compressed_suffixes = tuple(compressed_suffixes)

    def open(self, request: SourceRequest) -> ResolvedSource | None:
        if not request.asset_name:
            return None
        try:
            payload = self.store.load(request.asset_name)
        except SourceFetchError:
            raise
        except (OSError, ValueError, httpx.HTTPError, httpx.InvalidURL) as exc:
            raise SourceFetchError(f"{self.store.name} store failed to load {request.asset_name}: {exc}") from exc

        source = ResolvedSource(self.name, request.asset_name, io.BytesIO(payload))
        if has_suffix(request.asset_name, self.compressed_suffixes):
            source.decompress()
        return source


class UrlSource(SourceStrategy):
    name = "sourceurl"

    def __init__(
        self,
        timeout: float = 30,
        user_agent: str = "",
        compressed_suffixes: Iterable[str] = (".gz",),
        allow_file_urls: bool = True,
        transport: httpx.BaseTransport | None = None,
    ):
        self.timeout = timeout
        self.user_agent = user_agent
        self.compressed_suffixes = tuple(compressed_suffixes)
        self.allow_file_urls = allow_file_urls
        self.transport = transport

    def open(self, request: SourceRequest) -> ResolvedSource | None:
        if not request.url:
            return None
        try:
            parsed = urlsplit(request.url)
        except ValueError as exc:
            raise SourceFetchError(f"malformed source url {request.url!r}: {exc}") from exc

        if is_http_url(request.url):
            source = self._open_http(request.url)
        elif parsed.scheme == "file" and self.allow_file_urls:
            source = self._open_file(parsed.path)
        else:
            raise SourceFetchError(f"unsupported source url: {request.url}")

        if has_suffix(parsed.path, self.compressed_suffixes):
            source.decompress()
        return source

    def _open_http(self, url: str) -> ResolvedSource:
        stack = ExitStack()
        headers = {"User-Agent": self.user_agent} if self.user_agent else {}
        try:
            client = stack.enter_context(
                httpx.Client(timeout=self.timeout, follow_redirects=True, headers=headers, transport=self.transport)
            )
            response = stack.enter_context(client.stream("GET", url))
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            stack.close()
            raise SourceFetchError(f"fetching {url} failed: {exc}") from exc
        stream = io.BufferedReader(_ResponseStream(response))
        return ResolvedSource(self.name, url, stream, stack)

    def _open_file(self, path: str) -> ResolvedSource:
        try:
            stream = open(url2pathname(path), "rb")
        except (OSError, ValueError) as exc:
            raise SourceFetchError(f"opening {path} failed: {exc}") from exc
        return ResolvedSource(self.name, path, stream)


class SourceResolver:
    def __init__(self, strategies: Iterable[SourceStrategy], logger: logging.Logger | None = None):
        self.strategies = list(strategies)
        self.logger = logger or logging.getLogger(__name__)

    def resolve(self, request: SourceRequest) -> ResolvedSource:
        for strategy in self.strategies:
            try:
                source = strategy.open(request)
            except SourceFetchError as exc:
                self.logger.error("Source %s could not be opened: %s", strategy.name, exc)
                continue
            if source is not None:
                self.logger.info("Reading archive from %s %s", source.origin, source.name)
                return source
        raise MissingSource()


def default_strategies(
    store: AssetStore,
    *,
    timeout: float = 30,
    user_agent: str = "",
    compressed_suffixes: Iterable[str] = (".gz",),
    allow_file_urls: bool = True,
) -> list[SourceStrategy]:
    return [
        InlineBytesSource(),
        InlineTextSource(),
        AssetSource(store, compressed_suffixes),
        UrlSource(timeout, user_agent, compressed_suffixes, allow_file_urls),
    ]
