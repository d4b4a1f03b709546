"""
Pluggable document parsing.

The service does not parse any content type itself. Parsers are plugged in via
``settings.parser_plugins`` as ``"package.module:factory"`` strings, where the
factory returns an object implementing :class:`DocumentParser`. Parsed
documents are turned into flat JSON records by a :class:`Projection`.
"""
from __future__ import annotations

import dataclasses
import importlib
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from warc_parser.errors import ParseFailure

logger = logging.getLogger(__name__)


@runtime_checkable
class DocumentParser(Protocol):
    def supports(self, mimetype: str) -> bool: ...

    def parse(
        self,
        url: str,
        mimetype: str,
        charset: str | None,
        timezone_offset: int,
        depth: int,
        content: bytes,
    ) -> list[Any]: ...


@runtime_checkable
class Projection(Protocol):
    def to_flat_record(
        self,
        document: Any,
        response_headers: list[tuple[str, str]],
        referer: str | None,
    ) -> dict[str, Any]: ...


class ParserRegistry:
    """Dispatches to the first registered parser that supports a mimetype."""

    def __init__(self, parsers: Iterable[DocumentParser] = ()):
        self.parsers = list(parsers)

    def register(self, parser: DocumentParser) -> None:
        self.parsers.append(parser)

    def _find(self, mimetype: str) -> DocumentParser | None:
        for parser in self.parsers:
            if parser.supports(mimetype):
                return parser
        return None

    def supports(self, mimetype: str) -> bool:
        return self._find(mimetype) is not None

    def parse(self, url, mimetype, charset, timezone_offset, depth, content):
        parser = self._find(mimetype)
        if parser is None:
            raise ParseFailure(f"no parser for mimetype {mimetype} at {url}")
        return parser.parse(url, mimetype, charset, timezone_offset, depth, content)


class DefaultProjection:
    """Flattens mapping-like or dataclass documents and attaches response metadata."""

    def to_flat_record(self, document, response_headers, referer):
        if hasattr(document, "to_dict"):
            record = dict(document.to_dict())
        elif dataclasses.is_dataclass(document) and not isinstance(document, type):
            record = dataclasses.asdict(document)
        elif isinstance(document, Mapping):
            record = dict(document)
        else:
            record = {"text": str(document)}

        headers: dict[str, str] = {}
        for name, value in response_headers:
            # duplicate header lines are joined the way HTTP folds them
            headers[name] = f"{headers[name]}, {value}" if name in headers else value
        record["response_headers"] = headers
        if referer:
            record["referer"] = referer
        return record


def load_object(path: str) -> Any:
    """Import ``package.module:attribute`` and return the attribute."""
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"plugin path must look like 'package.module:factory', got {path!r}")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attribute)
    except AttributeError as exc:
        raise ValueError(f"{module_name} has no attribute {attribute!r}") from exc


def build_registry(plugin_paths: Iterable[str]) -> ParserRegistry:
    registry = ParserRegistry()
    for path in plugin_paths:
        factory = load_object(path)
        parser = factory()
        if not isinstance(parser, DocumentParser):
            raise TypeError(f"{path} did not return a DocumentParser")
        registry.register(parser)
        logger.info("Registered parser plugin %s", path)
    if not registry.parsers:
        logger.warning("No parser plugins configured; every record will be skipped")
    return registry


def build_projection(plugin_path: str) -> Projection:
    if not plugin_path:
        return DefaultProjection()
    projection = load_object(plugin_path)()
    if not isinstance(projection, Projection):
        raise TypeError(f"{plugin_path} did not return a Projection")
    return projection
