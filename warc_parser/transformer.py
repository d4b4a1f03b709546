from __future__ import annotations

import logging
from typing import Any

from warc_parser.errors import ParseFailure
from warc_parser.models import ExtractedPayload, RequestContext, ResponseContext
from warc_parser.parsers import DocumentParser, Projection
from warc_parser.utils import get_header, parse_http_date, parse_warc_date


def build_contexts(payload: ExtractedPayload) -> tuple[RequestContext, ResponseContext]:
    """Synthetic request/response pair for a captured response, as if it was just crawled."""
    last_modified = parse_http_date(get_header(payload.headers, "Last-Modified"))
    request = RequestContext(
        url=payload.uri,
        referer=get_header(payload.headers, "Referer"),
        last_modified=last_modified or parse_warc_date(payload.warc_date),
    )
    response = ResponseContext(status=payload.status, headers=list(payload.headers), content=payload.content)
    return request, response


class DocumentTransformer:
    def __init__(
        self,
        parser: DocumentParser,
        projection: Projection,
        timezone_offset: int = 0,
        logger: logging.Logger | None = None,
    ):
        self.parser = parser
        self.projection = projection
        self.timezone_offset = timezone_offset
        self.logger = logger or logging.getLogger(__name__)

    def transform(self, payload: ExtractedPayload) -> list[dict[str, Any]]:
        """Parse one payload into flat JSON records; failures yield an empty list."""
        request, response = build_contexts(payload)
        try:
            documents = self.parser.parse(
                request.url,
                payload.mimetype,
                payload.charset,
                self.timezone_offset,
                request.depth,
                response.content,
            )
            return [
                self.projection.to_flat_record(document, response.headers, request.referer)
                for document in documents
            ]
        except ParseFailure as exc:
            self.logger.error("Parser failed on %s: %s", request.url, exc)
        except Exception:
            self.logger.exception("Unexpected error while parsing %s", request.url)
        return []
