from __future__ import annotations

from typing import Any

from warc_parser.models import ResultEnvelope


class ResultAggregator:
    """Collects projected documents in scan order."""

    def __init__(self):
        self.documents: list[dict[str, Any]] = []
        self.records_seen = 0
        self.records_parsed = 0
        self.failure: str | None = None

    def record_seen(self) -> None:
        self.records_seen += 1

    def add(self, documents: list[dict[str, Any]]) -> None:
        self.records_parsed += 1
        self.documents.extend(documents)

    def mark_partial(self, reason: str) -> None:
        self.failure = reason

    def envelope(self) -> ResultEnvelope:
        # Once a source was opened the request counts as successful; a broken
        # container is reported through `partial` instead of `success`.
        if self.failure is None:
            return ResultEnvelope(success=True, documents=self.documents)
        return ResultEnvelope(
            success=True,
            documents=self.documents,
            comment=f"archive ended abnormally: {self.failure}",
            partial=True,
        )
