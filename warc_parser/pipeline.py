"""
ParserPipeline: WARC source in, ordered JSON documents out.

    SourceResolver -> ArchiveReader -> PayloadExtractor -> DocumentTransformer -> ResultAggregator

One pipeline instance may serve many requests; `run` keeps all per-request
state local.
"""
from __future__ import annotations

import logging

from warc_parser.aggregator import ResultAggregator
from warc_parser.config import Settings, settings as default_settings
from warc_parser.errors import ArchiveContainerError, MissingSource
from warc_parser.extractor import PayloadExtractor
from warc_parser.models import ResultEnvelope, SourceRequest
from warc_parser.parsers import DefaultProjection, DocumentParser, Projection
from warc_parser.reader import ArchiveReader
from warc_parser.sources import SourceResolver, SourceStrategy, default_strategies
from warc_parser.storage.base import AssetStore
from warc_parser.transformer import DocumentTransformer


class ParserPipeline:
    def __init__(
        self,
        asset_store: AssetStore,
        parser: DocumentParser,
        projection: Projection | None = None,
        *,
        config: Settings | None = None,
        strategies: list[SourceStrategy] | None = None,
        logger: logging.Logger | None = None,
    ):
        config = config or default_settings
        self.logger = logger or logging.getLogger(__name__)
        if strategies is None:
            strategies = default_strategies(
                asset_store,
                timeout=config.request_timeout,
                user_agent=config.user_agent,
                compressed_suffixes=config.compressed_suffixes,
                allow_file_urls=config.allow_file_urls,
            )
        self.resolver = SourceResolver(strategies, logger=self.logger)
        self.extractor = PayloadExtractor(parser, block_size=config.read_block_size, logger=self.logger)
        self.transformer = DocumentTransformer(
            parser,
            projection or DefaultProjection(),
            timezone_offset=config.timezone_offset,
            logger=self.logger,
        )

    def run(self, request: SourceRequest) -> ResultEnvelope:
        try:
            source = self.resolver.resolve(request)
        except MissingSource as exc:
            self.logger.info("Rejected request: %s", exc)
            return ResultEnvelope.failure(str(exc))

        aggregator = ResultAggregator()
        with ArchiveReader(source, logger=self.logger) as reader:
            try:
                for record in reader:
                    aggregator.record_seen()
                    payload = self.extractor.extract(record)
                    if payload is None:
                        continue
                    aggregator.add(self.transformer.transform(payload))
            except ArchiveContainerError as exc:
                self.logger.error("Stopped scanning %s: %s", source.name, exc)
                aggregator.mark_partial(str(exc))

        self.logger.info(
            "Indexed %d documents from %d of %d records",
            len(aggregator.documents), aggregator.records_parsed, aggregator.records_seen,
        )
        return aggregator.envelope()
