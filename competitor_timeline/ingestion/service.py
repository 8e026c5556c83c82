"""
Ingestion service: validate, resolve and apply one batch.

Shared by the HTTP endpoint and the in-process scrape sink so both paths
apply identical validation and resolution rules.
"""

import time
from typing import Any

import structlog
from pydantic import ValidationError

from competitor_timeline.boards.repository import BoardsRepository
from competitor_timeline.ingestion.errors import BatchValidationError, ResolutionError
from competitor_timeline.ingestion.processor import BatchProcessor, validation_messages
from competitor_timeline.ingestion.resolver import EntityResolver
from competitor_timeline.ingestion.schemas import (
    BatchResult,
    IngestionBatch,
    IngestResponse,
    ProcessedSummary,
)
from competitor_timeline.ingestion.validator import validate_envelope
from competitor_timeline.observability.metrics import MetricsCollector, get_metrics
from competitor_timeline.posts.repository import PostsRepository

logger = structlog.get_logger(__name__)


class IngestionService:
    """
    Entry point for batch ingestion.

    Usage:
        service = IngestionService(boards_repo, posts_repo)
        response = await service.ingest(payload)
    """

    def __init__(
        self,
        boards: BoardsRepository,
        posts: PostsRepository,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._resolver = EntityResolver(boards)
        self._processor = BatchProcessor(posts)
        self._metrics = metrics or get_metrics()

    def parse(self, payload: Any) -> IngestionBatch:
        """
        Validate and parse a raw payload's envelope.

        Posts stay raw; a defective post becomes a per-post error during
        processing rather than rejecting the batch.

        Raises:
            BatchValidationError: With every envelope violation found
        """
        valid, errors = validate_envelope(payload)
        if not valid:
            raise BatchValidationError(errors)
        try:
            return IngestionBatch.model_validate(payload)
        except ValidationError as e:
            raise BatchValidationError(validation_messages(e)) from e

    async def ingest(self, payload: Any, batch_id: str | None = None) -> IngestResponse:
        """
        Ingest one raw batch.

        Args:
            payload: Decoded JSON body
            batch_id: Caller-supplied batch id (``X-Batch-Id``); overrides the body's

        Returns:
            Structured result; an unresolvable source yields zero counts plus an error

        Raises:
            BatchValidationError: Envelope is structurally invalid
        """
        try:
            batch = self.parse(payload)
        except BatchValidationError as e:
            self._metrics.record_rejection(e.reason)
            logger.warning("Batch rejected", errors=e.errors)
            raise
        return await self.ingest_batch(batch, batch_id=batch_id)

    async def ingest_batch(
        self, batch: IngestionBatch, batch_id: str | None = None
    ) -> IngestResponse:
        """Resolve and apply an already-parsed batch."""
        start = time.perf_counter()
        source = batch.source
        log = logger.bind(
            batch_id=batch_id or batch.batch_id,
            platform=source.platform.value,
            handle=source.handle,
        )

        try:
            target = await self._resolver.resolve(source)
        except ResolutionError as e:
            log.warning("Batch source not resolved", reason=e.reason, error=e.message)
            result = BatchResult(errors=[e.message])
            outcome = "unresolved"
        else:
            result = await self._processor.process(batch.posts, source.platform, target)
            outcome = "accepted"

        elapsed = time.perf_counter() - start
        self._metrics.record_batch(source.platform, outcome, latency=elapsed)
        self._metrics.record_posts(
            source.platform,
            inserted=result.inserted,
            updated=result.updated,
            errors=len(result.errors) if outcome == "accepted" else 0,
        )
        log.info(
            "Batch ingested",
            received=len(batch.posts),
            inserted=result.inserted,
            updated=result.updated,
            errors=len(result.errors),
            latency_ms=round(elapsed * 1000, 2),
        )

        return IngestResponse(
            batch_id=batch_id or batch.batch_id,
            processed=ProcessedSummary(
                platform=source.platform,
                handle=source.handle,
                posts_received=len(batch.posts),
                posts_inserted=result.inserted,
                posts_updated=result.updated,
            ),
            errors=result.errors or None,
        )
