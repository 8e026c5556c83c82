"""
Destinations for normalized batches.

``LocalIngestSink`` applies batches in-process through the ingestion
service; ``HttpIngestSink`` posts them to a running ingestion endpoint
with the same credential an external agent would use.
"""

from abc import ABC, abstractmethod
from typing import Any

import structlog

from competitor_timeline.config.settings import get_settings
from competitor_timeline.ingestion.schemas import IngestionBatch
from competitor_timeline.ingestion.service import IngestionService
from competitor_timeline.scraping.http_client import HTTPClient, RetryConfig

logger = structlog.get_logger(__name__)


class IngestSink(ABC):
    """Receives one validated batch per successful scrape."""

    @abstractmethod
    async def send(self, batch: IngestionBatch) -> dict[str, Any]:
        """Deliver the batch and return the camelCase ingest result."""


class LocalIngestSink(IngestSink):
    """Feeds batches straight into an IngestionService."""

    def __init__(self, service: IngestionService) -> None:
        self._service = service

    async def send(self, batch: IngestionBatch) -> dict[str, Any]:
        response = await self._service.ingest(batch.to_wire(), batch_id=batch.batch_id)
        return response.model_dump(mode="json", by_alias=True, exclude_none=True)


class HttpIngestSink(IngestSink):
    """POSTs batches to ``INGEST_API_URL`` with bearer auth and ``X-Batch-Id``."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        http_client: HTTPClient | None = None,
    ) -> None:
        settings = get_settings()
        self._url = url or settings.ingest_api_url
        self._api_key = api_key or settings.ingest_api_key
        if not self._api_key:
            raise ValueError("INGEST_API_KEY is required to send batches over HTTP")
        self._http = http_client or HTTPClient(
            RetryConfig(
                max_retries=settings.max_http_retries,
                max_backoff_seconds=settings.max_backoff_seconds,
            ),
            timeout=settings.http_timeout_seconds,
        )

    async def send(self, batch: IngestionBatch) -> dict[str, Any]:
        async with self._http as client:
            response = await client.post(
                self._url,
                json_body=batch.to_wire(),
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "X-Batch-Id": batch.batch_id,
                },
            )
        logger.info("Batch delivered", url=self._url, batch_id=batch.batch_id)
        return response.json()
