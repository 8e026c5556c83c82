"""Ingestion: batch validation, source resolution and idempotent apply."""

from competitor_timeline.ingestion.errors import (
    AuthenticationError,
    BatchValidationError,
    IngestError,
    NotConfiguredError,
    ResolutionError,
    ThrottleError,
)
from competitor_timeline.ingestion.processor import BatchProcessor
from competitor_timeline.ingestion.resolver import EntityResolver, Resolution
from competitor_timeline.ingestion.schemas import (
    BatchPost,
    BatchResult,
    BatchSource,
    Engagement,
    IngestionBatch,
    IngestResponse,
    new_batch_id,
)
from competitor_timeline.ingestion.service import IngestionService
from competitor_timeline.ingestion.validator import validate_batch

__all__ = [
    "AuthenticationError",
    "BatchPost",
    "BatchProcessor",
    "BatchResult",
    "BatchSource",
    "BatchValidationError",
    "Engagement",
    "EntityResolver",
    "IngestError",
    "IngestResponse",
    "IngestionBatch",
    "IngestionService",
    "NotConfiguredError",
    "Resolution",
    "ResolutionError",
    "ThrottleError",
    "new_batch_id",
    "validate_batch",
]
