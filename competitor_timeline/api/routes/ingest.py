"""Agent-facing ingestion endpoint."""

from fastapi import APIRouter, Depends, Header, Request

from competitor_timeline import __version__
from competitor_timeline.api.dependencies import enforce_ingest_throttle, get_ingestion_service
from competitor_timeline.api.models import ErrorResponse, IngestHealthResponse
from competitor_timeline.ingestion.errors import BatchValidationError
from competitor_timeline.ingestion.schemas import IngestResponse
from competitor_timeline.ingestion.service import IngestionService

router = APIRouter()


@router.post(
    "/api/ingest",
    response_model=IngestResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Ingest a batch of scraped posts",
)
async def ingest_batch(
    request: Request,
    x_batch_id: str | None = Header(default=None),
    api_key: str = Depends(enforce_ingest_throttle),
    service: IngestionService = Depends(get_ingestion_service),
) -> IngestResponse:
    """
    Apply one Ingestion Batch.

    The body is read only after authentication and throttling pass. An unresolvable source still
    answers 200, with zero counts and the reason in ``errors``.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise BatchValidationError(["Body must be valid JSON"])

    return await service.ingest(payload, batch_id=x_batch_id)


@router.get(
    "/api/ingest",
    response_model=IngestHealthResponse,
    summary="Ingestion endpoint liveness",
)
async def ingest_health() -> IngestHealthResponse:
    return IngestHealthResponse(service="competitor-timeline-ingest", version=__version__)
