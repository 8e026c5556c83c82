"""Manual scrape requests (force queue)."""

import structlog
from fastapi import APIRouter, Depends

from competitor_timeline.api.auth import verify_ingest_key
from competitor_timeline.api.dependencies import get_scrape_queue
from competitor_timeline.api.models import (
    ErrorResponse,
    ForceScrapeRequest,
    ForceScrapeResponse,
    QueueStatusResponse,
    ScrapeJobItem,
)
from competitor_timeline.config.settings import get_settings
from competitor_timeline.scraping.queue import ScrapeQueue

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post(
    "/api/ingest/force",
    response_model=ForceScrapeResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Queue a scrape of one profile",
)
async def force_scrape(
    body: ForceScrapeRequest,
    api_key: str = Depends(verify_ingest_key),
    queue: ScrapeQueue = Depends(get_scrape_queue),
) -> ForceScrapeResponse:
    settings = get_settings()
    depth = min(body.depth or settings.force_default_depth, settings.force_max_depth)

    job, position = queue.push(body.target.strip(), depth)
    logger.info("Scrape queued", job_id=job.id, target=job.target, depth=depth, position=position)

    return ForceScrapeResponse(job=ScrapeJobItem.from_job(job), queue_position=position)


@router.get(
    "/api/ingest/force",
    response_model=QueueStatusResponse,
    summary="Queue length and most recent jobs",
)
async def force_status(
    queue: ScrapeQueue = Depends(get_scrape_queue),
) -> QueueStatusResponse:
    return QueueStatusResponse(
        queue_length=len(queue),
        recent_jobs=[ScrapeJobItem.from_job(j) for j in queue.recent(5)],
    )
