"""
Dependency injection for FastAPI endpoints.

All services come from the ``AppServices`` instance on ``app.state``.
"""

from fastapi import Depends, Request
from slowapi import Limiter

from competitor_timeline.api.auth import verify_ingest_key
from competitor_timeline.api.rate_limit import check_ingest_limit
from competitor_timeline.api.services import AppServices
from competitor_timeline.boards.repository import BoardsRepository
from competitor_timeline.boards.service import BoardsService
from competitor_timeline.ingestion.service import IngestionService
from competitor_timeline.posts.repository import PostsRepository
from competitor_timeline.scraping.queue import ScrapeQueue
from competitor_timeline.storage.database import Database


def get_services(request: Request) -> AppServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("AppServices not initialized; is the lifespan running?")
    return services


def get_database(services: AppServices = Depends(get_services)) -> Database:
    return services.database


def get_boards_repository(services: AppServices = Depends(get_services)) -> BoardsRepository:
    return services.boards


def get_posts_repository(services: AppServices = Depends(get_services)) -> PostsRepository:
    return services.posts


def get_boards_service(services: AppServices = Depends(get_services)) -> BoardsService:
    return services.boards_service


def get_ingestion_service(services: AppServices = Depends(get_services)) -> IngestionService:
    return services.ingestion


def get_scrape_queue(services: AppServices = Depends(get_services)) -> ScrapeQueue:
    return services.scrape_queue


def get_limiter(services: AppServices = Depends(get_services)) -> Limiter:
    return services.limiter


async def enforce_ingest_throttle(
    request: Request,
    api_key: str = Depends(verify_ingest_key),
    limiter: Limiter = Depends(get_limiter),
) -> str:
    """Authenticate first, then apply the per-credential window."""
    check_ingest_limit(limiter, request)
    return api_key
