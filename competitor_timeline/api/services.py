"""
Process-scoped service container for the API.
"""

import asyncio
from dataclasses import dataclass, field

import structlog
from slowapi import Limiter

from competitor_timeline.api.rate_limit import create_limiter
from competitor_timeline.boards.repository import BoardsRepository
from competitor_timeline.boards.service import BoardsService
from competitor_timeline.config.settings import get_settings
from competitor_timeline.ingestion.service import IngestionService
from competitor_timeline.posts.repository import PostsRepository
from competitor_timeline.scraping.apify_client import ApifyClient
from competitor_timeline.scraping.orchestrator import ScrapeOrchestrator
from competitor_timeline.scraping.queue import ScrapeQueue
from competitor_timeline.scraping.sink import LocalIngestSink
from competitor_timeline.scraping.worker import ScrapeWorker
from competitor_timeline.storage.database import Database

logger = structlog.get_logger(__name__)


@dataclass
class AppServices:
    """
    Everything request handlers need, built once per process.

    Stored on ``app.state.services`` and reached through the dependencies
    in ``competitor_timeline.api.dependencies``.

    The ingest limiter and scrape queue hold in-memory state only. A
    restart resets every throttle window and drops queued scrape jobs.
    Running several API processes gives each its own windows and queue.
    """

    database: Database
    boards: BoardsRepository
    posts: PostsRepository
    boards_service: BoardsService
    ingestion: IngestionService
    limiter: Limiter
    scrape_queue: ScrapeQueue
    worker: ScrapeWorker | None = None
    _apify: ApifyClient | None = field(default=None, init=False, repr=False)
    _worker_task: asyncio.Task | None = field(default=None, init=False, repr=False)

    @classmethod
    def build(cls, database: Database | None = None) -> "AppServices":
        database = database or Database()
        boards = BoardsRepository(database)
        posts = PostsRepository(database)
        return cls(
            database=database,
            boards=boards,
            posts=posts,
            boards_service=BoardsService(database, boards=boards, posts=posts),
            ingestion=IngestionService(boards, posts),
            limiter=create_limiter(),
            scrape_queue=ScrapeQueue(),
        )

    async def start(self) -> None:
        """Connect storage and, when enabled, start the scrape worker."""
        settings = get_settings()
        await self.database.connect()

        if not settings.scrape_worker_enabled:
            return
        if not settings.apify_configured:
            logger.warning("Scrape worker enabled but APIFY_TOKEN is not set; not starting")
            return

        self._apify = ApifyClient()
        await self._apify.__aenter__()
        orchestrator = ScrapeOrchestrator(self._apify, sink=LocalIngestSink(self.ingestion))
        self.worker = ScrapeWorker(self.scrape_queue, orchestrator)
        self._worker_task = asyncio.create_task(self.worker.start())
        logger.info("Scrape worker scheduled")

    async def close(self) -> None:
        """Stop the worker and release connections."""
        if self.worker is not None:
            await self.worker.stop()
        if self._worker_task is not None:
            self._worker_task.cancel()
            await asyncio.gather(self._worker_task, return_exceptions=True)
            self._worker_task = None
        if self._apify is not None:
            await self._apify.__aexit__(None, None, None)
            self._apify = None
        await self.database.close()
