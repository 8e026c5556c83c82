"""Shared fixtures for API tests."""

import time
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from competitor_timeline.api.app import create_app
from competitor_timeline.api.rate_limit import create_limiter
from competitor_timeline.api.services import AppServices
from competitor_timeline.boards.service import BoardsService
from competitor_timeline.ingestion.service import IngestionService
from competitor_timeline.scraping.queue import ScrapeQueue


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock(monkeypatch) -> FakeClock:
    """Drive the throttle windows by hand.

    The limits memory storage stamps and expires hits with ``time.time``.
    """
    fake = FakeClock()
    monkeypatch.setattr(time, "time", fake)
    return fake


@pytest.fixture
def api_db():
    db = AsyncMock()
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def mock_boards_repo(sample_board, sample_channel):
    """BoardsRepository double that resolves every source to ``sample_board``."""
    repo = AsyncMock()
    repo.find_channel_by_handle = AsyncMock(return_value=sample_channel)
    repo.find_board_for_source = AsyncMock(return_value=None)
    repo.get_board = AsyncMock(return_value=sample_board)
    repo.get_board_by_slug = AsyncMock(return_value=None)
    repo.list_boards = AsyncMock(return_value=[])
    repo.get_channel = AsyncMock(return_value=None)
    repo.count_boards = AsyncMock(return_value=0)
    return repo


@pytest.fixture
def mock_posts_repo():
    repo = AsyncMock()
    repo.upsert = AsyncMock(return_value=True)
    repo.list_by_channel = AsyncMock(return_value=[])
    repo.list_by_board = AsyncMock(return_value=[])
    repo.count = AsyncMock(return_value=0)
    repo.count_imported_since = AsyncMock(return_value=0)
    return repo


@pytest.fixture
def services(api_db, mock_boards_repo, mock_posts_repo) -> AppServices:
    return AppServices(
        database=api_db,
        boards=mock_boards_repo,
        posts=mock_posts_repo,
        boards_service=BoardsService(api_db, boards=mock_boards_repo, posts=mock_posts_repo),
        ingestion=IngestionService(mock_boards_repo, mock_posts_repo, metrics=MagicMock()),
        limiter=create_limiter(),
        scrape_queue=ScrapeQueue(),
    )


@pytest.fixture
def client(services):
    """TestClient over injected services; the lifespan opens nothing."""
    app = create_app(services=services)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(ingest_key) -> dict[str, str]:
    return {"Authorization": f"Bearer {ingest_key}"}
