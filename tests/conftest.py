"""Pytest fixtures for competitor-timeline tests."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest

from competitor_timeline.boards.schemas import Board, Channel, SourceKind
from competitor_timeline.config.settings import get_settings

TEST_INGEST_KEY = "test-ingest-key"


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Isolate every test from ambient env and the settings cache."""
    for name in ("INGEST_API_KEY", "APIFY_TOKEN", "SCRAPE_WORKER_ENABLED"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def ingest_key(monkeypatch) -> str:
    """Configure INGEST_API_KEY for the duration of a test."""
    monkeypatch.setenv("INGEST_API_KEY", TEST_INGEST_KEY)
    get_settings.cache_clear()
    return TEST_INGEST_KEY


@pytest.fixture
def mock_conn() -> AsyncMock:
    """Connection handed out by ``mock_database.transaction()``."""
    return AsyncMock()


@pytest.fixture
def mock_database(mock_conn) -> AsyncMock:
    """Database double with a working ``transaction()`` context manager."""
    db = AsyncMock()

    @asynccontextmanager
    async def transaction():
        yield mock_conn

    db.transaction = transaction
    return db


def _board_record(**overrides: Any) -> dict[str, Any]:
    row = {
        "id": "board-1",
        "name": "Nike",
        "slug": "nike",
        "avatar_url": None,
        "created_at": datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


def _channel_record(**overrides: Any) -> dict[str, Any]:
    row = {
        "id": "chan-ig",
        "board_id": "board-1",
        "source_type": "instagram",
        "display_name": "Instagram",
        "position": 0,
        "handle": None,
        "is_active": True,
    }
    row.update(overrides)
    return row


@pytest.fixture
def board_record():
    """Factory for rows shaped like ``SELECT * FROM boards``."""
    return _board_record


@pytest.fixture
def channel_record():
    """Factory for rows shaped like ``SELECT * FROM channels``."""
    return _channel_record


@pytest.fixture
def sample_channel() -> Channel:
    return Channel(
        id="chan-ig",
        board_id="board-1",
        source_type=SourceKind.INSTAGRAM,
        display_name="Instagram",
        position=0,
        handle="nike",
    )


@pytest.fixture
def sample_board(sample_channel) -> Board:
    return Board(
        id="board-1",
        name="Nike",
        slug="nike",
        created_at=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
        channels=[sample_channel],
    )


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    """A valid camelCase ingestion batch with two posts."""
    return {
        "batchId": "batch_1760000000000_abc123xyz",
        "scrapedAt": "2026-03-02T10:00:00Z",
        "source": {
            "platform": "instagram",
            "handle": "nike",
            "url": "https://instagram.com/nike",
        },
        "posts": [
            {
                "id": "C1aaa",
                "url": "https://instagram.com/p/C1aaa",
                "content": "Just do it #run @nikerunning",
                "publishedAt": "2026-03-01T09:00:00Z",
                "mediaType": "image",
                "mediaUrls": ["https://cdn.example.com/1.jpg"],
                "engagement": {"likes": 120, "comments": 4},
                "hashtags": ["run"],
                "mentions": ["nikerunning"],
            },
            {
                "id": "C1bbb",
                "url": "https://instagram.com/p/C1bbb",
                "content": "",
                "publishedAt": "2026-03-01T11:30:00Z",
                "mediaType": "carousel",
                "engagement": {"likes": 0, "comments": 0, "shares": 2},
            },
        ],
    }
