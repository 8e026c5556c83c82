"""Tests for the API service container and its lifecycle."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from competitor_timeline.api.app import create_app
from competitor_timeline.api.dependencies import get_services
from competitor_timeline.api.services import AppServices
from competitor_timeline.config.settings import get_settings


class TestAppServices:
    def test_build_wires_shared_repositories(self, mock_database):
        services = AppServices.build(database=mock_database)

        assert services.database is mock_database
        assert services.boards_service.repository is services.boards
        assert services.worker is None

    def test_each_build_gets_its_own_limiter(self, mock_database):
        first = AppServices.build(database=mock_database)
        second = AppServices.build(database=mock_database)

        assert first.limiter is not second.limiter

    @pytest.mark.asyncio
    async def test_start_without_worker(self, mock_database):
        services = AppServices.build(database=mock_database)

        await services.start()
        await services.close()

        mock_database.connect.assert_awaited_once()
        mock_database.close.assert_awaited_once()
        assert services.worker is None

    @pytest.mark.asyncio
    async def test_worker_needs_apify_token(self, mock_database, monkeypatch):
        monkeypatch.setenv("SCRAPE_WORKER_ENABLED", "true")
        get_settings.cache_clear()
        services = AppServices.build(database=mock_database)

        await services.start()

        assert services.worker is None
        await services.close()

    @pytest.mark.asyncio
    async def test_worker_started_and_stopped(self, mock_database, monkeypatch):
        monkeypatch.setenv("SCRAPE_WORKER_ENABLED", "true")
        monkeypatch.setenv("APIFY_TOKEN", "tok")
        get_settings.cache_clear()
        services = AppServices.build(database=mock_database)

        with patch(
            "competitor_timeline.api.services.ApifyClient.__aenter__", new=AsyncMock()
        ), patch("competitor_timeline.api.services.ApifyClient.__aexit__", new=AsyncMock()):
            await services.start()
            assert services.worker is not None
            await services.close()

        assert services.worker.is_running is False


class TestLifespan:
    def test_owned_services_built_and_closed(self):
        services = MagicMock()
        services.start = AsyncMock()
        services.close = AsyncMock()

        with patch("competitor_timeline.api.app.AppServices.build", return_value=services):
            with TestClient(create_app()) as c:
                c.get("/")

        services.start.assert_awaited_once()
        services.close.assert_awaited_once()

    def test_injected_services_not_closed(self, services):
        services.database.close = AsyncMock()

        with TestClient(create_app(services=services)):
            pass

        services.database.close.assert_not_called()

    def test_missing_services(self):
        app = FastAPI()
        request = MagicMock()
        request.app = app

        with pytest.raises(RuntimeError, match="not initialized"):
            get_services(request)
