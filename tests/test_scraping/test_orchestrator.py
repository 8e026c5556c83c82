"""Tests for the scrape job state machine."""

import asyncio
from unittest.mock import ANY, AsyncMock, MagicMock, call

import pytest

from competitor_timeline.scraping.apify_client import ApifyRun
from competitor_timeline.scraping.config import ScrapeConfig
from competitor_timeline.scraping.errors import OrchestratorFailure, OrchestratorTimeout
from competitor_timeline.scraping.orchestrator import (
    ScrapeJobState,
    ScrapeOrchestrator,
    state_for_status,
)

RUN_ID = "run-abc"


def _run(status: str, **kwargs) -> ApifyRun:
    return ApifyRun(id=RUN_ID, status=status, **kwargs)


@pytest.fixture
def records() -> list[dict]:
    return [
        {
            "id": "1",
            "shortCode": "A1",
            "caption": "first #one",
            "type": "Image",
            "likesCount": 10,
            "commentsCount": 1,
            "timestamp": "2026-03-01T09:00:00.000Z",
        },
        {
            "id": "2",
            "shortCode": "A2",
            "caption": "second",
            "type": "Video",
            "likesCount": 3,
            "commentsCount": 0,
            "timestamp": "2026-03-01T10:00:00.000Z",
        },
    ]


@pytest.fixture
def apify(records):
    client = MagicMock()
    client.build_input = MagicMock(return_value={"username": ["nike"]})
    client.start_run = AsyncMock(return_value=_run("READY"))
    client.get_run = AsyncMock(
        side_effect=[
            _run("RUNNING"),
            _run("RUNNING"),
            _run("SUCCEEDED", default_dataset_id="ds-1"),
        ]
    )
    client.list_dataset_items = AsyncMock(return_value=records)
    return client


@pytest.fixture
def sink():
    s = AsyncMock()
    s.send = AsyncMock(return_value={"success": True, "batchId": "b"})
    return s


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def metrics():
    return MagicMock()


@pytest.fixture
def config() -> ScrapeConfig:
    return ScrapeConfig(poll_interval_seconds=5.0, max_poll_attempts=60)


@pytest.fixture
def orchestrator(apify, sink, config, sleep, metrics) -> ScrapeOrchestrator:
    return ScrapeOrchestrator(apify, sink=sink, config=config, sleep=sleep, metrics=metrics)


class TestStateMapping:
    @pytest.mark.parametrize(
        "status,state",
        [
            ("READY", ScrapeJobState.POLLING),
            ("RUNNING", ScrapeJobState.POLLING),
            ("SUCCEEDED", ScrapeJobState.SUCCEEDED),
            ("FAILED", ScrapeJobState.FAILED),
            ("ABORTED", ScrapeJobState.FAILED),
            ("TIMED-OUT", ScrapeJobState.FAILED),
        ],
    )
    def test_state_for_status(self, status, state):
        assert state_for_status(status) is state


class TestRun:
    """End-to-end runs against a fake Apify client."""

    @pytest.mark.asyncio
    async def test_success_polls_until_done(self, orchestrator, apify, sink, sleep, metrics):
        outcome = await orchestrator.run("nike")

        assert outcome.state is ScrapeJobState.SUCCEEDED
        assert outcome.run_id == RUN_ID
        assert outcome.attempts == 3
        assert apify.get_run.await_count == 3
        assert sleep.await_args_list == [call(5.0), call(5.0)]
        apify.list_dataset_items.assert_awaited_once_with("ds-1")

        sink.send.assert_awaited_once()
        batch = sink.send.await_args[0][0]
        assert batch is outcome.batch
        assert batch.source.handle == "nike"
        assert batch.source.url == "https://instagram.com/nike"
        assert [p["id"] for p in batch.posts] == ["1", "2"]
        assert outcome.sent is True
        assert outcome.stats.valid == 2

        metrics.record_scrape.assert_called_once_with("succeeded", polls=3, duration=ANY)

    @pytest.mark.asyncio
    async def test_handle_prefix_stripped(self, orchestrator, apify):
        await orchestrator.run(" @nike ", results_limit=20, results_type="reels")

        apify.build_input.assert_called_once_with("nike", 20, "reels")

    @pytest.mark.asyncio
    async def test_failed_run(self, orchestrator, apify, sink, sleep, metrics):
        apify.get_run.side_effect = [_run("FAILED", status_message="Proxy blocked")]

        with pytest.raises(OrchestratorFailure) as exc_info:
            await orchestrator.run("nike")

        err = exc_info.value
        assert err.run_id == RUN_ID
        assert err.attempts == 1
        assert err.status == "FAILED"
        assert "FAILED: Proxy blocked" in err.message
        sleep.assert_not_called()
        sink.send.assert_not_called()
        metrics.record_scrape.assert_called_once_with("failed", polls=1, duration=ANY)

    @pytest.mark.asyncio
    async def test_aborted_after_polling(self, orchestrator, apify):
        apify.get_run.side_effect = [_run("RUNNING"), _run("ABORTED")]

        with pytest.raises(OrchestratorFailure) as exc_info:
            await orchestrator.run("nike")

        assert exc_info.value.attempts == 2
        assert "no status message" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout_after_max_polls(self, apify, sink, sleep, metrics):
        apify.get_run.side_effect = None
        apify.get_run.return_value = _run("RUNNING")
        orchestrator = ScrapeOrchestrator(
            apify,
            sink=sink,
            config=ScrapeConfig(poll_interval_seconds=5.0, max_poll_attempts=60),
            sleep=sleep,
            metrics=metrics,
        )

        with pytest.raises(OrchestratorTimeout) as exc_info:
            await orchestrator.run("nike")

        assert exc_info.value.attempts == 60
        assert apify.get_run.await_count == 60
        assert sleep.await_count == 59
        sink.send.assert_not_called()
        metrics.record_scrape.assert_called_once_with("timed_out", polls=60, duration=ANY)

    @pytest.mark.asyncio
    async def test_empty_dataset(self, orchestrator, apify, sink, metrics):
        apify.list_dataset_items.return_value = []

        outcome = await orchestrator.run("nike")

        assert outcome.state is ScrapeJobState.SUCCEEDED
        assert outcome.stats is None
        assert outcome.batch is None
        assert outcome.sent is False
        sink.send.assert_not_called()
        metrics.record_scrape.assert_called_once_with("empty", polls=3, duration=ANY)

    @pytest.mark.asyncio
    async def test_only_invalid_records(self, orchestrator, apify, sink):
        apify.list_dataset_items.return_value = [{"caption": "no id"}, {"id": "9"}]

        outcome = await orchestrator.run("nike")

        assert outcome.stats.invalid == 2
        assert outcome.batch is None
        sink.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_dry_run_builds_but_does_not_send(self, orchestrator, sink):
        outcome = await orchestrator.run("nike", dry_run=True)

        assert outcome.batch is not None
        assert len(outcome.batch.posts) == 2
        assert outcome.sent is False
        sink.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_sink_means_dry_run(self, apify, config, sleep, metrics):
        orchestrator = ScrapeOrchestrator(apify, config=config, sleep=sleep, metrics=metrics)

        outcome = await orchestrator.run("nike")

        assert outcome.batch is not None
        assert outcome.ingest_result is None

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, orchestrator, sleep, sink):
        sleep.side_effect = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await orchestrator.run("nike")

        sink.send.assert_not_called()
