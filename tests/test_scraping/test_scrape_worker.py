"""Tests for the force-queue worker."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from competitor_timeline.scraping.errors import OrchestratorFailure, OrchestratorTimeout
from competitor_timeline.scraping.http_client import RetryConfig
from competitor_timeline.scraping.queue import ScrapeJobStatus, ScrapeQueue
from competitor_timeline.scraping.worker import ScrapeWorker, handle_from_target


@pytest.fixture
def queue() -> ScrapeQueue:
    return ScrapeQueue()


@pytest.fixture
def orchestrator():
    orch = MagicMock()
    orch.run = AsyncMock(return_value=MagicMock(run_id="run-1", sent=True))
    return orch


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def worker(queue, orchestrator, sleep) -> ScrapeWorker:
    return ScrapeWorker(
        queue,
        orchestrator,
        backoff=RetryConfig(base_delay=2.0, jitter_factor=0.0),
        sleep=sleep,
    )


class TestHandleFromTarget:
    @pytest.mark.parametrize(
        "target,handle",
        [
            ("nike", "nike"),
            ("@nike", "nike"),
            ("  @nike ", "nike"),
            ("https://instagram.com/nike/", "nike"),
            ("https://www.instagram.com/@nike?hl=en", "nike"),
            ("https://instagram.com/", ""),
        ],
    )
    def test_variants(self, target, handle):
        assert handle_from_target(target) == handle


class TestProcessJob:
    @pytest.mark.asyncio
    async def test_success(self, worker, queue, orchestrator):
        job, _ = queue.push("https://instagram.com/nike/", 20)

        await worker.process_job(job)

        orchestrator.run.assert_awaited_once_with("nike", results_limit=20)
        assert job.status is ScrapeJobStatus.DONE
        assert job.error is None

    @pytest.mark.asyncio
    async def test_failure_recorded_on_job(self, worker, queue, orchestrator):
        orchestrator.run.side_effect = OrchestratorFailure(
            "Apify run r ended with FAILED: blocked", run_id="r", attempts=1
        )
        job, _ = queue.push("nike", 20)

        await worker.process_job(job)

        assert job.status is ScrapeJobStatus.FAILED
        assert job.error == "Apify run r ended with FAILED: blocked"

    @pytest.mark.asyncio
    async def test_unexpected_error_marks_job_failed(self, worker, queue, orchestrator):
        orchestrator.run.side_effect = RuntimeError("connection lost")
        job, _ = queue.push("nike", 20)

        await worker.process_job(job)

        assert job.status is ScrapeJobStatus.FAILED
        assert job.error == "RuntimeError: connection lost"

    @pytest.mark.asyncio
    async def test_unusable_target(self, worker, queue, orchestrator):
        job, _ = queue.push("https://instagram.com/", 20)

        await worker.process_job(job)

        assert job.status is ScrapeJobStatus.FAILED
        orchestrator.run.assert_not_called()


class TestLoop:
    @pytest.mark.asyncio
    async def test_processes_until_stopped(self, worker, queue, orchestrator, sleep):
        async def run_and_stop(handle, results_limit):
            await worker.stop()
            return MagicMock(run_id="run-1", sent=True)

        orchestrator.run.side_effect = run_and_stop
        job, _ = queue.push("nike", 10)

        await worker.start()

        assert job.status is ScrapeJobStatus.DONE
        assert worker.is_running is False
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_backs_off_after_failure(self, worker, queue, orchestrator, sleep):
        async def fail_and_stop(handle, results_limit):
            await worker.stop()
            raise OrchestratorTimeout("still running", run_id="r", attempts=60)

        orchestrator.run.side_effect = fail_and_stop
        queue.push("nike", 10)

        await worker.start()

        sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    async def test_keeps_draining_after_unexpected_error(self, worker, queue, orchestrator, sleep):
        async def run(handle, results_limit):
            if handle == "nike":
                raise RuntimeError("connection lost")
            await worker.stop()
            return MagicMock(run_id="run-2", sent=True)

        orchestrator.run.side_effect = run
        first, _ = queue.push("nike", 10)
        second, _ = queue.push("puma", 10)

        await worker.start()

        assert first.status is ScrapeJobStatus.FAILED
        assert second.status is ScrapeJobStatus.DONE
        assert len(queue) == 0
        sleep.assert_awaited_once_with(2.0)
