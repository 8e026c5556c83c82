"""
Scrape worker - drains the in-memory force queue.

Runs inside the API process when ``SCRAPE_WORKER_ENABLED`` is set:
1. Waits for the next queued job
2. Runs it through the orchestrator (one job at a time)
3. Records the job's final status for ``GET /api/ingest/force``

Consecutive failures back off exponentially before the next job.
"""

import asyncio
from urllib.parse import urlparse

import structlog

from competitor_timeline.ingestion.errors import BatchValidationError
from competitor_timeline.scraping.apify_client import ApifyClientError
from competitor_timeline.scraping.errors import ScrapeError
from competitor_timeline.scraping.http_client import HTTPClientError, RetryConfig
from competitor_timeline.scraping.orchestrator import ScrapeOrchestrator
from competitor_timeline.scraping.queue import ScrapeJob, ScrapeJobStatus, ScrapeQueue

logger = structlog.get_logger(__name__)

_JOB_ERRORS = (ScrapeError, HTTPClientError, ApifyClientError, BatchValidationError)


def handle_from_target(target: str) -> str:
    """Accept ``nike``, ``@nike`` or ``https://instagram.com/nike/``."""
    target = target.strip()
    if target.startswith("http"):
        segments = [s for s in urlparse(target).path.split("/") if s]
        target = segments[0] if segments else ""
    return target.lstrip("@")


class ScrapeWorker:
    """
    Consumes ScrapeQueue jobs and runs them through a ScrapeOrchestrator.

    Usage:
        worker = ScrapeWorker(queue, orchestrator)
        task = asyncio.create_task(worker.start())
        ...
        await worker.stop()
        task.cancel()
    """

    def __init__(
        self,
        queue: ScrapeQueue,
        orchestrator: ScrapeOrchestrator,
        backoff: RetryConfig | None = None,
        sleep=asyncio.sleep,
    ) -> None:
        self._queue = queue
        self._orchestrator = orchestrator
        self._backoff = backoff or RetryConfig(max_backoff_seconds=300.0)
        self._sleep = sleep
        self._running = False
        self._failures = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Process jobs until stopped or cancelled."""
        self._running = True
        logger.info("Scrape worker started")
        try:
            while self._running:
                job = await self._queue.get()
                await self.process_job(job)
                if self._failures:
                    await self._sleep(self._backoff.calculate_backoff(self._failures - 1))
        except asyncio.CancelledError:
            logger.info("Scrape worker cancelled")
        finally:
            self._running = False

    async def stop(self) -> None:
        logger.info("Stopping scrape worker")
        self._running = False

    async def process_job(self, job: ScrapeJob) -> None:
        """Run a single job, recording its outcome on the job itself."""
        log = logger.bind(job_id=job.id, target=job.target)
        handle = handle_from_target(job.target)
        if not handle:
            job.status = ScrapeJobStatus.FAILED
            job.error = f"Cannot derive a handle from {job.target!r}"
            log.warning("Scrape job rejected", error=job.error)
            return

        job.status = ScrapeJobStatus.RUNNING
        try:
            outcome = await self._orchestrator.run(handle, results_limit=job.depth)
        except _JOB_ERRORS as e:
            self._fail(job, str(e))
            log.error("Scrape job failed", error=job.error, consecutive_failures=self._failures)
            return
        except Exception as e:
            # storage or parsing faults must not stop the worker loop
            self._fail(job, f"{type(e).__name__}: {e}")
            log.exception("Scrape job crashed", consecutive_failures=self._failures)
            return

        job.status = ScrapeJobStatus.DONE
        self._failures = 0
        log.info("Scrape job done", run_id=outcome.run_id, sent=outcome.sent)

    def _fail(self, job: ScrapeJob, error: str) -> None:
        job.status = ScrapeJobStatus.FAILED
        job.error = error
        self._failures += 1
