"""
Scrape job orchestrator.

Drives one Apify actor run through an explicit state machine:

    SUBMITTED -> POLLING -> SUCCEEDED | FAILED | TIMED_OUT

The run is polled at a fixed interval for a bounded number of attempts.
On success the dataset is normalized into a single batch, validated and
handed to a sink. A timed-out run is left running on Apify; only local
polling stops.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from competitor_timeline.ingestion.errors import BatchValidationError
from competitor_timeline.ingestion.schemas import IngestionBatch
from competitor_timeline.ingestion.validator import validate_batch
from competitor_timeline.observability.metrics import MetricsCollector, get_metrics
from competitor_timeline.scraping.apify_client import ApifyClient, ApifyRun
from competitor_timeline.scraping.config import ScrapeConfig
from competitor_timeline.scraping.errors import OrchestratorFailure, OrchestratorTimeout
from competitor_timeline.scraping.normalizer import (
    NormalizationStats,
    instagram_source,
    normalize_records,
)
from competitor_timeline.scraping.sink import IngestSink

logger = structlog.get_logger(__name__)


class ScrapeJobState(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


_FAILED_STATUSES = frozenset({"FAILED", "ABORTED", "TIMED-OUT"})


def state_for_status(status: str) -> ScrapeJobState:
    """Map an Apify run status onto the job state machine."""
    if status == "SUCCEEDED":
        return ScrapeJobState.SUCCEEDED
    if status in _FAILED_STATUSES:
        return ScrapeJobState.FAILED
    return ScrapeJobState.POLLING


@dataclass
class ScrapeOutcome:
    """What a finished scrape produced."""

    handle: str
    run_id: str
    state: ScrapeJobState
    attempts: int
    stats: NormalizationStats | None = None
    batch: IngestionBatch | None = None
    ingest_result: dict[str, Any] | None = None

    @property
    def sent(self) -> bool:
        return self.ingest_result is not None


class ScrapeOrchestrator:
    """
    Runs scrape jobs for single profiles.

    Usage:
        async with ApifyClient() as apify:
            orchestrator = ScrapeOrchestrator(apify, sink=LocalIngestSink(service))
            outcome = await orchestrator.run("nike")
    """

    def __init__(
        self,
        apify: ApifyClient,
        sink: IngestSink | None = None,
        config: ScrapeConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._apify = apify
        self._sink = sink
        self._config = config or ScrapeConfig()
        self._sleep = sleep
        self._metrics = metrics or get_metrics()

    async def run(
        self,
        handle: str,
        results_limit: int | None = None,
        results_type: str | None = None,
        dry_run: bool = False,
    ) -> ScrapeOutcome:
        """
        Scrape one profile end to end.

        Args:
            handle: Instagram username, with or without ``@``
            results_limit: Posts to request (defaults to config)
            results_type: Actor result type (defaults to config)
            dry_run: Build and validate the batch but do not send it

        Raises:
            OrchestratorFailure: Apify reported the run as failed
            OrchestratorTimeout: Run still unfinished after the last poll
        """
        handle = handle.strip().lstrip("@")
        log = logger.bind(handle=handle)
        started = time.monotonic()

        run = await self._apify.start_run(
            self._apify.build_input(handle, results_limit, results_type)
        )
        log = log.bind(run_id=run.id)
        log.info("Scrape submitted", state=ScrapeJobState.SUBMITTED.value)

        try:
            run, attempts = await self.wait_for_run(run.id)
        except (OrchestratorFailure, OrchestratorTimeout) as e:
            state = "failed" if isinstance(e, OrchestratorFailure) else "timed_out"
            self._metrics.record_scrape(
                state, polls=e.attempts, duration=time.monotonic() - started
            )
            log.error("Scrape did not succeed", state=state, attempts=e.attempts, error=e.message)
            raise
        except asyncio.CancelledError:
            log.info("Scrape polling cancelled")
            raise

        items = await self._apify.list_dataset_items(run.default_dataset_id or "")
        outcome = ScrapeOutcome(
            handle=handle,
            run_id=run.id,
            state=ScrapeJobState.SUCCEEDED,
            attempts=attempts,
        )

        if not items:
            log.warning("Scrape returned no records")
            self._metrics.record_scrape("empty", polls=attempts, duration=time.monotonic() - started)
            return outcome

        normalized = normalize_records(items)
        outcome.stats = normalized.stats
        log.info(
            "Records normalized",
            total=normalized.stats.total,
            valid=normalized.stats.valid,
            invalid=normalized.stats.invalid,
        )
        if not normalized.posts:
            log.warning("No valid records after normalization")
            self._metrics.record_scrape("empty", polls=attempts, duration=time.monotonic() - started)
            return outcome

        batch = IngestionBatch.build(instagram_source(handle), normalized.posts)
        valid, errors = validate_batch(batch.to_wire())
        if not valid:
            raise BatchValidationError(errors)
        outcome.batch = batch

        if dry_run or self._sink is None:
            log.info("Batch built, not sent", batch_id=batch.batch_id, posts=len(batch.posts))
        else:
            outcome.ingest_result = await self._sink.send(batch)
            log.info("Batch sent", batch_id=batch.batch_id, posts=len(batch.posts))

        self._metrics.record_scrape(
            "succeeded", polls=attempts, duration=time.monotonic() - started
        )
        return outcome

    async def wait_for_run(self, run_id: str) -> tuple[ApifyRun, int]:
        """
        Poll a run until it reaches a terminal status.

        Sleeps ``poll_interval_seconds`` between polls, never after the
        last one.

        Returns:
            The finished run and the number of polls made
        """
        max_attempts = self._config.max_poll_attempts
        interval = self._config.poll_interval_seconds

        for attempt in range(1, max_attempts + 1):
            run = await self._apify.get_run(run_id)
            state = state_for_status(run.status)
            logger.debug(
                "Scrape run polled",
                run_id=run_id,
                status=run.status,
                attempt=attempt,
                max_attempts=max_attempts,
            )

            if state is ScrapeJobState.SUCCEEDED:
                return run, attempt
            if state is ScrapeJobState.FAILED:
                raise OrchestratorFailure(
                    f"Apify run {run_id} ended with {run.status}: "
                    f"{run.status_message or 'no status message'}",
                    run_id=run_id,
                    attempts=attempt,
                    status=run.status,
                )

            if attempt < max_attempts:
                await self._sleep(interval)

        raise OrchestratorTimeout(
            f"Apify run {run_id} still running after {max_attempts} polls",
            run_id=run_id,
            attempts=max_attempts,
        )
