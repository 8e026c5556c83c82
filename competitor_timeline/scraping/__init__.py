"""Scraping: Apify job orchestration, normalization and delivery."""

from competitor_timeline.scraping.apify_client import (
    ApifyClient,
    ApifyClientError,
    ApifyRun,
    estimate_cost,
)
from competitor_timeline.scraping.config import ScrapeConfig
from competitor_timeline.scraping.errors import (
    OrchestratorFailure,
    OrchestratorTimeout,
    ScrapeError,
)
from competitor_timeline.scraping.orchestrator import (
    ScrapeJobState,
    ScrapeOrchestrator,
    ScrapeOutcome,
)
from competitor_timeline.scraping.queue import ScrapeJob, ScrapeJobStatus, ScrapeQueue
from competitor_timeline.scraping.sink import HttpIngestSink, IngestSink, LocalIngestSink
from competitor_timeline.scraping.worker import ScrapeWorker

__all__ = [
    "ApifyClient",
    "ApifyClientError",
    "ApifyRun",
    "HttpIngestSink",
    "IngestSink",
    "LocalIngestSink",
    "OrchestratorFailure",
    "OrchestratorTimeout",
    "ScrapeConfig",
    "ScrapeError",
    "ScrapeJob",
    "ScrapeJobState",
    "ScrapeJobStatus",
    "ScrapeOrchestrator",
    "ScrapeOutcome",
    "ScrapeQueue",
    "ScrapeWorker",
    "estimate_cost",
]
