"""
Prometheus metrics for monitoring the ingestion pipeline.

Defines and exposes metrics for:
- Ingestion batches and per-post upsert outcomes
- Ingestion latency
- Scrape runs, poll counts and durations
- Rejected requests (auth, throttle, validation)

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    start_http_server,
)

from competitor_timeline.boards.schemas import SourceKind
from competitor_timeline.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

# Scrape runs take minutes, not milliseconds
SCRAPE_BUCKETS = (5.0, 15.0, 30.0, 60.0, 120.0, 180.0, 300.0, 600.0)


def _platform_label(platform: SourceKind | str) -> str:
    return platform.value if isinstance(platform, SourceKind) else str(platform)


class MetricsCollector:
    """
    Prometheus metrics collector for the competitor-timeline pipeline.

    Usage:
        metrics = MetricsCollector()
        metrics.start_server()

        metrics.record_batch("instagram", "accepted")
        metrics.record_posts("instagram", inserted=3, updated=1, errors=0)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.batches_received = Counter(
            "competitor_timeline_batches_received_total",
            "Total ingestion batches received",
            ["platform", "outcome"],  # accepted, unresolved, invalid
        )

        self.posts_upserted = Counter(
            "competitor_timeline_posts_upserted_total",
            "Total posts written by the upsert engine",
            ["platform", "result"],  # inserted, updated, error
        )

        self.requests_rejected = Counter(
            "competitor_timeline_requests_rejected_total",
            "Ingestion requests rejected before processing",
            ["reason"],
        )

        self.ingest_latency = Histogram(
            "competitor_timeline_ingest_latency_seconds",
            "Time to process one ingestion batch",
            ["platform"],
            buckets=LATENCY_BUCKETS,
        )

        self.scrape_runs = Counter(
            "competitor_timeline_scrape_runs_total",
            "Scrape job runs by terminal state",
            ["state"],  # succeeded, failed, timed_out, empty
        )

        self.scrape_polls = Histogram(
            "competitor_timeline_scrape_polls",
            "Number of status polls per scrape job",
            buckets=(1, 2, 5, 10, 20, 30, 45, 60),
        )

        self.scrape_duration = Histogram(
            "competitor_timeline_scrape_duration_seconds",
            "Wall-clock duration of scrape jobs",
            buckets=SCRAPE_BUCKETS,
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_batch(
        self,
        platform: SourceKind | str,
        outcome: str,
        latency: float | None = None,
    ) -> None:
        """Record one ingestion batch and, optionally, its processing latency."""
        label = _platform_label(platform)
        self.batches_received.labels(platform=label, outcome=outcome).inc()

        if latency is not None:
            self.ingest_latency.labels(platform=label).observe(latency)

    def record_posts(
        self,
        platform: SourceKind | str,
        inserted: int = 0,
        updated: int = 0,
        errors: int = 0,
    ) -> None:
        """Record per-post upsert outcomes of one batch."""
        label = _platform_label(platform)
        if inserted:
            self.posts_upserted.labels(platform=label, result="inserted").inc(inserted)
        if updated:
            self.posts_upserted.labels(platform=label, result="updated").inc(updated)
        if errors:
            self.posts_upserted.labels(platform=label, result="error").inc(errors)

    def record_rejection(self, reason: str) -> None:
        """Record a request rejected by auth, throttling or validation."""
        self.requests_rejected.labels(reason=reason).inc()

    def record_scrape(
        self,
        state: str,
        polls: int | None = None,
        duration: float | None = None,
    ) -> None:
        """Record a finished scrape job."""
        self.scrape_runs.labels(state=state).inc()
        if polls is not None:
            self.scrape_polls.observe(polls)
        if duration is not None:
            self.scrape_duration.observe(duration)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
