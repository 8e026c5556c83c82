"""Errors raised while driving a scrape job."""


class ScrapeError(Exception):
    """Base class for scrape job errors."""

    reason = "scrape_error"

    def __init__(self, message: str, run_id: str | None = None, attempts: int = 0):
        super().__init__(message)
        self.message = message
        self.run_id = run_id
        self.attempts = attempts


class OrchestratorFailure(ScrapeError):
    """The scraping service reported the run as failed, aborted or timed out."""

    reason = "scrape_failed"

    def __init__(
        self,
        message: str,
        run_id: str | None = None,
        attempts: int = 0,
        status: str | None = None,
    ):
        super().__init__(message, run_id=run_id, attempts=attempts)
        self.status = status


class OrchestratorTimeout(ScrapeError):
    """The run did not finish within the polling budget.

    The remote run is left running; only local polling stops.
    """

    reason = "scrape_timeout"
