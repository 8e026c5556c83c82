"""
Error taxonomy for the ingestion path.

Every error carries a stable machine-readable ``reason`` alongside its
human message. The API renders fatal ones as
``{"detail": message, "error_type": reason}``.
"""


class IngestError(Exception):
    """Base class for ingestion errors."""

    reason = "ingest_error"
    status_code = 500

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason


class NotConfiguredError(IngestError):
    """No ingestion credential is configured on the server."""

    reason = "not_configured"
    status_code = 500


class AuthenticationError(IngestError):
    """Bearer credential missing or not matching the configured key."""

    reason = "unauthenticated"
    status_code = 401


class ThrottleError(IngestError):
    """Credential was accepted less than one window ago."""

    reason = "rate_limited"
    status_code = 429

    def __init__(self, message: str, retry_after: float):
        super().__init__(message)
        self.retry_after = retry_after


class BatchValidationError(IngestError):
    """Batch failed structural validation; ``errors`` lists every violation."""

    reason = "invalid_batch"
    status_code = 400

    def __init__(self, errors: list[str], message: str = "Invalid batch payload"):
        super().__init__(message)
        self.errors = list(errors)


class ResolutionError(IngestError):
    """No board or channel matches the batch source.

    Recovered into the batch result rather than failing the request.
    """

    reason = "unresolved_source"
    status_code = 200
