"""
Per-credential throttle for the ingestion endpoint using slowapi.

One accepted request per credential per window, keyed by the Bearer
credential (or client IP when none is presented). The moving-window
strategy only records accepted hits, so retrying early never pushes the
window further out. Storage is process memory; a restart only resets
the windows.
"""

import math
import time

from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from competitor_timeline.config.settings import get_settings
from competitor_timeline.ingestion.errors import ThrottleError

_INGEST_SCOPE = "ingest"


def _get_rate_limit_key(request: Request) -> str:
    """Extract rate limit key: Bearer credential or remote IP."""
    scheme, _, credential = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credential.strip():
        return credential.strip()
    return get_remote_address(request)


def ingest_rate_limit() -> str:
    """Limit string for ``POST /api/ingest``, read from settings per request."""
    return f"1 per {get_settings().ingest_rate_limit_window_seconds} second"


def create_limiter() -> Limiter:
    """Create a configured Limiter instance."""
    return Limiter(
        key_func=_get_rate_limit_key,
        strategy="moving-window",
        storage_uri="memory://",
    )


def check_ingest_limit(limiter: Limiter, request: Request) -> None:
    """
    Count one ingestion request against its credential's window.

    Raises:
        ThrottleError: The credential was accepted less than one window ago
    """
    item = parse(ingest_rate_limit())
    key = _get_rate_limit_key(request)
    if limiter.limiter.hit(item, key, _INGEST_SCOPE):
        return

    stats = limiter.limiter.get_window_stats(item, key, _INGEST_SCOPE)
    window = get_settings().ingest_rate_limit_window_seconds
    raise ThrottleError(
        f"Rate limit exceeded. Max 1 request per {window} seconds.",
        retry_after=math.ceil(max(0.0, stats.reset_time - time.time())),
    )
