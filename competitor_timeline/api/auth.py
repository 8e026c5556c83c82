"""
Bearer-token authentication for agent-facing endpoints.
"""

import secrets

from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from competitor_timeline.config.settings import get_settings
from competitor_timeline.ingestion.errors import AuthenticationError, NotConfiguredError

# auto_error=False so a missing header becomes our own 401 body
bearer_scheme = HTTPBearer(auto_error=False)


async def verify_ingest_key(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
) -> str:
    """
    Verify the ``Authorization: Bearer <key>`` header against ``INGEST_API_KEY``.

    Returns:
        The validated credential

    Raises:
        NotConfiguredError: No key configured on the server
        AuthenticationError: Header missing or key mismatch
    """
    settings = get_settings()
    if not settings.ingest_configured:
        raise NotConfiguredError("Server not configured: INGEST_API_KEY not set")

    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing or invalid Authorization header")

    if not secrets.compare_digest(
        credentials.credentials.encode(), settings.ingest_api_key.encode()
    ):
        raise AuthenticationError("Invalid API key")

    return credentials.credentials
