"""
Outbound HTTP with retries and credential rotation.

Provides:
- APIKeyRotator: Round-robin over comma-separated tokens
- RetryConfig: Exponential backoff with jitter and retryability rules
- HTTPClient: httpx wrapper that retries 429/5xx and transport errors

Used for both the Apify REST API and the remote ingestion endpoint.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
_RETRYABLE_EXCEPTIONS = (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError)


@dataclass
class APIKeyRotator:
    """
    Round-robin token rotation.

    Example:
        rotator = APIKeyRotator.from_env_var("tok1,tok2")
        token = await rotator.get_key()  # tok1, tok2, tok1, ...
    """

    keys: list[str]
    _current_index: int = field(default=0, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @classmethod
    def from_env_var(cls, value: str | None) -> "APIKeyRotator | None":
        """Build a rotator from a comma-separated value; None if no tokens."""
        if not value:
            return None
        keys = [k.strip() for k in value.split(",") if k.strip()]
        return cls(keys=keys) if keys else None

    async def get_key(self) -> str:
        async with self._lock:
            key = self.keys[self._current_index]
            self._current_index = (self._current_index + 1) % len(self.keys)
            return key

    @property
    def key_count(self) -> int:
        return len(self.keys)


@dataclass
class RetryConfig:
    """
    Exponential backoff configuration.

    Formula: min(max_backoff, base_delay * 2^attempt) * (1 + random(0, jitter_factor))
    """

    max_retries: int = 3
    max_backoff_seconds: float = 60.0
    base_delay: float = 1.0
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int) -> float:
        """Backoff for a 0-indexed retry attempt, jitter included."""
        delay = min(self.base_delay * (2**attempt), self.max_backoff_seconds)
        return delay + delay * self.jitter_factor * random.random()

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in _RETRYABLE_STATUS

    def is_retryable_exception(self, exc: Exception) -> bool:
        return isinstance(exc, _RETRYABLE_EXCEPTIONS)


class HTTPClientError(Exception):
    """Request failed with a non-retryable status or after retries ran out."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RateLimitError(HTTPClientError):
    """Still rate limited (429) after all retries."""


class HTTPClient:
    """
    Async HTTP client with retry logic and token rotation.

    A fresh token is taken from the rotator on every attempt, so a retry
    after a 429 goes out under the next token.

    Example:
        async with HTTPClient(RetryConfig(max_retries=3)) as client:
            response = await client.post(
                "https://api.apify.com/v2/acts/apify~instagram-scraper/runs",
                json_body={"username": ["nike"]},
                api_key_rotator=rotator,
                api_key_header="Authorization",
                api_key_prefix="Bearer ",
            )
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: Any = None,
        api_key_rotator: APIKeyRotator | None = None,
        api_key_header: str | None = None,
        api_key_prefix: str = "",
        api_key_param: str | None = None,
    ) -> httpx.Response:
        """
        Send a request, retrying retryable failures with backoff.

        Raises:
            RateLimitError: Still 429 after retries
            HTTPClientError: Non-retryable status, or retries exhausted
        """
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        attempts = self.retry_config.max_retries + 1

        for attempt in range(attempts):
            request_headers = dict(headers or {})
            request_params = dict(params or {})

            if api_key_rotator:
                api_key = await api_key_rotator.get_key()
                if api_key_header:
                    request_headers[api_key_header] = f"{api_key_prefix}{api_key}"
                elif api_key_param:
                    request_params[api_key_param] = api_key

            try:
                response = await self._client.request(
                    method,
                    url,
                    params=request_params or None,
                    headers=request_headers or None,
                    json=json_body,
                )
            except _RETRYABLE_EXCEPTIONS as e:
                if attempt < self.retry_config.max_retries:
                    await self._backoff(attempt, url, type(e).__name__)
                    continue
                raise HTTPClientError(
                    f"{method} {url} failed after {attempt + 1} attempts: {e}"
                ) from e

            if self.retry_config.is_retryable_status(response.status_code):
                if attempt < self.retry_config.max_retries:
                    await self._backoff(attempt, url, f"status {response.status_code}")
                    continue
                error_cls = RateLimitError if response.status_code == 429 else HTTPClientError
                raise error_cls(
                    f"{method} {url} returned {response.status_code} after {attempt + 1} attempts",
                    status_code=response.status_code,
                    response_body=response.text,
                )

            if response.status_code >= 400:
                raise HTTPClientError(
                    f"{method} {url} returned {response.status_code}",
                    status_code=response.status_code,
                    response_body=response.text,
                )

            return response

        # Unreachable: the final attempt either returns or raises
        raise HTTPClientError(f"{method} {url} failed after {attempts} attempts")

    async def _backoff(self, attempt: int, url: str, cause: str) -> None:
        delay = self.retry_config.calculate_backoff(attempt)
        logger.warning(
            "Retryable %s from %s, attempt %d/%d, backing off %.2fs",
            cause,
            url,
            attempt + 1,
            self.retry_config.max_retries + 1,
            delay,
        )
        await self._sleep(delay)
