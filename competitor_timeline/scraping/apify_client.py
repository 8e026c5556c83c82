"""
Apify REST API client for the Instagram scraper actor.

Only the handful of endpoints the orchestrator needs: start a run, read
a run, list a dataset's items and list recent runs. Tokens are rotated
per request when several are configured.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any

from competitor_timeline.config.settings import get_settings
from competitor_timeline.scraping.config import ScrapeConfig
from competitor_timeline.scraping.http_client import (
    APIKeyRotator,
    HTTPClient,
    HTTPClientError,
    RetryConfig,
)

logger = logging.getLogger(__name__)

# Approximate actor price per 1000 posts
COST_PER_THOUSAND_USD = 0.30


class ApifyClientError(Exception):
    """Apify is not configured or answered with something unusable."""


@dataclass
class ApifyRun:
    """The subset of an Apify actor run the orchestrator reads."""

    id: str
    status: str
    default_dataset_id: str | None = None
    status_message: str | None = None
    started_at: str | None = None
    finished_at: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ApifyRun":
        if not data.get("id"):
            raise ApifyClientError(f"Apify run payload has no id: {data}")
        return cls(
            id=data["id"],
            status=data.get("status", "READY"),
            default_dataset_id=data.get("defaultDatasetId"),
            status_message=data.get("statusMessage"),
            started_at=data.get("startedAt"),
            finished_at=data.get("finishedAt"),
        )


def estimate_cost(posts_count: int) -> dict[str, float | int]:
    """Rough USD cost of scraping ``posts_count`` posts, billed per started thousand."""
    compute_units = math.ceil(posts_count / 1000)
    return {
        "usd": round(compute_units * COST_PER_THOUSAND_USD, 2),
        "compute_units": compute_units,
    }


def _unwrap(payload: Any) -> dict[str, Any]:
    # Apify wraps single objects in {"data": {...}}
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        return payload["data"]
    raise ApifyClientError(f"Unexpected Apify response: {payload!r:.200}")


class ApifyClient:
    """
    Async client for the Apify v2 API.

    Usage:
        async with ApifyClient() as apify:
            run = await apify.start_run(apify.build_input("nike"))
            run = await apify.get_run(run.id)
            items = await apify.list_dataset_items(run.default_dataset_id)
    """

    def __init__(
        self,
        token: str | None = None,
        actor_id: str | None = None,
        base_url: str | None = None,
        config: ScrapeConfig | None = None,
        http_client: HTTPClient | None = None,
    ):
        settings = get_settings()
        self._rotator = APIKeyRotator.from_env_var(token or settings.apify_token)
        if self._rotator is None:
            raise ApifyClientError("APIFY_TOKEN is not configured")

        self.actor_id = actor_id or settings.apify_actor_id
        self._base_url = (base_url or settings.apify_base_url).rstrip("/")
        self._config = config or ScrapeConfig()
        self._http = http_client or HTTPClient(
            RetryConfig(
                max_retries=settings.max_http_retries,
                max_backoff_seconds=settings.max_backoff_seconds,
            ),
            timeout=settings.http_timeout_seconds,
        )

    async def __aenter__(self) -> "ApifyClient":
        await self._http.__aenter__()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self._http.__aexit__(exc_type, exc_val, exc_tb)

    @property
    def _actor_path(self) -> str:
        # "apify/instagram-scraper" -> "apify~instagram-scraper"
        return self.actor_id.replace("/", "~")

    def build_input(
        self,
        username: str,
        results_limit: int | None = None,
        results_type: str | None = None,
    ) -> dict[str, Any]:
        """Actor input for one profile with the configured proxy and retry bounds."""
        return {
            "username": [username],
            "resultsLimit": results_limit or self._config.results_limit,
            "resultsType": results_type or self._config.results_type,
            "maxRequestRetries": self._config.max_request_retries,
            "proxy": {
                "useApifyProxy": True,
                "apifyProxyGroups": self._config.proxy_group_list,
                "apifyProxyCountry": self._config.proxy_country,
            },
            "scrollTimeout": self._config.scroll_timeout,
            "addParentData": False,
        }

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(
                method,
                f"{self._base_url}{path}",
                api_key_rotator=self._rotator,
                api_key_header="Authorization",
                api_key_prefix="Bearer ",
                **kwargs,
            )
        except HTTPClientError as e:
            logger.error("Apify %s %s failed: %s", method, path, e)
            raise
        return response.json()

    async def start_run(self, run_input: dict[str, Any]) -> ApifyRun:
        """Start an actor run without waiting for it to finish."""
        data = _unwrap(
            await self._call("POST", f"/acts/{self._actor_path}/runs", json_body=run_input)
        )
        run = ApifyRun.from_api(data)
        logger.info("Apify run started: %s (%s)", run.id, run.status)
        return run

    async def get_run(self, run_id: str) -> ApifyRun:
        return ApifyRun.from_api(_unwrap(await self._call("GET", f"/actor-runs/{run_id}")))

    async def list_dataset_items(self, dataset_id: str) -> list[dict[str, Any]]:
        """Every item in a dataset, as raw records."""
        payload = await self._call(
            "GET",
            f"/datasets/{dataset_id}/items",
            params={"format": "json", "clean": "true"},
        )
        if not isinstance(payload, list):
            raise ApifyClientError(f"Dataset {dataset_id} did not return a list")
        return [item for item in payload if isinstance(item, dict)]

    async def list_recent_runs(self, limit: int = 10) -> list[ApifyRun]:
        """Most recent runs of the configured actor, newest first."""
        data = _unwrap(
            await self._call(
                "GET",
                f"/acts/{self._actor_path}/runs",
                params={"limit": limit, "desc": 1},
            )
        )
        return [ApifyRun.from_api(item) for item in data.get("items", [])]
