"""Configuration for scrape jobs."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScrapeConfig(BaseSettings):
    """Actor input defaults and polling policy for Apify scrape runs."""

    model_config = SettingsConfigDict(
        env_prefix="SCRAPE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Actor input
    results_limit: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum posts requested per profile",
    )
    results_type: str = Field(
        default="posts",
        description="Actor result type (posts, details, comments)",
    )
    max_request_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries the actor performs per page request",
    )
    proxy_groups: str = Field(
        default="RESIDENTIAL",
        description="Comma-separated Apify proxy groups",
    )
    proxy_country: str = Field(default="BR", description="Apify proxy country code")
    scroll_timeout: int = Field(default=60, ge=1, description="Actor scroll timeout (seconds)")

    # Polling
    poll_interval_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="Fixed wait between status polls",
    )
    max_poll_attempts: int = Field(
        default=60,
        ge=1,
        description="Polls before the run is declared timed out",
    )

    # Batch runs
    delay_between_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="Pause between profiles in scrape-all",
    )

    @property
    def proxy_group_list(self) -> list[str]:
        return [g.strip() for g in self.proxy_groups.split(",") if g.strip()]
