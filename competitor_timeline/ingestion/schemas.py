"""
Wire-level schemas for ingestion batches.

Field names on the wire are camelCase (``batchId``, ``publishedAt``);
Python code uses snake_case. Both spellings are accepted on input.
"""

import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from competitor_timeline.boards.schemas import SourceKind
from competitor_timeline.posts.schemas import MediaType


def new_batch_id() -> str:
    """Generate a batch id of the form ``batch_{epoch_ms}_{random}``."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"batch_{int(time.time() * 1000)}_{suffix}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    """Base for camelCase wire models."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BatchSource(WireModel):
    """Where a batch was scraped from."""

    platform: SourceKind
    handle: str
    url: str

    @field_validator("platform", mode="before")
    @classmethod
    def _parse_platform(cls, v: Any) -> SourceKind:
        return SourceKind.parse(v)


class Engagement(WireModel):
    """Engagement counters; absent or null counters read as zero."""

    likes: int = Field(default=0, ge=0)
    comments: int = Field(default=0, ge=0)
    shares: int = Field(default=0, ge=0)

    @field_validator("likes", "comments", "shares", mode="before")
    @classmethod
    def _none_is_zero(cls, v: Any) -> Any:
        return 0 if v is None else v


class BatchPost(WireModel):
    """One post as carried in a batch."""

    id: str = Field(..., min_length=1, description="External post id on the platform")
    url: str = Field(..., min_length=1)
    content: str
    published_at: datetime
    media_type: MediaType | None = None
    media_urls: list[str] = Field(default_factory=list)
    engagement: Engagement
    hashtags: list[str] = Field(default_factory=list)
    mentions: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _numeric_id(cls, v: Any) -> Any:
        # some agents send numeric platform ids
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("media_urls", "hashtags", "mentions", mode="before")
    @classmethod
    def _none_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class IngestionBatch(WireModel):
    """
    A batch of posts from one source.

    ``posts`` stays as raw mappings: each one is parsed individually by
    the batch processor so a single malformed post cannot sink the batch.
    """

    batch_id: str = Field(..., min_length=1)
    scraped_at: datetime
    source: BatchSource
    posts: list[Any]

    @classmethod
    def build(
        cls,
        source: BatchSource,
        posts: list[dict[str, Any]],
        scraped_at: datetime | None = None,
    ) -> "IngestionBatch":
        """Create a batch with a fresh batch id."""
        return cls(
            batch_id=new_batch_id(),
            scraped_at=scraped_at or _utc_now(),
            source=source,
            posts=posts,
        )

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe camelCase payload."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass
class BatchResult:
    """Outcome of processing one batch."""

    inserted: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.inserted + self.updated


class ProcessedSummary(WireModel):
    platform: SourceKind
    handle: str
    posts_received: int
    posts_inserted: int
    posts_updated: int


class IngestResponse(WireModel):
    """Body returned by a successful ingest call."""

    success: bool = True
    batch_id: str
    processed: ProcessedSummary
    errors: list[str] | None = None
