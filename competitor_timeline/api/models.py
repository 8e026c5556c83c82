"""
Request and response models for the dashboard and agent APIs.

Field names are camelCase on the wire.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from competitor_timeline.boards.schemas import Board, Channel, SourceKind
from competitor_timeline.ingestion.schemas import WireModel
from competitor_timeline.posts.schemas import CanonicalPost, MediaType
from competitor_timeline.scraping.queue import ScrapeJob


class ErrorResponse(BaseModel):
    """Error body shared by all endpoints."""

    detail: str
    error_type: str | None = None
    errors: list[str] | None = None


class ComponentHealth(WireModel):
    status: str
    latency_ms: float | None = None
    details: dict[str, Any] | None = None


class HealthResponse(WireModel):
    status: str = Field(..., description="healthy or degraded")
    version: str
    components: dict[str, ComponentHealth]


class IngestHealthResponse(WireModel):
    status: str = "ok"
    service: str
    version: str


# ── Boards ──────────────────────────────────────────────────────


class ChannelItem(WireModel):
    id: str
    board_id: str
    source_type: SourceKind
    display_name: str
    position: int
    handle: str | None = None
    is_active: bool = True

    @classmethod
    def from_channel(cls, channel: Channel) -> "ChannelItem":
        return cls(
            id=channel.id,
            board_id=channel.board_id,
            source_type=channel.source_type,
            display_name=channel.display_name,
            position=channel.position,
            handle=channel.handle,
            is_active=channel.is_active,
        )


class BoardItem(WireModel):
    id: str
    name: str
    slug: str
    avatar_url: str | None = None
    created_at: datetime | None = None
    channels: list[ChannelItem] = Field(default_factory=list)

    @classmethod
    def from_board(cls, board: Board) -> "BoardItem":
        return cls(
            id=board.id,
            name=board.name,
            slug=board.slug,
            avatar_url=board.avatar_url,
            created_at=board.created_at,
            channels=[ChannelItem.from_channel(c) for c in board.channels],
        )


class CreateBoardRequest(WireModel):
    name: str = Field(..., min_length=1, max_length=200)
    avatar_url: str | None = None


class DeleteResponse(WireModel):
    success: bool = True


class UpdateChannelRequest(WireModel):
    """Set or clear the handle and/or toggle the channel."""

    handle: str | None = Field(
        default=None,
        max_length=200,
        description="Trimmed; blank or null clears the handle",
    )
    is_active: bool | None = None


class ChannelUpdateResponse(WireModel):
    success: bool = True
    channel: ChannelItem


class StatsResponse(WireModel):
    total_boards: int
    total_posts: int
    posts_today: int


# ── Posts ───────────────────────────────────────────────────────


class PostItem(WireModel):
    id: str
    channel_id: str
    board_id: str
    url: str
    content: str
    media_urls: list[str]
    media_type: MediaType | None = None
    published_at: datetime
    likes: int
    comments: int
    shares: int
    hashtags: list[str]
    mentions: list[str]
    imported_at: datetime | None = None

    @classmethod
    def from_post(cls, post: CanonicalPost) -> "PostItem":
        return cls(
            id=post.id,
            channel_id=post.channel_id,
            board_id=post.board_id,
            url=post.url,
            content=post.content,
            media_urls=post.media_urls,
            media_type=post.media_type,
            published_at=post.published_at,
            likes=post.likes,
            comments=post.comments,
            shares=post.shares,
            hashtags=post.hashtags,
            mentions=post.mentions,
            imported_at=post.imported_at,
        )


# ── Force queue ─────────────────────────────────────────────────


class ForceScrapeRequest(WireModel):
    target: str = Field(..., min_length=1, description="Handle or profile URL")
    depth: int | None = Field(default=None, ge=1, description="Posts to fetch")


class ScrapeJobItem(WireModel):
    id: str
    target: str
    depth: int
    requested_at: datetime
    status: str
    error: str | None = None

    @classmethod
    def from_job(cls, job: ScrapeJob) -> "ScrapeJobItem":
        return cls(
            id=job.id,
            target=job.target,
            depth=job.depth,
            requested_at=job.requested_at,
            status=job.status.value,
            error=job.error,
        )


class ForceScrapeResponse(WireModel):
    success: bool = True
    message: str = "Scrape request queued"
    job: ScrapeJobItem
    queue_position: int


class QueueStatusResponse(WireModel):
    queue_length: int
    recent_jobs: list[ScrapeJobItem]
