"""Canonical post model persisted by the upsert engine."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from competitor_timeline.boards.schemas import SourceKind


class MediaType(str, Enum):
    """Kind of media attached to a post."""

    IMAGE = "image"
    VIDEO = "video"
    CAROUSEL = "carousel"


def make_post_id(source_type: SourceKind | str, external_id: str) -> str:
    """Build the deterministic post identifier ``{sourceKind}_{externalPostId}``."""
    kind = source_type.value if isinstance(source_type, SourceKind) else source_type
    return f"{kind}_{external_id}"


@dataclass
class CanonicalPost:
    """
    A normalized, deduplicated post.

    ``id`` is derived from the platform and the external post id, so
    re-ingesting the same external post always targets the same row.
    Every other field is replaced by a later upsert with the same id.
    """

    id: str
    channel_id: str
    board_id: str
    url: str
    content: str
    published_at: datetime
    media_urls: list[str] = field(default_factory=list)
    media_type: MediaType | None = None
    likes: int = 0
    comments: int = 0
    shares: int = 0
    hashtags: list[str] = field(default_factory=list)
    mentions: list[str] = field(default_factory=list)
    imported_at: datetime | None = None

    def __post_init__(self) -> None:
        for name in ("likes", "comments", "shares"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
