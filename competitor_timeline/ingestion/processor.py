"""
Batch processor: wire posts in, upserts out.

Posts are processed one at a time in batch order. A failure on one post
(unparseable fields, storage error) is recorded and processing moves on
to the next post.
"""

from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from competitor_timeline.boards.schemas import SourceKind
from competitor_timeline.ingestion.resolver import Resolution
from competitor_timeline.ingestion.schemas import BatchPost, BatchResult
from competitor_timeline.posts.repository import PostsRepository
from competitor_timeline.posts.schemas import CanonicalPost, make_post_id

logger = structlog.get_logger(__name__)


def _post_label(index: int, raw: Any) -> str:
    if isinstance(raw, Mapping) and raw.get("id") not in (None, ""):
        return str(raw["id"])
    return f"#{index}"


def validation_messages(exc: ValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into ``"field.path: message"`` strings."""
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        messages.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return messages


def describe_error(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(validation_messages(exc))
    return str(exc) or type(exc).__name__


def to_canonical(post: BatchPost, platform: SourceKind, target: Resolution) -> CanonicalPost:
    """Build the canonical post for a parsed wire post."""
    return CanonicalPost(
        id=make_post_id(platform, post.id),
        channel_id=target.channel.id,
        board_id=target.board.id,
        url=post.url,
        content=post.content,
        published_at=post.published_at,
        media_urls=list(post.media_urls),
        media_type=post.media_type,
        likes=post.engagement.likes,
        comments=post.engagement.comments,
        shares=post.engagement.shares,
        hashtags=list(post.hashtags),
        mentions=list(post.mentions),
    )


class BatchProcessor:
    """Applies a batch's posts to storage for a resolved channel."""

    def __init__(self, posts: PostsRepository) -> None:
        self._posts = posts

    async def process(
        self,
        raw_posts: list[Any],
        platform: SourceKind,
        target: Resolution,
    ) -> BatchResult:
        """
        Upsert every post, collecting per-post failures.

        Never raises for a post-level problem; errors come back in
        ``BatchResult.errors`` as ``"{post id}: {reason}"``.
        """
        result = BatchResult()

        for index, raw in enumerate(raw_posts):
            label = _post_label(index, raw)
            try:
                post = BatchPost.model_validate(raw)
                inserted = await self._posts.upsert(to_canonical(post, platform, target))
            except ValidationError as e:
                result.errors.append(f"{label}: {describe_error(e)}")
                continue
            except Exception as e:
                logger.warning("Post upsert failed", post_id=label, error=str(e), exc_info=True)
                result.errors.append(f"{label}: {describe_error(e)}")
                continue

            if inserted:
                result.inserted += 1
            else:
                result.updated += 1

        return result
