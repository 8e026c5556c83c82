"""Posts: canonical post model and the idempotent upsert engine."""

from competitor_timeline.posts.repository import PostsRepository
from competitor_timeline.posts.schemas import CanonicalPost, MediaType, make_post_id

__all__ = [
    "CanonicalPost",
    "MediaType",
    "PostsRepository",
    "make_post_id",
]
