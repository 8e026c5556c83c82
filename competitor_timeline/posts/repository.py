"""
Post repository: the idempotent upsert engine.

Every write goes through a single ``INSERT ... ON CONFLICT (id) DO UPDATE``
statement. Post ids are deterministic (``{platform}_{externalId}``), so
re-ingesting a batch refreshes rows in place instead of duplicating them.
"""

import logging
from datetime import datetime

import asyncpg

from competitor_timeline.posts.schemas import CanonicalPost, MediaType
from competitor_timeline.storage.database import Database

logger = logging.getLogger(__name__)

# Upper bound for list queries
MAX_LIST_LIMIT = 500

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS posts (
    id            TEXT PRIMARY KEY,
    channel_id    TEXT NOT NULL REFERENCES channels(id) ON DELETE CASCADE,
    board_id      TEXT NOT NULL REFERENCES boards(id) ON DELETE CASCADE,
    url           TEXT NOT NULL,
    content       TEXT NOT NULL DEFAULT '',
    media_urls    TEXT[] NOT NULL DEFAULT '{}',
    media_type    TEXT,
    published_at  TIMESTAMPTZ NOT NULL,
    likes         INTEGER NOT NULL DEFAULT 0 CHECK (likes >= 0),
    comments      INTEGER NOT NULL DEFAULT 0 CHECK (comments >= 0),
    shares        INTEGER NOT NULL DEFAULT 0 CHECK (shares >= 0),
    hashtags      TEXT[] NOT NULL DEFAULT '{}',
    mentions      TEXT[] NOT NULL DEFAULT '{}',
    imported_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_posts_channel_published
    ON posts(channel_id, published_at DESC);
CREATE INDEX IF NOT EXISTS idx_posts_board_published
    ON posts(board_id, published_at DESC);
CREATE INDEX IF NOT EXISTS idx_posts_imported_at
    ON posts(imported_at DESC);
"""

_UPSERT_SQL = """
INSERT INTO posts (
    id, channel_id, board_id, url, content,
    media_urls, media_type, published_at,
    likes, comments, shares, hashtags, mentions, imported_at
) VALUES (
    $1, $2, $3, $4, $5,
    $6, $7, $8,
    $9, $10, $11, $12, $13, NOW()
)
ON CONFLICT (id) DO UPDATE SET
    channel_id = EXCLUDED.channel_id,
    board_id = EXCLUDED.board_id,
    url = EXCLUDED.url,
    content = EXCLUDED.content,
    media_urls = EXCLUDED.media_urls,
    media_type = EXCLUDED.media_type,
    published_at = EXCLUDED.published_at,
    likes = EXCLUDED.likes,
    comments = EXCLUDED.comments,
    shares = EXCLUDED.shares,
    hashtags = EXCLUDED.hashtags,
    mentions = EXCLUDED.mentions,
    imported_at = NOW()
RETURNING (xmax = 0) AS inserted
"""


def _record_to_post(record: asyncpg.Record) -> CanonicalPost:
    """Convert an asyncpg Record to a CanonicalPost dataclass."""
    media_type = record["media_type"]
    return CanonicalPost(
        id=record["id"],
        channel_id=record["channel_id"],
        board_id=record["board_id"],
        url=record["url"],
        content=record["content"],
        media_urls=list(record["media_urls"] or []),
        media_type=MediaType(media_type) if media_type else None,
        published_at=record["published_at"],
        likes=record["likes"],
        comments=record["comments"],
        shares=record["shares"],
        hashtags=list(record["hashtags"] or []),
        mentions=list(record["mentions"] or []),
        imported_at=record["imported_at"],
    )


class PostsRepository:
    """
    Storage for canonical posts.

    Tables:
        - posts: one row per (platform, external post id); cascades
          from both its channel and its board
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the posts table (idempotent). Requires boards/channels."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Posts table ensured")

    async def upsert(self, post: CanonicalPost) -> bool:
        """
        Insert a post or overwrite every mutable field of the existing row.

        ``imported_at`` is refreshed on both paths.

        Returns:
            True if a new row was inserted, False if an existing row was updated
        """
        result = await self._db.fetchval(
            _UPSERT_SQL,
            post.id,
            post.channel_id,
            post.board_id,
            post.url,
            post.content,
            post.media_urls,
            post.media_type.value if post.media_type else None,
            post.published_at,
            post.likes,
            post.comments,
            post.shares,
            post.hashtags,
            post.mentions,
        )
        return bool(result)

    async def get_by_id(self, post_id: str) -> CanonicalPost | None:
        row = await self._db.fetchrow("SELECT * FROM posts WHERE id = $1", post_id)
        return _record_to_post(row) if row else None

    async def list_by_channel(
        self, channel_id: str, limit: int = 50
    ) -> list[CanonicalPost]:
        """Posts of one channel, newest publication first."""
        rows = await self._db.fetch(
            """
            SELECT * FROM posts
            WHERE channel_id = $1
            ORDER BY published_at DESC
            LIMIT $2
            """,
            channel_id,
            min(limit, MAX_LIST_LIMIT),
        )
        return [_record_to_post(r) for r in rows]

    async def list_by_board(
        self, board_id: str, limit: int = 50
    ) -> list[CanonicalPost]:
        """Posts across all channels of a board, newest publication first."""
        rows = await self._db.fetch(
            """
            SELECT * FROM posts
            WHERE board_id = $1
            ORDER BY published_at DESC
            LIMIT $2
            """,
            board_id,
            min(limit, MAX_LIST_LIMIT),
        )
        return [_record_to_post(r) for r in rows]

    async def count(self) -> int:
        return await self._db.fetchval("SELECT COUNT(*) FROM posts") or 0

    async def count_imported_since(self, since: datetime) -> int:
        """Number of posts whose last import happened at or after ``since``."""
        result = await self._db.fetchval(
            "SELECT COUNT(*) FROM posts WHERE imported_at >= $1",
            since,
        )
        return result or 0
