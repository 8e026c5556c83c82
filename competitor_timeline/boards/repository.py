"""Database repository for the boards and channels tables."""

import logging
import uuid
from collections.abc import Iterable
from typing import Any

from competitor_timeline.boards.schemas import DEFAULT_CHANNELS, Board, Channel, SourceKind
from competitor_timeline.boards.slug import slug_candidates
from competitor_timeline.storage.database import Database

logger = logging.getLogger(__name__)

# Upper bound on slug suffixes tried before giving up
MAX_SLUG_ATTEMPTS = 1000

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS boards (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    slug        TEXT NOT NULL UNIQUE,
    avatar_url  TEXT,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS channels (
    id           TEXT PRIMARY KEY,
    board_id     TEXT NOT NULL REFERENCES boards(id) ON DELETE CASCADE,
    source_type  TEXT NOT NULL,
    display_name TEXT NOT NULL,
    position     INTEGER NOT NULL DEFAULT 0,
    handle       TEXT,
    is_active    BOOLEAN NOT NULL DEFAULT TRUE,
    UNIQUE (board_id, source_type)
);

CREATE INDEX IF NOT EXISTS idx_channels_source_type
    ON channels(source_type);
CREATE INDEX IF NOT EXISTS idx_channels_handle
    ON channels(source_type, lower(handle)) WHERE handle IS NOT NULL;
"""

_INSERT_BOARD_SQL = """
INSERT INTO boards (id, name, slug, avatar_url)
VALUES ($1, $2, $3, $4)
ON CONFLICT (slug) DO NOTHING
RETURNING *
"""

_UPSERT_CHANNEL_SQL = """
INSERT INTO channels (id, board_id, source_type, display_name, position)
VALUES ($1, $2, $3, $4, $5)
ON CONFLICT (board_id, source_type) DO UPDATE SET
    display_name = EXCLUDED.display_name,
    position = EXCLUDED.position
RETURNING *
"""

# Loose matching, each predicate as strpos(haystack, needle) > 0:
#   board name contains the handle ("Nike Running" matches "nike")
#   board slug contains the handle ("nike-running" matches "nike")
#   source URL contains the board slug ("instagram.com/nike_running" matches "nike")
# strpos() keeps "_" and "%" in handles literal.
_FIND_BOARD_FOR_SOURCE_SQL = """
SELECT b.* FROM boards b
JOIN channels c ON c.board_id = b.id
WHERE c.source_type = $1 AND (
    strpos(lower(b.name), lower($2)) > 0
    OR strpos(b.slug, lower($2)) > 0
    OR strpos(lower($3), b.slug) > 0
)
ORDER BY b.created_at, b.id
LIMIT 1
"""

_FIND_CHANNEL_BY_HANDLE_SQL = """
SELECT c.* FROM channels c
JOIN boards b ON b.id = c.board_id
WHERE c.source_type = $1 AND lower(c.handle) = lower($2)
ORDER BY b.created_at, b.id
LIMIT 1
"""


def _record_to_channel(record) -> Channel:
    """Convert an asyncpg Record to a Channel dataclass."""
    return Channel(
        id=record["id"],
        board_id=record["board_id"],
        source_type=SourceKind(record["source_type"]),
        display_name=record["display_name"],
        position=record["position"],
        handle=record["handle"],
        is_active=record["is_active"],
    )


def _record_to_board(record, channels: list[Channel] | None = None) -> Board:
    """Convert an asyncpg Record to a Board dataclass."""
    return Board(
        id=record["id"],
        name=record["name"],
        slug=record["slug"],
        avatar_url=record["avatar_url"],
        created_at=record["created_at"],
        channels=channels or [],
    )


class BoardsRepository:
    """CRUD operations for boards and their channels."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the boards and channels tables (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Boards tables ensured")

    # ── Boards ──────────────────────────────────────────────────

    async def create_board(
        self,
        name: str,
        avatar_url: str | None = None,
        channels: Iterable[tuple[SourceKind, str]] = DEFAULT_CHANNELS,
    ) -> Board:
        """Create a board with its default channels in one transaction.

        A slug already taken by another board gets a numeric suffix
        (``nike``, ``nike-2``, ...). Each attempt is a single
        ``ON CONFLICT DO NOTHING`` insert, so concurrent creations
        never share a slug.
        """
        board_id = str(uuid.uuid4())

        async with self._db.transaction() as conn:
            row = None
            for attempt, slug in enumerate(slug_candidates(name)):
                if attempt >= MAX_SLUG_ATTEMPTS:
                    raise ValueError(f"Could not allocate a unique slug for {name!r}")
                row = await conn.fetchrow(
                    _INSERT_BOARD_SQL, board_id, name, slug, avatar_url
                )
                if row is not None:
                    break

            created = [
                await self.upsert_channel(board_id, kind, display_name, position, conn=conn)
                for position, (kind, display_name) in enumerate(channels)
            ]

        board = _record_to_board(row, created)
        logger.info("Board created: %s (slug=%s)", board.name, board.slug)
        return board

    async def list_boards(self) -> list[Board]:
        """All boards, newest first, each with its active channels."""
        rows = await self._db.fetch("SELECT * FROM boards ORDER BY created_at DESC")
        if not rows:
            return []

        channel_rows = await self._db.fetch(
            """
            SELECT * FROM channels
            WHERE is_active = TRUE
            ORDER BY board_id, position
            """
        )
        by_board: dict[str, list[Channel]] = {}
        for r in channel_rows:
            by_board.setdefault(r["board_id"], []).append(_record_to_channel(r))

        return [_record_to_board(r, by_board.get(r["id"], [])) for r in rows]

    async def get_board(self, board_id: str) -> Board | None:
        row = await self._db.fetchrow("SELECT * FROM boards WHERE id = $1", board_id)
        if row is None:
            return None
        return _record_to_board(row, await self.get_channels(board_id))

    async def get_board_by_slug(self, slug: str) -> Board | None:
        row = await self._db.fetchrow("SELECT * FROM boards WHERE slug = $1", slug)
        if row is None:
            return None
        return _record_to_board(row, await self.get_channels(row["id"]))

    async def delete_board(self, board_id: str) -> bool:
        """Delete a board; its channels and posts cascade. Returns True if deleted."""
        result = await self._db.execute("DELETE FROM boards WHERE id = $1", board_id)
        return result.endswith(" 1")

    async def count_boards(self) -> int:
        return await self._db.fetchval("SELECT COUNT(*) FROM boards") or 0

    # ── Channels ────────────────────────────────────────────────

    async def upsert_channel(
        self,
        board_id: str,
        source_type: SourceKind,
        display_name: str,
        position: int = 0,
        conn: Any = None,
    ) -> Channel:
        """Create the (board, source_type) channel or overwrite its name/position."""
        executor = conn or self._db
        row = await executor.fetchrow(
            _UPSERT_CHANNEL_SQL,
            str(uuid.uuid4()),
            board_id,
            source_type.value,
            display_name,
            position,
        )
        return _record_to_channel(row)

    async def get_channels(self, board_id: str, active_only: bool = True) -> list[Channel]:
        sql = "SELECT * FROM channels WHERE board_id = $1"
        if active_only:
            sql += " AND is_active = TRUE"
        rows = await self._db.fetch(sql + " ORDER BY position", board_id)
        return [_record_to_channel(r) for r in rows]

    async def get_channel(self, channel_id: str) -> Channel | None:
        row = await self._db.fetchrow("SELECT * FROM channels WHERE id = $1", channel_id)
        return _record_to_channel(row) if row else None

    async def get_channel_for_board(
        self, board_id: str, source_type: SourceKind
    ) -> Channel | None:
        row = await self._db.fetchrow(
            "SELECT * FROM channels WHERE board_id = $1 AND source_type = $2",
            board_id,
            source_type.value,
        )
        return _record_to_channel(row) if row else None

    async def update_channel_handle(
        self, channel_id: str, handle: str | None
    ) -> Channel | None:
        """Set or clear a channel's handle. Returns None if the channel does not exist."""
        row = await self._db.fetchrow(
            "UPDATE channels SET handle = $2 WHERE id = $1 RETURNING *",
            channel_id,
            handle,
        )
        return _record_to_channel(row) if row else None

    async def set_channel_active(self, channel_id: str, is_active: bool) -> bool:
        result = await self._db.execute(
            "UPDATE channels SET is_active = $2 WHERE id = $1",
            channel_id,
            is_active,
        )
        return result.endswith(" 1")

    async def list_handle_channels(
        self, source_type: SourceKind
    ) -> list[tuple[Board, Channel]]:
        """Active channels of a platform that have a handle configured, with their board."""
        rows = await self._db.fetch(
            """
            SELECT c.*, b.name AS board_name, b.slug AS board_slug,
                   b.avatar_url AS board_avatar_url, b.created_at AS board_created_at
            FROM channels c
            JOIN boards b ON b.id = c.board_id
            WHERE c.source_type = $1 AND c.is_active = TRUE
              AND c.handle IS NOT NULL AND c.handle <> ''
            ORDER BY b.created_at, c.position
            """,
            source_type.value,
        )
        pairs = []
        for r in rows:
            board = Board(
                id=r["board_id"],
                name=r["board_name"],
                slug=r["board_slug"],
                avatar_url=r["board_avatar_url"],
                created_at=r["board_created_at"],
            )
            pairs.append((board, _record_to_channel(r)))
        return pairs

    # ── Source matching ─────────────────────────────────────────

    async def find_board_for_source(
        self, source_type: SourceKind, handle: str, url: str
    ) -> Board | None:
        """First board (creation order) with a ``source_type`` channel that loosely matches."""
        row = await self._db.fetchrow(
            _FIND_BOARD_FOR_SOURCE_SQL, source_type.value, handle, url
        )
        return _record_to_board(row) if row else None

    async def find_channel_by_handle(
        self, source_type: SourceKind, handle: str
    ) -> Channel | None:
        """Channel whose configured handle equals ``handle`` (case-insensitive)."""
        row = await self._db.fetchrow(_FIND_CHANNEL_BY_HANDLE_SQL, source_type.value, handle)
        return _record_to_channel(row) if row else None
