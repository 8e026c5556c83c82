"""Board management and dashboard statistics."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from competitor_timeline.boards.repository import BoardsRepository
from competitor_timeline.boards.schemas import Board, Channel
from competitor_timeline.posts.repository import PostsRepository
from competitor_timeline.storage.database import Database

logger = logging.getLogger(__name__)


@dataclass
class BoardStats:
    total_boards: int
    total_posts: int
    posts_today: int


def _start_of_day(now: datetime | None = None) -> datetime:
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class BoardsService:
    """Board operations that span the boards, channels and posts tables."""

    def __init__(
        self,
        database: Database,
        boards: BoardsRepository | None = None,
        posts: PostsRepository | None = None,
    ) -> None:
        self._db = database
        self._boards = boards or BoardsRepository(database)
        self._posts = posts or PostsRepository(database)

    @property
    def repository(self) -> BoardsRepository:
        """Access the underlying repository for direct DB operations."""
        return self._boards

    async def init_schema(self) -> None:
        """Create all tables in dependency order."""
        await self._boards.create_tables()
        await self._posts.create_table()

    async def create_board(self, name: str, avatar_url: str | None = None) -> Board:
        name = name.strip()
        if not name:
            raise ValueError("Board name must not be empty")
        return await self._boards.create_board(name, avatar_url=avatar_url)

    async def set_channel_handle(self, channel_id: str, handle: str | None) -> Channel | None:
        """Trim and store a channel handle; blank input clears it."""
        cleaned = (handle or "").strip() or None
        channel = await self._boards.update_channel_handle(channel_id, cleaned)
        if channel is not None:
            logger.info("Channel %s handle set to %r", channel_id, cleaned)
        return channel

    async def get_stats(self, now: datetime | None = None) -> BoardStats:
        """Totals for the dashboard. "Today" starts at UTC midnight."""
        return BoardStats(
            total_boards=await self._boards.count_boards(),
            total_posts=await self._posts.count(),
            posts_today=await self._posts.count_imported_since(_start_of_day(now)),
        )
