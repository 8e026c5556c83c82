"""
Map an inbound batch source onto a tracked board and its channel.

Resolution order:
1. A channel of the batch platform whose configured handle equals the
   inbound handle (case-insensitive).
2. Loose matching, kept for compatibility with existing scraper agents:
   a board with a channel of the batch platform whose name or slug
   contains the handle, or whose slug appears in the source URL.
   The earliest-created board wins. This can pick the wrong board when
   one name is a substring of another (``nike`` vs ``nike_running``);
   configure channel handles to avoid it.
"""

from dataclasses import dataclass

import structlog

from competitor_timeline.boards.repository import BoardsRepository
from competitor_timeline.boards.schemas import Board, Channel
from competitor_timeline.ingestion.errors import ResolutionError
from competitor_timeline.ingestion.schemas import BatchSource

logger = structlog.get_logger(__name__)


@dataclass
class Resolution:
    board: Board
    channel: Channel


class EntityResolver:
    """Resolves a batch source to a (board, channel) pair."""

    def __init__(self, boards: BoardsRepository) -> None:
        self._boards = boards

    async def resolve(self, source: BatchSource) -> Resolution:
        """
        Raises:
            ResolutionError: No board, or the board has no channel for the platform
        """
        handle = source.handle.strip().lstrip("@")
        if not handle:
            raise ResolutionError("Source handle is empty", reason="empty_handle")

        channel = await self._boards.find_channel_by_handle(source.platform, handle)
        if channel is not None:
            board = await self._boards.get_board(channel.board_id)
            if board is not None:
                logger.debug("Resolved by channel handle", handle=handle, board=board.slug)
                return Resolution(board=board, channel=channel)

        board = await self._boards.find_board_for_source(source.platform, handle, source.url)
        if board is None:
            raise ResolutionError(
                f"Board not found for handle: {handle} ({source.platform.value})",
                reason="board_not_found",
            )

        channel = await self._boards.get_channel_for_board(board.id, source.platform)
        if channel is None:
            raise ResolutionError(
                f"Channel not found for board {board.name} and source {source.platform.value}",
                reason="channel_not_found",
            )

        logger.debug("Resolved by loose match", handle=handle, board=board.slug)
        return Resolution(board=board, channel=channel)
