"""Boards: tracked competitors and their per-platform channels.

``BoardsService`` lives in ``competitor_timeline.boards.service``; it depends
on the posts package, which itself imports ``SourceKind`` from here.
"""

from competitor_timeline.boards.repository import BoardsRepository
from competitor_timeline.boards.schemas import DEFAULT_CHANNELS, Board, Channel, SourceKind
from competitor_timeline.boards.slug import generate_slug

__all__ = [
    "DEFAULT_CHANNELS",
    "Board",
    "BoardsRepository",
    "Channel",
    "SourceKind",
    "generate_slug",
]
