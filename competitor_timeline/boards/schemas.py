"""Data models for tracked boards and their per-platform channels."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class SourceKind(str, Enum):
    """Closed set of platforms a channel can track."""

    INSTAGRAM = "instagram"
    LINKEDIN = "linkedin"
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    RSS = "rss"
    META_ADS = "meta-ads"

    @classmethod
    def parse(cls, value: "str | SourceKind") -> "SourceKind":
        """Parse a platform string, raising ValueError for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(k.value for k in cls)
            raise ValueError(
                f"Unknown platform {value!r} (expected one of: {allowed})"
            ) from None


# Channels created alongside every new board, in display order
DEFAULT_CHANNELS: tuple[tuple[SourceKind, str], ...] = (
    (SourceKind.INSTAGRAM, "Instagram"),
    (SourceKind.LINKEDIN, "LinkedIn"),
    (SourceKind.YOUTUBE, "YouTube"),
    (SourceKind.TIKTOK, "TikTok"),
)


@dataclass
class Channel:
    """One platform-specific content stream belonging to a board.

    At most one channel exists per (board_id, source_type).
    """

    id: str
    board_id: str
    source_type: SourceKind
    display_name: str
    position: int = 0
    handle: str | None = None
    is_active: bool = True


@dataclass
class Board:
    """A tracked competitor observed across platforms."""

    id: str
    name: str
    slug: str
    avatar_url: str | None = None
    created_at: datetime | None = None
    channels: list[Channel] = field(default_factory=list)

    def channel_for(self, source_type: SourceKind) -> Channel | None:
        """Return the channel for a platform, if the board has one loaded."""
        for channel in self.channels:
            if channel.source_type == source_type:
                return channel
        return None
