"""Storage layer - PostgreSQL connection management."""

from competitor_timeline.storage.database import Database

__all__ = ["Database"]
