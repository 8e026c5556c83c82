"""
In-memory queue of manually requested scrape jobs.

Process-local and non-durable: pending jobs are lost on restart. Jobs
are drained by the optional in-process ``ScrapeWorker``; without one
they only accumulate for inspection.
"""

import asyncio
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

# Finished jobs kept for status queries
_HISTORY_SIZE = 50


class ScrapeJobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ScrapeJob:
    target: str
    depth: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    requested_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: ScrapeJobStatus = ScrapeJobStatus.QUEUED
    error: str | None = None


class ScrapeQueue:
    """FIFO of pending scrape jobs plus a short history of recent ones."""

    def __init__(self, history_size: int = _HISTORY_SIZE) -> None:
        self._pending: deque[ScrapeJob] = deque()
        self._recent: deque[ScrapeJob] = deque(maxlen=history_size)
        self._available = asyncio.Event()

    def push(self, target: str, depth: int) -> tuple[ScrapeJob, int]:
        """Enqueue a job; returns it with its 1-based queue position."""
        job = ScrapeJob(target=target, depth=depth)
        self._pending.append(job)
        self._recent.append(job)
        self._available.set()
        return job, len(self._pending)

    def pop(self) -> ScrapeJob | None:
        """Take the oldest pending job without waiting."""
        if not self._pending:
            return None
        job = self._pending.popleft()
        if not self._pending:
            self._available.clear()
        return job

    async def get(self) -> ScrapeJob:
        """Wait for and take the oldest pending job."""
        while True:
            job = self.pop()
            if job is not None:
                return job
            await self._available.wait()

    def __len__(self) -> int:
        return len(self._pending)

    def recent(self, limit: int = 5) -> list[ScrapeJob]:
        """Most recently requested jobs, oldest first."""
        if limit <= 0:
            return []
        return list(self._recent)[-limit:]
