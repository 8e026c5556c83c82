"""Tests for the in-memory force queue."""

import asyncio

import pytest

from competitor_timeline.scraping.queue import ScrapeJobStatus, ScrapeQueue


class TestScrapeQueue:
    def test_push_reports_position(self):
        queue = ScrapeQueue()

        first, pos1 = queue.push("nike", 20)
        _, pos2 = queue.push("adidas", 10)

        assert (pos1, pos2) == (1, 2)
        assert first.status is ScrapeJobStatus.QUEUED
        assert first.requested_at.tzinfo is not None
        assert len(queue) == 2

    def test_pop_is_fifo(self):
        queue = ScrapeQueue()
        queue.push("a", 1)
        queue.push("b", 1)

        assert queue.pop().target == "a"
        assert queue.pop().target == "b"
        assert queue.pop() is None
        assert len(queue) == 0

    def test_job_ids_unique(self):
        queue = ScrapeQueue()
        ids = {queue.push("x", 1)[0].id for _ in range(20)}
        assert len(ids) == 20

    def test_recent_keeps_popped_jobs(self):
        queue = ScrapeQueue()
        for name in "abcdefg":
            queue.push(name, 1)
        queue.pop()

        assert [j.target for j in queue.recent(5)] == ["c", "d", "e", "f", "g"]
        assert queue.recent(0) == []

    def test_history_is_bounded(self):
        queue = ScrapeQueue(history_size=3)
        for name in "abcde":
            queue.push(name, 1)

        assert [j.target for j in queue.recent(10)] == ["c", "d", "e"]
        assert len(queue) == 5

    @pytest.mark.asyncio
    async def test_get_waits_for_push(self):
        queue = ScrapeQueue()
        waiter = asyncio.create_task(queue.get())
        await asyncio.sleep(0)
        assert not waiter.done()

        queue.push("nike", 5)
        job = await asyncio.wait_for(waiter, timeout=1.0)

        assert job.target == "nike"
        assert len(queue) == 0
