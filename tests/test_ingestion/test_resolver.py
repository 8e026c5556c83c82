"""Tests for batch source resolution."""

from unittest.mock import AsyncMock

import pytest

from competitor_timeline.boards.schemas import Board, Channel, SourceKind
from competitor_timeline.ingestion.errors import ResolutionError
from competitor_timeline.ingestion.resolver import EntityResolver
from competitor_timeline.ingestion.schemas import BatchSource


@pytest.fixture
def boards_repo():
    repo = AsyncMock()
    repo.find_channel_by_handle = AsyncMock(return_value=None)
    repo.find_board_for_source = AsyncMock(return_value=None)
    repo.get_channel_for_board = AsyncMock(return_value=None)
    repo.get_board = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def resolver(boards_repo) -> EntityResolver:
    return EntityResolver(boards_repo)


def _source(handle: str = "nike", url: str = "https://instagram.com/nike") -> BatchSource:
    return BatchSource(platform="instagram", handle=handle, url=url)


class TestPreciseMatch:
    """A configured channel handle wins over loose matching."""

    @pytest.mark.asyncio
    async def test_handle_match(self, resolver, boards_repo, sample_board, sample_channel):
        boards_repo.find_channel_by_handle.return_value = sample_channel
        boards_repo.get_board.return_value = sample_board

        resolution = await resolver.resolve(_source())

        assert resolution.board is sample_board
        assert resolution.channel is sample_channel
        boards_repo.find_board_for_source.assert_not_called()

    @pytest.mark.asyncio
    async def test_handle_is_trimmed_and_unprefixed(self, resolver, boards_repo):
        boards_repo.find_board_for_source.return_value = None

        with pytest.raises(ResolutionError):
            await resolver.resolve(_source(handle=" @Nike "))

        boards_repo.find_channel_by_handle.assert_awaited_once_with(SourceKind.INSTAGRAM, "Nike")

    @pytest.mark.asyncio
    async def test_empty_handle(self, resolver, boards_repo):
        with pytest.raises(ResolutionError) as exc_info:
            await resolver.resolve(_source(handle="@"))

        assert exc_info.value.reason == "empty_handle"
        boards_repo.find_channel_by_handle.assert_not_called()


class TestLooseMatch:
    """Fallback matching on board name, slug and source URL."""

    @pytest.mark.asyncio
    async def test_falls_back_to_loose_match(
        self, resolver, boards_repo, sample_board, sample_channel
    ):
        boards_repo.find_board_for_source.return_value = sample_board
        boards_repo.get_channel_for_board.return_value = sample_channel

        resolution = await resolver.resolve(_source())

        assert resolution.board.slug == "nike"
        boards_repo.find_board_for_source.assert_awaited_once_with(
            SourceKind.INSTAGRAM, "nike", "https://instagram.com/nike"
        )
        boards_repo.get_channel_for_board.assert_awaited_once_with(
            "board-1", SourceKind.INSTAGRAM
        )

    @pytest.mark.asyncio
    async def test_substring_handle_resolves_to_earliest_board(self, resolver, boards_repo):
        """``nike_running`` loosely matches the older ``Nike`` board via its URL.

        This is the documented ambiguity of loose matching; configuring a
        channel handle avoids it.
        """
        nike = Board(id="b-nike", name="Nike", slug="nike")
        channel = Channel(
            id="c-nike",
            board_id="b-nike",
            source_type=SourceKind.INSTAGRAM,
            display_name="Instagram",
        )
        boards_repo.find_board_for_source.return_value = nike
        boards_repo.get_channel_for_board.return_value = channel

        resolution = await resolver.resolve(
            _source(handle="nike_running", url="https://instagram.com/nike_running")
        )

        assert resolution.board.id == "b-nike"

    @pytest.mark.asyncio
    async def test_board_not_found(self, resolver):
        with pytest.raises(ResolutionError) as exc_info:
            await resolver.resolve(_source())

        assert exc_info.value.reason == "board_not_found"
        assert exc_info.value.message == "Board not found for handle: nike (instagram)"

    @pytest.mark.asyncio
    async def test_channel_not_found(self, resolver, boards_repo, sample_board):
        boards_repo.find_board_for_source.return_value = sample_board

        with pytest.raises(ResolutionError) as exc_info:
            await resolver.resolve(_source())

        assert exc_info.value.reason == "channel_not_found"
        assert exc_info.value.message == "Channel not found for board Nike and source instagram"

    @pytest.mark.asyncio
    async def test_dangling_handle_channel_falls_through(
        self, resolver, boards_repo, sample_board, sample_channel
    ):
        """A handle match whose board vanished falls back to loose matching."""
        boards_repo.find_channel_by_handle.return_value = sample_channel
        boards_repo.get_board.return_value = None
        boards_repo.find_board_for_source.return_value = sample_board
        boards_repo.get_channel_for_board.return_value = sample_channel

        resolution = await resolver.resolve(_source())

        assert resolution.board is sample_board
