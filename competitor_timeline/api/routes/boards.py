"""Board CRUD and dashboard statistics."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from competitor_timeline.api.dependencies import get_boards_service
from competitor_timeline.api.models import (
    BoardItem,
    CreateBoardRequest,
    DeleteResponse,
    ErrorResponse,
    StatsResponse,
)
from competitor_timeline.boards.service import BoardsService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get(
    "/api/boards",
    response_model=list[BoardItem] | BoardItem,
    responses={404: {"model": ErrorResponse}},
    summary="List boards, or fetch one by slug",
)
async def list_boards(
    slug: str | None = Query(default=None, description="Return only this board"),
    service: BoardsService = Depends(get_boards_service),
) -> list[BoardItem] | BoardItem:
    repo = service.repository
    if slug:
        board = await repo.get_board_by_slug(slug)
        if board is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Board not found")
        return BoardItem.from_board(board)

    return [BoardItem.from_board(b) for b in await repo.list_boards()]


@router.post(
    "/api/boards",
    response_model=BoardItem,
    status_code=status.HTTP_201_CREATED,
    summary="Create a board with its default channels",
)
async def create_board(
    body: CreateBoardRequest,
    service: BoardsService = Depends(get_boards_service),
) -> BoardItem:
    try:
        board = await service.create_board(body.name, avatar_url=body.avatar_url)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.info("Board created", board_id=board.id, slug=board.slug)
    return BoardItem.from_board(board)


@router.delete(
    "/api/boards",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a board and everything it owns",
)
async def delete_board(
    id: str = Query(..., min_length=1, description="Board id"),
    service: BoardsService = Depends(get_boards_service),
) -> DeleteResponse:
    if not await service.repository.delete_board(id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Board not found")
    logger.info("Board deleted", board_id=id)
    return DeleteResponse()


@router.get("/api/stats", response_model=StatsResponse, summary="Dashboard totals")
async def get_stats(service: BoardsService = Depends(get_boards_service)) -> StatsResponse:
    stats = await service.get_stats()
    return StatsResponse(
        total_boards=stats.total_boards,
        total_posts=stats.total_posts,
        posts_today=stats.posts_today,
    )
