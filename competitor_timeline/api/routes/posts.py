"""Post listing for the timeline views."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from competitor_timeline.api.dependencies import get_posts_repository
from competitor_timeline.api.models import ErrorResponse, PostItem
from competitor_timeline.posts.repository import MAX_LIST_LIMIT, PostsRepository

router = APIRouter()


@router.get(
    "/api/posts",
    response_model=list[PostItem],
    responses={400: {"model": ErrorResponse}},
    summary="Newest posts of a channel or a board",
)
async def list_posts(
    board_id: str | None = Query(default=None, alias="boardId"),
    channel_id: str | None = Query(default=None, alias="channelId"),
    limit: int = Query(default=50, ge=1, le=MAX_LIST_LIMIT),
    repo: PostsRepository = Depends(get_posts_repository),
) -> list[PostItem]:
    """``channelId`` takes precedence when both are given."""
    if channel_id:
        posts = await repo.list_by_channel(channel_id, limit=limit)
    elif board_id:
        posts = await repo.list_by_board(board_id, limit=limit)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required parameter: boardId or channelId",
        )
    return [PostItem.from_post(p) for p in posts]
