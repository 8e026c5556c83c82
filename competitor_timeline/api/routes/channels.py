"""Channel lookup, handle configuration and toggling."""

from fastapi import APIRouter, Depends, HTTPException, status

from competitor_timeline.api.dependencies import get_boards_service
from competitor_timeline.api.models import (
    ChannelItem,
    ChannelUpdateResponse,
    ErrorResponse,
    UpdateChannelRequest,
)
from competitor_timeline.boards.service import BoardsService

router = APIRouter()

_NOT_FOUND = "Channel not found"


@router.get(
    "/api/channels/{channel_id}",
    response_model=ChannelItem,
    responses={404: {"model": ErrorResponse}},
)
async def get_channel(
    channel_id: str,
    service: BoardsService = Depends(get_boards_service),
) -> ChannelItem:
    channel = await service.repository.get_channel(channel_id)
    if channel is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return ChannelItem.from_channel(channel)


@router.patch(
    "/api/channels/{channel_id}",
    response_model=ChannelUpdateResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Set a channel's handle or active flag",
)
async def update_channel(
    channel_id: str,
    body: UpdateChannelRequest,
    service: BoardsService = Depends(get_boards_service),
) -> ChannelUpdateResponse:
    """
    ``handle`` is trimmed and a blank value clears it. Only fields present
    in the body are changed.
    """
    fields = body.model_fields_set
    if not fields & {"handle", "is_active"}:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide handle and/or isActive",
        )

    repo = service.repository
    channel = await repo.get_channel(channel_id)
    if channel is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)

    if "handle" in fields:
        channel = await service.set_channel_handle(channel_id, body.handle)
    if "is_active" in fields and body.is_active is not None:
        await repo.set_channel_active(channel_id, body.is_active)
        channel = await repo.get_channel(channel_id)

    if channel is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return ChannelUpdateResponse(channel=ChannelItem.from_channel(channel))
