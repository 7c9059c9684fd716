from __future__ import annotations

from fastapi import APIRouter, Query

from exchange_chat.api.deps import CurrentPrincipal, UoWDep
from exchange_chat.api.v1.schemas.message import MessageResponse
from exchange_chat.api.v1.schemas.room import RoomResponse
from exchange_chat.config import settings
from exchange_chat.infrastructure.codec.wire import message_to_wire
from exchange_chat.services import message_service, room_service

router = APIRouter(prefix="/api/v1/chat/rooms", tags=["rooms"])


@router.get("/by-exchange/{exchange_id}", response_model=RoomResponse)
async def get_room_for_exchange(
    exchange_id: int,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> RoomResponse:
    room = await room_service.get_or_open_room_for_exchange(exchange_id, principal, uow)
    return RoomResponse.model_validate(room, from_attributes=True)


@router.get("/{room_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    room_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(settings.HISTORY_LIMIT, ge=1, le=1000),
) -> list[MessageResponse]:
    messages = await message_service.list_messages(room_id, principal, limit, uow)
    return [MessageResponse.model_validate(message_to_wire(m)) for m in messages]
