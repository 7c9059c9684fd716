from __future__ import annotations

from fastapi import APIRouter

from exchange_chat.api.deps import CurrentPrincipal, PublisherDep, UoWDep
from exchange_chat.api.v1.schemas.message import MessageResponse, SendMessageRequest
from exchange_chat.infrastructure.codec.wire import message_to_wire
from exchange_chat.services import message_service

router = APIRouter(prefix="/api/v1/chat/messages", tags=["messages"])


@router.post("", response_model=MessageResponse, status_code=201)
async def send_message(
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    publisher: PublisherDep,
) -> MessageResponse:
    msg, _created = await message_service.send_message(
        body.room_id,
        principal,
        body.content,
        body.client_msg_id,
        uow,
        publisher,
    )
    return MessageResponse.model_validate(message_to_wire(msg))
