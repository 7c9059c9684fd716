from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.exceptions import ValidationError
from exchange_chat.application.policies import assert_room_access
from exchange_chat.application.ports.bus import RoomEventPublisher
from exchange_chat.application.uow import UnitOfWork
from exchange_chat.domain.entities.message import Message
from exchange_chat.domain.value_objects.enums import TransportEvent
from exchange_chat.infrastructure.codec.envelope_codec import decode
from exchange_chat.infrastructure.codec.wire import message_to_wire


async def send_message(
    room_id: str,
    principal: Principal,
    content: str | dict[str, Any],
    client_msg_id: str | None,
    uow: UnitOfWork,
    publisher: RoomEventPublisher,
) -> tuple[Message, bool]:
    """Store a message idempotently and fan it out as ``new_message``.

    Returns (message, created). A repeated client_msg_id from the same sender
    returns the stored message with created=False and publishes nothing.
    """
    room = assert_room_access(principal, await uow.rooms.get_by_id(room_id))
    if content is None or (isinstance(content, str) and not content.strip()):
        raise ValidationError("Message content is required")

    msg = Message(
        id=uuid.uuid4().hex,
        room_id=room.id,
        sender_id=principal.user_id,
        created_at=datetime.now(timezone.utc),
        envelope=decode(content),
        client_msg_id=client_msg_id,
    )
    msg, created = await uow.messages_w.create_if_not_exists(msg)

    if created:
        await uow.notifications.increment(room.peer_of(principal.user_id))
        await uow.commit()
        await publisher.publish(
            TransportEvent.NEW_MESSAGE,
            message_to_wire(msg),
            room_id=room.id,
            user_ids=(room.user1_id, room.user2_id),
        )

    return msg, created


async def list_messages(
    room_id: str,
    principal: Principal,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    assert_room_access(principal, await uow.rooms.get_by_id(room_id))
    return await uow.messages.list_messages(room_id, limit=limit)
