"""Mapping between REST/transport JSON bodies and domain entities."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field

from exchange_chat.domain.entities.message import Message
from exchange_chat.domain.entities.room import Room
from exchange_chat.infrastructure.codec.envelope_codec import classify, decode, encode


def id_as_str(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def assume_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


WireId = Annotated[str, BeforeValidator(id_as_str)]
WireDatetime = Annotated[datetime, AfterValidator(assume_utc)]


class _Wire(BaseModel):
    """Accepts both snake_case and the platform's camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MessageWire(_Wire):
    id: WireId
    room_id: WireId = Field(alias="roomId")
    sender_id: int = Field(alias="senderId")
    content: Any = None
    type: str | None = None
    client_msg_id: WireId | None = Field(None, alias="clientMsgId")
    created_at: WireDatetime = Field(alias="createdAt")


class RoomWire(_Wire):
    id: WireId
    exchange_id: int = Field(alias="exchangeId")
    user1_id: int = Field(alias="user1Id")
    user2_id: int = Field(alias="user2Id")
    created_at: WireDatetime = Field(alias="createdAt")


def room_from_wire(data: dict[str, Any]) -> Room:
    """Build a ``Room``. Raises ``pydantic.ValidationError`` on a malformed body."""
    wire = RoomWire.model_validate(data)
    return Room(
        id=wire.id,
        exchange_id=wire.exchange_id,
        user1_id=wire.user1_id,
        user2_id=wire.user2_id,
        created_at=wire.created_at,
    )


def message_from_wire(data: dict[str, Any]) -> Message:
    """Build a ``Message``. Raises ``pydantic.ValidationError`` on a malformed body."""
    wire = MessageWire.model_validate(data)
    return Message(
        id=wire.id,
        room_id=wire.room_id,
        sender_id=wire.sender_id,
        created_at=wire.created_at,
        envelope=decode(wire.content),
        client_msg_id=wire.client_msg_id,
    )


def message_to_wire(message: Message) -> dict[str, Any]:
    return {
        "id": message.id,
        "room_id": message.room_id,
        "sender_id": message.sender_id,
        "type": classify(message.envelope).value,
        "content": encode(message.envelope),
        "client_msg_id": message.client_msg_id,
        "created_at": message.created_at.isoformat(),
    }
