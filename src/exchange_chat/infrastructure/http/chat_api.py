from __future__ import annotations

import httpx
from pydantic import ValidationError as PydanticValidationError

from exchange_chat.application.exceptions import TransportError
from exchange_chat.domain.entities.message import Message
from exchange_chat.domain.entities.room import Room
from exchange_chat.infrastructure.codec.wire import message_from_wire, room_from_wire
from exchange_chat.infrastructure.http.errors import request_json


class HttpChatApi:
    """Implements application.ports.chat_api.ChatApi against the chat REST endpoints."""

    def __init__(self, client: httpx.AsyncClient, prefix: str = "/api/v1/chat") -> None:
        self._client = client
        self._prefix = prefix

    async def get_room_by_exchange(self, exchange_id: int) -> Room:
        data = await request_json(self._client, "GET", f"{self._prefix}/rooms/by-exchange/{exchange_id}")
        try:
            return room_from_wire(data)
        except PydanticValidationError as exc:
            raise TransportError(f"Invalid room payload: {exc}") from exc

    async def list_messages(self, room_id: str, *, limit: int = 200) -> list[Message]:
        data = await request_json(
            self._client, "GET", f"{self._prefix}/rooms/{room_id}/messages", params={"limit": limit},
        )
        if not isinstance(data, list):
            raise TransportError("Invalid message list payload")
        try:
            return [message_from_wire(item) for item in data]
        except PydanticValidationError as exc:
            raise TransportError(f"Invalid message payload: {exc}") from exc

    async def send_message(
        self,
        room_id: str,
        content: str,
        *,
        client_msg_id: str | None = None,
    ) -> Message:
        body = {"room_id": room_id, "content": content, "client_msg_id": client_msg_id}
        data = await request_json(self._client, "POST", f"{self._prefix}/messages", json=body)
        try:
            return message_from_wire(data)
        except PydanticValidationError as exc:
            raise TransportError(f"Invalid message payload: {exc}") from exc
