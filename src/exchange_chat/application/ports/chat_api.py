from __future__ import annotations

from typing import Protocol

from exchange_chat.domain.entities.message import Message
from exchange_chat.domain.entities.room import Room


class ChatApi(Protocol):
    async def get_room_by_exchange(self, exchange_id: int) -> Room: ...

    async def list_messages(self, room_id: str, *, limit: int = 200) -> list[Message]: ...

    async def send_message(
        self,
        room_id: str,
        content: str,
        *,
        client_msg_id: str | None = None,
    ) -> Message: ...
