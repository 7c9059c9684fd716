from __future__ import annotations

from typing import Protocol

from exchange_chat.domain.entities.message import Message


class MessageStore(Protocol):
    """Client-side per-room message log with unread counters."""

    def append(self, room_id: str, message: Message) -> bool:
        """Add ``message`` unless its id is already logged. Return True if the log changed."""
        ...

    def confirm(self, room_id: str, provisional_id: str, message: Message) -> bool: ...
    def discard(self, room_id: str, message_id: str) -> bool: ...
    def get(self, room_id: str) -> list[Message]: ...
    def rooms(self) -> list[str]: ...
    def unread_count(self, room_id: str) -> int: ...
    def increment_unread(self, room_id: str) -> int: ...
    def reset_unread(self, room_id: str) -> None: ...
    def clear(self) -> None: ...


class MessageReader(Protocol):
    async def list_messages(self, room_id: str, *, limit: int = 200) -> list[Message]: ...


class MessageWriter(Protocol):
    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message. Return (message, created). On a repeated client_msg_id return the existing one."""
        ...
