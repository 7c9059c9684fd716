"""Process-local repositories for the relay gateway.

All state lives in one ``MemoryState`` shared by every unit of work, so the
gateway behaves like a tiny database that is reset on restart.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from exchange_chat.domain.entities.exchange import Exchange
from exchange_chat.domain.entities.message import Message
from exchange_chat.domain.entities.room import Room
from exchange_chat.domain.entities.session import LiveSessionRecord
from exchange_chat.domain.value_objects.enums import SessionStatus


@dataclass
class MemoryState:
    exchanges: dict[int, Exchange] = field(default_factory=dict)
    rooms: dict[str, Room] = field(default_factory=dict)
    messages: list[Message] = field(default_factory=list)
    live_sessions: dict[str, LiveSessionRecord] = field(default_factory=dict)
    unread: dict[int, int] = field(default_factory=dict)

    def add_exchange(self, exchange: Exchange) -> Exchange:
        self.exchanges[exchange.id] = exchange
        return exchange


class ExchangeReaderRepo:
    def __init__(self, state: MemoryState) -> None:
        self._state = state

    async def get_by_id(self, exchange_id: int) -> Exchange | None:
        return self._state.exchanges.get(exchange_id)


class RoomReaderRepo:
    def __init__(self, state: MemoryState) -> None:
        self._state = state

    async def get_by_id(self, room_id: str) -> Room | None:
        return self._state.rooms.get(room_id)

    async def get_by_exchange(self, exchange_id: int) -> Room | None:
        for room in self._state.rooms.values():
            if room.exchange_id == exchange_id:
                return room
        return None


class RoomWriterRepo:
    def __init__(self, state: MemoryState) -> None:
        self._state = state

    async def create(self, room: Room) -> Room:
        self._state.rooms[room.id] = room
        return room


class MessageReaderRepo:
    def __init__(self, state: MemoryState) -> None:
        self._state = state

    async def list_messages(self, room_id: str, *, limit: int = 200) -> list[Message]:
        rows = [m for m in self._state.messages if m.room_id == room_id]
        rows.sort(key=lambda m: m.created_at)
        # Most recent ``limit`` messages, oldest first.
        return rows[-limit:] if limit else []


class MessageWriterRepo:
    def __init__(self, state: MemoryState) -> None:
        self._state = state

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        if message.client_msg_id:
            for existing in self._state.messages:
                if (
                    existing.room_id == message.room_id
                    and existing.sender_id == message.sender_id
                    and existing.client_msg_id == message.client_msg_id
                ):
                    return existing, False
        self._state.messages.append(message)
        return message, True


class LiveSessionRepo:
    def __init__(self, state: MemoryState) -> None:
        self._state = state

    async def get_by_id(self, session_id: str) -> LiveSessionRecord | None:
        return self._state.live_sessions.get(session_id)

    async def get_open_for_exchange(self, exchange_id: int) -> LiveSessionRecord | None:
        for record in self._state.live_sessions.values():
            if record.exchange_id == exchange_id and record.status in (
                SessionStatus.WAITING,
                SessionStatus.ACTIVE,
            ):
                return record
        return None

    async def save(self, record: LiveSessionRecord) -> LiveSessionRecord:
        self._state.live_sessions[record.id] = record
        return record


class NotificationCounterRepo:
    def __init__(self, state: MemoryState) -> None:
        self._state = state

    async def increment(self, user_id: int) -> int:
        self._state.unread[user_id] = self._state.unread.get(user_id, 0) + 1
        return self._state.unread[user_id]

    async def unread_count(self, user_id: int) -> int:
        return self._state.unread.get(user_id, 0)

    async def reset(self, user_id: int) -> None:
        self._state.unread[user_id] = 0
