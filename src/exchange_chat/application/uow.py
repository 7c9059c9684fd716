from __future__ import annotations

from typing import Protocol

from exchange_chat.application.repositories.live_session import LiveSessionRepository
from exchange_chat.application.repositories.message import MessageReader, MessageWriter
from exchange_chat.application.repositories.notification import NotificationCounter
from exchange_chat.application.repositories.room import ExchangeReader, RoomReader, RoomWriter


class UnitOfWork(Protocol):
    exchanges: ExchangeReader
    rooms: RoomReader
    rooms_w: RoomWriter
    messages: MessageReader
    messages_w: MessageWriter
    live_sessions: LiveSessionRepository
    notifications: NotificationCounter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
