from __future__ import annotations

from types import TracebackType
from typing import Self

from exchange_chat.infrastructure.memory.repositories import (
    ExchangeReaderRepo,
    LiveSessionRepo,
    MemoryState,
    MessageReaderRepo,
    MessageWriterRepo,
    NotificationCounterRepo,
    RoomReaderRepo,
    RoomWriterRepo,
)


class InMemoryUoW:
    """Unit-of-Work over a shared ``MemoryState``. Writes are applied immediately."""

    def __init__(self, state: MemoryState) -> None:
        self.state = state
        self.exchanges = ExchangeReaderRepo(state)
        self.rooms = RoomReaderRepo(state)
        self.rooms_w = RoomWriterRepo(state)
        self.messages = MessageReaderRepo(state)
        self.messages_w = MessageWriterRepo(state)
        self.live_sessions = LiveSessionRepo(state)
        self.notifications = NotificationCounterRepo(state)
        self.committed = False

    async def commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        self.committed = False

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()
