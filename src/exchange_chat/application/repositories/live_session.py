from __future__ import annotations

from typing import Protocol

from exchange_chat.domain.entities.session import LiveSessionRecord


class LiveSessionRepository(Protocol):
    async def get_by_id(self, session_id: str) -> LiveSessionRecord | None: ...
    async def get_open_for_exchange(self, exchange_id: int) -> LiveSessionRecord | None: ...
    async def save(self, record: LiveSessionRecord) -> LiveSessionRecord: ...
