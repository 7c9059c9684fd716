from __future__ import annotations

from typing import Protocol

from exchange_chat.domain.entities.exchange import Exchange
from exchange_chat.domain.entities.room import Room


class RoomReader(Protocol):
    async def get_by_id(self, room_id: str) -> Room | None: ...
    async def get_by_exchange(self, exchange_id: int) -> Room | None: ...


class RoomWriter(Protocol):
    async def create(self, room: Room) -> Room: ...


class ExchangeReader(Protocol):
    async def get_by_id(self, exchange_id: int) -> Exchange | None: ...
