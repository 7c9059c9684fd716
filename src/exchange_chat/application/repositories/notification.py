from __future__ import annotations

from typing import Protocol


class NotificationCounter(Protocol):
    async def increment(self, user_id: int) -> int: ...
    async def unread_count(self, user_id: int) -> int: ...
    async def reset(self, user_id: int) -> None: ...
