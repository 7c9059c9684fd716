from __future__ import annotations

from typing import Any, Protocol


class RoomEventPublisher(Protocol):
    """Fans a transport event out to every connection interested in a room."""

    async def publish(
        self,
        event_type: str,
        data: dict[str, Any],
        *,
        room_id: str,
        user_ids: tuple[int, ...] = (),
    ) -> None: ...
