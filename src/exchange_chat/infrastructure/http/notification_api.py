from __future__ import annotations

import httpx

from exchange_chat.infrastructure.http.errors import request_json


class HttpNotificationFeed:
    """Implements application.ports.notifications.NotificationFeed."""

    def __init__(self, client: httpx.AsyncClient, prefix: str = "/api/v1/notifications") -> None:
        self._client = client
        self._prefix = prefix

    async def unread_count(self) -> int:
        data = await request_json(self._client, "GET", f"{self._prefix}/unread-count")
        return int(data.get("count", 0)) if isinstance(data, dict) else 0
