"""In-process WebSocket connection registry for the relay gateway."""
from __future__ import annotations

import logging
from typing import Any, Iterable

from fastapi import WebSocket

from exchange_chat.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Tracks WebSocket connections per principal and room memberships."""

    def __init__(self) -> None:
        self._connections: dict[str, set[WebSocket]] = {}
        self._rooms: dict[str, set[str]] = {}

    async def connect(self, ws: WebSocket, principal_key: str) -> None:
        await ws.accept()
        self._connections.setdefault(principal_key, set()).add(ws)
        logger.debug("WS connected: %s (total=%d)", principal_key, len(self._connections))

    def disconnect(self, ws: WebSocket, principal_key: str) -> None:
        conns = self._connections.get(principal_key)
        if conns:
            conns.discard(ws)
            if not conns:
                del self._connections[principal_key]
                for members in self._rooms.values():
                    members.discard(principal_key)
        logger.debug("WS disconnected: %s", principal_key)

    def join(self, principal_key: str, room_id: str) -> None:
        self._rooms.setdefault(room_id, set()).add(principal_key)

    def leave(self, principal_key: str, room_id: str) -> None:
        members = self._rooms.get(room_id)
        if members:
            members.discard(principal_key)
            if not members:
                del self._rooms[room_id]

    def members(self, room_id: str) -> set[str]:
        return set(self._rooms.get(room_id, set()))

    async def broadcast_to_room(
        self,
        room_id: str,
        event_type: str,
        data: dict[str, Any],
        *,
        also: Iterable[str] = (),
        exclude: str | None = None,
    ) -> None:
        """Send a frame to every connection in the room plus ``also`` principals, once each."""
        targets = self.members(room_id) | set(also)
        targets.discard(exclude)  # type: ignore[arg-type]
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        dead: list[tuple[str, WebSocket]] = []
        for pkey in targets:
            for ws in list(self._connections.get(pkey, set())):
                try:
                    await ws.send_text(raw)
                except Exception:
                    dead.append((pkey, ws))
        for pkey, ws in dead:
            self.disconnect(ws, pkey)

    async def send_to_principal(
        self,
        principal_key: str,
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        """Send a WS message to a specific principal."""
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        dead: list[WebSocket] = []
        for ws in list(self._connections.get(principal_key, set())):
            try:
                await ws.send_text(raw)
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws, principal_key)
