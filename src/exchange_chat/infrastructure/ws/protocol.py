"""WebSocket frame models shared by the client connection and the gateway."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # join_room | leave_room | new_message | live_exchange_invitation | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # new_message | live_exchange_invitation | error | pong
    data: dict[str, Any] = {}
