"""``websockets``-backed client socket."""
from __future__ import annotations

import asyncio
import logging
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from exchange_chat.application.exceptions import TransportError

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """Implements application.ports.socket.Socket over a websockets client connection."""

    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws

    async def send(self, raw: str) -> None:
        try:
            await self._ws.send(raw)
        except ConnectionClosed as exc:
            raise TransportError(f"Connection closed: {exc}") from exc

    async def recv(self) -> str:
        try:
            raw = await self._ws.recv()
        except ConnectionClosed as exc:
            raise TransportError(f"Connection closed: {exc}") from exc
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return raw

    async def close(self) -> None:
        await self._ws.close()


def build_url(base_url: str, token: str) -> str:
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'token': token})}"


class WebSocketConnector:
    """Socket factory: ``await connector(url)`` opens a connection."""

    def __init__(self, open_timeout: float = 10.0) -> None:
        self._open_timeout = open_timeout

    async def __call__(self, url: str) -> WebSocketConnection:
        try:
            ws = await connect(url, open_timeout=self._open_timeout)
        except (OSError, InvalidHandshake, InvalidURI, asyncio.TimeoutError) as exc:
            logger.error("WebSocket connect failed: %s", exc)
            raise TransportError(f"Could not connect: {exc}") from exc
        return WebSocketConnection(ws)
