"""Client side of the shared real-time connection.

One instance per authenticated session, constructed by the application
context and handed to its consumers. It owns the socket, the set of joined
rooms and the handler table; nothing else mutates them.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

from pydantic import ValidationError as PydanticValidationError

from exchange_chat.application.exceptions import TransportError
from exchange_chat.application.ports.socket import Socket, SocketFactory
from exchange_chat.domain.value_objects.enums import TransportEvent
from exchange_chat.infrastructure.ws.client import WebSocketConnector, build_url
from exchange_chat.infrastructure.ws.protocol import WsInbound, WsOutbound

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, Any]], Union[None, Awaitable[None]]]


@dataclass
class ConnectionState:
    connected: bool = False
    room_memberships: set[str] = field(default_factory=set)

    def reset(self) -> None:
        self.connected = False
        self.room_memberships.clear()


class Subscription:
    """Handle returned by ``ConnectionManager.on``; owns its own disposal."""

    def __init__(
        self,
        manager: ConnectionManager,
        kind: str,
        handler: EventHandler,
        room_id: str | None,
    ) -> None:
        self._manager = manager
        self.kind = kind
        self.handler = handler
        self.room_id = room_id
        self.active = True

    def matches(self, room_id: str | None) -> bool:
        return self.room_id is None or self.room_id == room_id

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._manager._remove(self)


class ConnectionManager:
    def __init__(
        self,
        ws_url: str,
        socket_factory: SocketFactory | None = None,
    ) -> None:
        self._ws_url = ws_url
        self._socket_factory = socket_factory or WebSocketConnector()
        self._socket: Socket | None = None
        self._reader: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()
        self._handlers: dict[str, list[Subscription]] = {}
        self.state = ConnectionState()

    @property
    def connected(self) -> bool:
        return self.state.connected

    async def connect(self, token: str) -> None:
        """Open the shared connection. A no-op when already connected."""
        async with self._lock:
            if self.state.connected:
                return
            logger.info("Connecting to %s", self._ws_url)
            try:
                socket = await self._socket_factory(build_url(self._ws_url, token))
            except TransportError:
                raise
            except Exception as exc:
                logger.error("Connection failed: %s", exc)
                raise TransportError(f"Could not connect: {exc}") from exc

            self._socket = socket
            self.state.connected = True
            self._reader = asyncio.create_task(self._read_loop(socket), name="chat-connection-reader")
        logger.info("Connected")
        await self._publish(TransportEvent.CONNECTED, {})

    async def close(self) -> None:
        """Tear the connection down (logout). Memberships are forgotten."""
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        socket = self._socket
        was_connected = self.state.connected
        self._drop()
        if socket is not None:
            await self._close_socket(socket)
        if was_connected:
            await self._publish(TransportEvent.DISCONNECTED, {"reason": "closed"})

    async def join_room(self, room_id: str) -> None:
        if not self.state.connected:
            logger.warning("Socket is not connected, cannot join room %s", room_id)
            return
        if room_id in self.state.room_memberships:
            return
        await self._send(TransportEvent.JOIN_ROOM, {"room_id": room_id})
        self.state.room_memberships.add(room_id)
        logger.debug("Joined room %s", room_id)

    async def leave_room(self, room_id: str) -> None:
        if not self.state.connected:
            logger.warning("Socket is not connected, cannot leave room %s", room_id)
            return
        self.state.room_memberships.discard(room_id)
        await self._send(TransportEvent.LEAVE_ROOM, {"room_id": room_id})
        logger.debug("Left room %s", room_id)

    async def send_event(self, kind: str, data: dict[str, Any]) -> None:
        if not self.state.connected:
            raise TransportError(f"Socket is not connected, cannot send {kind}")
        await self._send(kind, data)

    async def ping(self) -> None:
        await self.send_event(TransportEvent.PING, {})

    def on(self, kind: str, handler: EventHandler, room_id: str | None = None) -> Subscription:
        """Register ``handler`` for ``kind`` events, optionally only for one room."""
        sub = Subscription(self, str(kind), handler, room_id)
        self._handlers.setdefault(sub.kind, []).append(sub)
        return sub

    def off(self, kind: str, handler: EventHandler) -> None:
        for sub in list(self._handlers.get(str(kind), [])):
            if sub.handler == handler:
                sub.unsubscribe()

    def subscriber_count(self, kind: str) -> int:
        return len(self._handlers.get(str(kind), []))

    def _remove(self, sub: Subscription) -> None:
        subs = self._handlers.get(sub.kind)
        if subs and sub in subs:
            subs.remove(sub)

    def _drop(self) -> None:
        self._socket = None
        self.state.reset()

    async def _send(self, kind: str, data: dict[str, Any]) -> None:
        if self._socket is None:
            raise TransportError("Socket is not connected")
        raw = WsInbound(type=str(kind), data=data).model_dump_json()
        await self._socket.send(raw)

    async def _read_loop(self, socket: Socket) -> None:
        try:
            while True:
                raw = await socket.recv()
                try:
                    frame = WsOutbound.model_validate_json(raw)
                except PydanticValidationError:
                    logger.warning("Dropping malformed frame: %.200s", raw)
                    continue
                await self._publish(frame.type, frame.data)
        except TransportError as exc:
            logger.warning("Connection lost: %s", exc)
        except Exception:
            logger.exception("Connection reader failed")
        if self._socket is socket:
            self._reader = None
            self._drop()
            await self._close_socket(socket)
            await self._publish(TransportEvent.DISCONNECTED, {"reason": "lost"})

    @staticmethod
    async def _close_socket(socket: Socket) -> None:
        try:
            await socket.close()
        except Exception:
            logger.debug("Error closing socket", exc_info=True)

    async def _publish(self, kind: str, data: dict[str, Any]) -> None:
        room_id = data.get("room_id")
        for sub in list(self._handlers.get(str(kind), [])):
            if not sub.active or not sub.matches(room_id):
                continue
            try:
                result = sub.handler(data)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for %s failed", kind)
