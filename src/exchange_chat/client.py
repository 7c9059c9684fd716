"""Client composition root: one authenticated session, one connection."""
from __future__ import annotations

import logging
from types import TracebackType
from typing import Self

import httpx

from exchange_chat.application.ports.notifications import Notifier
from exchange_chat.application.ports.socket import SocketFactory
from exchange_chat.config import Settings, settings as default_settings
from exchange_chat.infrastructure.http.chat_api import HttpChatApi
from exchange_chat.infrastructure.http.errors import make_client
from exchange_chat.infrastructure.http.live_session_api import HttpLiveSessionApi
from exchange_chat.infrastructure.http.notification_api import HttpNotificationFeed
from exchange_chat.infrastructure.store.memory import InMemoryMessageStore
from exchange_chat.infrastructure.ws.client import WebSocketConnector
from exchange_chat.services.chat_orchestrator import ChatOrchestrator
from exchange_chat.services.connection_manager import ConnectionManager
from exchange_chat.services.notification_bridge import NotificationBridge

logger = logging.getLogger(__name__)


class ChatClient:
    """Owns the HTTP client, the shared connection and the orchestrator.

    Usage::

        async with ChatClient(token, user_id) as client:
            room = await client.chat.open_room(42)
            await client.chat.send_text(room.id, "hi")
    """

    def __init__(
        self,
        token: str,
        user_id: int,
        *,
        notifier: Notifier | None = None,
        config: Settings | None = None,
        socket_factory: SocketFactory | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        cfg = config or default_settings
        self._token = token
        self._http = make_client(cfg.API_URL, token, cfg.HTTP_TIMEOUT_SECONDS, transport)

        store = InMemoryMessageStore()
        self.connection = ConnectionManager(
            cfg.WS_URL,
            socket_factory or WebSocketConnector(open_timeout=cfg.HTTP_TIMEOUT_SECONDS),
        )
        self.bridge = NotificationBridge(
            user_id,
            store,
            notifier=notifier,
            feed=HttpNotificationFeed(self._http),
        )
        self.chat = ChatOrchestrator(
            user_id,
            self.connection,
            HttpChatApi(self._http),
            HttpLiveSessionApi(self._http),
            store=store,
            bridge=self.bridge,
            history_limit=cfg.HISTORY_LIMIT,
        )

    async def start(self) -> None:
        self.chat.start()
        await self.connection.connect(self._token)
        await self.bridge.refresh_feed()

    async def reconnect(self) -> None:
        await self.chat.resume(self._token)

    async def aclose(self) -> None:
        await self.chat.stop()
        await self.connection.close()
        self.chat.store.clear()
        self.chat.tracker.reset()
        await self._http.aclose()
        logger.info("Chat client closed")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
