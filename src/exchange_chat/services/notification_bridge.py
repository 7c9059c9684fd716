"""Unread accounting for non-focused rooms and toasts for signaling messages."""
from __future__ import annotations

import logging

from exchange_chat.application.dto.notification import Toast, ToastKind
from exchange_chat.application.exceptions import AppError
from exchange_chat.application.ports.notifications import NotificationFeed, Notifier
from exchange_chat.application.repositories.message import MessageStore
from exchange_chat.domain.entities.envelope import LiveExchangeAccepted, LiveExchangeInvitation
from exchange_chat.domain.entities.message import Message

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Fallback Notifier that only logs."""

    def notify(self, toast: Toast) -> None:
        logger.info("[%s] %s", toast.kind, toast.text)


class NotificationBridge:
    def __init__(
        self,
        user_id: int,
        store: MessageStore,
        notifier: Notifier | None = None,
        feed: NotificationFeed | None = None,
    ) -> None:
        self._user_id = user_id
        self._store = store
        self._notifier = notifier or LoggingNotifier()
        self._feed = feed
        self._feed_count = 0

    def on_inbound(self, message: Message, focused_room_id: str | None) -> None:
        """Account for a message newly added to the store. Call once per message."""
        if message.sender_id == self._user_id:
            return
        if message.room_id != focused_room_id:
            count = self._store.increment_unread(message.room_id)
            logger.debug("Room %s unread=%d", message.room_id, count)

        toast = self._toast_for(message)
        if toast is None:
            return
        try:
            self._notifier.notify(toast)
        except Exception:
            logger.exception("Notifier failed")

    def focus(self, room_id: str) -> None:
        self._store.reset_unread(room_id)

    def unread(self, room_id: str) -> int:
        return self._store.unread_count(room_id)

    async def refresh_feed(self) -> int:
        """Pull the separate notification feed's unread count. Keeps the last value on failure."""
        if self._feed is None:
            return self._feed_count
        try:
            self._feed_count = await self._feed.unread_count()
        except AppError as exc:
            logger.warning("Notification feed unavailable: %s", exc.detail)
        return self._feed_count

    def total_unread(self) -> int:
        rooms = sum(self._store.unread_count(room_id) for room_id in self._store.rooms())
        return rooms + self._feed_count

    @staticmethod
    def _toast_for(message: Message) -> Toast | None:
        envelope = message.envelope
        if isinstance(envelope, LiveExchangeAccepted):
            return Toast(
                kind=ToastKind.SUCCESS,
                text="Live exchange invitation accepted. You can now join the session.",
                room_id=message.room_id,
                session_id=envelope.session_id,
            )
        if isinstance(envelope, LiveExchangeInvitation):
            return Toast(
                kind=ToastKind.INFO,
                text="You have received a live exchange invitation.",
                room_id=message.room_id,
                session_id=envelope.session_id,
            )
        return None
