from __future__ import annotations

from typing import Protocol

from exchange_chat.application.dto.notification import Toast


class NotificationFeed(Protocol):
    """Separate unread-notification source, merged additively with chat counters."""

    async def unread_count(self) -> int: ...


class Notifier(Protocol):
    """Transient user-facing signal sink (toasts). Best effort."""

    def notify(self, toast: Toast) -> None: ...
