"""In-memory message store: ordered, deduplicated per-room logs plus unread counters."""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field

from exchange_chat.domain.entities.message import Message

logger = logging.getLogger(__name__)


@dataclass
class _RoomLog:
    by_id: dict[str, tuple[int, Message]] = field(default_factory=dict)
    by_client_id: dict[str, str] = field(default_factory=dict)

    def insert(self, seq: int, message: Message) -> None:
        self.by_id[message.id] = (seq, message)
        if message.client_msg_id:
            self.by_client_id[message.client_msg_id] = message.id

    def resolve(self, pending_id: str, message: Message) -> None:
        """Swap a pending entry for its confirmed message, keeping its arrival position."""
        seq, _ = self.by_id.pop(pending_id)
        self.insert(seq, message)


class InMemoryMessageStore:
    """Implements application.repositories.message.MessageStore."""

    def __init__(self) -> None:
        self._logs: dict[str, _RoomLog] = {}
        self._unread: dict[str, int] = {}
        self._seq = itertools.count()

    def _log(self, room_id: str) -> _RoomLog:
        return self._logs.setdefault(room_id, _RoomLog())

    def append(self, room_id: str, message: Message) -> bool:
        log = self._log(room_id)
        if message.id in log.by_id:
            return False

        known_id = log.by_client_id.get(message.client_msg_id) if message.client_msg_id else None
        if known_id is not None:
            _, known = log.by_id[known_id]
            if known.pending and not message.pending:
                log.resolve(known_id, message)
                logger.debug("Resolved pending message %s -> %s", known_id, message.id)
                return True
            return False

        log.insert(next(self._seq), message)
        return True

    def confirm(self, room_id: str, provisional_id: str, message: Message) -> bool:
        log = self._log(room_id)
        entry = log.by_id.get(provisional_id)
        if entry is None or not entry[1].pending:
            return self.append(room_id, message)
        if message.id in log.by_id:
            # Confirmed copy already arrived through the live transport.
            del log.by_id[provisional_id]
            if entry[1].client_msg_id:
                log.by_client_id[entry[1].client_msg_id] = message.id
            return True
        log.resolve(provisional_id, message)
        return True

    def discard(self, room_id: str, message_id: str) -> bool:
        """Drop a pending entry whose send failed. Confirmed messages are kept."""
        log = self._logs.get(room_id)
        entry = log.by_id.get(message_id) if log else None
        if entry is None or not entry[1].pending:
            return False
        del log.by_id[message_id]
        if entry[1].client_msg_id:
            log.by_client_id.pop(entry[1].client_msg_id, None)
        return True

    def get(self, room_id: str) -> list[Message]:
        log = self._logs.get(room_id)
        if log is None:
            return []
        entries = sorted(log.by_id.values(), key=lambda e: (e[1].created_at, e[0]))
        return [message for _, message in entries]

    def rooms(self) -> list[str]:
        return list(dict.fromkeys([*self._logs, *self._unread]))

    def unread_count(self, room_id: str) -> int:
        return self._unread.get(room_id, 0)

    def increment_unread(self, room_id: str) -> int:
        self._unread[room_id] = self._unread.get(room_id, 0) + 1
        return self._unread[room_id]

    def reset_unread(self, room_id: str) -> None:
        self._unread[room_id] = 0

    def clear(self) -> None:
        self._logs.clear()
        self._unread.clear()
