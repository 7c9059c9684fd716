from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from exchange_chat.domain.entities.envelope import Envelope


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    room_id: str
    sender_id: int
    created_at: datetime
    envelope: Envelope
    client_msg_id: str | None = None
    pending: bool = False
