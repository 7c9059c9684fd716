from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Room:
    id: str
    exchange_id: int
    user1_id: int
    user2_id: int
    created_at: datetime

    def has_member(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def peer_of(self, user_id: int) -> int:
        return self.user2_id if user_id == self.user1_id else self.user1_id
