from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Exchange:
    """Skill exchange between two users. Owned by the platform, read-only here."""

    id: int
    user1_id: int
    user2_id: int
    status: str

    def has_member(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)
