from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(frozen=True, slots=True)
class LiveExchangeSession:
    """One participant's local view of a live exchange session."""

    session_id: str
    exchange_id: int | None
    status: str
    is_initiator: bool
    token: str | None = None

    def with_token(self, token: str) -> LiveExchangeSession:
        return replace(self, token=token)


@dataclass(frozen=True, slots=True)
class LiveSessionRecord:
    """Gateway-side record of a live session."""

    id: str
    exchange_id: int
    initiator_id: int
    provider_id: int
    status: str
    invitation_status: str
    token: str
    created_at: datetime
    initiator_joined: bool = False
    provider_joined: bool = False
    ended_at: datetime | None = None
