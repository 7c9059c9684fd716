from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SessionInit:
    """Result of the session-initialization collaborator."""

    session_id: str
    exchange_id: int
    status: str
    token: str | None = None
    is_initiator: bool = False


@dataclass(frozen=True, slots=True)
class JoinTicket:
    """Hand-off to the peer-session layer once a session is joined."""

    session_id: str
    token: str
    is_initiator: bool
    session_url: str
