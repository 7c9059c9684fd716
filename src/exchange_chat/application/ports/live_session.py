from __future__ import annotations

from typing import Protocol

from exchange_chat.application.dto.session import JoinTicket, SessionInit


class LiveSessionApi(Protocol):
    """Session-initialization collaborator. Peer media setup is not modelled here."""

    async def initialize_session(self, exchange_id: int) -> SessionInit: ...
    async def accept_invitation(self, session_id: str) -> SessionInit: ...
    async def decline_invitation(self, session_id: str) -> None: ...
    async def join_session(self, session_id: str, token: str) -> JoinTicket: ...
    async def end_session(self, session_id: str) -> None: ...
