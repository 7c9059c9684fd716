from __future__ import annotations

from typing import Any

import httpx

from exchange_chat.application.dto.session import JoinTicket, SessionInit
from exchange_chat.application.exceptions import TransportError
from exchange_chat.infrastructure.http.errors import request_json


def _session_init(data: Any) -> SessionInit:
    try:
        return SessionInit(
            session_id=str(data["session_id"]),
            exchange_id=int(data["exchange_id"]),
            status=data["status"],
            token=data.get("token"),
            is_initiator=bool(data.get("is_initiator", False)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise TransportError(f"Invalid session payload: {exc}") from exc


class HttpLiveSessionApi:
    """Implements application.ports.live_session.LiveSessionApi."""

    def __init__(self, client: httpx.AsyncClient, prefix: str = "/api/v1/live-exchange") -> None:
        self._client = client
        self._prefix = prefix

    async def initialize_session(self, exchange_id: int) -> SessionInit:
        data = await request_json(
            self._client, "POST", f"{self._prefix}/initialize", json={"exchange_id": exchange_id},
        )
        return _session_init(data)

    async def accept_invitation(self, session_id: str) -> SessionInit:
        data = await request_json(self._client, "POST", f"{self._prefix}/{session_id}/accept")
        return _session_init(data)

    async def decline_invitation(self, session_id: str) -> None:
        await request_json(self._client, "POST", f"{self._prefix}/{session_id}/decline")

    async def join_session(self, session_id: str, token: str) -> JoinTicket:
        data = await request_json(
            self._client, "POST", f"{self._prefix}/{session_id}/join", json={"token": token},
        )
        try:
            return JoinTicket(
                session_id=str(data["session_id"]),
                token=data["token"],
                is_initiator=bool(data["is_initiator"]),
                session_url=data["session_url"],
            )
        except (KeyError, TypeError) as exc:
            raise TransportError(f"Invalid join payload: {exc}") from exc

    async def end_session(self, session_id: str) -> None:
        await request_json(self._client, "POST", f"{self._prefix}/{session_id}/end")
