from __future__ import annotations

from pydantic import BaseModel


class InitializeSessionRequest(BaseModel):
    exchange_id: int


class JoinSessionRequest(BaseModel):
    token: str


class SessionResponse(BaseModel):
    session_id: str
    exchange_id: int
    status: str
    token: str | None = None
    is_initiator: bool = False

    model_config = {"from_attributes": True}


class JoinResponse(BaseModel):
    session_id: str
    token: str
    is_initiator: bool
    session_url: str

    model_config = {"from_attributes": True}


class StatusResponse(BaseModel):
    message: str
