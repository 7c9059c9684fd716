from __future__ import annotations

from fastapi import APIRouter

from exchange_chat.api.deps import CurrentPrincipal, UoWDep
from exchange_chat.api.v1.schemas.live_exchange import (
    InitializeSessionRequest,
    JoinResponse,
    JoinSessionRequest,
    SessionResponse,
    StatusResponse,
)
from exchange_chat.services import live_session_service

router = APIRouter(prefix="/api/v1/live-exchange", tags=["live-exchange"])


@router.post("/initialize", response_model=SessionResponse)
async def initialize_session(
    body: InitializeSessionRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> SessionResponse:
    init = await live_session_service.initialize_session(body.exchange_id, principal, uow)
    return SessionResponse.model_validate(init, from_attributes=True)


@router.post("/{session_id}/accept", response_model=SessionResponse)
async def accept_invitation(
    session_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> SessionResponse:
    init = await live_session_service.accept_invitation(session_id, principal, uow)
    return SessionResponse.model_validate(init, from_attributes=True)


@router.post("/{session_id}/decline", response_model=StatusResponse)
async def decline_invitation(
    session_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> StatusResponse:
    await live_session_service.decline_invitation(session_id, principal, uow)
    return StatusResponse(message="Invitation declined")


@router.post("/{session_id}/join", response_model=JoinResponse)
async def join_session(
    session_id: str,
    body: JoinSessionRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> JoinResponse:
    ticket = await live_session_service.join_session(session_id, body.token, principal, uow)
    return JoinResponse.model_validate(ticket, from_attributes=True)


@router.post("/{session_id}/end", response_model=StatusResponse)
async def end_session(
    session_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> StatusResponse:
    await live_session_service.end_session(session_id, principal, uow)
    return StatusResponse(message="Session ended successfully")
