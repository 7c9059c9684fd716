"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.ports.auth import TokenVerifier
from exchange_chat.application.ports.bus import RoomEventPublisher
from exchange_chat.config import settings
from exchange_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from exchange_chat.infrastructure.memory.repositories import MemoryState
from exchange_chat.infrastructure.memory.uow import InMemoryUoW
from exchange_chat.infrastructure.ws.manager import ConnectionRegistry

_bearer_scheme = HTTPBearer()


def get_state(request: Request) -> MemoryState:
    return request.app.state.store


async def get_uow(state: Annotated[MemoryState, Depends(get_state)]) -> AsyncIterator[InMemoryUoW]:
    async with InMemoryUoW(state) as uow:
        yield uow


UoWDep = Annotated[InMemoryUoW, Depends(get_uow)]


def get_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.registry


def get_publisher(request: Request) -> RoomEventPublisher:
    return request.app.state.publisher


PublisherDep = Annotated[RoomEventPublisher, Depends(get_publisher)]


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
