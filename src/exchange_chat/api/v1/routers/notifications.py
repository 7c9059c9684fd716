from __future__ import annotations

from fastapi import APIRouter, status

from exchange_chat.api.deps import CurrentPrincipal, UoWDep
from exchange_chat.api.v1.schemas.notification import UnreadCountResponse
from exchange_chat.services import notification_service

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(principal: CurrentPrincipal, uow: UoWDep) -> UnreadCountResponse:
    count = await notification_service.unread_count(principal, uow)
    return UnreadCountResponse(count=count)


@router.post("/read-all", status_code=status.HTTP_204_NO_CONTENT)
async def mark_all_read(principal: CurrentPrincipal, uow: UoWDep) -> None:
    await notification_service.mark_all_read(principal, uow)
