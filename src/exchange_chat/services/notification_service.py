from __future__ import annotations

from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.uow import UnitOfWork


async def unread_count(principal: Principal, uow: UnitOfWork) -> int:
    return await uow.notifications.unread_count(principal.user_id)


async def mark_all_read(principal: Principal, uow: UnitOfWork) -> None:
    await uow.notifications.reset(principal.user_id)
    await uow.commit()
