from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.policies import assert_exchange_access
from exchange_chat.application.uow import UnitOfWork
from exchange_chat.domain.entities.room import Room

logger = logging.getLogger(__name__)


async def get_or_open_room_for_exchange(
    exchange_id: int,
    principal: Principal,
    uow: UnitOfWork,
) -> Room:
    """Return the exchange's chat room, creating it on first open."""
    exchange = await uow.exchanges.get_by_id(exchange_id)
    assert_exchange_access(principal, exchange)

    existing = await uow.rooms.get_by_exchange(exchange_id)
    if existing is not None:
        return existing

    room = Room(
        id=uuid.uuid4().hex,
        exchange_id=exchange.id,
        user1_id=exchange.user1_id,
        user2_id=exchange.user2_id,
        created_at=datetime.now(timezone.utc),
    )
    room = await uow.rooms_w.create(room)
    await uow.commit()
    logger.info("Opened room %s for exchange %s", room.id, exchange_id)
    return room
