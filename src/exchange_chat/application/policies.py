from __future__ import annotations

from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from exchange_chat.domain.entities.exchange import Exchange
from exchange_chat.domain.entities.room import Room
from exchange_chat.domain.value_objects.enums import ExchangeStatus


def assert_room_access(principal: Principal, room: Room | None) -> Room:
    """Raise if the room doesn't exist or the principal is not one of its two members."""
    if room is None:
        raise NotFoundError("Room not found")
    if not room.has_member(principal.user_id):
        raise ForbiddenError("Not a participant of this room")
    return room


def assert_exchange_access(principal: Principal, exchange: Exchange | None) -> Exchange:
    if exchange is None:
        raise NotFoundError("Exchange not found")
    if not exchange.has_member(principal.user_id):
        raise ForbiddenError("Not a participant of this exchange")
    if exchange.status != ExchangeStatus.ACCEPTED:
        raise ValidationError("Chat is only available for accepted exchanges")
    return exchange
