"""Live exchange session lifecycle on the gateway side.

Tokens are opaque; accepting an invitation rotates the token, so only the
token carried by the acceptance envelope admits either participant.
"""
from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import replace
from datetime import datetime, timezone

from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.dto.session import JoinTicket, SessionInit
from exchange_chat.application.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from exchange_chat.application.uow import UnitOfWork
from exchange_chat.domain.entities.session import LiveSessionRecord
from exchange_chat.domain.value_objects.enums import (
    ExchangeStatus,
    InvitationStatus,
    SessionStatus,
)

logger = logging.getLogger(__name__)


def _new_token() -> str:
    return secrets.token_hex(32)


def session_url(record: LiveSessionRecord) -> str:
    return f"/live-exchange/{record.id}/{record.token}"


def _to_init(record: LiveSessionRecord, user_id: int) -> SessionInit:
    return SessionInit(
        session_id=record.id,
        exchange_id=record.exchange_id,
        status=record.status,
        token=record.token,
        is_initiator=record.initiator_id == user_id,
    )


async def _get_for_member(session_id: str, principal: Principal, uow: UnitOfWork) -> LiveSessionRecord:
    record = await uow.live_sessions.get_by_id(session_id)
    if record is None:
        raise NotFoundError("Session not found")
    if principal.user_id not in (record.initiator_id, record.provider_id):
        raise ForbiddenError("Not a participant of this session")
    return record


async def initialize_session(
    exchange_id: int,
    principal: Principal,
    uow: UnitOfWork,
) -> SessionInit:
    """Start a session for an accepted exchange, or return the one still open."""
    exchange = await uow.exchanges.get_by_id(exchange_id)
    if exchange is None:
        raise NotFoundError(f"Exchange not found for id: {exchange_id}")
    if not exchange.has_member(principal.user_id):
        raise ForbiddenError("Unauthorized to initiate this session")
    if exchange.status != ExchangeStatus.ACCEPTED:
        raise ValidationError("Live session can only be initiated for accepted exchanges")

    existing = await uow.live_sessions.get_open_for_exchange(exchange_id)
    if existing is not None:
        return _to_init(existing, principal.user_id)

    peer_id = exchange.user2_id if principal.user_id == exchange.user1_id else exchange.user1_id
    record = LiveSessionRecord(
        id=uuid.uuid4().hex,
        exchange_id=exchange_id,
        initiator_id=principal.user_id,
        provider_id=peer_id,
        status=SessionStatus.WAITING,
        invitation_status=InvitationStatus.PENDING,
        token=_new_token(),
        created_at=datetime.now(timezone.utc),
    )
    await uow.live_sessions.save(record)
    await uow.commit()
    logger.info("Live session %s created for exchange %s", record.id, exchange_id)
    return _to_init(record, principal.user_id)


async def accept_invitation(
    session_id: str,
    principal: Principal,
    uow: UnitOfWork,
) -> SessionInit:
    record = await _get_for_member(session_id, principal, uow)
    if record.provider_id != principal.user_id:
        raise ForbiddenError("Unauthorized to accept this invitation")
    if record.invitation_status != InvitationStatus.PENDING:
        raise ConflictError("Invalid invitation status")

    record = replace(record, invitation_status=InvitationStatus.ACCEPTED, token=_new_token())
    await uow.live_sessions.save(record)
    await uow.notifications.increment(record.initiator_id)
    await uow.commit()
    return _to_init(record, principal.user_id)


async def decline_invitation(
    session_id: str,
    principal: Principal,
    uow: UnitOfWork,
) -> None:
    record = await _get_for_member(session_id, principal, uow)
    if record.provider_id != principal.user_id:
        raise ForbiddenError("Unauthorized to decline this invitation")
    if record.invitation_status != InvitationStatus.PENDING:
        raise ConflictError("Invalid invitation status")

    record = replace(
        record,
        invitation_status=InvitationStatus.DECLINED,
        status=SessionStatus.ENDED,
        ended_at=datetime.now(timezone.utc),
    )
    await uow.live_sessions.save(record)
    await uow.notifications.increment(record.initiator_id)
    await uow.commit()


async def join_session(
    session_id: str,
    token: str,
    principal: Principal,
    uow: UnitOfWork,
) -> JoinTicket:
    record = await _get_for_member(session_id, principal, uow)
    if not token or not secrets.compare_digest(token, record.token):
        raise ForbiddenError("Invalid session token")
    if record.status == SessionStatus.ENDED:
        raise ConflictError("Session has ended")

    is_initiator = record.initiator_id == principal.user_id
    if is_initiator:
        record = replace(record, initiator_joined=True)
    else:
        record = replace(record, provider_joined=True)
    if record.initiator_joined and record.provider_joined:
        record = replace(record, status=SessionStatus.ACTIVE)

    await uow.live_sessions.save(record)
    await uow.commit()
    return JoinTicket(
        session_id=record.id,
        token=record.token,
        is_initiator=is_initiator,
        session_url=session_url(record),
    )


async def end_session(
    session_id: str,
    principal: Principal,
    uow: UnitOfWork,
) -> None:
    record = await _get_for_member(session_id, principal, uow)
    if record.status == SessionStatus.ENDED:
        return
    record = replace(record, status=SessionStatus.ENDED, ended_at=datetime.now(timezone.utc))
    await uow.live_sessions.save(record)
    await uow.commit()
    logger.info("Live session %s ended by user %s", session_id, principal.user_id)
