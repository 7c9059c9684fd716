from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from exchange_chat.api.deps import get_verifier
from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.exceptions import AppError
from exchange_chat.application.policies import assert_room_access
from exchange_chat.application.ports.bus import RoomEventPublisher
from exchange_chat.config import settings
from exchange_chat.domain.value_objects.enums import TransportEvent
from exchange_chat.infrastructure.memory.uow import InMemoryUoW
from exchange_chat.infrastructure.ws.manager import ConnectionRegistry
from exchange_chat.infrastructure.ws.protocol import WsInbound, WsOutbound
from exchange_chat.services import message_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


async def _authenticate(token: str) -> Principal | None:
    try:
        verifier = get_verifier()
        return await verifier.verify(token)
    except Exception:
        logger.debug("WS auth failed", exc_info=True)
        return None


async def _send(ws: WebSocket, event_type: str, data: dict[str, Any]) -> None:
    await ws.send_text(WsOutbound(type=event_type, data=data).model_dump_json())


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    registry: ConnectionRegistry = websocket.app.state.registry
    pkey = principal.principal_key
    await registry.connect(websocket, pkey)

    heartbeat_task = asyncio.create_task(
        _heartbeat(websocket), name=f"ws-heartbeat-{pkey}",
    )
    try:
        await _read_loop(websocket, principal)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", pkey)
    finally:
        heartbeat_task.cancel()
        registry.disconnect(websocket, pkey)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await _send(ws, TransportEvent.PONG, {})
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped", exc_info=True)


async def _read_loop(ws: WebSocket, principal: Principal) -> None:
    registry: ConnectionRegistry = ws.app.state.registry
    publisher: RoomEventPublisher = ws.app.state.publisher
    pkey = principal.principal_key
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await _send(ws, TransportEvent.ERROR, {"code": "invalid_payload"})
            continue

        if msg.type == TransportEvent.PING:
            await _send(ws, TransportEvent.PONG, {})

        elif msg.type in (TransportEvent.JOIN_ROOM, TransportEvent.LEAVE_ROOM):
            room_id = str(msg.data.get("room_id") or "")
            if not await _check_room(ws, principal, room_id):
                continue
            if msg.type == TransportEvent.JOIN_ROOM:
                registry.join(pkey, room_id)
            else:
                registry.leave(pkey, room_id)

        elif msg.type == TransportEvent.NEW_MESSAGE:
            await _handle_send(ws, principal, msg.data, publisher)

        elif msg.type == TransportEvent.LIVE_EXCHANGE_INVITATION:
            await _handle_invitation(ws, principal, msg.data, registry)

        else:
            await _send(ws, TransportEvent.ERROR, {"code": "unknown_type", "type": msg.type})


async def _check_room(ws: WebSocket, principal: Principal, room_id: str) -> bool:
    uow = InMemoryUoW(ws.app.state.store)
    try:
        assert_room_access(principal, await uow.rooms.get_by_id(room_id))
    except AppError as exc:
        await _send(ws, TransportEvent.ERROR, {"code": "room_access", "detail": exc.detail})
        return False
    return True


async def _handle_send(
    ws: WebSocket,
    principal: Principal,
    data: dict[str, Any],
    publisher: RoomEventPublisher,
) -> None:
    room_id = data.get("room_id")
    content = data.get("content")
    if not room_id or content is None:
        await _send(ws, TransportEvent.ERROR, {"code": "invalid_data", "detail": "room_id and content are required"})
        return

    client_msg_id = data.get("client_msg_id")
    async with InMemoryUoW(ws.app.state.store) as uow:
        try:
            await message_service.send_message(
                str(room_id),
                principal,
                content,
                str(client_msg_id) if client_msg_id else None,
                uow,
                publisher,
            )
        except AppError as exc:
            await _send(ws, TransportEvent.ERROR, {"code": "send_failed", "detail": exc.detail})


async def _handle_invitation(
    ws: WebSocket,
    principal: Principal,
    data: dict[str, Any],
    registry: ConnectionRegistry,
) -> None:
    room_id = str(data.get("room_id") or "")
    uow = InMemoryUoW(ws.app.state.store)
    try:
        room = assert_room_access(principal, await uow.rooms.get_by_id(room_id))
    except AppError as exc:
        await _send(ws, TransportEvent.ERROR, {"code": "room_access", "detail": exc.detail})
        return
    payload = {"room_id": room.id, "sender_id": principal.user_id, "content": data.get("content")}
    peer_key = f"user:{room.peer_of(principal.user_id)}"
    await registry.send_to_principal(peer_key, TransportEvent.LIVE_EXCHANGE_INVITATION, payload)
