from __future__ import annotations

import json

import httpx
import pytest

from exchange_chat.application.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from exchange_chat.domain.entities.envelope import LiveExchangeInvitation, Text
from exchange_chat.infrastructure.codec.envelope_codec import encode
from exchange_chat.infrastructure.http.chat_api import HttpChatApi
from exchange_chat.infrastructure.http.live_session_api import HttpLiveSessionApi
from exchange_chat.infrastructure.http.notification_api import HttpNotificationFeed
from exchange_chat.services.chat_orchestrator import ChatOrchestrator
from exchange_chat.services.connection_manager import ConnectionManager
from tests.conftest import FakeLiveSessionApi, FakeSocketFactory

ROOM = {
    "id": 5,
    "exchangeId": 42,
    "user1Id": 1,
    "user2Id": 2,
    "createdAt": "2024-05-01T12:00:00Z",
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url="http://api.test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_room_by_exchange_accepts_camel_case():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/chat/rooms/by-exchange/42"
        return httpx.Response(200, json=ROOM)

    async with _client(handler) as client:
        room = await HttpChatApi(client).get_room_by_exchange(42)

    assert room.id == "5"
    assert room.exchange_id == 42
    assert room.has_member(2)


@pytest.mark.asyncio
async def test_list_messages_decodes_envelopes():
    invitation = LiveExchangeInvitation("s1", 42, "waiting")
    rows = [
        {"id": 1, "roomId": 5, "senderId": 2, "content": "plain", "createdAt": "2024-05-01T12:00:00"},
        {"id": 2, "room_id": "5", "sender_id": 1, "content": encode(invitation), "created_at": "2024-05-01T12:01:00Z"},
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["limit"] == "50"
        return httpx.Response(200, json=rows)

    async with _client(handler) as client:
        messages = await HttpChatApi(client).list_messages("5", limit=50)

    assert [m.id for m in messages] == ["1", "2"]
    assert messages[0].envelope == Text(content="plain")
    assert messages[0].created_at.tzinfo is not None
    assert messages[1].envelope == invitation


@pytest.mark.asyncio
async def test_send_message_posts_body():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(json.loads(request.content))
        return httpx.Response(201, json={
            "id": "m9",
            "room_id": "5",
            "sender_id": 1,
            "content": seen["content"],
            "client_msg_id": seen["client_msg_id"],
            "created_at": "2024-05-01T12:00:00Z",
        })

    async with _client(handler) as client:
        msg = await HttpChatApi(client).send_message("5", encode(Text(content="hi")), client_msg_id="c1")

    assert seen["room_id"] == "5"
    assert msg.client_msg_id == "c1"
    assert msg.envelope == Text(content="hi")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error"),
    [
        (403, ForbiddenError),
        (404, NotFoundError),
        (409, ConflictError),
        (422, ValidationError),
        (500, TransportError),
    ],
)
async def test_status_codes_map_to_app_errors(status, error):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"detail": "nope"})

    async with _client(handler) as client:
        with pytest.raises(error) as exc_info:
            await HttpChatApi(client).get_room_by_exchange(42)

    assert exc_info.value.detail == "nope"


@pytest.mark.asyncio
async def test_network_failure_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(TransportError):
            await HttpChatApi(client).list_messages("5")


@pytest.mark.asyncio
async def test_malformed_room_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "5"})

    async with _client(handler) as client:
        with pytest.raises(TransportError):
            await HttpChatApi(client).get_room_by_exchange(42)


@pytest.mark.asyncio
async def test_live_session_api_round_trip():
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/initialize"):
            assert json.loads(request.content) == {"exchange_id": 42}
            return httpx.Response(200, json={"session_id": 7, "exchange_id": 42, "status": "waiting", "token": "t0", "is_initiator": True})
        if path.endswith("/accept"):
            return httpx.Response(200, json={"session_id": "7", "exchange_id": 42, "status": "waiting", "token": "t1"})
        if path.endswith("/join"):
            assert json.loads(request.content) == {"token": "t1"}
            return httpx.Response(200, json={"session_id": "7", "token": "t1", "is_initiator": False, "session_url": "/live-exchange/7/t1"})
        return httpx.Response(200, json={"message": "ok"})

    async with _client(handler) as client:
        api = HttpLiveSessionApi(client)
        init = await api.initialize_session(42)
        accepted = await api.accept_invitation("7")
        ticket = await api.join_session("7", "t1")
        await api.decline_invitation("7")
        await api.end_session("7")

    assert init.session_id == "7"
    assert init.is_initiator is True
    assert accepted.token == "t1"
    assert ticket.session_url == "/live-exchange/7/t1"


@pytest.mark.asyncio
async def test_notification_feed():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/notifications/unread-count"
        return httpx.Response(200, json={"count": 4})

    async with _client(handler) as client:
        assert await HttpNotificationFeed(client).unread_count() == 4


@pytest.mark.asyncio
async def test_non_json_success_body_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="ok")

    async with _client(handler) as client:
        with pytest.raises(TransportError):
            await HttpChatApi(client).get_room_by_exchange(42)


@pytest.mark.asyncio
async def test_message_list_must_be_a_list():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"messages": []})

    async with _client(handler) as client:
        with pytest.raises(TransportError):
            await HttpChatApi(client).list_messages("5")


@pytest.mark.asyncio
async def test_send_with_garbled_response_drops_provisional():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="ok")

    async with _client(handler) as client:
        chat = ChatOrchestrator(
            1,
            ConnectionManager("ws://chat.test/ws/chat", socket_factory=FakeSocketFactory()),
            HttpChatApi(client),
            FakeLiveSessionApi(),
        )
        with pytest.raises(TransportError):
            await chat.send_text("5", "hello")

    assert chat.store.get("5") == []
