"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import itertools
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from exchange_chat.application.dto.notification import Toast
from exchange_chat.application.dto.principal import Principal
from exchange_chat.application.dto.session import JoinTicket, SessionInit
from exchange_chat.application.exceptions import NotFoundError, TransportError
from exchange_chat.domain.entities.envelope import Envelope, Text
from exchange_chat.domain.entities.exchange import Exchange
from exchange_chat.domain.entities.message import Message
from exchange_chat.domain.entities.room import Room
from exchange_chat.domain.value_objects.enums import ExchangeStatus
from exchange_chat.infrastructure.codec.envelope_codec import decode
from exchange_chat.infrastructure.memory.repositories import MemoryState
from exchange_chat.infrastructure.memory.uow import InMemoryUoW
from exchange_chat.infrastructure.ws.protocol import WsOutbound

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
LATER = BASE_TIME + timedelta(hours=1)


@pytest.fixture
def user_principal() -> Principal:
    return Principal(user_id=1, name="Alice")


@pytest.fixture
def peer_principal() -> Principal:
    return Principal(user_id=2, name="Bob")


@pytest.fixture
def outsider_principal() -> Principal:
    return Principal(user_id=99, name="Mallory")


def make_room(*, room_id: str = "r1", exchange_id: int = 42, user1_id: int = 1, user2_id: int = 2) -> Room:
    return Room(
        id=room_id,
        exchange_id=exchange_id,
        user1_id=user1_id,
        user2_id=user2_id,
        created_at=BASE_TIME,
    )


def make_message(
    *,
    message_id: str = "m1",
    room_id: str = "r1",
    sender_id: int = 2,
    envelope: Envelope | None = None,
    minutes: int = 0,
    client_msg_id: str | None = None,
    pending: bool = False,
) -> Message:
    return Message(
        id=message_id,
        room_id=room_id,
        sender_id=sender_id,
        created_at=BASE_TIME + timedelta(minutes=minutes),
        envelope=envelope or Text(content="hello"),
        client_msg_id=client_msg_id,
        pending=pending,
    )


def seeded_state(*, status: str = ExchangeStatus.ACCEPTED) -> MemoryState:
    state = MemoryState()
    state.add_exchange(Exchange(id=42, user1_id=1, user2_id=2, status=status))
    state.add_exchange(Exchange(id=7, user1_id=1, user2_id=3, status=ExchangeStatus.PENDING))
    return state


def make_uow(state: MemoryState | None = None) -> InMemoryUoW:
    return InMemoryUoW(state or seeded_state())


class FakeClock:
    def __init__(self, start: datetime = BASE_TIME) -> None:
        self._now = start

    def now(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


class FakeSocket:
    """In-memory Socket. ``push`` feeds server frames; ``settle`` waits until they are handled."""

    _CLOSED = object()

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        self._handed_out = False

    async def send(self, raw: str) -> None:
        if self.closed:
            raise TransportError("socket closed")
        self.sent.append(raw)

    async def recv(self) -> str:
        if self._handed_out:
            # The previous frame has been fully dispatched.
            self._inbox.task_done()
            self._handed_out = False
        item = await self._inbox.get()
        self._handed_out = True
        if item is self._CLOSED:
            raise TransportError("connection lost")
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True

    def push(self, event_type: str, data: dict[str, Any]) -> None:
        self._inbox.put_nowait(WsOutbound(type=event_type, data=data).model_dump_json())

    def push_raw(self, raw: str) -> None:
        self._inbox.put_nowait(raw)

    def drop(self) -> None:
        self._inbox.put_nowait(self._CLOSED)

    def fail(self, exc: Exception) -> None:
        self._inbox.put_nowait(exc)

    async def settle(self) -> None:
        await asyncio.wait_for(self._inbox.join(), timeout=1)

    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(raw) for raw in self.sent]

    def frame_types(self) -> list[str]:
        return [frame["type"] for frame in self.frames()]


class FakeSocketFactory:
    def __init__(self, *, fail: Exception | None = None) -> None:
        self.urls: list[str] = []
        self.sockets: list[FakeSocket] = []
        self.fail = fail

    async def __call__(self, url: str) -> FakeSocket:
        self.urls.append(url)
        if self.fail is not None:
            raise self.fail
        socket = FakeSocket()
        self.sockets.append(socket)
        return socket

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]


@dataclass
class FakeChatApi:
    """ChatApi double. A gate in ``gates`` holds that room's history fetch until it is set."""

    user_id: int = 1
    rooms: dict[int, Room] = field(default_factory=dict)
    history: dict[str, list[Message]] = field(default_factory=dict)
    sent: list[dict[str, Any]] = field(default_factory=list)
    fail_send: Exception | None = None
    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    _ids: Any = field(default_factory=lambda: itertools.count(100))
    _clock: FakeClock = field(default_factory=lambda: FakeClock(LATER))

    async def get_room_by_exchange(self, exchange_id: int) -> Room:
        room = self.rooms.get(exchange_id)
        if room is None:
            raise NotFoundError("Room not found")
        return room

    async def list_messages(self, room_id: str, *, limit: int = 200) -> list[Message]:
        gate = self.gates.get(room_id)
        if gate is not None:
            await gate.wait()
        return list(self.history.get(room_id, []))[-limit:]

    async def send_message(self, room_id: str, content: str, *, client_msg_id: str | None = None) -> Message:
        if self.fail_send is not None:
            raise self.fail_send
        self.sent.append({"room_id": room_id, "content": content, "client_msg_id": client_msg_id})
        return Message(
            id=f"srv-{self.user_id}-{next(self._ids)}",
            room_id=room_id,
            sender_id=self.user_id,
            created_at=self._clock.now(),
            envelope=decode(content),
            client_msg_id=client_msg_id,
        )


@dataclass
class FakeLiveSessionApi:
    session_id: str = "s1"
    accept_token: str = "tok-abc"
    calls: list[tuple[str, Any]] = field(default_factory=list)

    async def initialize_session(self, exchange_id: int) -> SessionInit:
        self.calls.append(("initialize", exchange_id))
        return SessionInit(
            session_id=self.session_id,
            exchange_id=exchange_id,
            status="waiting",
            token="init-token",
            is_initiator=True,
        )

    async def accept_invitation(self, session_id: str) -> SessionInit:
        self.calls.append(("accept", session_id))
        return SessionInit(
            session_id=session_id,
            exchange_id=42,
            status="waiting",
            token=self.accept_token,
            is_initiator=False,
        )

    async def decline_invitation(self, session_id: str) -> None:
        self.calls.append(("decline", session_id))

    async def join_session(self, session_id: str, token: str) -> JoinTicket:
        self.calls.append(("join", session_id))
        return JoinTicket(
            session_id=session_id,
            token=token,
            is_initiator=False,
            session_url=f"/live-exchange/{session_id}/{token}",
        )

    async def end_session(self, session_id: str) -> None:
        self.calls.append(("end", session_id))


@dataclass
class FakeNotifier:
    toasts: list[Toast] = field(default_factory=list)

    def notify(self, toast: Toast) -> None:
        self.toasts.append(toast)


@dataclass
class FakeFeed:
    count: int = 0
    fail: Exception | None = None

    async def unread_count(self) -> int:
        if self.fail is not None:
            raise self.fail
        return self.count


@dataclass
class FakePublisher:
    events: list[dict[str, Any]] = field(default_factory=list)

    async def publish(
        self,
        event_type: str,
        data: dict[str, Any],
        *,
        room_id: str,
        user_ids: tuple[int, ...] = (),
    ) -> None:
        self.events.append({"event_type": event_type, "data": data, "room_id": room_id, "user_ids": user_ids})
