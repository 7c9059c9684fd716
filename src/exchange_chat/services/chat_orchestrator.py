"""Composes the connection, the message store and the session tracker for one user.

Inbound ``new_message`` events for the focused room go through a room-scoped
subscription that is replaced on every room switch; events for any other
room go through a single background subscription that only does unread
accounting. A message reaches the tracker and the notification bridge only
when the store actually accepted it, so duplicate deliveries are absorbed
there.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from exchange_chat.application.dto.session import JoinTicket
from exchange_chat.application.exceptions import (
    AppError,
    ConflictError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from exchange_chat.application.ports.chat_api import ChatApi
from exchange_chat.application.ports.clock import Clock, SystemClock
from exchange_chat.application.ports.live_session import LiveSessionApi
from exchange_chat.application.repositories.message import MessageStore
from exchange_chat.domain.entities.envelope import (
    Envelope,
    LiveExchangeAccepted,
    LiveExchangeInvitation,
    Text,
)
from exchange_chat.domain.entities.message import Message
from exchange_chat.domain.entities.room import Room
from exchange_chat.domain.value_objects.enums import SessionPhase, SessionStatus, TransportEvent
from exchange_chat.infrastructure.codec.envelope_codec import decode, encode
from exchange_chat.infrastructure.codec.wire import message_from_wire
from exchange_chat.infrastructure.store.memory import InMemoryMessageStore
from exchange_chat.services.connection_manager import ConnectionManager, Subscription
from exchange_chat.services.notification_bridge import NotificationBridge
from exchange_chat.services.session_tracker import SessionTracker

logger = logging.getLogger(__name__)

INVITATION_TEXT = "I'd like to start a live exchange session with you!"
ACCEPTED_TEXT = "Live exchange invitation accepted. Click to join the session."


class ChatOrchestrator:
    def __init__(
        self,
        user_id: int,
        connection: ConnectionManager,
        chat_api: ChatApi,
        live_sessions: LiveSessionApi,
        *,
        store: MessageStore | None = None,
        tracker: SessionTracker | None = None,
        bridge: NotificationBridge | None = None,
        clock: Clock | None = None,
        history_limit: int = 200,
    ) -> None:
        self.user_id = user_id
        self.connection = connection
        self.store = store or InMemoryMessageStore()
        self.tracker = tracker or SessionTracker(user_id)
        self.bridge = bridge or NotificationBridge(user_id, self.store)
        self._chat_api = chat_api
        self._live_sessions = live_sessions
        self._clock = clock or SystemClock()
        self._history_limit = history_limit

        self._focused: Room | None = None
        self._generation = 0
        self._global_subs: list[Subscription] = []
        self._room_subs: list[Subscription] = []

    @property
    def focused_room_id(self) -> str | None:
        return self._focused.id if self._focused else None

    # -- lifecycle --------------------------------------------------------

    def start(self) -> None:
        if self._global_subs:
            return
        on = self.connection.on
        self._global_subs = [
            on(TransportEvent.NEW_MESSAGE, self._on_background_message),
            on(TransportEvent.LIVE_EXCHANGE_INVITATION, self._on_invitation_event),
            on(TransportEvent.DISCONNECTED, self._on_disconnected),
            on(TransportEvent.ERROR, self._on_transport_error),
        ]

    async def stop(self) -> None:
        await self.close_room()
        for sub in self._global_subs:
            sub.unsubscribe()
        self._global_subs = []

    async def resume(self, token: str) -> None:
        """Reconnect after a drop and rejoin the focused room."""
        await self.connection.connect(token)
        if self._focused is not None:
            await self.connection.join_room(self._focused.id)
            logger.info("Rejoined room %s", self._focused.id)

    # -- rooms ------------------------------------------------------------

    async def open_room(self, exchange_id: int) -> Room | None:
        """Focus the room of ``exchange_id``: join it, merge history, subscribe.

        Returns None when another room was opened while this one was loading.
        """
        self._generation += 1
        generation = self._generation

        room = await self._chat_api.get_room_by_exchange(exchange_id)
        if generation != self._generation:
            logger.info("Discarding stale room lookup for exchange %s", exchange_id)
            return None

        await self._unfocus()
        self._focused = room
        self.bridge.focus(room.id)
        await self.connection.join_room(room.id)

        history = await self._chat_api.list_messages(room.id, limit=self._history_limit)
        if generation != self._generation:
            logger.info("Discarding stale history for room %s", room.id)
            return None

        for message in history:
            if self.store.append(room.id, message):
                self.tracker.observe_message(message)

        self._room_subs = [
            self.connection.on(TransportEvent.NEW_MESSAGE, self._on_room_message, room_id=room.id),
        ]
        logger.info("Opened room %s (%d messages)", room.id, len(history))
        return room

    async def close_room(self) -> None:
        self._generation += 1
        await self._unfocus()

    async def _unfocus(self) -> None:
        for sub in self._room_subs:
            sub.unsubscribe()
        self._room_subs = []
        previous, self._focused = self._focused, None
        if previous is not None:
            self.bridge.focus(previous.id)
            await self.connection.leave_room(previous.id)

    # -- sending ----------------------------------------------------------

    async def send_text(self, room_id: str, text: str) -> Message:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message cannot be empty")
        return await self._send(room_id, Text(content=text))

    async def send_invitation(self, room_id: str, exchange_id: int | None) -> Message:
        if not room_id or exchange_id is None:
            raise ValidationError("Exchange and room are required to start a live session")

        init = await self._live_sessions.initialize_session(exchange_id)
        envelope = LiveExchangeInvitation(
            session_id=init.session_id,
            exchange_id=init.exchange_id,
            status=SessionStatus.WAITING,
            is_initiator=True,
            message=INVITATION_TEXT,
        )
        message = await self._send(room_id, envelope)
        await self._relay_invitation(room_id, envelope)
        return message

    async def _send(self, room_id: str, envelope: Envelope) -> Message:
        client_msg_id = uuid.uuid4().hex
        provisional = Message(
            id=client_msg_id,
            room_id=room_id,
            sender_id=self.user_id,
            created_at=self._clock.now(),
            envelope=envelope,
            client_msg_id=client_msg_id,
            pending=True,
        )
        self.store.append(room_id, provisional)
        generation = self._generation

        try:
            confirmed = await self._chat_api.send_message(
                room_id, encode(envelope), client_msg_id=client_msg_id,
            )
        except AppError:
            self.store.discard(room_id, client_msg_id)
            raise

        if generation != self._generation and room_id != self.focused_room_id:
            # Left pending; a later history merge resolves it by client_msg_id.
            logger.info("Room %s lost focus before send %s confirmed", room_id, client_msg_id)
            return confirmed

        self.store.confirm(room_id, client_msg_id, confirmed)
        self.tracker.observe_message(confirmed)
        return confirmed

    async def _relay_invitation(self, room_id: str, envelope: LiveExchangeInvitation) -> None:
        try:
            await self.connection.send_event(
                TransportEvent.LIVE_EXCHANGE_INVITATION,
                {"room_id": room_id, "sender_id": self.user_id, "content": encode(envelope)},
            )
        except TransportError as exc:
            logger.warning("Invitation relay skipped: %s", exc.detail)

    # -- live sessions ----------------------------------------------------

    async def accept_invitation(self, message: Message) -> Message:
        envelope = self._require_invitation(message)
        if message.sender_id == self.user_id:
            raise ValidationError("You cannot accept your own invitation")

        room_id = message.room_id
        state = self.tracker.state(room_id)
        if state.session is None:
            # Invitation not seen live yet, e.g. picked from history.
            self.tracker.observe_message(message)
            state = self.tracker.state(room_id)
        if not state.holds(envelope.session_id) or state.phase != SessionPhase.INVITED:
            raise ConflictError("This invitation is no longer pending")

        init = await self._live_sessions.accept_invitation(envelope.session_id)
        if not init.token:
            raise TransportError("Session service did not issue a join token")

        accepted = LiveExchangeAccepted(
            session_id=envelope.session_id,
            exchange_id=envelope.exchange_id,
            token=init.token,
            is_initiator=False,
            message=ACCEPTED_TEXT,
        )
        return await self._send(room_id, accepted)

    async def decline_invitation(self, message: Message) -> None:
        envelope = self._require_invitation(message)
        if message.sender_id == self.user_id:
            raise ValidationError("You cannot decline your own invitation")

        await self._live_sessions.decline_invitation(envelope.session_id)
        self.tracker.close(message.room_id, envelope.session_id, declined=True)

    async def join_session(self, session_id: str, token: str, is_initiator: bool) -> JoinTicket:
        if not session_id or not token:
            raise ValidationError("Session id and join token are required")
        room_id = self.tracker.find_room(session_id)
        if room_id is None:
            raise NotFoundError(f"Unknown live session {session_id}")
        state = self.tracker.state(room_id)
        if state.phase != SessionPhase.ACCEPTED:
            raise ConflictError(f"Session {session_id} cannot be joined while {state.phase}")
        if state.is_initiator != is_initiator:
            logger.warning("Join for session %s with unexpected role initiator=%s", session_id, is_initiator)

        ticket = await self._live_sessions.join_session(session_id, token)
        transition = self.tracker.join(room_id, session_id, token)
        if not transition.applied:
            raise ConflictError(transition.reason)
        return ticket

    async def end_session(self, room_id: str) -> None:
        state = self.tracker.state(room_id)
        if state.session is None or state.phase == SessionPhase.ENDED:
            raise NotFoundError("No live session in this room")
        await self._live_sessions.end_session(state.session.session_id)
        self.tracker.close(room_id, state.session.session_id)

    @staticmethod
    def _require_invitation(message: Message) -> LiveExchangeInvitation:
        envelope = message.envelope
        if not isinstance(envelope, LiveExchangeInvitation):
            raise ValidationError("Message is not a live exchange invitation")
        if not envelope.session_id or envelope.exchange_id is None:
            raise ValidationError("Invalid invitation data")
        return envelope

    # -- transport handlers -----------------------------------------------

    def _on_room_message(self, data: dict[str, Any]) -> None:
        message = self._parse(data)
        if message is not None:
            self._ingest(message)

    def _on_background_message(self, data: dict[str, Any]) -> None:
        message = self._parse(data)
        if message is None:
            return
        if self._room_subs and message.room_id == self.focused_room_id:
            return
        self._ingest(message)

    def _on_invitation_event(self, data: dict[str, Any]) -> None:
        room_id = data.get("room_id")
        if not room_id:
            logger.warning("live_exchange_invitation without room_id")
            return
        envelope = decode(data.get("content", data))
        outbound = data.get("sender_id") == self.user_id
        self.tracker.observe_envelope(str(room_id), envelope, outbound=outbound)

    def _on_disconnected(self, data: dict[str, Any]) -> None:
        logger.info("Connection %s; call resume() to rejoin", data.get("reason", "dropped"))

    def _on_transport_error(self, data: dict[str, Any]) -> None:
        logger.warning("Server error: %s", data.get("detail") or data)

    def _ingest(self, message: Message) -> None:
        if not self.store.append(message.room_id, message):
            return
        self.tracker.observe_message(message)
        self.bridge.on_inbound(message, self.focused_room_id)

    @staticmethod
    def _parse(data: dict[str, Any]) -> Message | None:
        try:
            return message_from_wire(data)
        except PydanticValidationError:
            logger.warning("Dropping malformed new_message: %.200s", data)
            return None
