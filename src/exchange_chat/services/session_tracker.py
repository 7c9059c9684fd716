"""Per-room live exchange state, reconciled from locally observed envelopes."""
from __future__ import annotations

import logging

from exchange_chat.domain.entities.envelope import Envelope, is_signaling
from exchange_chat.domain.entities.message import Message
from exchange_chat.domain.events.session_events import (
    EnvelopeObserved,
    JoinRequested,
    SessionClosed,
    SessionEvent,
)
from exchange_chat.domain.services.invitation_machine import (
    IDLE,
    InvitationState,
    Transition,
    reduce,
)

logger = logging.getLogger(__name__)


class SessionTracker:
    def __init__(self, user_id: int) -> None:
        self._user_id = user_id
        self._states: dict[str, InvitationState] = {}

    def state(self, room_id: str) -> InvitationState:
        return self._states.get(room_id, IDLE)

    def find_room(self, session_id: str) -> str | None:
        for room_id, state in self._states.items():
            if state.holds(session_id):
                return room_id
        return None

    def observe_message(self, message: Message) -> Transition:
        return self.observe_envelope(
            message.room_id,
            message.envelope,
            outbound=message.sender_id == self._user_id,
        )

    def observe_envelope(self, room_id: str, envelope: Envelope, *, outbound: bool) -> Transition:
        transition = self._apply(room_id, EnvelopeObserved(envelope=envelope, outbound=outbound))
        if is_signaling(envelope) and not transition.applied:
            # Expected after reloads and duplicate deliveries.
            logger.info(
                "Ignoring %s in room %s: %s",
                type(envelope).__name__, room_id, transition.reason,
            )
        return transition

    def join(self, room_id: str, session_id: str | None, token: str | None) -> Transition:
        return self._apply(room_id, JoinRequested(session_id=session_id, token=token))

    def close(self, room_id: str, session_id: str | None = None, *, declined: bool = False) -> Transition:
        return self._apply(room_id, SessionClosed(session_id=session_id, declined=declined))

    def reset(self) -> None:
        self._states.clear()

    def _apply(self, room_id: str, event: SessionEvent) -> Transition:
        transition = reduce(self.state(room_id), event)
        if transition.applied:
            self._states[room_id] = transition.state
            logger.debug("Room %s session phase -> %s", room_id, transition.state.phase)
        return transition
