"""Live exchange invitation lifecycle as a pure reducer.

Each participant folds the envelopes it has itself observed in a room
(its own outbound echoes included) into an ``InvitationState``. There is
no shared session object: both sides converge because they observe the
same invitation/acceptance pair, and anything that does not line up with
the locally held session is ignored instead of raising.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable

from exchange_chat.domain.entities.envelope import (
    LiveExchangeAccepted,
    LiveExchangeInvitation,
)
from exchange_chat.domain.entities.session import LiveExchangeSession
from exchange_chat.domain.events.session_events import (
    EnvelopeObserved,
    JoinRequested,
    SessionClosed,
    SessionEvent,
)
from exchange_chat.domain.value_objects.enums import SessionPhase, SessionStatus


@dataclass(frozen=True, slots=True)
class InvitationState:
    phase: SessionPhase = SessionPhase.IDLE
    session: LiveExchangeSession | None = None

    @property
    def session_id(self) -> str | None:
        return self.session.session_id if self.session else None

    @property
    def is_initiator(self) -> bool:
        return bool(self.session and self.session.is_initiator)

    def holds(self, session_id: str | None) -> bool:
        return session_id is not None and self.session_id == session_id


@dataclass(frozen=True, slots=True)
class Transition:
    state: InvitationState
    applied: bool
    reason: str = ""


IDLE = InvitationState()


def _keep(state: InvitationState, reason: str = "") -> Transition:
    return Transition(state=state, applied=False, reason=reason)


def _on_invitation(
    state: InvitationState,
    envelope: LiveExchangeInvitation,
    outbound: bool,
) -> Transition:
    if not envelope.session_id:
        return _keep(state, "invitation without session id")
    if state.holds(envelope.session_id):
        return _keep(state, "duplicate invitation")
    if state.phase == SessionPhase.JOINED:
        return _keep(state, f"session {state.session_id} already joined")

    status = envelope.status or SessionStatus.WAITING
    if not outbound and status != SessionStatus.WAITING:
        return _keep(state, f"invitation status is {status!r}, not waiting")

    session = LiveExchangeSession(
        session_id=envelope.session_id,
        exchange_id=envelope.exchange_id,
        status=status,
        is_initiator=outbound,
    )
    return Transition(InvitationState(SessionPhase.INVITED, session), applied=True)


def _on_accepted(
    state: InvitationState,
    envelope: LiveExchangeAccepted,
    outbound: bool,
) -> Transition:
    if state.session is None or not state.holds(envelope.session_id):
        return _keep(state, f"unknown session {envelope.session_id!r}")
    if state.phase in (SessionPhase.ACCEPTED, SessionPhase.JOINED):
        return _keep(state, "duplicate acceptance")
    if state.phase != SessionPhase.INVITED:
        return _keep(state, f"cannot accept from phase {state.phase}")
    if not envelope.token:
        return _keep(state, "acceptance without join token")
    # The recipient accepts (outbound echo); the initiator learns of it (inbound).
    if outbound == state.session.is_initiator:
        return _keep(state, "acceptance from the inviting side")

    session = replace(state.session, token=envelope.token, status=SessionStatus.ACTIVE)
    return Transition(InvitationState(SessionPhase.ACCEPTED, session), applied=True)


def _on_join(state: InvitationState, event: JoinRequested) -> Transition:
    if not event.session_id or not event.token:
        return _keep(state, "join requires session id and token")
    if state.session is None or not state.holds(event.session_id):
        return _keep(state, f"unknown session {event.session_id!r}")
    if state.phase != SessionPhase.ACCEPTED:
        return _keep(state, f"cannot join from phase {state.phase}")
    session = state.session.with_token(event.token)
    return Transition(InvitationState(SessionPhase.JOINED, session), applied=True)


def _on_close(state: InvitationState, event: SessionClosed) -> Transition:
    if state.phase == SessionPhase.ENDED:
        return _keep(state, "session already ended")
    if event.session_id is not None and state.session is not None and not state.holds(event.session_id):
        return _keep(state, f"unknown session {event.session_id!r}")
    session = state.session
    if session is not None:
        session = replace(session, status=SessionStatus.ENDED)
    return Transition(InvitationState(SessionPhase.ENDED, session), applied=True)


def reduce(state: InvitationState, event: SessionEvent) -> Transition:
    if isinstance(event, EnvelopeObserved):
        if isinstance(event.envelope, LiveExchangeInvitation):
            return _on_invitation(state, event.envelope, event.outbound)
        if isinstance(event.envelope, LiveExchangeAccepted):
            return _on_accepted(state, event.envelope, event.outbound)
        return _keep(state)
    if isinstance(event, JoinRequested):
        return _on_join(state, event)
    if isinstance(event, SessionClosed):
        return _on_close(state, event)
    raise TypeError(f"Unsupported session event: {event!r}")


def replay(events: Iterable[SessionEvent], state: InvitationState = IDLE) -> InvitationState:
    for event in events:
        state = reduce(state, event).state
    return state
