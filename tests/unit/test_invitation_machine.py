from __future__ import annotations

import pytest

from exchange_chat.domain.entities.envelope import (
    LiveExchangeAccepted,
    LiveExchangeInvitation,
    Text,
)
from exchange_chat.domain.events.session_events import (
    EnvelopeObserved,
    JoinRequested,
    SessionClosed,
)
from exchange_chat.domain.services.invitation_machine import IDLE, reduce, replay
from exchange_chat.domain.value_objects.enums import SessionPhase, SessionStatus


def invitation(session_id="s1", status="waiting"):
    return LiveExchangeInvitation(session_id=session_id, exchange_id=42, status=status)


def accepted(session_id="s1", token="tok-abc"):
    return LiveExchangeAccepted(session_id=session_id, exchange_id=42, token=token)


def seen(envelope, outbound=False):
    return EnvelopeObserved(envelope=envelope, outbound=outbound)


def test_initiator_flow():
    state = replay([
        seen(invitation(), outbound=True),
        seen(accepted(), outbound=False),
        JoinRequested(session_id="s1", token="tok-abc"),
    ])

    assert state.phase == SessionPhase.JOINED
    assert state.is_initiator is True
    assert state.session.token == "tok-abc"
    assert state.session.status == SessionStatus.ACTIVE


def test_recipient_flow():
    state = replay([seen(invitation()), seen(accepted(), outbound=True)])

    assert state.phase == SessionPhase.ACCEPTED
    assert state.is_initiator is False


def test_recipient_records_pending_invitation_only():
    t = reduce(IDLE, seen(invitation()))

    assert t.applied
    assert t.state.phase == SessionPhase.INVITED
    assert t.state.session_id == "s1"
    assert t.state.session.status == SessionStatus.WAITING


def test_stale_accepted_is_ignored():
    invited = reduce(IDLE, seen(invitation(), outbound=True)).state

    t = reduce(invited, seen(accepted(session_id="old")))

    assert t.applied is False
    assert t.state is invited
    assert "unknown session" in t.reason


def test_accepted_without_invitation_is_ignored():
    t = reduce(IDLE, seen(accepted()))
    assert t.applied is False
    assert t.state is IDLE


def test_accepted_without_token_is_ignored():
    invited = reduce(IDLE, seen(invitation(), outbound=True)).state
    t = reduce(invited, seen(accepted(token=None)))
    assert t.applied is False


def test_accepted_from_inviting_side_is_ignored():
    # The initiator's own client never produces the acceptance.
    invited = reduce(IDLE, seen(invitation(), outbound=True)).state
    t = reduce(invited, seen(accepted(), outbound=True))
    assert t.applied is False
    assert t.state.phase == SessionPhase.INVITED


def test_duplicate_signals_are_no_ops():
    invited = reduce(IDLE, seen(invitation())).state
    assert reduce(invited, seen(invitation())).applied is False

    done = reduce(invited, seen(accepted(), outbound=True)).state
    t = reduce(done, seen(accepted(), outbound=True))
    assert t.applied is False
    assert t.reason == "duplicate acceptance"


def test_inbound_invitation_must_be_waiting():
    t = reduce(IDLE, seen(invitation(status="active")))
    assert t.applied is False


def test_invitation_without_session_id_is_ignored():
    t = reduce(IDLE, seen(invitation(session_id=None)))
    assert t.applied is False


def test_new_invitation_replaces_previous_session():
    ended = replay([seen(invitation("s1")), SessionClosed()])
    t = reduce(ended, seen(invitation("s2")))

    assert t.applied
    assert t.state.phase == SessionPhase.INVITED
    assert t.state.session_id == "s2"


def test_joined_session_is_not_replaced():
    joined = replay([
        seen(invitation(), outbound=True),
        seen(accepted()),
        JoinRequested(session_id="s1", token="tok-abc"),
    ])
    t = reduce(joined, seen(invitation("s2")))
    assert t.applied is False
    assert t.state.session_id == "s1"


@pytest.mark.parametrize(
    "event",
    [
        JoinRequested(session_id="s1", token=None),
        JoinRequested(session_id=None, token="tok"),
        JoinRequested(session_id="other", token="tok"),
    ],
)
def test_join_requires_matching_session_and_token(event):
    ready = replay([seen(invitation(), outbound=True), seen(accepted())])
    t = reduce(ready, event)
    assert t.applied is False
    assert t.state.phase == SessionPhase.ACCEPTED


def test_join_before_acceptance_is_rejected():
    invited = reduce(IDLE, seen(invitation(), outbound=True)).state
    t = reduce(invited, JoinRequested(session_id="s1", token="tok"))
    assert t.applied is False


def test_close_from_any_phase_ends():
    for events in ([], [seen(invitation())], [seen(invitation()), seen(accepted(), outbound=True)]):
        state = replay([*events, SessionClosed(declined=True)])
        assert state.phase == SessionPhase.ENDED


def test_close_for_other_session_is_ignored():
    invited = reduce(IDLE, seen(invitation())).state
    t = reduce(invited, SessionClosed(session_id="other"))
    assert t.applied is False


def test_close_twice_is_no_op():
    ended = reduce(IDLE, SessionClosed()).state
    assert reduce(ended, SessionClosed()).applied is False


def test_text_does_not_transition():
    t = reduce(IDLE, seen(Text(content="hi")))
    assert t.applied is False


def test_unsupported_event_raises():
    with pytest.raises(TypeError):
        reduce(IDLE, object())  # type: ignore[arg-type]
