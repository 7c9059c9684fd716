"""Typed payloads carried inside a chat message body."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True, slots=True)
class Text:
    content: str


@dataclass(frozen=True, slots=True)
class LiveExchangeInvitation:
    session_id: str | None
    exchange_id: int | None
    status: str | None = None
    is_initiator: bool = True
    message: str | None = None


@dataclass(frozen=True, slots=True)
class LiveExchangeAccepted:
    session_id: str | None
    exchange_id: int | None
    token: str | None = None
    is_initiator: bool = False
    message: str | None = None


@dataclass(frozen=True, slots=True)
class Unknown:
    """Structured payload with an unrecognised ``type``, kept verbatim."""

    raw: dict[str, Any]


Envelope = Union[Text, LiveExchangeInvitation, LiveExchangeAccepted, Unknown]

SIGNALING_ENVELOPES = (LiveExchangeInvitation, LiveExchangeAccepted)


def is_signaling(envelope: Envelope) -> bool:
    return isinstance(envelope, SIGNALING_ENVELOPES)
