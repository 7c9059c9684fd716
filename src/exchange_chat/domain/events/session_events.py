from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from exchange_chat.domain.entities.envelope import Envelope


@dataclass(frozen=True, slots=True)
class EnvelopeObserved:
    envelope: Envelope
    outbound: bool


@dataclass(frozen=True, slots=True)
class JoinRequested:
    session_id: str | None
    token: str | None


@dataclass(frozen=True, slots=True)
class SessionClosed:
    session_id: str | None = None
    declined: bool = False


SessionEvent = Union[EnvelopeObserved, JoinRequested, SessionClosed]
