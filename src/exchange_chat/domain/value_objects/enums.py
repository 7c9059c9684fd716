from __future__ import annotations

from enum import StrEnum


class EnvelopeType(StrEnum):
    TEXT = "text"
    LIVE_EXCHANGE_INVITATION = "LIVE_EXCHANGE_INVITATION"
    LIVE_EXCHANGE_ACCEPTED = "LIVE_EXCHANGE_ACCEPTED"
    UNKNOWN = "unknown"


class SessionStatus(StrEnum):
    WAITING = "waiting"
    ACTIVE = "active"
    ENDED = "ended"


class InvitationStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class SessionPhase(StrEnum):
    IDLE = "idle"
    INVITED = "invited"
    ACCEPTED = "accepted"
    JOINED = "joined"
    ENDED = "ended"


class ExchangeStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TransportEvent(StrEnum):
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"
    NEW_MESSAGE = "new_message"
    LIVE_EXCHANGE_INVITATION = "live_exchange_invitation"
    PING = "ping"
    PONG = "pong"
    ERROR = "error"
    # Local connection-state notifications, never sent over the wire.
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
