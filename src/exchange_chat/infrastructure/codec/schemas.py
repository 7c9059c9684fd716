"""Wire models for the envelope carried in ``Message.content``."""
from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _session_id_as_str(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


SessionIdField = Annotated[str | None, BeforeValidator(_session_id_as_str)]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TextWire(_WireModel):
    type: str = "text"
    content: str


class InvitationContent(_WireModel):
    message: str | None = None
    session_id: SessionIdField = Field(None, alias="sessionId")
    exchange_id: int | None = Field(None, alias="exchangeId")
    status: str | None = None
    is_initiator: bool = Field(True, alias="isInitiator")


class AcceptedContent(_WireModel):
    message: str | None = None
    session_id: SessionIdField = Field(None, alias="sessionId")
    exchange_id: int | None = Field(None, alias="exchangeId")
    token: str | None = None
    is_initiator: bool = Field(False, alias="isInitiator")


class InvitationWire(_WireModel):
    type: str = "LIVE_EXCHANGE_INVITATION"
    content: InvitationContent


class AcceptedWire(_WireModel):
    type: str = "LIVE_EXCHANGE_ACCEPTED"
    content: AcceptedContent
