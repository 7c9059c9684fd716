"""Envelope codec.

``decode`` never raises: anything it cannot classify degrades to ``Text``
(unparseable or untyped input) or ``Unknown`` (typed, but not a type we
know). The payload may have been HTML-escaped on its way through the chat
backend, so a fixed table of entities is reversed before a second parse
attempt. Add entries to the table only for escapes the transport is seen to
produce.
"""
from __future__ import annotations

import json
import logging
import re
import reprlib
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from exchange_chat.domain.entities.envelope import (
    Envelope,
    LiveExchangeAccepted,
    LiveExchangeInvitation,
    Text,
    Unknown,
)
from exchange_chat.domain.value_objects.enums import EnvelopeType
from exchange_chat.infrastructure.codec.schemas import (
    AcceptedContent,
    AcceptedWire,
    InvitationContent,
    InvitationWire,
    TextWire,
)

logger = logging.getLogger(__name__)

UNESCAPE_TABLE: dict[str, str] = {
    "&quot;": '"',
    "&#39;": "'",
    "&#x27;": "'",
    "&#x5C;": "\\",
    "&#x2F;": "/",
    "&#96;": "`",
    "&#x60;": "`",
    "&#x3D;": "=",
    "&lt;": "<",
    "&gt;": ">",
    "&amp;": "&",
}

_ENTITY_RE = re.compile("|".join(re.escape(entity) for entity in UNESCAPE_TABLE))

_ENVELOPE_TYPES = (Text, LiveExchangeInvitation, LiveExchangeAccepted, Unknown)


def unescape(raw: str) -> str:
    """Reverse the fixed entity table in a single pass (``&amp;lt;`` -> ``&lt;``)."""
    return _ENTITY_RE.sub(lambda match: UNESCAPE_TABLE[match.group(0)], raw)


def _loads(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (ValueError, RecursionError):
        return None


def _parse(raw: str) -> Any:
    value = _loads(raw)
    if not isinstance(value, (dict, str)):
        unescaped = unescape(raw)
        if unescaped != raw:
            value = _loads(unescaped)
    # Double-encoded payload: a JSON string holding the JSON object.
    if isinstance(value, str):
        inner = _loads(value)
        if not isinstance(inner, dict):
            inner = _loads(unescape(value))
        value = inner
    return value


def _from_object(value: dict[str, Any], fallback: str) -> Envelope:
    kind = value.get("type")
    if not isinstance(kind, str):
        return Text(content=fallback)

    try:
        if kind == EnvelopeType.TEXT:
            return Text(content=TextWire.model_validate(value).content)
        if kind == EnvelopeType.LIVE_EXCHANGE_INVITATION:
            inv = InvitationWire.model_validate(value).content
            return LiveExchangeInvitation(
                session_id=inv.session_id,
                exchange_id=inv.exchange_id,
                status=inv.status,
                is_initiator=inv.is_initiator,
                message=inv.message,
            )
        if kind == EnvelopeType.LIVE_EXCHANGE_ACCEPTED:
            acc = AcceptedWire.model_validate(value).content
            return LiveExchangeAccepted(
                session_id=acc.session_id,
                exchange_id=acc.exchange_id,
                token=acc.token,
                is_initiator=acc.is_initiator,
                message=acc.message,
            )
    except PydanticValidationError as exc:
        logger.warning("Malformed %s envelope, keeping as text: %s", kind, exc.errors()[0]["msg"])
        return Text(content=fallback)

    logger.info("Unknown envelope type %r", kind)
    return Unknown(raw=value)


def _dumps_fallback(value: dict[str, Any]) -> str:
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (ValueError, TypeError, RecursionError):
        logger.warning("Envelope object is not serialisable, keeping its repr")
        return reprlib.repr(value)


def decode(raw: Any) -> Envelope:
    if isinstance(raw, _ENVELOPE_TYPES):
        return raw
    if isinstance(raw, dict):
        return _from_object(raw, _dumps_fallback(raw))
    if not isinstance(raw, str):
        logger.warning("Undecodable envelope payload of type %s", type(raw).__name__)
        return Text(content="" if raw is None else str(raw))

    value = _parse(raw)
    if not isinstance(value, dict):
        logger.debug("Plain text message content")
        return Text(content=raw)
    return _from_object(value, raw)


def _wire(envelope: Envelope) -> dict[str, Any]:
    if isinstance(envelope, Text):
        return TextWire(content=envelope.content).model_dump(by_alias=True)
    if isinstance(envelope, LiveExchangeInvitation):
        return InvitationWire(
            content=InvitationContent(
                message=envelope.message,
                session_id=envelope.session_id,
                exchange_id=envelope.exchange_id,
                status=envelope.status,
                is_initiator=envelope.is_initiator,
            )
        ).model_dump(by_alias=True)
    if isinstance(envelope, LiveExchangeAccepted):
        return AcceptedWire(
            content=AcceptedContent(
                message=envelope.message,
                session_id=envelope.session_id,
                exchange_id=envelope.exchange_id,
                token=envelope.token,
                is_initiator=envelope.is_initiator,
            )
        ).model_dump(by_alias=True)
    if isinstance(envelope, Unknown):
        return envelope.raw
    raise TypeError(f"Not an envelope: {envelope!r}")


def encode(envelope: Envelope) -> str:
    return json.dumps(_wire(envelope), ensure_ascii=False)


def classify(envelope: Envelope) -> EnvelopeType:
    if isinstance(envelope, LiveExchangeInvitation):
        return EnvelopeType.LIVE_EXCHANGE_INVITATION
    if isinstance(envelope, LiveExchangeAccepted):
        return EnvelopeType.LIVE_EXCHANGE_ACCEPTED
    if isinstance(envelope, Unknown):
        return EnvelopeType.UNKNOWN
    return EnvelopeType.TEXT
