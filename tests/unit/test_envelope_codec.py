from __future__ import annotations

import json

import pytest

from exchange_chat.domain.entities.envelope import (
    LiveExchangeAccepted,
    LiveExchangeInvitation,
    Text,
    Unknown,
)
from exchange_chat.domain.value_objects.enums import EnvelopeType
from exchange_chat.infrastructure.codec.envelope_codec import classify, decode, encode, unescape

INVITATION = LiveExchangeInvitation(
    session_id="s1",
    exchange_id=42,
    status="waiting",
    is_initiator=True,
    message="Let's talk",
)
ACCEPTED = LiveExchangeAccepted(
    session_id="s1",
    exchange_id=42,
    token="tok-abc",
    is_initiator=False,
    message="Accepted",
)


@pytest.mark.parametrize(
    "envelope",
    [
        Text(content="hello"),
        Text(content='quote " amp & lt < backslash \\ apos \''),
        Text(content='{"type": "LIVE_EXCHANGE_INVITATION"}'),
        Text(content="&quot;already escaped&quot;"),
        INVITATION,
        ACCEPTED,
        Unknown(raw={"type": "SCREEN_SHARE", "content": {"on": True}}),
    ],
)
def test_round_trip(envelope):
    assert decode(encode(envelope)) == envelope


def test_encode_uses_platform_wire_keys():
    wire = json.loads(encode(INVITATION))
    assert wire == {
        "type": "LIVE_EXCHANGE_INVITATION",
        "content": {
            "message": "Let's talk",
            "sessionId": "s1",
            "exchangeId": 42,
            "status": "waiting",
            "isInitiator": True,
        },
    }


def test_decode_not_json_is_text():
    assert decode("not json") == Text(content="not json")


@pytest.mark.parametrize("raw", ["", "42", "null", "[1, 2]", '"quoted"', "{broken"])
def test_decode_never_raises_on_odd_input(raw):
    assert decode(raw) == Text(content=raw)


@pytest.mark.parametrize("raw", ["[" * 100_000, '{"a": ' * 50_000], ids=["array", "object"])
def test_decode_deeply_nested_input_is_text(raw):
    assert decode(raw) == Text(content=raw)


def test_decode_self_referencing_object_is_text():
    value: dict = {"content": "hi"}
    value["self"] = value

    envelope = decode(value)

    assert isinstance(envelope, Text)
    assert "hi" in envelope.content


def test_decode_object_without_type_is_text():
    raw = '{"content": "hi"}'
    assert decode(raw) == Text(content=raw)


def test_decode_unknown_type_keeps_value():
    envelope = decode('{"type": "SESSION_ENDED", "sessionId": 5}')
    assert envelope == Unknown(raw={"type": "SESSION_ENDED", "sessionId": 5})
    assert classify(envelope) == EnvelopeType.UNKNOWN


def test_decode_html_escaped_payload():
    escaped = (
        "{&quot;type&quot;:&quot;LIVE_EXCHANGE_ACCEPTED&quot;,&quot;content&quot;:"
        "{&quot;sessionId&quot;:&quot;s1&quot;,&quot;exchangeId&quot;:42,"
        "&quot;token&quot;:&quot;tok-abc&quot;,&quot;isInitiator&quot;:false}}"
    )
    assert decode(escaped) == LiveExchangeAccepted(
        session_id="s1", exchange_id=42, token="tok-abc", is_initiator=False,
    )


def test_decode_escaped_text_content():
    escaped = "{&quot;type&quot;:&quot;text&quot;,&quot;content&quot;:&quot;a &lt;b&gt; &amp; &#x27;c&#x27;&quot;}"
    assert decode(escaped) == Text(content="a <b> & 'c'")


def test_decode_double_encoded_payload():
    inner = encode(INVITATION)
    assert decode(json.dumps(inner)) == INVITATION


def test_decode_numeric_session_id_is_string():
    raw = json.dumps({
        "type": "LIVE_EXCHANGE_INVITATION",
        "content": {"sessionId": 17, "exchangeId": 42, "status": "waiting"},
    })
    envelope = decode(raw)
    assert isinstance(envelope, LiveExchangeInvitation)
    assert envelope.session_id == "17"
    assert envelope.is_initiator is True


def test_decode_invalid_signaling_content_degrades_to_text():
    raw = json.dumps({"type": "LIVE_EXCHANGE_ACCEPTED", "content": "oops"})
    assert decode(raw) == Text(content=raw)


def test_decode_accepts_dict_and_envelope():
    assert decode({"type": "text", "content": "x"}) == Text(content="x")
    assert decode(ACCEPTED) is ACCEPTED
    assert decode(None) == Text(content="")


def test_unescape_is_single_pass():
    assert unescape("&amp;lt;") == "&lt;"
    assert unescape("&#x5C;n &#x2F; &#96;") == "\\n / `"


def test_classify():
    assert classify(Text(content="x")) == EnvelopeType.TEXT
    assert classify(INVITATION) == EnvelopeType.LIVE_EXCHANGE_INVITATION
    assert classify(ACCEPTED) == EnvelopeType.LIVE_EXCHANGE_ACCEPTED
