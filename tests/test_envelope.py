"""Unit tests for the crypto primitive and the outbound envelope codec."""

from __future__ import annotations

import base64
import json

import pytest

from agent_comms import crypto
from agent_comms.envelope import (
    decode_decrypt, decode_payload, encode_payload, encrypt_encode, to_json,
)
from agent_comms.exceptions import PayloadError
from agent_comms.models import TransferLogDump

KEY = "npc-workstation-01"


def test_insecure_is_plain_json() -> None:
    body = encode_payload(TransferLogDump(log="line1\nline2\n"), KEY, secure=False)
    assert json.loads(body) == {"Log": "line1\nline2\n"}


def test_secure_wraps_in_payload_envelope() -> None:
    body = encode_payload(TransferLogDump(log="hello"), KEY, secure=True)
    envelope = json.loads(body)
    assert list(envelope) == ["Payload"]
    # Payload must be valid base64
    base64.b64decode(envelope["Payload"], validate=True)
    assert "hello" not in body


@pytest.mark.parametrize(
    "payload",
    [
        TransferLogDump(log="line1\nline2\n"),
        {"survey": {"answers": [1, 2, 3]}, "unicode": "naïve ✓"},
        [],
    ],
)
def test_encrypt_round_trip(payload) -> None:
    encoded = json.loads(encode_payload(payload, KEY, secure=True))["Payload"]
    assert decode_decrypt(encoded, KEY) == to_json(payload)


def test_decode_payload_inverts_encode() -> None:
    body = encode_payload({"Log": "x"}, KEY, secure=True)
    assert json.loads(decode_payload(body, KEY, secure=True)) == {"Log": "x"}
    assert decode_payload('{"Log": "x"}', KEY, secure=False) == '{"Log": "x"}'


def test_fresh_iv_per_message() -> None:
    assert encrypt_encode("same", KEY) != encrypt_encode("same", KEY)


def test_ciphertext_layout_has_length_prefixed_iv() -> None:
    data = crypto.encrypt("abc", KEY)
    assert int.from_bytes(data[:4], "little") == 16
    assert (len(data) - 4 - 16) % 16 == 0


def test_non_base64_payload_rejected() -> None:
    with pytest.raises(PayloadError):
        decode_decrypt("not base64 !!", KEY)


def test_truncated_ciphertext_rejected() -> None:
    with pytest.raises(PayloadError):
        crypto.decrypt(b"\x10\x00", KEY)


def test_not_an_envelope_rejected() -> None:
    with pytest.raises(PayloadError):
        decode_payload("[1, 2]", KEY, secure=True)


def test_empty_secret_rejected() -> None:
    with pytest.raises(ValueError):
        crypto.encrypt("abc", "")
