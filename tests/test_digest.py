import hashlib

import pytest

from kmsigner.crypto.digest import (
    IntentScope,
    blake2b_256,
    build_digest,
    intent_header,
    personal_message_payload,
    uleb128,
)


def test_transaction_intent_header():
    assert intent_header(IntentScope.TRANSACTION_DATA) == b"\x00\x00\x00"
    assert intent_header(IntentScope.PERSONAL_MESSAGE) == b"\x03\x00\x00"


def test_digest_is_blake2b_of_intent_and_payload():
    payload = bytes(32)
    expected = hashlib.blake2b(b"\x00\x00\x00" + payload, digest_size=32).digest()
    assert build_digest(payload) == expected
    assert len(expected) == 32


def test_blake2b_256_known_answer():
    # BLAKE2b with a 32-byte output, not a truncated BLAKE2b-512
    assert blake2b_256(b"").hex() == "0e5751c026e543b2e8ab2eb06099daa1d1e5df47778f7787faab45cdf12fe3a8"


@pytest.mark.parametrize("scope,prefix", [
    (IntentScope.TRANSACTION_DATA, "000000"),
    (IntentScope.TRANSACTION_EFFECTS, "010000"),
    (IntentScope.CHECKPOINT_SUMMARY, "020000"),
    (IntentScope.PERSONAL_MESSAGE, "030000"),
])
def test_digest_intent_prefix_layout(scope, prefix):
    payload = bytes.fromhex("deadbeef")
    assert build_digest(payload, scope) == blake2b_256(bytes.fromhex(prefix + "deadbeef"))


def test_digest_is_pure():
    payload = b"\x01\x02\x03" * 50
    assert build_digest(payload, IntentScope.TRANSACTION_DATA) == build_digest(payload, IntentScope.TRANSACTION_DATA)
    assert build_digest(bytearray(payload)) == build_digest(payload)


def test_scopes_are_domain_separated():
    payload = b"same bytes"
    digests = {build_digest(payload, scope) for scope in IntentScope}
    assert len(digests) == len(IntentScope)


@pytest.mark.parametrize("n,encoded", [
    (0, b"\x00"),
    (1, b"\x01"),
    (127, b"\x7f"),
    (128, b"\x80\x01"),
    (300, b"\xac\x02"),
    (16384, b"\x80\x80\x01"),
])
def test_uleb128(n, encoded):
    assert uleb128(n) == encoded


def test_personal_message_payload():
    msg = b"hello"
    assert personal_message_payload(msg) == b"\x05hello"
    assert personal_message_payload(b"x" * 200)[:2] == b"\xc8\x01"
