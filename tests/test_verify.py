import asyncio

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from kmsigner.crypto.curve import N, compress
from kmsigner.crypto.der import CustodianSignature, decode_custodian_signature
from kmsigner.crypto.digest import IntentScope, build_digest
from kmsigner.crypto.normalize import normalize, normalize_components
from kmsigner.crypto.serialized import assemble
from kmsigner.crypto.verify import local_verify, remote_verify, verify_digest
from kmsigner.custodian.base import to_raw_material
from kmsigner.custodian.local import LocalCustodian


def _sign(custodian, payload, scope=IntentScope.TRANSACTION_DATA):
    async def go():
        key = await custodian.fetch_public_key("k")
        raw = await custodian.sign_digest("k", build_digest(payload, scope))
        return compress(to_raw_material(key).point), raw
    pubkey, raw = asyncio.run(go())
    sig = decode_custodian_signature(raw)
    return pubkey, sig, assemble("Secp256k1", normalize_components(sig), pubkey)


def test_round_trip(custodian):
    payload = b"\x00" * 32
    pubkey, _, serialized = _sign(custodian, payload)
    assert local_verify(payload, serialized, pubkey)


def test_round_trip_raw_encoding():
    c = LocalCustodian(signature_encoding="raw")
    payload = b"tx bytes"
    pubkey, _, serialized = _sign(c, payload)
    assert local_verify(payload, serialized, pubkey)


def test_tampered_payload(custodian):
    pubkey, _, serialized = _sign(custodian, b"payload")
    assert not local_verify(b"payloaD", serialized, pubkey)


def test_wrong_scope(custodian):
    pubkey, _, serialized = _sign(custodian, b"payload")
    assert not local_verify(b"payload", serialized, pubkey, IntentScope.PERSONAL_MESSAGE)


def test_pubkey_mismatch(custodian):
    _, _, serialized = _sign(custodian, b"payload")
    other = ec.generate_private_key(ec.SECP256K1()).public_key()
    other_pk = other.public_bytes(serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint)
    assert not local_verify(b"payload", serialized, other_pk)


def test_high_s_rejected(custodian):
    payload = b"payload"
    pubkey, sig, serialized = _sign(custodian, payload)
    low = normalize(sig.r, sig.s)
    high_s = N - int.from_bytes(low[32:], "big")
    high = low[:32] + high_s.to_bytes(32, "big")
    digest = build_digest(payload)
    assert verify_digest(digest, low, pubkey)
    assert not verify_digest(digest, high, pubkey)
    assert not local_verify(payload, serialized[:1] + high + serialized[65:], pubkey)


def test_garbage_serialized(custodian):
    pubkey, _, serialized = _sign(custodian, b"payload")
    assert not local_verify(b"payload", serialized[:50], pubkey)
    assert not local_verify(b"payload", b"\x00" + serialized[1:], pubkey)


def test_remote_verify(custodian):
    digest = build_digest(b"payload")

    async def go():
        raw = await custodian.sign_digest("k", digest)
        good = await remote_verify(custodian, digest, raw, "k")
        bad = await remote_verify(custodian, build_digest(b"other"), raw, "k")
        junk = await remote_verify(custodian, digest, CustodianSignature(b"\x30\x00", "der"), "k")
        return good, bad, junk

    assert asyncio.run(go()) == (True, False, False)
