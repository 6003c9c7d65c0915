"""Independent re-verification of freshly produced signatures.

Local verification recomputes the intent digest and checks the ECDSA
signature with pyca/cryptography; remote verification asks the custodian.
A signature is only released when both agree.
"""
from __future__ import annotations

import hmac

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature

from ..errors import SignerError
from .digest import IntentScope, build_digest
from .normalize import CANONICAL_LEN, is_low_s, split_canonical
from .serialized import split_serialized


def verify_digest(digest: bytes, signature: bytes, pubkey: bytes) -> bool:
    """ECDSA/secp256k1 over SHA-256(digest), the chain's secp256k1 convention.

    Non-canonical (high-S) signatures are rejected.
    """
    if len(signature) != CANONICAL_LEN:
        return False
    try:
        sig = split_canonical(signature)
    except SignerError:
        return False
    if not is_low_s(sig.s):
        return False
    try:
        pk = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), bytes(pubkey))
    except ValueError:
        return False
    try:
        pk.verify(encode_dss_signature(sig.r, sig.s), bytes(digest), ec.ECDSA(hashes.SHA256()))
        return True
    except InvalidSignature:
        return False


def local_verify(payload: bytes, serialized: bytes, pubkey: bytes,
                 scope: IntentScope = IntentScope.TRANSACTION_DATA) -> bool:
    try:
        _, signature, embedded_pk = split_serialized(serialized)
    except SignerError:
        return False
    if not hmac.compare_digest(embedded_pk, bytes(pubkey)):
        return False
    return verify_digest(build_digest(payload, scope), signature, pubkey)


async def remote_verify(custodian, digest: bytes, raw_signature, key_id: str) -> bool:
    return bool(await custodian.verify_digest(key_id, digest, raw_signature))


__all__ = ["verify_digest", "local_verify", "remote_verify"]
