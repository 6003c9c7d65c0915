"""Sui serialized signature: ``flag || signature || public key``.

For the ECDSA schemes the layout is 1 + 64 + 33 = 98 bytes and is base64
encoded for transport.
"""
from __future__ import annotations

import base64
import binascii
import enum
from typing import Tuple, Union

from ..errors import InvalidPointEncoding, MalformedEncoding, UnsupportedScheme
from .curve import COMPRESSED_LEN
from .digest import blake2b_256
from .normalize import CANONICAL_LEN

SERIALIZED_LEN = 1 + CANONICAL_LEN + COMPRESSED_LEN


class SignatureScheme(enum.IntEnum):
    ED25519 = 0x00
    SECP256K1 = 0x01
    SECP256R1 = 0x02
    MULTISIG = 0x03
    BLS12381 = 0x04
    ZKLOGIN = 0x05
    PASSKEY = 0x06


SCHEME_NAMES = {
    "ED25519": SignatureScheme.ED25519,
    "Secp256k1": SignatureScheme.SECP256K1,
    "Secp256r1": SignatureScheme.SECP256R1,
    "MultiSig": SignatureScheme.MULTISIG,
    "BLS12381": SignatureScheme.BLS12381,
    "ZkLogin": SignatureScheme.ZKLOGIN,
    "Passkey": SignatureScheme.PASSKEY,
}

# Schemes a secp256k1 custodian key can produce
SUPPORTED_SCHEMES = frozenset({SignatureScheme.SECP256K1})


def resolve_scheme(scheme: Union[str, int, SignatureScheme]) -> SignatureScheme:
    """Map a scheme name or flag to an allow-listed ``SignatureScheme``."""
    if isinstance(scheme, str):
        resolved = SCHEME_NAMES.get(scheme)
        if resolved is None:
            raise UnsupportedScheme(f"unknown signature scheme {scheme!r}")
    else:
        try:
            resolved = SignatureScheme(int(scheme))
        except ValueError as e:
            raise UnsupportedScheme(f"unknown signature flag {scheme!r}") from e
    if resolved not in SUPPORTED_SCHEMES:
        raise UnsupportedScheme(f"signature scheme {resolved.name} is not supported")
    return resolved


def assemble(scheme: Union[str, int, SignatureScheme], signature: bytes, pubkey: bytes) -> bytes:
    flag = resolve_scheme(scheme)
    if len(signature) != CANONICAL_LEN:
        raise MalformedEncoding(f"expected {CANONICAL_LEN}-byte signature, got {len(signature)}")
    if len(pubkey) != COMPRESSED_LEN or pubkey[0] not in (0x02, 0x03):
        raise InvalidPointEncoding(f"expected {COMPRESSED_LEN}-byte compressed public key")
    return bytes([flag]) + bytes(signature) + bytes(pubkey)


def split_serialized(data: bytes) -> Tuple[SignatureScheme, bytes, bytes]:
    if len(data) != SERIALIZED_LEN:
        raise MalformedEncoding(f"expected {SERIALIZED_LEN}-byte serialized signature, got {len(data)}")
    flag = resolve_scheme(data[0])
    return flag, data[1:1 + CANONICAL_LEN], data[1 + CANONICAL_LEN:]


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode()


def from_base64(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedEncoding("invalid base64") from e


def sui_public_key_bytes(pubkey: bytes, scheme: Union[str, int, SignatureScheme] = SignatureScheme.SECP256K1) -> bytes:
    return bytes([resolve_scheme(scheme)]) + bytes(pubkey)


def sui_public_key_b64(pubkey: bytes, scheme: Union[str, int, SignatureScheme] = SignatureScheme.SECP256K1) -> str:
    return to_base64(sui_public_key_bytes(pubkey, scheme))


def sui_address(pubkey: bytes, scheme: Union[str, int, SignatureScheme] = SignatureScheme.SECP256K1) -> str:
    """0x-prefixed blake2b-256 of ``flag || compressed public key``."""
    return "0x" + blake2b_256(sui_public_key_bytes(pubkey, scheme)).hex()


__all__ = [
    "SERIALIZED_LEN",
    "SignatureScheme",
    "SUPPORTED_SCHEMES",
    "resolve_scheme",
    "assemble",
    "split_serialized",
    "to_base64",
    "from_base64",
    "sui_public_key_b64",
    "sui_address",
]
