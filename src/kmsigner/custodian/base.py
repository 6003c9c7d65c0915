from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union, runtime_checkable

from ..crypto.curve import CURVE_NAME, uncompressed_point
from ..crypto.der import CustodianSignature, RawPublicKeyMaterial, parse_public_key_info
from ..errors import MalformedEncoding, UnsupportedScheme

# Custodian hashes the 32-byte signing digest with SHA-256 before signing
ECDSA_SHA_256 = "ECDSA_SHA_256"

# JWK / vendor curve names that denote secp256k1
_SECP256K1_ALIASES = {"secp256k1", "P-256K", "ECC_SECG_P256K1", "1.3.132.0.10"}


@dataclass(frozen=True)
class DerEncodedKey:
    """SubjectPublicKeyInfo DER as returned by AWS KMS GetPublicKey."""
    der: bytes


@dataclass(frozen=True)
class CoordinatePairKey:
    """Structured key fields (JWK ``crv``/``x``/``y``) as returned by Azure Key Vault."""
    curve: str
    x: bytes
    y: bytes


KeyResponse = Union[DerEncodedKey, CoordinatePairKey]


def der_to_raw_material(key: DerEncodedKey) -> RawPublicKeyMaterial:
    return parse_public_key_info(key.der)


def coordinates_to_raw_material(key: CoordinatePairKey) -> RawPublicKeyMaterial:
    if key.curve not in _SECP256K1_ALIASES:
        raise UnsupportedScheme(f"key curve {key.curve} is not {CURVE_NAME}")
    if not key.x or not key.y:
        raise MalformedEncoding("public key coordinates missing")
    return RawPublicKeyMaterial(curve=CURVE_NAME, point=uncompressed_point(key.x, key.y), source="coordinates")


def to_raw_material(key: KeyResponse) -> RawPublicKeyMaterial:
    if isinstance(key, DerEncodedKey):
        return der_to_raw_material(key)
    if isinstance(key, CoordinatePairKey):
        return coordinates_to_raw_material(key)
    raise MalformedEncoding(f"unexpected key response {type(key).__name__}")


@runtime_checkable
class Custodian(Protocol):
    """External key custodian. Implementations raise ``CustodianUnavailable``
    on network or authorization failures and never expose private keys."""

    async def fetch_public_key(self, key_id: str) -> KeyResponse: ...
    async def sign_digest(self, key_id: str, digest: bytes, algorithm: str = ECDSA_SHA_256) -> CustodianSignature: ...
    async def verify_digest(self, key_id: str, digest: bytes, signature: CustodianSignature) -> bool: ...


__all__ = [
    "ECDSA_SHA_256",
    "DerEncodedKey",
    "CoordinatePairKey",
    "KeyResponse",
    "to_raw_material",
    "Custodian",
]
