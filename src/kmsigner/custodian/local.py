from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature, encode_dss_signature

from ..crypto.der import CustodianSignature, decode_custodian_signature
from ..errors import CustodianUnavailable, MalformedEncoding
from .base import ECDSA_SHA_256, DerEncodedKey


@dataclass
class LocalCustodian:
    """Local dev custodian (DEV-ONLY). Holds a secp256k1 key in process memory.

    The key is loaded from ``key_pem_path`` when given, otherwise generated.
    ``signature_encoding`` selects DER (AWS KMS style) or raw ``r || s``
    (Azure Key Vault style) output. ``key_id`` is accepted and ignored.
    """
    key_pem_path: Optional[str] = None
    signature_encoding: str = "der"
    private_key: Optional[ec.EllipticCurvePrivateKey] = field(default=None, repr=False)

    def __post_init__(self):
        if self.signature_encoding not in ("der", "raw"):
            raise ValueError("signature_encoding must be 'der' or 'raw'")
        if self.private_key is None:
            if self.key_pem_path:
                with open(self.key_pem_path, "rb") as f:
                    sk = serialization.load_pem_private_key(f.read(), password=None)
                if not isinstance(sk, ec.EllipticCurvePrivateKey) or not isinstance(sk.curve, ec.SECP256K1):
                    raise ValueError("expected secp256k1 EC private key")
                self.private_key = sk
            else:
                self.private_key = ec.generate_private_key(ec.SECP256K1())

    @classmethod
    def from_secret(cls, secret: int, **kw) -> "LocalCustodian":
        return cls(private_key=ec.derive_private_key(secret, ec.SECP256K1()), **kw)

    async def fetch_public_key(self, key_id: str) -> DerEncodedKey:
        der = self.private_key.public_key().public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return DerEncodedKey(der=der)

    async def sign_digest(self, key_id: str, digest: bytes, algorithm: str = ECDSA_SHA_256) -> CustodianSignature:
        if algorithm != ECDSA_SHA_256:
            raise CustodianUnavailable(f"LocalCustodian supports {ECDSA_SHA_256} only")
        der = self.private_key.sign(bytes(digest), ec.ECDSA(hashes.SHA256()))
        if self.signature_encoding == "der":
            return CustodianSignature(der, "der")
        r, s = decode_dss_signature(der)
        return CustodianSignature(r.to_bytes(32, "big") + s.to_bytes(32, "big"), "raw")

    async def verify_digest(self, key_id: str, digest: bytes, signature: CustodianSignature) -> bool:
        try:
            sig = decode_custodian_signature(signature)
        except MalformedEncoding:
            return False
        try:
            self.private_key.public_key().verify(
                encode_dss_signature(sig.r, sig.s), bytes(digest), ec.ECDSA(hashes.SHA256())
            )
            return True
        except InvalidSignature:
            return False
