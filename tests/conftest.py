import pytest
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from kmsigner.config import SignerConfig
from kmsigner.crypto.curve import HALF_N, N
from kmsigner.crypto.der import CustodianSignature
from kmsigner.custodian.local import LocalCustodian

SECRET = 0x1F2E3D4C5B6A79880123456789ABCDEFFEDCBA98765432100F1E2D3C4B5A6978


class HighSCustodian:
    """Mock custodian emitting ``30440220<r>0220<s>`` with s forced above n/2."""

    def __init__(self, inner):
        self.inner = inner
        self.last_der = None

    async def fetch_public_key(self, key_id):
        return await self.inner.fetch_public_key(key_id)

    async def sign_digest(self, key_id, digest, algorithm="ECDSA_SHA_256"):
        sig = await self.inner.sign_digest(key_id, digest, algorithm)
        r, s = decode_dss_signature(sig.data)
        if s <= HALF_N:
            s = N - s
        der = b"\x30\x44\x02\x20" + r.to_bytes(32, "big") + b"\x02\x20" + s.to_bytes(32, "big")
        self.last_der = der
        return CustodianSignature(der, "der")

    async def verify_digest(self, key_id, digest, signature):
        return await self.inner.verify_digest(key_id, digest, signature)


@pytest.fixture
def custodian():
    return LocalCustodian.from_secret(SECRET)


@pytest.fixture
def high_s_custodian(custodian):
    return HighSCustodian(custodian)


@pytest.fixture
def cfg():
    return SignerConfig(custodian_backend="local", key_id="dev-key", custodian_timeout_s=2.0)
