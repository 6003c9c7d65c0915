from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Optional

from ..crypto.der import CustodianSignature
from ..errors import CustodianUnavailable
from ..utils.logging import get_logger
from .base import ECDSA_SHA_256, DerEncodedKey

log = get_logger("custodian.aws")


@dataclass
class AwsKmsCustodian:
    """AWS KMS custodian (boto3). Key spec must be ECC_SECG_P256K1.

    boto3 is synchronous, so every call runs in a worker thread. Credentials
    follow the default boto3 chain (AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY,
    profiles, instance roles).
    """
    region: Optional[str] = None
    client: Any = field(default=None, repr=False)

    def __post_init__(self):
        if self.client is None:
            try:
                import boto3
            except Exception as e:  # pragma: no cover
                raise RuntimeError("boto3 not available; install with 'pip install kmsigner[aws]'") from e
            self.client = boto3.client("kms", region_name=self.region or None)

    async def _call(self, op: str, **kwargs) -> dict:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            return await asyncio.to_thread(getattr(self.client, op), **kwargs)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if op == "verify" and code == "KMSInvalidSignatureException":
                return {"SignatureValid": False}
            log.error("kms %s failed: %s", op, code or e)
            raise CustodianUnavailable(f"AWS KMS {op} failed: {code or e}") from e
        except BotoCoreError as e:
            log.error("kms %s failed: %s", op, e)
            raise CustodianUnavailable(f"AWS KMS {op} failed: {e}") from e

    async def fetch_public_key(self, key_id: str) -> DerEncodedKey:
        resp = await self._call("get_public_key", KeyId=key_id)
        der = resp.get("PublicKey")
        if not der:
            raise CustodianUnavailable("AWS KMS returned no public key")
        return DerEncodedKey(der=bytes(der))

    async def sign_digest(self, key_id: str, digest: bytes, algorithm: str = ECDSA_SHA_256) -> CustodianSignature:
        resp = await self._call(
            "sign",
            KeyId=key_id,
            Message=bytes(digest),
            MessageType="RAW",
            SigningAlgorithm=algorithm,
        )
        sig = resp.get("Signature")
        if not sig:
            raise CustodianUnavailable("AWS KMS returned no signature")
        return CustodianSignature(bytes(sig), "der")

    async def verify_digest(self, key_id: str, digest: bytes, signature: CustodianSignature) -> bool:
        resp = await self._call(
            "verify",
            KeyId=key_id,
            Message=bytes(digest),
            MessageType="RAW",
            Signature=signature.data,
            SigningAlgorithm=ECDSA_SHA_256,
        )
        return bool(resp.get("SignatureValid"))
