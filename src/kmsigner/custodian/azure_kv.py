from __future__ import annotations

import asyncio
import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..crypto.der import CustodianSignature
from ..errors import CustodianUnavailable, UnsupportedScheme
from ..utils.logging import get_logger
from .base import ECDSA_SHA_256, CoordinatePairKey

log = get_logger("custodian.azure")

_EC_KEY_TYPES = ("EC", "EC-HSM")


@dataclass
class AzureKeyVaultCustodian:
    """Azure Key Vault / Managed HSM custodian (azure-keyvault-keys, aio clients).

    Keys must be EC with curve P-256K. ES256K takes a SHA-256 digest, so the
    32-byte signing digest is hashed here before it is sent, matching the
    ECDSA_SHA_256 contract of the other backends.
    """
    vault_url: str
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    credential: Any = field(default=None, repr=False)
    key_client: Any = field(default=None, repr=False)
    _crypto_clients: Dict[str, Any] = field(default_factory=dict, repr=False)
    _clients_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def __post_init__(self):
        try:
            from azure.keyvault.keys.aio import KeyClient
        except Exception as e:  # pragma: no cover
            raise RuntimeError("azure-keyvault-keys not available; install with 'pip install kmsigner[azure]'") from e
        if self.credential is None:
            from azure.identity.aio import ClientSecretCredential, DefaultAzureCredential
            if self.tenant_id and self.client_id and self.client_secret:
                self.credential = ClientSecretCredential(self.tenant_id, self.client_id, self.client_secret)
            else:
                self.credential = DefaultAzureCredential()
        if self.key_client is None:
            self.key_client = KeyClient(vault_url=self.vault_url, credential=self.credential)

    async def _get_key(self, key_name: str):
        from azure.core.exceptions import AzureError

        try:
            key = await self.key_client.get_key(key_name)
        except AzureError as e:
            log.error("key vault get_key failed: %s", e)
            raise CustodianUnavailable(f"Azure Key Vault get_key failed: {e}") from e
        jwk = key.key
        if str(getattr(jwk.kty, "value", jwk.kty)) not in _EC_KEY_TYPES:
            raise UnsupportedScheme(f"key type {jwk.kty} is not EC")
        return key

    async def _crypto_client(self, key_name: str):
        client = self._crypto_clients.get(key_name)
        if client is not None:
            return client
        # one client per key even when first requests race
        async with self._clients_lock:
            client = self._crypto_clients.get(key_name)
            if client is None:
                from azure.keyvault.keys.crypto.aio import CryptographyClient

                key = await self._get_key(key_name)
                client = CryptographyClient(key, credential=self.credential)
                self._crypto_clients[key_name] = client
        return client

    async def fetch_public_key(self, key_id: str) -> CoordinatePairKey:
        key = await self._get_key(key_id)
        jwk = key.key
        curve = str(getattr(jwk.crv, "value", jwk.crv))
        return CoordinatePairKey(curve=curve, x=bytes(jwk.x or b""), y=bytes(jwk.y or b""))

    async def sign_digest(self, key_id: str, digest: bytes, algorithm: str = ECDSA_SHA_256) -> CustodianSignature:
        from azure.core.exceptions import AzureError
        from azure.keyvault.keys.crypto import SignatureAlgorithm

        if algorithm != ECDSA_SHA_256:
            raise UnsupportedScheme(f"Azure backend supports {ECDSA_SHA_256} only")
        client = await self._crypto_client(key_id)
        try:
            result = await client.sign(SignatureAlgorithm.es256_k, hashlib.sha256(digest).digest())
        except AzureError as e:
            log.error("key vault sign failed: %s", e)
            raise CustodianUnavailable(f"Azure Key Vault sign failed: {e}") from e
        if not result.signature:
            raise CustodianUnavailable("Azure Key Vault returned no signature")
        return CustodianSignature(bytes(result.signature), "raw")

    async def verify_digest(self, key_id: str, digest: bytes, signature: CustodianSignature) -> bool:
        from azure.core.exceptions import AzureError
        from azure.keyvault.keys.crypto import SignatureAlgorithm

        client = await self._crypto_client(key_id)
        try:
            result = await client.verify(SignatureAlgorithm.es256_k, hashlib.sha256(digest).digest(), signature.data)
        except AzureError as e:
            log.error("key vault verify failed: %s", e)
            raise CustodianUnavailable(f"Azure Key Vault verify failed: {e}") from e
        return bool(result.is_valid)

    async def close(self) -> None:
        for client in self._crypto_clients.values():
            await client.close()
        await self.key_client.close()
        await self.credential.close()
