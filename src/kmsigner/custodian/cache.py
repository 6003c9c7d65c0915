from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Tuple

from ..crypto.der import CustodianSignature
from .base import ECDSA_SHA_256, Custodian, KeyResponse


@dataclass
class CachedCustodian:
    """Wraps a custodian and caches ``fetch_public_key`` for ``ttl_s`` seconds.

    Signing and verification always go through to the inner custodian.
    """
    inner: Custodian
    ttl_s: float
    clock: Callable[[], float] = time.monotonic
    _entries: Dict[str, Tuple[float, KeyResponse]] = field(default_factory=dict, repr=False)

    async def fetch_public_key(self, key_id: str) -> KeyResponse:
        now = self.clock()
        hit = self._entries.get(key_id)
        if hit and hit[0] > now:
            return hit[1]
        key = await self.inner.fetch_public_key(key_id)
        self._entries[key_id] = (now + self.ttl_s, key)
        return key

    async def sign_digest(self, key_id: str, digest: bytes, algorithm: str = ECDSA_SHA_256) -> CustodianSignature:
        return await self.inner.sign_digest(key_id, digest, algorithm)

    async def verify_digest(self, key_id: str, digest: bytes, signature: CustodianSignature) -> bool:
        return await self.inner.verify_digest(key_id, digest, signature)

    def invalidate(self, key_id: str | None = None) -> None:
        if key_id is None:
            self._entries.clear()
        else:
            self._entries.pop(key_id, None)

    async def close(self) -> None:
        close = getattr(self.inner, "close", None)
        if close is not None:
            await close()
