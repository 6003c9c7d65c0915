"""Signing pipeline over an explicitly constructed custodian handle.

    digest  = blake2b-256(intent || payload)
    (pk, σ) = custodian.fetch_public_key, custodian.sign_digest   (concurrent)
    sig64   = normalize(decode(σ))
    out     = flag || sig64 || compress(pk)
    release out only if local_verify and remote_verify both pass

All custodian calls of one operation share a single deadline taken when the
operation starts; expiry surfaces as ``CustodianTimeout``. Operations return ``Outcome`` values; nothing partial or
unverified is ever returned.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar, Union

from .crypto.curve import compress
from .crypto.der import CustodianSignature, decode_custodian_signature
from .crypto.digest import DIGEST_SIZE, IntentScope, build_digest, personal_message_payload
from .crypto.normalize import normalize_components
from .crypto.serialized import SignatureScheme, assemble, resolve_scheme, sui_address, sui_public_key_b64, to_base64
from .crypto.verify import local_verify, remote_verify, verify_digest
from .custodian.base import ECDSA_SHA_256, Custodian, to_raw_material
from .errors import CustodianTimeout, InvalidInput, Outcome, SignatureVerificationFailed, SignerError
from .obs.prom import observe_custodian, record_operation, record_verify_failure
from .utils.logging import get_logger

log = get_logger("service")

T = TypeVar("T")


@dataclass(frozen=True)
class PublicKeyInfo:
    compressed: bytes
    scheme: SignatureScheme

    @property
    def hex(self) -> str:
        return self.compressed.hex()

    @property
    def address(self) -> str:
        return sui_address(self.compressed, self.scheme)

    @property
    def sui_public_key(self) -> str:
        return sui_public_key_b64(self.compressed, self.scheme)


@dataclass(frozen=True)
class SignedPayload:
    signature: bytes
    digest: bytes
    scope: IntentScope
    public_key: bytes

    @property
    def signature_b64(self) -> str:
        return to_base64(self.signature)


class SignerService:
    def __init__(
        self,
        custodian: Custodian,
        key_id: str,
        *,
        scheme: Union[str, int, SignatureScheme] = SignatureScheme.SECP256K1,
        timeout_s: float = 10.0,
    ):
        self.custodian = custodian
        self.key_id = key_id
        self.scheme = resolve_scheme(scheme)
        self.timeout_s = timeout_s

    def _deadline(self, timeout_s: Optional[float]) -> float:
        budget = timeout_s if timeout_s is not None else self.timeout_s
        return asyncio.get_running_loop().time() + budget

    async def _custodian_call(self, call: str, aw: Awaitable[T], deadline: float) -> T:
        # every call of one operation shares the same absolute deadline
        remaining = max(deadline - asyncio.get_running_loop().time(), 0.0)
        start = time.perf_counter()
        try:
            return await asyncio.wait_for(aw, timeout=remaining)
        except asyncio.TimeoutError as e:
            raise CustodianTimeout(f"custodian {call} missed the operation deadline") from e
        finally:
            observe_custodian(call, (time.perf_counter() - start) * 1000.0)

    async def _run(self, operation: str, aw: Awaitable[T]) -> Outcome[T]:
        try:
            value = await aw
        except SignerError as e:
            log.error("%s failed: %s: %s", operation, e.kind.value, e)
            record_operation(operation, e.kind.value)
            return Outcome.failure(e)
        record_operation(operation, "ok")
        return Outcome.success(value)

    async def _public_key(self, deadline: float) -> bytes:
        key = await self._custodian_call("fetch_public_key", self.custodian.fetch_public_key(self.key_id), deadline)
        return compress(to_raw_material(key).point)

    async def _sign(self, digest: bytes, deadline: float) -> tuple[bytes, CustodianSignature]:
        pubkey, raw = await asyncio.gather(
            self._public_key(deadline),
            self._custodian_call(
                "sign_digest", self.custodian.sign_digest(self.key_id, digest, ECDSA_SHA_256), deadline
            ),
        )
        return pubkey, raw

    async def _remote_check(self, digest: bytes, raw: CustodianSignature, deadline: float) -> None:
        ok = await self._custodian_call(
            "verify_digest", remote_verify(self.custodian, digest, raw, self.key_id), deadline
        )
        log.debug("custodian verification result: %s", ok)
        if not ok:
            record_verify_failure("remote")
            raise SignatureVerificationFailed("custodian rejected the signature")

    async def _sign_payload(self, payload: bytes, scope: IntentScope, timeout_s: Optional[float]) -> SignedPayload:
        if not payload:
            raise InvalidInput("payload is empty")
        deadline = self._deadline(timeout_s)
        digest = build_digest(payload, scope)
        log.info("signing %s payload=%s digest=%s", scope.name, to_base64(payload), to_base64(digest))

        pubkey, raw = await self._sign(digest, deadline)
        canonical = normalize_components(decode_custodian_signature(raw))
        serialized = assemble(self.scheme, canonical, pubkey)
        log.debug("serialized signature %s", to_base64(serialized))

        if not local_verify(payload, serialized, pubkey, scope):
            record_verify_failure("local")
            raise SignatureVerificationFailed("local verification failed")
        await self._remote_check(digest, raw, deadline)
        return SignedPayload(signature=serialized, digest=digest, scope=scope, public_key=pubkey)

    async def _sign_hash(self, digest: bytes, timeout_s: Optional[float]) -> bytes:
        if len(digest) != DIGEST_SIZE:
            raise InvalidInput(f"digest must be {DIGEST_SIZE} bytes, got {len(digest)}")
        deadline = self._deadline(timeout_s)
        pubkey, raw = await self._sign(bytes(digest), deadline)
        canonical = normalize_components(decode_custodian_signature(raw))
        if not verify_digest(digest, canonical, pubkey):
            record_verify_failure("local")
            raise SignatureVerificationFailed("local verification failed")
        await self._remote_check(digest, raw, deadline)
        return canonical

    async def _public_key_info(self, timeout_s: Optional[float]) -> PublicKeyInfo:
        info = PublicKeyInfo(compressed=await self._public_key(self._deadline(timeout_s)), scheme=self.scheme)
        log.info("fetched public key address=%s", info.address)
        return info

    async def _attr(self, timeout_s: Optional[float], name: str) -> str:
        return getattr(await self._public_key_info(timeout_s), name)

    async def sign_transaction(self, tx_bytes: bytes, *, timeout_s: Optional[float] = None) -> Outcome[SignedPayload]:
        return await self._run("sign_transaction", self._sign_payload(tx_bytes, IntentScope.TRANSACTION_DATA, timeout_s))

    async def sign_personal_message(self, message: bytes, *, timeout_s: Optional[float] = None) -> Outcome[SignedPayload]:
        payload = personal_message_payload(message)
        return await self._run("sign_personal_message", self._sign_payload(payload, IntentScope.PERSONAL_MESSAGE, timeout_s))

    async def sign_message_hash(self, digest: bytes, *, timeout_s: Optional[float] = None) -> Outcome[bytes]:
        return await self._run("sign_message_hash", self._sign_hash(digest, timeout_s))

    async def get_public_key(self, *, timeout_s: Optional[float] = None) -> Outcome[PublicKeyInfo]:
        return await self._run("get_public_key", self._public_key_info(timeout_s))

    async def get_public_key_address(self, *, timeout_s: Optional[float] = None) -> Outcome[str]:
        return await self._run("get_public_key_address", self._attr(timeout_s, "address"))

    async def get_public_key_hex(self, *, timeout_s: Optional[float] = None) -> Outcome[str]:
        return await self._run("get_public_key_hex", self._attr(timeout_s, "hex"))

    async def close(self) -> None:
        close = getattr(self.custodian, "close", None)
        if close is not None:
            await close()
