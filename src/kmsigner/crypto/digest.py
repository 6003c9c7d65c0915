"""Sui intent signing digests.

Every signed payload is prefixed with a three-byte intent (scope, version,
app id) and hashed with blake2b-256. Personal messages are BCS-framed first.
"""
from __future__ import annotations

import enum
import hashlib

DIGEST_SIZE = 32


class IntentScope(enum.IntEnum):
    TRANSACTION_DATA = 0
    TRANSACTION_EFFECTS = 1
    CHECKPOINT_SUMMARY = 2
    PERSONAL_MESSAGE = 3


INTENT_VERSION_V0 = 0
APP_ID_SUI = 0


def blake2b_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=DIGEST_SIZE).digest()


def intent_header(scope: IntentScope, version: int = INTENT_VERSION_V0, app_id: int = APP_ID_SUI) -> bytes:
    # scope || version || app id, one byte each
    return bytes([int(scope), version, app_id])


def build_digest(payload: bytes, scope: IntentScope = IntentScope.TRANSACTION_DATA) -> bytes:
    """Domain-separated signing digest: blake2b-256(intent || payload)."""
    return blake2b_256(intent_header(scope) + bytes(payload))


def uleb128(n: int) -> bytes:
    if n < 0:
        raise ValueError("uleb128 requires a non-negative integer")
    out = bytearray()
    while True:
        byte = n & 0x7F
        n >>= 7
        if n:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def personal_message_payload(message: bytes) -> bytes:
    # BCS vector<u8>: uleb128 length prefix followed by the raw bytes
    return uleb128(len(message)) + bytes(message)
