"""Low-S canonicalization of ECDSA signatures.

Both (r, s) and (r, n - s) verify against the same key; the chain only
accepts the variant with s <= n/2.
"""
from __future__ import annotations

from .curve import N, HALF_N, COORD_BYTES
from .der import SignatureComponents

CANONICAL_LEN = 2 * COORD_BYTES


def is_low_s(s: int) -> bool:
    return 0 < s <= HALF_N


def normalize(r: int, s: int) -> bytes:
    """Return the 64-byte ``r || s`` encoding with s folded into the lower half."""
    sig = SignatureComponents(r, s)
    low_s = sig.s if sig.s <= HALF_N else N - sig.s
    return sig.r.to_bytes(COORD_BYTES, "big") + low_s.to_bytes(COORD_BYTES, "big")


def normalize_components(sig: SignatureComponents) -> bytes:
    return normalize(sig.r, sig.s)


def split_canonical(signature: bytes) -> SignatureComponents:
    return SignatureComponents(
        int.from_bytes(signature[:COORD_BYTES], "big"),
        int.from_bytes(signature[COORD_BYTES:CANONICAL_LEN], "big"),
    )


__all__ = ["CANONICAL_LEN", "is_low_s", "normalize", "normalize_components", "split_canonical"]
