"""Error taxonomy and result type for the signing pipeline.

Leaf components (DER decoding, point compression, assembly) raise one of the
``SignerError`` subclasses below. ``SignerService`` operations catch them at
the boundary and hand back an ``Outcome`` so callers branch on ``ErrorKind``
instead of catching a generic failure.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar


class ErrorKind(str, enum.Enum):
    MALFORMED_ENCODING = "malformed_encoding"
    INVALID_POINT_ENCODING = "invalid_point_encoding"
    UNSUPPORTED_SCHEME = "unsupported_scheme"
    CUSTODIAN_UNAVAILABLE = "custodian_unavailable"
    CUSTODIAN_TIMEOUT = "custodian_timeout"
    SIGNATURE_VERIFICATION_FAILED = "signature_verification_failed"
    INVALID_INPUT = "invalid_input"


class SignerError(Exception):
    kind: ErrorKind = ErrorKind.INVALID_INPUT


class MalformedEncoding(SignerError):
    """DER grammar violation in key or signature bytes."""
    kind = ErrorKind.MALFORMED_ENCODING


class InvalidPointEncoding(SignerError):
    """Public key point has the wrong length, marker or is off the curve."""
    kind = ErrorKind.INVALID_POINT_ENCODING


class UnsupportedScheme(SignerError):
    """Signature scheme (or key curve) outside the allow-list."""
    kind = ErrorKind.UNSUPPORTED_SCHEME


class CustodianUnavailable(SignerError):
    """Network or authorization failure reaching the custodian."""
    kind = ErrorKind.CUSTODIAN_UNAVAILABLE


class CustodianTimeout(CustodianUnavailable):
    """Custodian call exceeded its deadline."""
    kind = ErrorKind.CUSTODIAN_TIMEOUT


class SignatureVerificationFailed(SignerError):
    kind = ErrorKind.SIGNATURE_VERIFICATION_FAILED


class InvalidInput(SignerError):
    kind = ErrorKind.INVALID_INPUT


T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, err: SignerError) -> "Outcome[T]":
        return cls(error=err.kind, detail=str(err))

    def unwrap(self) -> T:
        if self.error is not None:
            raise RuntimeError(f"{self.error.value}: {self.detail}")
        return self.value  # type: ignore[return-value]


__all__ = [
    "ErrorKind",
    "SignerError",
    "MalformedEncoding",
    "InvalidPointEncoding",
    "UnsupportedScheme",
    "CustodianUnavailable",
    "CustodianTimeout",
    "SignatureVerificationFailed",
    "InvalidInput",
    "Outcome",
]
