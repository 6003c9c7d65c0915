"""ASN.1 DER decoding for custodian public keys and ECDSA signatures.

Two structures are understood:

  SubjectPublicKeyInfo (RFC 5480 section 2):
      SEQUENCE {
          SEQUENCE { OBJECT IDENTIFIER id-ecPublicKey, OBJECT IDENTIFIER namedCurve }
          BIT STRING  -- SEC1 point, zero unused bits
      }

  ECDSA-Sig-Value (RFC 3279 section 2.2.3):
      SEQUENCE { INTEGER r, INTEGER s }

Lengths may use the short form (< 0x80) or the long form (0x81..0x84 followed
by big-endian length octets). Non-minimal long forms, indefinite lengths,
wrong tags, trailing bytes and truncated values are rejected with
``MalformedEncoding``.

INTEGER contents are read as unsigned magnitudes: sign-padding zero bytes are
stripped and the value re-padded to the 32-byte width of the curve. Some
custodians emit s > n/2 without the 0x00 sign pad, and that value still has
to reach the low-S normalizer intact.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from ..errors import MalformedEncoding, UnsupportedScheme
from .curve import CURVE_NAME, N, COORD_BYTES

TAG_INTEGER = 0x02
TAG_BIT_STRING = 0x03
TAG_OID = 0x06
TAG_SEQUENCE = 0x30

OID_EC_PUBLIC_KEY = "1.2.840.10045.2.1"
OID_SECP256K1 = "1.3.132.0.10"

_CURVE_OIDS = {
    OID_SECP256K1: CURVE_NAME,
    "1.2.840.10045.3.1.7": "secp256r1",
    "1.3.132.0.34": "secp384r1",
}

_MAX_LENGTH_OCTETS = 4


@dataclass(frozen=True)
class RawPublicKeyMaterial:
    """Curve identifier plus the SEC1 point as delivered by the custodian."""
    curve: str
    point: bytes
    source: str = "der"


@dataclass(frozen=True)
class SignatureComponents:
    r: int
    s: int

    def __post_init__(self):
        if not (0 < self.r < N):
            raise MalformedEncoding("signature r out of range")
        if not (0 < self.s < N):
            raise MalformedEncoding("signature s out of range")


@dataclass(frozen=True)
class CustodianSignature:
    """Signature bytes returned by a custodian, tagged with their encoding."""
    data: bytes
    encoding: str = "der"  # der | raw


def read_length(buf: bytes, offset: int) -> Tuple[int, int]:
    """Decode a DER length at ``offset``; return (length, offset after it)."""
    if offset >= len(buf):
        raise MalformedEncoding("truncated: missing length")
    first = buf[offset]
    offset += 1
    if first < 0x80:
        return first, offset
    n = first & 0x7F
    if n == 0:
        raise MalformedEncoding("indefinite length not allowed in DER")
    if n > _MAX_LENGTH_OCTETS:
        raise MalformedEncoding(f"length uses {n} octets")
    if offset + n > len(buf):
        raise MalformedEncoding("truncated: long-form length")
    octets = buf[offset:offset + n]
    length = int.from_bytes(octets, "big")
    if octets[0] == 0 or length < 0x80:
        raise MalformedEncoding("non-minimal long-form length")
    return length, offset + n


def read_tlv(buf: bytes, offset: int, expected_tag: int) -> Tuple[bytes, int]:
    """Read one TLV with ``expected_tag``; return (value, offset after it)."""
    if offset >= len(buf):
        raise MalformedEncoding("truncated: missing tag")
    tag = buf[offset]
    if tag != expected_tag:
        raise MalformedEncoding(f"expected tag 0x{expected_tag:02x}, got 0x{tag:02x}")
    length, offset = read_length(buf, offset + 1)
    end = offset + length
    if end > len(buf):
        raise MalformedEncoding(f"truncated: need {length} bytes, have {len(buf) - offset}")
    return buf[offset:end], end


def _read_single(data: bytes, tag: int) -> bytes:
    value, end = read_tlv(data, 0, tag)
    if end != len(data):
        raise MalformedEncoding(f"{len(data) - end} trailing bytes")
    return value


def decode_oid(value: bytes) -> str:
    if not value:
        raise MalformedEncoding("empty OBJECT IDENTIFIER")
    if value[-1] & 0x80:
        raise MalformedEncoding("truncated OBJECT IDENTIFIER")
    arcs: List[int] = []
    acc = 0
    for b in value:
        if acc == 0 and b == 0x80:
            raise MalformedEncoding("non-minimal OID arc")
        acc = (acc << 7) | (b & 0x7F)
        if not b & 0x80:
            arcs.append(acc)
            acc = 0
    first = arcs[0]
    head = [min(first // 40, 2), first - 40 * min(first // 40, 2)]
    return ".".join(str(a) for a in head + arcs[1:])


def decode_integer(value: bytes) -> int:
    """Decode an INTEGER as an unsigned value of at most 32 significant bytes."""
    if not value:
        raise MalformedEncoding("empty INTEGER")
    stripped = value.lstrip(b"\x00")
    if len(stripped) > COORD_BYTES:
        raise MalformedEncoding(f"INTEGER wider than {COORD_BYTES} bytes")
    return int.from_bytes(stripped.rjust(COORD_BYTES, b"\x00"), "big")


def parse_public_key_info(data: bytes) -> RawPublicKeyMaterial:
    body = _read_single(bytes(data), TAG_SEQUENCE)
    alg_seq, off = read_tlv(body, 0, TAG_SEQUENCE)
    bit_string, off = read_tlv(body, off, TAG_BIT_STRING)
    if off != len(body):
        raise MalformedEncoding("trailing data in SubjectPublicKeyInfo")

    alg_oid, a_off = read_tlv(alg_seq, 0, TAG_OID)
    curve_oid, a_off = read_tlv(alg_seq, a_off, TAG_OID)
    if a_off != len(alg_seq):
        raise MalformedEncoding("trailing data in AlgorithmIdentifier")
    alg = decode_oid(alg_oid)
    if alg != OID_EC_PUBLIC_KEY:
        raise UnsupportedScheme(f"public key algorithm {alg} is not id-ecPublicKey")
    curve_id = decode_oid(curve_oid)
    curve = _CURVE_OIDS.get(curve_id, curve_id)
    if curve != CURVE_NAME:
        raise UnsupportedScheme(f"key curve {curve} is not {CURVE_NAME}")

    if not bit_string:
        raise MalformedEncoding("empty BIT STRING")
    if bit_string[0] != 0:
        raise MalformedEncoding(f"BIT STRING has {bit_string[0]} unused bits")
    return RawPublicKeyMaterial(curve=curve, point=bit_string[1:], source="der")


def parse_signature_info(data: bytes) -> SignatureComponents:
    body = _read_single(bytes(data), TAG_SEQUENCE)
    r_raw, off = read_tlv(body, 0, TAG_INTEGER)
    s_raw, off = read_tlv(body, off, TAG_INTEGER)
    if off != len(body):
        raise MalformedEncoding("trailing data in signature SEQUENCE")
    return SignatureComponents(decode_integer(r_raw), decode_integer(s_raw))


def parse_raw_signature(data: bytes) -> SignatureComponents:
    """Decode an IEEE P1363 ``r || s`` signature (Azure Key Vault style)."""
    if len(data) != 2 * COORD_BYTES:
        raise MalformedEncoding(f"expected {2 * COORD_BYTES}-byte raw signature, got {len(data)}")
    return SignatureComponents(
        int.from_bytes(data[:COORD_BYTES], "big"),
        int.from_bytes(data[COORD_BYTES:], "big"),
    )


def decode_custodian_signature(sig: CustodianSignature) -> SignatureComponents:
    if sig.encoding == "der":
        return parse_signature_info(sig.data)
    if sig.encoding == "raw":
        return parse_raw_signature(sig.data)
    raise MalformedEncoding(f"unknown signature encoding {sig.encoding!r}")


__all__ = [
    "RawPublicKeyMaterial",
    "SignatureComponents",
    "CustodianSignature",
    "OID_EC_PUBLIC_KEY",
    "OID_SECP256K1",
    "read_length",
    "read_tlv",
    "decode_oid",
    "decode_integer",
    "parse_public_key_info",
    "parse_signature_info",
    "parse_raw_signature",
    "decode_custodian_signature",
]
