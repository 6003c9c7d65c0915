"""secp256k1 domain parameters and SEC1 point compression."""
from __future__ import annotations

from ..errors import InvalidPointEncoding

CURVE_NAME = "secp256k1"

# y^2 = x^3 + 7 over F_p
P = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
B = 7
HALF_N = N // 2

COORD_BYTES = 32
UNCOMPRESSED_LEN = 1 + 2 * COORD_BYTES
COMPRESSED_LEN = 1 + COORD_BYTES
UNCOMPRESSED_MARKER = 0x04


def is_on_curve(x: int, y: int) -> bool:
    if not (0 <= x < P and 0 <= y < P):
        return False
    return (y * y - (x * x * x + B)) % P == 0


def uncompressed_point(x: bytes, y: bytes) -> bytes:
    """Build ``04 || X || Y`` from coordinates, left-padding each to 32 bytes."""
    if len(x) > COORD_BYTES or len(y) > COORD_BYTES:
        raise InvalidPointEncoding("coordinate wider than 32 bytes")
    return bytes([UNCOMPRESSED_MARKER]) + x.rjust(COORD_BYTES, b"\x00") + y.rjust(COORD_BYTES, b"\x00")


def compress(point: bytes) -> bytes:
    """Compress a 65-byte uncompressed SEC1 point to 33 bytes.

    Prefix is 0x02 when Y is even and 0x03 when odd, followed by X.
    """
    if len(point) != UNCOMPRESSED_LEN:
        raise InvalidPointEncoding(f"expected {UNCOMPRESSED_LEN}-byte point, got {len(point)}")
    if point[0] != UNCOMPRESSED_MARKER:
        raise InvalidPointEncoding(f"point does not start with 0x04 (got 0x{point[0]:02x})")
    x = point[1:1 + COORD_BYTES]
    y = point[1 + COORD_BYTES:]
    if not is_on_curve(int.from_bytes(x, "big"), int.from_bytes(y, "big")):
        raise InvalidPointEncoding("point is not on secp256k1")
    prefix = 0x02 if y[-1] % 2 == 0 else 0x03
    return bytes([prefix]) + x


__all__ = [
    "CURVE_NAME",
    "P",
    "N",
    "HALF_N",
    "COMPRESSED_LEN",
    "UNCOMPRESSED_LEN",
    "is_on_curve",
    "uncompressed_point",
    "compress",
]
