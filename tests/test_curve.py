import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from kmsigner.crypto.curve import compress, is_on_curve, uncompressed_point
from kmsigner.errors import InvalidPointEncoding


def _points(n=8):
    for _ in range(n):
        pk = ec.generate_private_key(ec.SECP256K1()).public_key()
        yield (
            pk.public_bytes(serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint),
            pk.public_bytes(serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint),
        )


def test_compress_matches_sec1():
    for uncompressed, expected in _points():
        out = compress(uncompressed)
        assert len(out) == 33
        assert out == expected
        assert compress(uncompressed) == out


def test_parity_prefix():
    for uncompressed, _ in _points():
        out = compress(uncompressed)
        assert out[0] == (0x02 if uncompressed[-1] % 2 == 0 else 0x03)
        assert out[1:] == uncompressed[1:33]


@pytest.mark.parametrize("length", [0, 33, 64, 66])
def test_wrong_length(length):
    with pytest.raises(InvalidPointEncoding):
        compress(b"\x04" * length)


@pytest.mark.parametrize("marker", [0x00, 0x02, 0x03, 0x06])
def test_missing_uncompressed_marker(marker):
    uncompressed, _ = next(_points(1))
    with pytest.raises(InvalidPointEncoding):
        compress(bytes([marker]) + uncompressed[1:])


def test_point_off_curve():
    uncompressed, _ = next(_points(1))
    tampered = uncompressed[:-1] + bytes([uncompressed[-1] ^ 0x01])
    with pytest.raises(InvalidPointEncoding):
        compress(tampered)


def test_uncompressed_point_pads_coordinates():
    pk = ec.generate_private_key(ec.SECP256K1()).public_key()
    nums = pk.public_numbers()
    x = nums.x.to_bytes(32, "big").lstrip(b"\x00")
    y = nums.y.to_bytes(32, "big").lstrip(b"\x00")
    point = uncompressed_point(x, y)
    assert len(point) == 65
    assert is_on_curve(nums.x, nums.y)
    assert compress(point)[1:] == nums.x.to_bytes(32, "big")


def test_uncompressed_point_rejects_wide_coordinate():
    with pytest.raises(InvalidPointEncoding):
        uncompressed_point(b"\x01" * 33, b"\x01" * 32)
