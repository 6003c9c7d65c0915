import random

import pytest

from kmsigner.crypto.curve import HALF_N, N
from kmsigner.crypto.normalize import is_low_s, normalize, split_canonical
from kmsigner.errors import MalformedEncoding

R = 0x6B17D1F2E12C4247F8BCE6E563A440F277037D812DEB33A0F4A13945D898C296


def test_high_s_is_flipped():
    rng = random.Random(7)
    for _ in range(200):
        s = rng.randrange(HALF_N + 1, N)
        out = normalize(R, s)
        s2 = int.from_bytes(out[32:], "big")
        assert s2 == N - s
        assert s2 <= HALF_N


def test_low_s_unchanged():
    rng = random.Random(11)
    for _ in range(200):
        s = rng.randrange(1, HALF_N + 1)
        assert int.from_bytes(normalize(R, s)[32:], "big") == s


@pytest.mark.parametrize("s,expected", [
    (1, 1),
    (HALF_N, HALF_N),
    (HALF_N + 1, HALF_N),
    (N - 1, 1),
])
def test_boundaries(s, expected):
    assert int.from_bytes(normalize(R, s)[32:], "big") == expected


def test_fixed_width_big_endian():
    out = normalize(5, 7)
    assert len(out) == 64
    assert out[:32] == (5).to_bytes(32, "big")
    assert out[32:] == (7).to_bytes(32, "big")
    assert split_canonical(out).r == 5


@pytest.mark.parametrize("r,s", [(0, 1), (1, 0), (N, 1), (1, N)])
def test_out_of_range(r, s):
    with pytest.raises(MalformedEncoding):
        normalize(r, s)


def test_is_low_s():
    assert is_low_s(HALF_N)
    assert not is_low_s(HALF_N + 1)
    assert not is_low_s(0)
