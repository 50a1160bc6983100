"""
Tests for curve groups: toy group arithmetic, BLS12-381 encodings and pairing.

Covers:
- Toy group bilinearity and the worked modular example
- BLS12-381 compressed / uncompressed point encodings
- Rejection of invalid encodings (InvalidPoint) and non-canonical scalars
- Roots of unity
"""

import pytest
from py_ecc import optimized_bls12_381 as bls_curve

from ptau.errors import InvalidPoint, MalformedFile
from ptau.group import CurveGroup, get_group


# ─────────────────────────────────────────────────────────────────────
# Registry
# ─────────────────────────────────────────────────────────────────────

class TestRegistry:
    """get_group 테스트."""

    def test_known_groups(self, toy, bls):
        """Both built-in groups are available by name."""
        assert toy.name == "toy"
        assert bls.name == "bls12_381"

    def test_unknown_group(self):
        """Unknown names raise ValueError."""
        with pytest.raises(ValueError):
            get_group("secp256k1")

    def test_instance_passthrough(self, toy):
        """A group instance is returned unchanged."""
        assert get_group(toy) is toy
        assert isinstance(toy, CurveGroup)


# ─────────────────────────────────────────────────────────────────────
# Toy group
# ─────────────────────────────────────────────────────────────────────

class TestToyGroup:
    """장난감 그룹 (위수 97) 테스트."""

    def test_pairing_is_bilinear(self, toy):
        """e(x·a, y·b) == e(a, b)^(xy) (multiplicatively: xy·e(a, b))."""
        a, b, x, y = 7, 11, 13, 17
        lhs = toy.pair(toy.scalar_mul(a, x), toy.scalar_mul(b, y))
        assert lhs == (x * y * toy.pair(a, b)) % 97

    def test_pairing_eq(self, toy):
        """e(3, 5) == e(15, 1)."""
        assert toy.pairing_eq(3, 5, 15, 1)
        assert not toy.pairing_eq(3, 5, 14, 1)

    def test_encoding_roundtrip(self, toy):
        """Points encode to 8 bytes little-endian."""
        assert toy.encode_g1(77) == (77).to_bytes(8, "little")
        assert toy.decode_g2(toy.encode_g2(15)) == 15

    def test_out_of_range_point(self, toy):
        """Values >= 97 are not group elements."""
        with pytest.raises(InvalidPoint) as exc:
            toy.decode_g1((97).to_bytes(8, "little"), index=5)
        assert exc.value.index == 5

    def test_root_of_unity(self, toy):
        """ω = 5^24 has order exactly 4 in Z_97*."""
        omega = toy.root_of_unity(4)
        assert omega ** 4 == toy.FR(1)
        assert omega ** 2 != toy.FR(1)

    def test_root_of_unity_missing(self, toy):
        """No 5th root of unity exists since 5 does not divide 96."""
        with pytest.raises(ValueError):
            toy.root_of_unity(5)


# ─────────────────────────────────────────────────────────────────────
# BLS12-381
# ─────────────────────────────────────────────────────────────────────

class TestBls12381:
    """BLS12-381 인코딩 테스트."""

    def test_g1_generator_encoding(self, bls):
        """Compressed G1 generator is 48 bytes with the compression flag set."""
        data = bls.encode_g1(bls.G1)
        assert len(data) == 48
        assert data[0] & 0x80
        assert bls.eq(bls.decode_g1(data), bls.G1)

    def test_g2_roundtrip(self, bls):
        """G2 points survive compress/decompress."""
        point = bls.scalar_mul(bls.G2, bls.FR(12345))
        data = bls.encode_g2(point)
        assert len(data) == 96
        assert bls.eq(bls.decode_g2(data), point)

    def test_identity_encoding(self, bls):
        """The point at infinity has a valid encoding and decodes back."""
        assert bls.is_identity(bls.decode_g1(bls.encode_g1(bls.Z1)))

    def test_invalid_g1_bytes(self, bls):
        """Bytes without a valid x coordinate are rejected."""
        data = bytes([0x80 | 0x1F]) + b"\xff" * 47
        with pytest.raises(InvalidPoint):
            bls.decode_g1(data, index=3)

    def test_wrong_length(self, bls):
        """Truncated point encodings are rejected."""
        with pytest.raises(InvalidPoint):
            bls.decode_g2(b"\x00" * 95)

    def test_uncompressed_g1(self, bls):
        """Uncompressed (x || y) encoding of 2·G decodes to 2·G."""
        point = bls.scalar_mul(bls.G1, 2)
        x, y = bls_curve.normalize(point)
        data = x.n.to_bytes(48, "big") + y.n.to_bytes(48, "big")
        assert bls.eq(bls.decode_g1_uncompressed(data), point)

    def test_uncompressed_off_curve(self, bls):
        """An uncompressed point not on the curve is rejected."""
        data = (1).to_bytes(48, "big") + (1).to_bytes(48, "big")
        with pytest.raises(InvalidPoint):
            bls.decode_g1_uncompressed(data, index=0)

    def test_uncompressed_infinity(self, bls):
        """The infinity flag with zero coordinates decodes to the identity."""
        data = bytes([0x40]) + b"\x00" * 95
        assert bls.is_identity(bls.decode_g1_uncompressed(data))

    def test_scalar_roundtrip(self, bls):
        """Scalars are 32-byte little-endian."""
        s = bls.FR(2 ** 200 + 7)
        assert bls.decode_scalar(bls.encode_scalar(s)) == s

    def test_non_canonical_scalar(self, bls):
        """Scalars >= r are rejected."""
        data = bls.order.to_bytes(32, "little")
        with pytest.raises(MalformedFile):
            bls.decode_scalar(data)

    def test_pairing_eq(self, bls):
        """e(3G, 5H) == e(15G, H)."""
        a = bls.scalar_mul(bls.G1, 3)
        b = bls.scalar_mul(bls.G2, 5)
        c = bls.scalar_mul(bls.G1, 15)
        assert bls.pairing_eq(a, b, c, bls.G2)

    def test_root_of_unity(self, bls):
        """ω^(2^k) == 1 and ω^(2^(k-1)) == -1."""
        omega = bls.root_of_unity(1 << 5)
        assert omega ** 32 == bls.FR(1)
        assert omega ** 16 == bls.FR(-1)
