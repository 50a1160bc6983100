"""
Tests for secret contribution sampling.

Covers:
- ChaCha20 keystream determinism
- Wide reduction of 64-byte blocks and the 0/1 redraw
- Beacon seed derivation from hex strings
- Interactive entropy mixes OS randomness
"""

import hashlib

import pytest

from ptau.entropy import (
    EntropySource,
    beacon_seed,
    chacha20_keystream,
    scalar_from_seed,
)


class TestKeystream:
    """ChaCha20 키스트림 테스트."""

    def test_deterministic(self):
        """The same seed yields the same blocks."""
        a = chacha20_keystream(b"\x07" * 32)
        b = chacha20_keystream(b"\x07" * 32)
        assert [next(a) for _ in range(3)] == [next(b) for _ in range(3)]

    def test_blocks_differ(self):
        """Consecutive blocks continue the stream."""
        stream = chacha20_keystream(b"\x07" * 32)
        first, second = next(stream), next(stream)
        assert len(first) == 64
        assert first != second

    def test_seed_length(self):
        """Seeds must be 32 bytes."""
        with pytest.raises(ValueError):
            next(chacha20_keystream(b"\x00" * 16))


class TestScalarFromSeed:
    """바이트 → 스칼라 변환 테스트."""

    def test_wide_reduction(self, bls):
        """The scalar is the first 64-byte block, little-endian, mod r."""
        seed = b"\x01" * 32
        block = next(chacha20_keystream(seed))
        expected = int.from_bytes(block, "little") % bls.order
        assert int(scalar_from_seed(seed, bls)) == expected

    def test_redraw_excluded(self, toy):
        """Excluded values are skipped by reading the next block."""
        seed = b"\x02" * 32
        stream = chacha20_keystream(seed)
        values = [int.from_bytes(next(stream), "little") % 97 for _ in range(2)]
        result = scalar_from_seed(seed, toy, exclude=(values[0],))
        assert int(result) != values[0]
        if values[1] != values[0]:
            assert int(result) == values[1]

    def test_never_identity(self, toy):
        """Default exclusion keeps δ away from 0 and 1."""
        for i in range(50):
            seed = hashlib.sha256(bytes([i])).digest()
            assert int(scalar_from_seed(seed, toy)) not in (0, 1)


class TestBeaconSeed:
    """비콘 시드 유도 테스트."""

    def test_hex_concatenation(self):
        """seed = Blake2b-512(hex(value) || hex(salt))[:32]."""
        value, salt = bytes(range(32)), bytes(range(16))
        material = (value.hex() + salt.hex()).encode("ascii")
        expected = hashlib.blake2b(material, digest_size=64).digest()[:32]
        assert beacon_seed(value, salt) == expected

    def test_from_beacon_reproducible(self, bls):
        """Anyone with (value, salt) derives the same δ."""
        source = EntropySource(bls)
        value, salt = b"\xaa" * 32, b"\x55" * 16
        assert source.from_beacon(value, salt) == source.from_beacon(value, salt)
        assert source.from_beacon(value, salt) != source.from_beacon(value, b"\x56" * 16)


class TestInteractive:
    """대화식 엔트로피 테스트."""

    def test_user_input(self, bls):
        """Given input, a scalar in range is returned."""
        delta = EntropySource(bls).interactive(user_input="asdfghjkl")
        assert 1 < int(delta) < bls.order

    def test_os_entropy_mixed_in(self, bls):
        """The same keyboard input still gives different δ."""
        source = EntropySource(bls)
        assert source.interactive(user_input="x") != source.interactive(user_input="x")

    def test_prompt(self, bls):
        """Without input the prompt function is asked."""
        asked = []

        def prompt(message):
            asked.append(message)
            return "typed"

        EntropySource(bls).interactive(prompt=prompt)
        assert len(asked) == 1
