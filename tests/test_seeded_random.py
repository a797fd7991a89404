"""Tests for the seeded mulberry32 generator and seed derivation"""

import pytest

from services.seeded_random import SeededRandom, derive_seed

TWO_POW_32 = 4294967296


class TestSeededRandom:
    """Test suite for SeededRandom"""

    def test_reference_outputs_seed_zero(self):
        """First outputs for seed 0 match the reference mulberry32 stream"""
        rand = SeededRandom(0)
        assert rand.next() == 1144304738 / TWO_POW_32
        assert rand.next() == 1416247 / TWO_POW_32
        assert rand.next() == 958946056 / TWO_POW_32

    def test_reference_outputs_seed_42(self):
        rand = SeededRandom(42)
        assert rand.next() == 2581720956 / TWO_POW_32
        assert rand.next() == 1925393290 / TWO_POW_32
        assert rand.next() == 3661312704 / TWO_POW_32

    def test_same_seed_same_stream(self):
        a = SeededRandom(123456789)
        b = SeededRandom(123456789)
        assert [a.next() for _ in range(20)] == [b.next() for _ in range(20)]

    def test_outputs_in_unit_interval(self):
        rand = SeededRandom(987654321)
        for _ in range(1000):
            value = rand.next()
            assert 0.0 <= value < 1.0

    def test_seed_is_truncated_to_32_bits(self):
        assert SeededRandom(2 ** 32 + 5).state == 5

    def test_randint_bounds_inclusive(self):
        rand = SeededRandom(7)
        seen = {rand.randint(-2, 2) for _ in range(500)}
        assert seen == {-2, -1, 0, 1, 2}

    def test_choice_consumes_one_draw(self):
        a = SeededRandom(99)
        b = SeededRandom(99)
        a.choice(["x", "y", "z"])
        b.next()
        assert a.state == b.state

    def test_choice_empty_raises(self):
        with pytest.raises(IndexError):
            SeededRandom(1).choice([])


class TestDeriveSeed:
    """Test seed derivation from photo payloads"""

    def test_first_eight_hex_chars_of_sha256(self):
        # sha256("abc") = ba7816bf...
        assert derive_seed("abc") == 0xBA7816BF

    def test_str_and_bytes_agree(self):
        assert derive_seed("data:image/jpeg;base64,AAAA") == derive_seed(b"data:image/jpeg;base64,AAAA")
        assert derive_seed("data:image/jpeg;base64,AAAA") == 411075788

    def test_different_payloads_differ(self):
        assert derive_seed("photo-1") != derive_seed("photo-2")

    def test_missing_payload_still_returns_32_bit_seed(self):
        for payload in (None, "", b""):
            seed = derive_seed(payload)
            assert 0 <= seed <= 0xFFFFFFFF
