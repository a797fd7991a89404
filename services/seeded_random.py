"""
Seeded pseudo-random generator for reproducible matching

The same photo payload must always produce the same celebrity, similarity and
reason, also across re-implementations in other languages. The generator is a
32-bit mulberry32: state advances by a fixed odd constant and every output is
mixed with xor/shift/multiply steps in unsigned 32-bit arithmetic.
"""

import hashlib
import time
from typing import Optional, Sequence, TypeVar, Union

from core.logging import logger

T = TypeVar("T")

MASK_32 = 0xFFFFFFFF
STATE_INCREMENT = 0x6D2B79F5
TWO_POW_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    """32-bit unsigned multiply (low 32 bits of the product)"""
    return (a * b) & MASK_32


class SeededRandom:
    """Deterministic float stream in [0, 1) driven by a 32-bit state"""

    def __init__(self, seed: int):
        self._state = seed & MASK_32

    @property
    def state(self) -> int:
        return self._state

    def next(self) -> float:
        self._state = (self._state + STATE_INCREMENT) & MASK_32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & MASK_32
        t = (t ^ (t >> 14)) & MASK_32
        return t / TWO_POW_32

    def randint(self, low: int, high: int) -> int:
        """Uniform integer in [low, high] (one draw)"""
        return low + int(self.next() * (high - low + 1))

    def choice(self, items: Sequence[T]) -> T:
        """Uniform pick from a non-empty sequence (one draw)"""
        if not items:
            raise IndexError("cannot choose from an empty sequence")
        return items[int(self.next() * len(items))]


def derive_seed(payload: Optional[Union[str, bytes]]) -> int:
    """
    Derive a 32-bit seed from the encoded photo payload

    SHA-256 of the payload, first 8 hex characters parsed as base-16.
    Without a payload the seed falls back to a monotonic clock reading,
    which makes that path non-reproducible.

    Args:
        payload: Encoded photo (data URL / base64 text, or raw bytes)

    Returns:
        Unsigned 32-bit integer seed
    """
    if payload is None or len(payload) == 0:
        logger.warning("⚠️ 시드용 사진 데이터 없음 - 단조 시계 기반 시드 사용 (재현 불가)")
        return time.monotonic_ns() & MASK_32

    data = payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)
    return int(hashlib.sha256(data).hexdigest()[:8], 16)
