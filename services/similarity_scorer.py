"""Bounded similarity percentage for a celebrity match"""

import math
from typing import Optional

from models.signals import AnalysisSignals, SmileLevel
from services.seeded_random import SeededRandom

BASE_RANGE = (78, 89)
JITTER_RANGE = (-2, 2)
SIMILARITY_MIN = 72
SIMILARITY_MAX = 98

BEAUTY_PIVOT = 60
BEAUTY_STEP = 4
BEAUTY_BONUS_MIN = -3
BEAUTY_BONUS_MAX = 9

SMILE_BONUS = {
    SmileLevel.BIG_SMILE: 2,
    SmileLevel.SMILE: 1,
    SmileLevel.NONE: 0,
}


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def beauty_bonus(beauty_score: Optional[float]) -> int:
    """clamp(round((score - 60) / 4), -3, 9); 0 without a score"""
    if beauty_score is None:
        return 0
    return _clamp(
        _round_half_up((beauty_score - BEAUTY_PIVOT) / BEAUTY_STEP),
        BEAUTY_BONUS_MIN,
        BEAUTY_BONUS_MAX,
    )


def expression_bonus(smile_level: Optional[SmileLevel]) -> int:
    return SMILE_BONUS.get(smile_level, 0) if smile_level is not None else 0


def eyewear_bonus(has_glasses: Optional[bool]) -> int:
    return 1 if has_glasses is True else 0


def score(rand: SeededRandom, signals: Optional[AnalysisSignals] = None) -> int:
    """
    Similarity in [72, 98]

    Consumes exactly two draws, in order: base value, then jitter.
    """
    signals = signals or AnalysisSignals()

    base = rand.randint(*BASE_RANGE)
    bonus = (
        beauty_bonus(signals.beauty_score)
        + expression_bonus(signals.smile_level)
        + eyewear_bonus(signals.has_glasses)
    )
    jitter = rand.randint(*JITTER_RANGE)

    return _clamp(base + bonus + jitter, SIMILARITY_MIN, SIMILARITY_MAX)
