# models/signals.py
"""
비전 분석 결과에서 매칭에 필요한 신호만 추출한 구조체

AI 응답은 필드가 빠지거나 형식이 제각각일 수 있으므로,
매칭 로직은 항상 AnalysisSignals를 통해서만 값을 읽습니다.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class GenderCategory(str, Enum):
    """정규화된 성별 카테고리"""
    MALE = "male"
    FEMALE = "female"


class SmileLevel(str, Enum):
    """표정 단계"""
    NONE = "none"
    SMILE = "smile"
    BIG_SMILE = "big_smile"


# 성별 별칭 테이블 (중국어/영어 표기 포함)
GENDER_ALIASES: Dict[str, GenderCategory] = {
    "男": GenderCategory.MALE,
    "男性": GenderCategory.MALE,
    "男生": GenderCategory.MALE,
    "先生": GenderCategory.MALE,
    "male": GenderCategory.MALE,
    "m": GenderCategory.MALE,
    "man": GenderCategory.MALE,
    "men": GenderCategory.MALE,
    "boy": GenderCategory.MALE,
    "女": GenderCategory.FEMALE,
    "女性": GenderCategory.FEMALE,
    "女生": GenderCategory.FEMALE,
    "女士": GenderCategory.FEMALE,
    "female": GenderCategory.FEMALE,
    "f": GenderCategory.FEMALE,
    "woman": GenderCategory.FEMALE,
    "women": GenderCategory.FEMALE,
    "girl": GenderCategory.FEMALE,
}

SMILE_ALIASES: Dict[str, SmileLevel] = {
    "无笑容": SmileLevel.NONE,
    "没有笑容": SmileLevel.NONE,
    "none": SmileLevel.NONE,
    "no_smile": SmileLevel.NONE,
    "微笑": SmileLevel.SMILE,
    "smile": SmileLevel.SMILE,
    "开心大笑": SmileLevel.BIG_SMILE,
    "大笑": SmileLevel.BIG_SMILE,
    "big_smile": SmileLevel.BIG_SMILE,
    "laugh": SmileLevel.BIG_SMILE,
}

_TRUE_WORDS = {"true", "yes", "1", "是", "有", "戴"}
_FALSE_WORDS = {"false", "no", "0", "否", "无", "没有"}


def normalize_gender(raw: Any) -> Optional[GenderCategory]:
    """
    성별 원문을 GenderCategory로 변환

    인식할 수 없는 값은 예외 없이 None을 반환합니다 (호출자는 전체 풀로 fallback).
    """
    if isinstance(raw, GenderCategory):
        return raw
    if not isinstance(raw, str):
        return None
    return GENDER_ALIASES.get(raw.strip().lower())


def _parse_smile(raw: Any) -> Optional[SmileLevel]:
    if isinstance(raw, SmileLevel):
        return raw
    if not isinstance(raw, str):
        return None
    return SMILE_ALIASES.get(raw.strip().lower())


def _parse_bool(raw: Any) -> Optional[bool]:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        word = raw.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return None


def _parse_score(raw: Any) -> Optional[float]:
    if isinstance(raw, bool) or raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return min(100.0, max(1.0, value))


@dataclass(frozen=True)
class AnalysisSignals:
    """
    매칭 입력 신호 (모든 필드 optional)

    기본값:
    - gender_raw: None → 성별 필터 없음
    - smile_level: None → 표정 보너스 0
    - has_glasses: None → 안경 보너스 0
    - beauty_score: None → 외모 점수 보너스 0
    """
    gender_raw: Optional[str] = None
    smile_level: Optional[SmileLevel] = None
    has_glasses: Optional[bool] = None
    beauty_score: Optional[float] = None

    @property
    def gender_category(self) -> Optional[GenderCategory]:
        return normalize_gender(self.gender_raw)

    @classmethod
    def from_analysis(cls, analysis: Optional[Dict[str, Any]]) -> "AnalysisSignals":
        """Build signals from a raw vision analysis dict (tolerates missing/odd fields)"""
        if not analysis:
            return cls()

        gender = analysis.get("gender")
        return cls(
            gender_raw=gender.strip() if isinstance(gender, str) and gender.strip() else None,
            smile_level=_parse_smile(analysis.get("smileLevel")),
            has_glasses=_parse_bool(analysis.get("hasGlasses")),
            beauty_score=_parse_score(analysis.get("beautyScore")),
        )

    def to_dict(self) -> dict:
        """dict로 변환 (로깅용)"""
        return {
            "gender_raw": self.gender_raw,
            "smile_level": self.smile_level.value if self.smile_level else None,
            "has_glasses": self.has_glasses,
            "beauty_score": self.beauty_score,
        }
