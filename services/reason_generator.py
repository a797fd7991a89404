"""
템플릿 기반 유명인 매칭 이유 생성기

유사도 구간과 분석 신호(표정, 안경)에 맞춰 자연스러운 매칭 이유 문장을 만듭니다.
모든 무작위 선택은 주입된 SeededRandom으로만 수행되므로 같은 사진이면 같은 문장이 나옵니다.

Author: NXNS Team
Version: 1.1.0
"""

import logging
from typing import Dict, List, Optional

from models.signals import AnalysisSignals, GenderCategory, SmileLevel
from services.seeded_random import SeededRandom

logger = logging.getLogger(__name__)


class MatchReasonGenerator:
    """매칭 이유 생성기"""

    # ========== 신호별 하이라이트 문구 ==========
    SMILE_HIGHLIGHTS: Dict[SmileLevel, Dict[GenderCategory, str]] = {
        SmileLevel.BIG_SMILE: {
            GenderCategory.MALE: "爽朗的笑容同样阳光有感染力",
            GenderCategory.FEMALE: "灿烂的笑容同样甜美有感染力",
        },
        SmileLevel.SMILE: {
            GenderCategory.MALE: "嘴角的微笑同样温和从容",
            GenderCategory.FEMALE: "浅浅的微笑同样温柔动人",
        },
    }

    GLASSES_HIGHLIGHTS: Dict[GenderCategory, str] = {
        GenderCategory.MALE: "戴眼镜的斯文气质如出一辙",
        GenderCategory.FEMALE: "戴眼镜的知性气质十分相近",
    }

    DEFAULT_HIGHLIGHTS: Dict[GenderCategory, str] = {
        GenderCategory.MALE: "五官轮廓同样英气立体",
        GenderCategory.FEMALE: "五官轮廓同样精致秀气",
    }

    # ========== 유사도 구간별 템플릿 ==========
    TEMPLATE_VERY_HIGH = "你和{name}的相似度非常高！{highlight}，简直像同一个人"
    TEMPLATE_HIGH = "你和{name}非常接近，{highlight}"
    TEMPLATE_SOME = "你和{name}有几分神似，{highlight}"

    def __init__(self, very_high_threshold: int = 92, high_threshold: int = 85):
        """
        Args:
            very_high_threshold: 이 값 이상이면 "매우 높음" 템플릿
            high_threshold: 이 값 이상이면 "가까움" 템플릿
        """
        self.very_high_threshold = very_high_threshold
        self.high_threshold = high_threshold

    def highlight_candidates(
        self,
        gender: GenderCategory,
        signals: AnalysisSignals
    ) -> List[str]:
        """신호 조건을 만족하는 하이라이트 후보 (표정 → 안경 순서)"""
        candidates: List[str] = []

        smile_phrases = self.SMILE_HIGHLIGHTS.get(signals.smile_level) if signals.smile_level else None
        if smile_phrases:
            candidates.append(smile_phrases[gender])

        if signals.has_glasses is True:
            candidates.append(self.GLASSES_HIGHLIGHTS[gender])

        return candidates

    def template_for(self, similarity: int) -> str:
        if similarity >= self.very_high_threshold:
            return self.TEMPLATE_VERY_HIGH
        if similarity >= self.high_threshold:
            return self.TEMPLATE_HIGH
        return self.TEMPLATE_SOME

    def generate(
        self,
        rand: SeededRandom,
        gender: Optional[GenderCategory],
        similarity: int,
        signals: Optional[AnalysisSignals],
        celebrity_name: str
    ) -> str:
        """
        매칭 이유 생성

        후보가 2개 이상일 때만 난수를 1회 소비합니다.

        Args:
            rand: 요청 단위 난수 생성기
            gender: 문구 성별 (None이면 남성 문구)
            similarity: 유사도 (72-98)
            signals: 분석 신호
            celebrity_name: 매칭된 유명인 이름

        Returns:
            매칭 이유 문자열
        """
        gender = gender or GenderCategory.MALE
        signals = signals or AnalysisSignals()

        candidates = self.highlight_candidates(gender, signals)
        if not candidates:
            highlight = self.DEFAULT_HIGHLIGHTS[gender]
        elif len(candidates) == 1:
            highlight = candidates[0]
        else:
            highlight = rand.choice(candidates)

        return self.template_for(similarity).format(name=celebrity_name, highlight=highlight)


# ========== 싱글톤 인스턴스 ==========
_reason_generator_instance: Optional[MatchReasonGenerator] = None


def get_reason_generator() -> MatchReasonGenerator:
    """MatchReasonGenerator 싱글톤 인스턴스 가져오기"""
    global _reason_generator_instance

    if _reason_generator_instance is None:
        from config.settings import settings

        logger.info("🔧 매칭 이유 생성기 초기화 중...")
        _reason_generator_instance = MatchReasonGenerator(
            very_high_threshold=settings.SIMILARITY_BAND_VERY_HIGH,
            high_threshold=settings.SIMILARITY_BAND_HIGH,
        )

    return _reason_generator_instance
