"""
Face analysis orchestration

payload → result cache → face check → vision analysis → celebrity match
→ health advice → composed result (every documented field present)
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.cache import ResultCache, calculate_image_hash
from core.exceptions import NoFaceDetectedException, VisionAPIException
from core.logging import log_structured
from models.signals import AnalysisSignals, SmileLevel
from services.celebrity_matcher import CelebrityMatchService
from services.face_detection_service import FaceDetectionService
from services.vision_analysis_service import GeminiVisionService
from utils.image_utils import base64_to_bytes

logger = logging.getLogger(__name__)

MAX_HEALTH_ADVICE = 4
MIN_HEALTH_ADVICE = 3

ADVICE_BY_AGE = {
    "young": [
        "保持良好的作息时间，避免熬夜，青春肌肤需要充足睡眠呵护",
        "坚持户外运动和健身，增强体质，保持年轻活力",
        "均衡饮食，多吃富含抗氧化物的食物，保持肌肤光泽",
    ],
    "adult": [
        "注意工作与生活的平衡，定期放松身心，适度的压力管理很重要",
        "每年定期体检，预防慢性疾病，及早发现及时治疗",
        "坚持适度运动，每周至少3次有氧运动，强化心血管功能",
    ],
    "senior": [
        "保持适度的运动量，散步、太极、瑜伽都是很好的选择",
        "注意饮食清淡营养均衡，定期体检了解身体状况",
        "重视睡眠质量，建立规律的作息，保持精力充沛",
    ],
}
ADVICE_GLASSES = "定期检查视力并更新眼镜度数，注意用眼卫生，每小时休息10分钟"
ADVICE_NO_SMILE = "保持积极乐观的心态，经常微笑可以释放压力，提升气质"
ADVICE_TIRED = [
    "保证充足睡眠（7-9小时），定期休息恢复体力",
    "多喝水保持身体水分，适当补充营养，增强免疫力",
]
ADVICE_GOOD_COMPLEXION = "气色不错！继续保持目前的生活方式，定期运动"
ADVICE_FILLER = "养成良好生活习惯，保持规律作息，为健康生活奠定坚实基础"


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def generate_health_advice(analysis: Dict[str, Any]) -> List[str]:
    """
    Health advice list (3-4 items)

    Uses the AI suggestions when present, otherwise builds advice from
    age band, glasses, expression and complexion.
    """
    health = analysis.get("healthAnalysis") or {}
    suggestions = [s for s in health.get("suggestions") or [] if isinstance(s, str) and s.strip()]
    if suggestions:
        return suggestions[:MAX_HEALTH_ADVICE]

    advice: List[str] = []
    signals = AnalysisSignals.from_analysis(analysis)

    age = _as_number(analysis.get("age"))
    if age is not None:
        if age < 25:
            advice.extend(ADVICE_BY_AGE["young"])
        elif age < 40:
            advice.extend(ADVICE_BY_AGE["adult"])
        else:
            advice.extend(ADVICE_BY_AGE["senior"])

    if signals.has_glasses:
        advice.append(ADVICE_GLASSES)

    if signals.smile_level == SmileLevel.NONE:
        advice.append(ADVICE_NO_SMILE)

    complexion = health.get("complexion")
    if isinstance(complexion, str) and complexion:
        if "疲态" in complexion:
            advice.extend(ADVICE_TIRED)
        else:
            advice.append(ADVICE_GOOD_COMPLEXION)

    while len(advice) < MIN_HEALTH_ADVICE:
        advice.append(ADVICE_FILLER)

    return advice[:MAX_HEALTH_ADVICE]


def compose_analysis(analysis: Optional[Dict[str, Any]], health_advice: List[str]) -> Dict[str, Any]:
    """Analysis block for the display layer with defaults for documented fields"""
    analysis = dict(analysis or {})
    health = analysis.get("healthAnalysis") or {}

    composed = {
        "available": bool(analysis),
        "gender": analysis.get("gender"),
        "age": analysis.get("age"),
        "hasGlasses": analysis.get("hasGlasses", False),
        "smileLevel": analysis.get("smileLevel"),
        "beautyScore": analysis.get("beautyScore"),
        "temperament": analysis.get("temperament") or "",
    }
    # keep any extra fields the model returned
    for key, value in analysis.items():
        composed.setdefault(key, value)

    composed.update({
        "healthAdvice": health_advice,
        "evaluation": analysis.get("evaluation") or "",
        "facialFeatures": analysis.get("facialFeatures") or "",
        "healthAnalysis": {
            "complexion": health.get("complexion") or "",
            "skinCondition": health.get("skinCondition") or "",
            "suggestions": health_advice,
            "strengthPoints": health.get("strengthPoints") or [],
        },
    })
    return composed


class FaceAnalysisService:
    """
    Full analysis pipeline for one photo

    Only the vision analysis failure is user-visible (unless
    allow_match_without_analysis is set); matching always yields a result.
    """

    def __init__(
        self,
        vision_service: GeminiVisionService,
        match_service: CelebrityMatchService,
        face_detector: Optional[FaceDetectionService] = None,
        result_cache: Optional[ResultCache] = None,
        allow_match_without_analysis: bool = False
    ):
        self.vision_service = vision_service
        self.match_service = match_service
        self.face_detector = face_detector or FaceDetectionService()
        self.result_cache = result_cache or ResultCache()
        self.allow_match_without_analysis = allow_match_without_analysis

    def _run_vision(self, image_data: bytes, image_hash: str) -> Optional[Dict[str, Any]]:
        try:
            return self.vision_service.analyze(image_data)
        except VisionAPIException as e:
            log_structured("analysis_error", {
                "error_type": e.error_code,
                "image_hash": image_hash[:16]
            })
            if not self.allow_match_without_analysis:
                raise
            logger.warning(f"⚠️ 비전 분석 실패 - 기본 신호로 매칭 진행: {e.message}")
            return None

    def analyze_face(self, image_base64: str) -> Dict[str, Any]:
        """
        Analyze a photo and match a celebrity

        Args:
            image_base64: Data URL or bare base64 photo

        Returns:
            {"timestamp", "analysis", "celebrity"}

        Raises:
            InvalidImageException: payload cannot be decoded
            NoFaceDetectedException: no usable face
            VisionAPIException: vision analysis failed (user-visible)
        """
        image_hash = calculate_image_hash(image_base64 or "")
        cached = self.result_cache.get(image_hash)
        if cached is not None:
            return cached

        image_data = base64_to_bytes(image_base64)

        log_structured("analysis_start", {
            "image_hash": image_hash[:16],
            "file_size_kb": round(len(image_data) / 1024, 2)
        })

        face_result = self.face_detector.detect_face(image_data)
        if not face_result["has_face"]:
            log_structured("analysis_error", {
                "error_type": "no_face_detected",
                "image_hash": image_hash[:16]
            })
            raise NoFaceDetectedException()

        analysis = self._run_vision(image_data, image_hash)
        signals = AnalysisSignals.from_analysis(analysis)

        match = self.match_service.match(image_base64, signals)
        health_advice = generate_health_advice(analysis or {})

        result = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "analysis": compose_analysis(analysis, health_advice),
            "celebrity": match.to_dict(),
        }

        self.result_cache.set(image_hash, result)

        log_structured("analysis_complete", {
            "image_hash": image_hash[:16],
            "celebrity": match.name,
            "similarity": match.similarity,
            "vision_available": analysis is not None
        })
        return result

    def get_analysis_history(self) -> List[Dict[str, Any]]:
        """Summaries of cached results, newest first"""
        history = []
        for key, result in self.result_cache.items():
            analysis = result.get("analysis") or {}
            celebrity = result.get("celebrity") or {}
            history.append({
                "id": key[:8],
                "timestamp": result.get("timestamp"),
                "gender": analysis.get("gender"),
                "age": analysis.get("age"),
                "celebrity": celebrity.get("name"),
            })
        return sorted(history, key=lambda item: item["timestamp"] or "", reverse=True)

    def find_result(self, analysis_id: str) -> Optional[Dict[str, Any]]:
        """History summary whose id matches the first 8 characters of analysis_id"""
        prefix = (analysis_id or "")[:8]
        if not prefix:
            return None
        for item in self.get_analysis_history():
            if item["id"].startswith(prefix):
                return item
        return None

    def clear_cache(self) -> None:
        self.result_cache.clear()
