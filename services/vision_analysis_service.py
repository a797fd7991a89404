"""Gemini vision analysis service: gender, smile, glasses, beauty score, evaluation"""

import io
import json
import re
from typing import Any, Dict, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from PIL import Image, UnidentifiedImageError
from pybreaker import CircuitBreakerError

from config.settings import settings
from core.exceptions import (
    InvalidImageException,
    VisionAPIException,
    VisionAuthenticationException,
    VisionInvalidResponseException,
    VisionRateLimitException,
    VisionTimeoutException,
    VisionUnavailableException,
)
from core.logging import logger
from services.circuit_breaker import vision_breaker


# ========== Vision Prompt ==========
ANALYSIS_PROMPT = """请分析这张人脸照片，以JSON格式返回以下信息。评价内容请只包含正面和赞美的内容，要详细具体：
{
  "gender": "男/女",
  "age": 数字,
  "hasGlasses": true/false,
  "smileLevel": "无笑容/微笑/开心大笑",
  "beautyScore": 1-100的数字,
  "temperament": "详细的气质描述和赞美",
  "evaluation": "2-3句详细的正面评价和赞美，包括气质、气色、整体印象等各方面",
  "facialFeatures": "五官特点的详细赞美描述",
  "healthAnalysis": {
    "complexion": "气色的正面描述",
    "skinCondition": "皮肤状态的正面描述",
    "suggestions": ["健康建议1", "健康建议2", "健康建议3", "生活方式建议4"],
    "strengthPoints": ["优点1", "优点2", "优点3"]
  }
}
只返回JSON，不要其他文字。"""

REQUIRED_FIELDS = ("gender", "age", "hasGlasses", "smileLevel", "beautyScore", "evaluation")

JSON_BLOCK_PATTERN = re.compile(r"\{[\s\S]*\}")


class GeminiVisionService:
    """
    Vision analysis collaborator

    Features:
    - Single-image analysis with a fixed JSON prompt
    - Retries on unparseable replies and transient upstream errors
    - Classified upstream errors (auth / rate limit / timeout / unavailable)
    - Circuit breaker protection
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        max_retries: int = 2,
        timeout: float = 30
    ):
        """
        Initialize vision analysis service

        Args:
            model_name: Gemini model name (defaults to settings.MODEL_NAME)
            max_retries: Maximum number of retries for parse/transient failures
            timeout: Per-request timeout in seconds
        """
        self.model_name = model_name or settings.MODEL_NAME
        self.max_retries = max_retries
        self.timeout = timeout

    def _build_model(self) -> "genai.GenerativeModel":
        return genai.GenerativeModel(self.model_name)

    @staticmethod
    def extract_json(raw_text: str) -> Dict[str, Any]:
        """
        Pull the first {...} block out of the model reply

        Raises:
            VisionInvalidResponseException: no JSON object in the reply
        """
        match = JSON_BLOCK_PATTERN.search(raw_text or "")
        if not match:
            raise VisionInvalidResponseException("AI回复中未找到有效JSON")
        try:
            result = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise VisionInvalidResponseException(f"AI分析结果解析失败: {str(e)}")
        if not isinstance(result, dict):
            raise VisionInvalidResponseException()
        return result

    @staticmethod
    def validate_result(result: Dict[str, Any]) -> Dict[str, Any]:
        """
        Check required fields and fill healthAnalysis defaults

        Raises:
            VisionInvalidResponseException: a required field is missing
        """
        for field in REQUIRED_FIELDS:
            if result.get(field) is None:
                raise VisionInvalidResponseException(f"AI分析结果缺少必要字段: {field}")

        health = result.get("healthAnalysis")
        if not isinstance(health, dict):
            health = {}
        health.setdefault("suggestions", [])
        health.setdefault("strengthPoints", [])
        if not isinstance(health["suggestions"], list):
            health["suggestions"] = []
        if not isinstance(health["strengthPoints"], list):
            health["strengthPoints"] = []
        result["healthAnalysis"] = health
        return result

    @staticmethod
    def classify_error(error: Exception) -> VisionAPIException:
        """Map an upstream error to the vision exception taxonomy"""
        if isinstance(error, VisionAPIException):
            return error

        if isinstance(error, (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied)):
            return VisionAuthenticationException()
        if isinstance(error, google_exceptions.ResourceExhausted):
            return VisionRateLimitException()
        if isinstance(error, (google_exceptions.DeadlineExceeded, TimeoutError)):
            return VisionTimeoutException()
        if isinstance(error, (google_exceptions.ServiceUnavailable, ConnectionError)):
            return VisionUnavailableException()

        message = str(error).lower()
        if "api key" in message or "api_key" in message or "unauthenticated" in message:
            return VisionAuthenticationException()
        if "quota" in message or "rate limit" in message or "429" in message:
            return VisionRateLimitException()
        if "timeout" in message or "timed out" in message or "deadline" in message:
            return VisionTimeoutException()
        return VisionUnavailableException()

    def _analyze_internal(self, image_data: bytes, retry_count: int = 0) -> Dict[str, Any]:
        """
        Internal method for Gemini API call (wrapped by circuit breaker)

        Raises:
            VisionAPIException subclasses after retries are exhausted
        """
        try:
            image = Image.open(io.BytesIO(image_data))
        except (UnidentifiedImageError, OSError) as e:
            raise InvalidImageException(f"图片格式无效: {str(e)}")

        try:
            model = self._build_model()
            response = model.generate_content(
                [ANALYSIS_PROMPT, image],
                generation_config=genai.types.GenerationConfig(temperature=0.0),
                request_options={"timeout": self.timeout}
            )
            result = self.validate_result(self.extract_json(response.text.strip()))

            logger.info(
                f"✅ 비전 분석 성공: gender={result.get('gender')}, "
                f"beautyScore={result.get('beautyScore')}"
            )
            return result

        except VisionInvalidResponseException as e:
            logger.error(f"비전 응답 파싱 실패: {e.message}")
            if retry_count < self.max_retries:
                logger.warning(f"⚠️ 파싱 실패, 재시도 {retry_count + 1}/{self.max_retries}")
                return self._analyze_internal(image_data, retry_count + 1)
            raise

        except Exception as e:
            classified = self.classify_error(e)
            logger.error(f"비전 분석 실패 ({classified.__class__.__name__}): {str(e)}")

            transient = isinstance(classified, (VisionTimeoutException, VisionUnavailableException))
            if transient and retry_count < self.max_retries:
                logger.warning(f"⚠️ 비전 API 오류, 재시도 {retry_count + 1}/{self.max_retries}")
                return self._analyze_internal(image_data, retry_count + 1)
            raise classified

    def analyze(self, image_data: bytes) -> Dict[str, Any]:
        """
        Analyze a face photo (with Circuit Breaker protection)

        Args:
            image_data: Image binary data

        Returns:
            Validated analysis dict

        Raises:
            InvalidImageException: image cannot be decoded
            VisionAPIException subclasses: classified upstream failure
        """
        try:
            return vision_breaker.call(self._analyze_internal, image_data)
        except CircuitBreakerError:
            logger.error("[CIRCUIT BREAKER] 비전 API Circuit이 Open 상태입니다.")
            raise VisionUnavailableException()
