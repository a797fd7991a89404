# models/__init__.py
"""
NXNS 매칭 백엔드 - 도메인 데이터 구조

비전 분석 신호, 유명인 풀 항목, 매칭 결과를 정의합니다.
"""

from .signals import AnalysisSignals, GenderCategory, SmileLevel, normalize_gender
from .celebrity import CelebrityEntry, MatchResult, PhotoCacheEntry, SourceTag

__all__ = [
    "AnalysisSignals",
    "GenderCategory",
    "SmileLevel",
    "normalize_gender",
    "CelebrityEntry",
    "MatchResult",
    "PhotoCacheEntry",
    "SourceTag",
]
