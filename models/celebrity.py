# models/celebrity.py
"""유명인(셀럽) 풀 항목과 매칭 결과 데이터 구조"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models.signals import GenderCategory


class SourceTag(str, Enum):
    """풀 출처"""
    BUNDLED = "bundled"
    CUSTOM = "custom"


@dataclass(frozen=True)
class CelebrityEntry:
    """풀 스캔으로 생성되는 유명인 항목 (새로고침 시 전체 교체, 개별 수정 없음)"""
    display_name: str
    source_tag: SourceTag
    gender_category: GenderCategory
    photo_reference: str      # 정적 경로 URL (/assets/..., /celebrities/...)
    description: str
    filename: str = ""
    file_path: str = ""       # 디스크 경로 (관리/통계용)

    def to_dict(self) -> dict:
        return {
            "name": self.display_name,
            "filename": self.filename,
            "description": self.description,
            "gender": self.gender_category.value,
            "source": self.source_tag.value,
            "photo": self.photo_reference,
        }


@dataclass(frozen=True)
class MatchResult:
    """요청당 한 번 생성되는 매칭 결과"""
    name: str
    photo_url: str
    similarity: int
    description: str
    match_reason: str
    gender_category: GenderCategory
    source_tag: Optional[SourceTag] = None

    @property
    def is_placeholder(self) -> bool:
        return self.source_tag is None

    def to_dict(self) -> dict:
        """표시 레이어용 dict (문서화된 필드는 항상 존재)"""
        return {
            "name": self.name,
            "photo": self.photo_url,
            "similarity": self.similarity,
            "description": self.description,
            "matchReason": self.match_reason,
            "gender": self.gender_category.value,
        }


@dataclass(frozen=True)
class PhotoCacheEntry:
    """원격 사진 캐시 항목"""
    cache_key: str
    file_path: str
    created_at: float
