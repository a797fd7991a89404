"""
유명인 매칭 + 결과 조합 서비스

같은 사진 → 같은 시드 → 같은 유명인/유사도/이유.
난수 소비 순서: 유명인 선택(1) → 유사도 기본값(1) → 지터(1) → 하이라이트 선택(0~1)
"""

from typing import Dict, Optional, Union

from core.logging import logger, log_structured
from models.celebrity import CelebrityEntry, MatchResult
from models.signals import AnalysisSignals, GenderCategory
from services.celebrity_pool import CelebrityPool
from services.photo_fetcher import RemotePhotoFetcher
from services.reason_generator import MatchReasonGenerator
from services.seeded_random import SeededRandom, derive_seed
from services.similarity_scorer import score

PLACEHOLDER_NAME = "神秘明星"
PLACEHOLDER_DESCRIPTION = "暂无匹配的明星"
PLACEHOLDER_REASON = "暂无可匹配的明星"
PLACEHOLDER_SIMILARITY = 0


class CelebrityMatchService:
    """
    결정적 유명인 매칭

    실패는 모두 내부에서 흡수되며, 항상 MatchResult(필요 시 placeholder)를 반환합니다.
    """

    def __init__(
        self,
        pool: CelebrityPool,
        reason_generator: Optional[MatchReasonGenerator] = None,
        photo_fetcher: Optional[RemotePhotoFetcher] = None,
        fallback_photos: Optional[Dict[GenderCategory, str]] = None
    ):
        """
        Args:
            pool: 유명인 풀
            reason_generator: 매칭 이유 생성기
            photo_fetcher: 원격 사진 조회기 (None이면 풀 사진만 사용)
            fallback_photos: 성별별 로컬 대체 사진 URL
        """
        self.pool = pool
        self.reason_generator = reason_generator or MatchReasonGenerator()
        self.photo_fetcher = photo_fetcher
        self.fallback_photos = fallback_photos or {
            GenderCategory.MALE: "/assets/celebrities/fallback/male.jpg",
            GenderCategory.FEMALE: "/assets/celebrities/fallback/female.jpg",
        }

    def fallback_photo(self, gender: Optional[GenderCategory]) -> str:
        return self.fallback_photos.get(gender or GenderCategory.MALE) or self.fallback_photos[GenderCategory.MALE]

    def _candidates(self, gender: Optional[GenderCategory]) -> list:
        try:
            candidates = self.pool.resolve(gender)
            if not candidates and gender is not None:
                logger.info(f"ℹ️ {gender.value} 유명인 없음 - 전체 풀로 확장")
                candidates = self.pool.resolve(None)
            return candidates
        except Exception as e:
            logger.error(f"❌ 유명인 풀 조회 실패: {str(e)}")
            return []

    def _resolve_photo(self, entry: CelebrityEntry, gender: GenderCategory) -> str:
        remote_photo = None
        if self.photo_fetcher is not None:
            try:
                remote_photo = self.photo_fetcher.get_photo(entry.display_name)
            except Exception as e:
                logger.warning(f"⚠️ 원격 사진 조회 실패 ({entry.display_name}): {str(e)}")

        return remote_photo or entry.photo_reference or self.fallback_photo(gender)

    def placeholder(self, gender: Optional[GenderCategory]) -> MatchResult:
        category = gender or GenderCategory.MALE
        return MatchResult(
            name=PLACEHOLDER_NAME,
            photo_url=self.fallback_photo(category),
            similarity=PLACEHOLDER_SIMILARITY,
            description=PLACEHOLDER_DESCRIPTION,
            match_reason=PLACEHOLDER_REASON,
            gender_category=category,
        )

    def match(
        self,
        payload: Optional[Union[str, bytes]],
        signals: Optional[AnalysisSignals] = None,
        fetch_photo: bool = True
    ) -> MatchResult:
        """
        사진 데이터로 유명인 매칭

        Args:
            payload: 인코딩된 사진 (시드 원천)
            signals: 비전 분석 신호 (없으면 기본값)
            fetch_photo: 원격 사진 보강 여부

        Returns:
            MatchResult
        """
        signals = signals or AnalysisSignals()
        user_gender = signals.gender_category
        rand = SeededRandom(derive_seed(payload))

        candidates = self._candidates(user_gender)
        if not candidates:
            logger.warning("⚠️ 매칭 가능한 유명인이 없습니다 - placeholder 반환")
            return self.placeholder(user_gender)

        entry = rand.choice(candidates)
        similarity = score(rand, signals)
        gender = user_gender or entry.gender_category
        reason = self.reason_generator.generate(rand, gender, similarity, signals, entry.display_name)

        if fetch_photo:
            photo_url = self._resolve_photo(entry, gender)
        else:
            photo_url = entry.photo_reference or self.fallback_photo(gender)

        log_structured("celebrity_match", {
            "celebrity": entry.display_name,
            "source": entry.source_tag.value,
            "similarity": similarity,
            "gender": gender.value,
            "pool_size": len(candidates),
            "signals": signals.to_dict()
        })

        return MatchResult(
            name=entry.display_name,
            photo_url=photo_url,
            similarity=similarity,
            description=entry.description,
            match_reason=reason,
            gender_category=gender,
            source_tag=entry.source_tag,
        )
