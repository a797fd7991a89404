"""Dependency injection providers for FastAPI"""

from functools import lru_cache

from config.settings import settings
from core.cache import ResultCache
from core.logging import logger
from models.signals import GenderCategory
from services.celebrity_matcher import CelebrityMatchService
from services.celebrity_pool import CelebrityPool, PoolCache
from services.circuit_breaker import photo_backend_breakers
from services.face_analysis_service import FaceAnalysisService
from services.face_detection_service import FaceDetectionService
from services.photo_fetcher import PhotoCache, RemotePhotoFetcher, create_default_backends
from services.reason_generator import get_reason_generator
from services.upload_storage import UploadStorage
from services.vision_analysis_service import GeminiVisionService


# ========== Dependency Providers (for FastAPI Depends) ==========
@lru_cache()
def get_celebrity_pool() -> CelebrityPool:
    """Get CelebrityPool instance (bundled + custom directories from settings)"""
    return CelebrityPool(
        bundled_dir=settings.BUNDLED_CELEBRITY_DIR,
        custom_dir=settings.CUSTOM_CELEBRITY_DIR,
        cache=PoolCache(refresh_interval=settings.POOL_REFRESH_INTERVAL),
        bundled_url_prefix=settings.BUNDLED_CELEBRITY_URL_PREFIX,
        custom_url_prefix=settings.CUSTOM_CELEBRITY_URL_PREFIX,
        merge_custom=settings.POOL_MERGE_CUSTOM,
        photo_size=settings.PHOTO_SIZE,
        photo_quality=settings.PHOTO_QUALITY
    )


@lru_cache()
def get_photo_cache() -> PhotoCache:
    return PhotoCache(
        cache_dir=settings.PHOTO_CACHE_DIR,
        url_prefix=settings.PHOTO_CACHE_URL_PREFIX,
        expiry_seconds=settings.PHOTO_CACHE_EXPIRY
    )


@lru_cache()
def get_photo_fetcher() -> RemotePhotoFetcher:
    """Get RemotePhotoFetcher instance (Baidu → Bing → Sogou, one breaker each)"""
    backends = create_default_backends(
        search_timeout=settings.PHOTO_SEARCH_TIMEOUT,
        download_timeout=settings.PHOTO_DOWNLOAD_TIMEOUT
    )
    return RemotePhotoFetcher(
        cache=get_photo_cache(),
        backends=backends,
        breakers=photo_backend_breakers,
        photo_size=settings.PHOTO_SIZE,
        photo_quality=settings.PHOTO_QUALITY
    )


@lru_cache()
def get_match_service() -> CelebrityMatchService:
    fetcher = get_photo_fetcher() if settings.PHOTO_FETCH_ENABLED else None
    if fetcher is None:
        logger.info("ℹ️ 원격 사진 조회 비활성화 - 풀 사진만 사용합니다.")

    return CelebrityMatchService(
        pool=get_celebrity_pool(),
        reason_generator=get_reason_generator(),
        photo_fetcher=fetcher,
        fallback_photos={
            GenderCategory.MALE: settings.FALLBACK_PHOTO_MALE,
            GenderCategory.FEMALE: settings.FALLBACK_PHOTO_FEMALE,
        }
    )


@lru_cache()
def get_vision_service() -> GeminiVisionService:
    """
    Get GeminiVisionService instance (Lazy Initialization)
    """
    logger.info("🐢 Lazy initializing GeminiVisionService...")
    return GeminiVisionService(
        model_name=settings.MODEL_NAME,
        max_retries=settings.VISION_MAX_RETRIES,
        timeout=settings.VISION_TIMEOUT
    )


@lru_cache()
def get_face_detection_service() -> FaceDetectionService:
    return FaceDetectionService()


@lru_cache()
def get_result_cache() -> ResultCache:
    return ResultCache(
        ttl=settings.RESULT_CACHE_TTL,
        max_entries=settings.RESULT_CACHE_MAX_ENTRIES
    )


@lru_cache()
def get_face_analysis_service() -> FaceAnalysisService:
    return FaceAnalysisService(
        vision_service=get_vision_service(),
        match_service=get_match_service(),
        face_detector=get_face_detection_service(),
        result_cache=get_result_cache(),
        allow_match_without_analysis=settings.ALLOW_MATCH_WITHOUT_ANALYSIS
    )


@lru_cache()
def get_upload_storage() -> UploadStorage:
    return UploadStorage(
        upload_dir=settings.UPLOAD_DIR,
        url_prefix=settings.UPLOAD_URL_PREFIX,
        max_age=settings.UPLOAD_MAX_AGE
    )


def run_cleanup() -> dict:
    """만료된 업로드 + 사진 캐시 정리 (주기 작업과 /api/cleanup 공용)"""
    uploads_removed = get_upload_storage().cleanup()
    photos_removed = get_photo_cache().clean_expired()

    logger.info(f"🧹 정리 완료: 업로드 {uploads_removed}개, 사진 캐시 {photos_removed}개")
    return {
        "uploadsRemoved": uploads_removed,
        "photoCacheRemoved": photos_removed,
    }
