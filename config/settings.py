"""Application settings and configuration management using Pydantic Settings"""

import logging
from typing import Any, List, Optional
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    # API Keys
    GEMINI_API_KEY: str = ""
    ADMIN_API_KEY: Optional[str] = None  # For celebrity administration endpoints

    # Vision Model Configuration
    MODEL_NAME: str = "gemini-flash-latest"
    VISION_TIMEOUT: int = 30  # seconds
    VISION_MAX_RETRIES: int = 2
    ALLOW_MATCH_WITHOUT_ANALYSIS: bool = False

    # Celebrity Pool
    BUNDLED_CELEBRITY_DIR: str = "assets/celebrities"
    CUSTOM_CELEBRITY_DIR: str = "celebrities"
    BUNDLED_CELEBRITY_URL_PREFIX: str = "/assets/celebrities"
    CUSTOM_CELEBRITY_URL_PREFIX: str = "/celebrities"
    POOL_REFRESH_INTERVAL: int = 300  # 5 minutes
    POOL_MERGE_CUSTOM: bool = False  # False: bundled entries replace custom ones per gender

    FALLBACK_PHOTO_MALE: str = "/assets/celebrities/fallback/male.jpg"
    FALLBACK_PHOTO_FEMALE: str = "/assets/celebrities/fallback/female.jpg"

    # Remote Photo Fetch + Cache
    PHOTO_FETCH_ENABLED: bool = True
    PHOTO_CACHE_DIR: str = "cache/celebrity-photos"
    PHOTO_CACHE_URL_PREFIX: str = "/cache/celebrity-photos"
    PHOTO_CACHE_EXPIRY: int = 7 * 24 * 60 * 60  # 7 days
    PHOTO_SEARCH_TIMEOUT: int = 10
    PHOTO_DOWNLOAD_TIMEOUT: int = 15
    PHOTO_SIZE: int = 500
    PHOTO_QUALITY: int = 85

    # Upload Storage
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10MB
    UPLOAD_MAX_AGE: int = 24 * 60 * 60  # 24 hours

    # Result Cache
    REDIS_URL: Optional[str] = None
    RESULT_CACHE_TTL: int = 3600
    RESULT_CACHE_MAX_ENTRIES: int = 100

    # Security Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000"  # Comma-separated list

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Environment Settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Application Info
    APP_TITLE: str = "NXNS Match API"
    APP_DESCRIPTION: str = "NXNS 云匹配识别系统 - 人脸分析与明星匹配"
    APP_VERSION: str = "1.2.0"

    # Similarity bands used by the match-reason templates
    SIMILARITY_BAND_VERY_HIGH: int = 92
    SIMILARITY_BAND_HIGH: int = 85

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)

        # Validate required secrets
        if not self.GEMINI_API_KEY:
            raise ValueError(
                "GEMINI_API_KEY is required but not found in environment variables or .env file"
            )


# Singleton instance
settings = Settings()
