"""Services module for NXNS Match backend"""

from services.celebrity_matcher import CelebrityMatchService
from services.celebrity_pool import CelebrityPool, PoolCache
from services.face_analysis_service import FaceAnalysisService
from services.face_detection_service import FaceDetectionService
from services.photo_fetcher import PhotoCache, RemotePhotoFetcher
from services.reason_generator import MatchReasonGenerator
from services.seeded_random import SeededRandom, derive_seed
from services.upload_storage import UploadStorage
from services.vision_analysis_service import GeminiVisionService

__all__ = [
    "CelebrityMatchService",
    "CelebrityPool",
    "PoolCache",
    "FaceAnalysisService",
    "FaceDetectionService",
    "PhotoCache",
    "RemotePhotoFetcher",
    "MatchReasonGenerator",
    "SeededRandom",
    "derive_seed",
    "UploadStorage",
    "GeminiVisionService",
]
