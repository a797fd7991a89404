"""Pytest configuration and fixtures for testing"""

import os
import tempfile
import time

# Set environment variables BEFORE importing main
_TEST_ROOT = tempfile.mkdtemp(prefix="nxns-test-")
os.environ.setdefault("GEMINI_API_KEY", "test_api_key_123456")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("PHOTO_FETCH_ENABLED", "false")
os.environ.setdefault("BUNDLED_CELEBRITY_DIR", os.path.join(_TEST_ROOT, "assets", "celebrities"))
os.environ.setdefault("CUSTOM_CELEBRITY_DIR", os.path.join(_TEST_ROOT, "celebrities"))
os.environ.setdefault("PHOTO_CACHE_DIR", os.path.join(_TEST_ROOT, "cache", "celebrity-photos"))
os.environ.setdefault("UPLOAD_DIR", os.path.join(_TEST_ROOT, "uploads"))
os.environ.pop("REDIS_URL", None)
os.environ.pop("SENTRY_DSN", None)

import base64
import io
from pathlib import Path
from unittest.mock import Mock

import pytest
from PIL import Image
from fastapi.testclient import TestClient

from main import app
from api.endpoints.analyze import limiter
from core.cache import ResultCache
from core.dependencies import get_celebrity_pool, get_face_analysis_service
from services.celebrity_matcher import CelebrityMatchService
from services.celebrity_pool import CelebrityPool, PoolCache
from services.circuit_breaker import reset_circuit_breakers
from services.face_analysis_service import FaceAnalysisService


# ========== Image Helpers ==========
def make_image_bytes(size=(640, 480), color="white", image_format="JPEG") -> bytes:
    """Create an in-memory image"""
    img = Image.new("RGB", size, color=color)
    img_bytes = io.BytesIO()
    img.save(img_bytes, format=image_format)
    return img_bytes.getvalue()


def make_data_url(image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"


def write_image(path: Path, size=(120, 120), color="gray") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(make_image_bytes(size=size, color=color))
    return path


class FakeClock:
    """Manually advanced clock for TTL/expiry tests"""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ========== Image Fixtures ==========
@pytest.fixture
def sample_image_bytes():
    """640x480 JPEG bytes"""
    return make_image_bytes()


@pytest.fixture
def sample_data_url(sample_image_bytes):
    return make_data_url(sample_image_bytes)


@pytest.fixture
def tiny_data_url():
    """Image too small to contain a usable face"""
    return make_data_url(make_image_bytes(size=(50, 50)))


@pytest.fixture
def fake_clock():
    return FakeClock()


# ========== Pool Fixtures ==========
@pytest.fixture
def pool_dirs(tmp_path):
    """(bundled_dir, custom_dir) under tmp_path"""
    bundled = tmp_path / "assets" / "celebrities"
    custom = tmp_path / "celebrities"
    bundled.mkdir(parents=True)
    return bundled, custom


@pytest.fixture
def make_pool(pool_dirs):
    """Factory for CelebrityPool over the tmp directories"""
    bundled, custom = pool_dirs

    def _make(merge_custom=False, clock=None, refresh_interval=300):
        cache = PoolCache(refresh_interval=refresh_interval, clock=clock or time.time)
        return CelebrityPool(bundled, custom, cache=cache, merge_custom=merge_custom)

    return _make


@pytest.fixture
def sample_analysis():
    """Vision analysis reply after validation"""
    return {
        "gender": "男",
        "age": 28,
        "hasGlasses": True,
        "smileLevel": "开心大笑",
        "beautyScore": 84,
        "temperament": "阳光开朗",
        "evaluation": "五官端正，笑容很有感染力",
        "facialFeatures": "眉眼清秀，轮廓分明",
        "healthAnalysis": {
            "complexion": "气色红润",
            "skinCondition": "皮肤状态良好",
            "suggestions": [],
            "strengthPoints": ["笑容", "眼神", "轮廓"]
        }
    }


# ========== Circuit Breakers ==========
@pytest.fixture(autouse=True)
def reset_breakers():
    """Reset circuit breakers before and after each test"""
    reset_circuit_breakers()
    yield
    reset_circuit_breakers()


# ========== Test Client Setup ==========
@pytest.fixture
def client():
    """Create a test client for FastAPI app (rate limit disabled)"""
    limiter.enabled = False
    with TestClient(app) as test_client:
        yield test_client
    limiter.enabled = True


@pytest.fixture
def mock_vision(sample_analysis):
    vision = Mock()
    vision.analyze.return_value = dict(sample_analysis)
    return vision


@pytest.fixture
def client_with_mocks(pool_dirs, mock_vision, client):
    """
    Test client with the vision API mocked and a tmp celebrity pool
    (bundled male pool: 1.jpg, 2.jpg, 3.jpg)
    """
    bundled, custom = pool_dirs
    for stem in ("1", "2", "3"):
        write_image(bundled / "male" / f"{stem}.jpg")

    pool = CelebrityPool(bundled, custom)
    service = FaceAnalysisService(
        vision_service=mock_vision,
        match_service=CelebrityMatchService(pool),
        result_cache=ResultCache()
    )

    app.dependency_overrides[get_celebrity_pool] = lambda: pool
    app.dependency_overrides[get_face_analysis_service] = lambda: service
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"X-API-Key": "test-admin-key"}
