"""Tests for main application endpoints and middleware"""

from unittest.mock import Mock, patch

from fastapi.testclient import TestClient

from config.settings import settings
from core.dependencies import get_face_analysis_service
from main import app


class TestRootEndpoint:
    """Test root endpoint functionality"""

    def test_root_endpoint_returns_200(self, client):
        response = client.get("/")
        assert response.status_code == 200

    def test_root_endpoint_contains_version(self, client):
        data = client.get("/").json()

        assert data["version"] == settings.APP_VERSION
        assert data["status"] == "running"
        assert "message" in data

    def test_root_endpoint_shows_features(self, client):
        features = client.get("/").json()["features"]

        assert features["celebrity_match"] == "enabled"
        assert features["remote_photo_fetch"] == "disabled"
        assert features["redis_cache"] == "disabled"
        assert "vision_analysis" in features
        assert "error_tracking" in features


class TestHealthCheck:
    """Test health check endpoint"""

    def test_health_check_envelope(self, client):
        response = client.get("/api/health")
        body = response.json()

        assert response.status_code == 200
        assert body["success"] is True
        assert body["timestamp"].endswith("Z")

    def test_health_check_fields(self, client):
        data = client.get("/api/health").json()["data"]

        assert data["status"] == "ok"
        assert data["version"] == settings.APP_VERSION
        assert data["environment"] == settings.ENVIRONMENT
        assert data["uptime"] >= 0
        assert data["photoCacheDir"] == settings.PHOTO_CACHE_DIR
        assert isinstance(data["poolSize"], int)
        assert "vision_api" in data["circuitBreakers"]

    def test_health_check_reports_pool_size(self, client):
        pool = Mock()
        pool.resolve.return_value = ["a", "b", "c"]
        with patch("main.get_celebrity_pool", return_value=pool):
            data = client.get("/api/health").json()["data"]

        assert data["poolSize"] == 3
        pool.resolve.assert_called_once_with(None)

    def test_health_check_degraded_when_vision_circuit_open(self, client):
        from services.circuit_breaker import vision_breaker

        vision_breaker.open()
        body = client.get("/api/health").json()

        assert body["data"]["status"] == "degraded"
        assert body["message"] == "系统部分功能异常"

    def test_health_check_survives_pool_errors(self, client):
        with patch("main.get_celebrity_pool", side_effect=OSError("disk gone")):
            response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "degraded"
        assert response.json()["data"]["poolSize"] == 0


class TestSecurityHeaders:
    """Test security headers are properly set"""

    def test_health_endpoint_has_security_headers(self, client):
        headers = client.get("/api/health").headers

        assert "default-src 'self'" in headers["Content-Security-Policy"]
        assert "frame-ancestors 'none'" in headers["Content-Security-Policy"]
        assert "img-src 'self' data: blob: https:" in headers["Content-Security-Policy"]
        assert headers.get("X-Frame-Options") == "DENY"
        assert headers.get("X-Content-Type-Options") == "nosniff"
        assert headers.get("X-XSS-Protection") == "1; mode=block"
        assert headers.get("Referrer-Policy") == "strict-origin-when-cross-origin"

    def test_camera_not_blocked(self, client):
        policy = client.get("/").headers["Permissions-Policy"]

        assert "geolocation=()" in policy
        assert "camera" not in policy

    def test_no_hsts_over_http_in_development(self, client):
        assert "Strict-Transport-Security" not in client.get("/").headers

    def test_error_responses_have_security_headers(self, client):
        headers = client.get("/api/does-not-exist").headers
        assert headers.get("X-Frame-Options") == "DENY"


class TestErrorEnvelopes:
    """Test error handlers"""

    def test_unknown_route(self, client):
        response = client.get("/api/does-not-exist")
        body = response.json()

        assert response.status_code == 404
        assert body["success"] is False
        assert body["error"] == "not_found"
        assert body["message"] == "API端点不存在: /api/does-not-exist"

    def test_body_too_large(self, client):
        with patch.object(settings, "MAX_FILE_SIZE", 16):
            response = client.post("/api/upload", json={"image": "data:image/jpeg;base64," + "A" * 64})
        body = response.json()

        assert response.status_code == 413
        assert body["error"] == "file_too_large"

    def test_unhandled_error(self, client):
        service = Mock()
        service.analyze_face.side_effect = RuntimeError("boom")
        app.dependency_overrides[get_face_analysis_service] = lambda: service
        try:
            response = TestClient(app, raise_server_exceptions=False).post(
                "/api/analyze", json={"imageBase64": "data:image/jpeg;base64,AAAA"}
            )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json()["error"] == "internal_error"


class TestCORS:
    """Test CORS middleware configuration"""

    def test_preflight_allowed_origin(self, client):
        response = client.options("/api/analyze", headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST"
        })

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"

    def test_get_request_works(self, client):
        assert client.get("/api/health").status_code == 200
