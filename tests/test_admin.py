"""Tests for celebrity administration + maintenance endpoints"""

from unittest.mock import patch

from conftest import make_image_bytes
from config.settings import settings
from services.circuit_breaker import vision_breaker


def add_celebrity(client, headers, name="杨幂", gender="female", description="", image=True):
    files = {"image": ("photo.jpg", make_image_bytes(size=(300, 400)), "image/jpeg")} if image else None
    return client.post(
        "/api/celebrities",
        data={"name": name, "gender": gender, "description": description},
        files=files,
        headers=headers
    )


class TestListCelebrities:
    """Test GET /api/celebrities"""

    def test_list_all(self, client_with_mocks):
        body = client_with_mocks.get("/api/celebrities").json()

        assert body["success"] is True
        assert body["data"]["total"] == 3
        assert body["data"]["gender"] == "all"
        assert [c["name"] for c in body["data"]["celebrities"]] == ["周杰伦", "胡歌", "彭于晏"]

    def test_list_by_gender_alias(self, client_with_mocks):
        data = client_with_mocks.get("/api/celebrities", params={"gender": "男"}).json()["data"]

        assert data["gender"] == "male"
        assert data["total"] == 3

    def test_list_empty_gender(self, client_with_mocks):
        assert client_with_mocks.get("/api/celebrities", params={"gender": "female"}).json()["data"]["total"] == 0

    def test_list_invalid_gender(self, client_with_mocks):
        response = client_with_mocks.get("/api/celebrities", params={"gender": "alien"})

        assert response.status_code == 400
        assert response.json()["error"] == "celebrity_validation"

    def test_stats(self, client_with_mocks):
        data = client_with_mocks.get("/api/celebrities/stats").json()["data"]

        assert data["total"] == 3
        assert data["male"] == 3
        assert data["female"] == 0
        assert data["bundled"] == 3
        assert data["custom"] == 0
        assert data["lastUpdated"] is not None


class TestAddCelebrity:
    """Test POST /api/celebrities"""

    def test_requires_api_key(self, client_with_mocks):
        response = add_celebrity(client_with_mocks, headers={})

        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_rejects_wrong_api_key(self, client_with_mocks):
        response = add_celebrity(client_with_mocks, headers={"X-API-Key": "wrong"})

        assert response.status_code == 403
        assert response.json()["message"] == "管理员密钥无效"

    def test_admin_key_not_configured(self, client_with_mocks, admin_headers):
        with patch.object(settings, "ADMIN_API_KEY", None):
            response = add_celebrity(client_with_mocks, admin_headers)
        assert response.status_code == 500

    def test_add_and_list(self, client_with_mocks, admin_headers):
        response = add_celebrity(client_with_mocks, admin_headers, description="人气演员")
        entry = response.json()["data"]

        assert response.status_code == 200
        assert entry["name"] == "杨幂"
        assert entry["filename"] == "杨幂-人气演员.jpg"
        assert entry["source"] == "custom"

        listed = client_with_mocks.get("/api/celebrities", params={"gender": "female"}).json()["data"]
        assert listed["total"] == 1
        assert listed["celebrities"][0]["description"] == "人气演员"

    def test_add_default_description(self, client_with_mocks, admin_headers):
        entry = add_celebrity(client_with_mocks, admin_headers).json()["data"]
        assert entry["description"] == "著名女明星"

    def test_add_missing_name(self, client_with_mocks, admin_headers):
        response = add_celebrity(client_with_mocks, admin_headers, name="")

        assert response.status_code == 400
        assert response.json()["message"] == "请提供名人姓名和性别"

    def test_add_missing_image(self, client_with_mocks, admin_headers):
        response = add_celebrity(client_with_mocks, admin_headers, image=False)

        assert response.status_code == 400
        assert response.json()["message"] == "请上传名人照片"

    def test_add_invalid_gender(self, client_with_mocks, admin_headers):
        response = add_celebrity(client_with_mocks, admin_headers, gender="robot")
        assert response.json()["error"] == "celebrity_validation"

    def test_add_undecodable_image(self, client_with_mocks, admin_headers):
        response = client_with_mocks.post(
            "/api/celebrities",
            data={"name": "张三", "gender": "male"},
            files={"image": ("photo.jpg", b"not an image", "image/jpeg")},
            headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_image"


class TestRemoveCelebrity:
    """Test DELETE /api/celebrities/{gender}/{filename}"""

    def test_remove_custom(self, client_with_mocks, admin_headers):
        filename = add_celebrity(client_with_mocks, admin_headers).json()["data"]["filename"]

        response = client_with_mocks.delete(f"/api/celebrities/female/{filename}", headers=admin_headers)
        assert response.status_code == 200
        assert client_with_mocks.get("/api/celebrities", params={"gender": "female"}).json()["data"]["total"] == 0

        again = client_with_mocks.delete(f"/api/celebrities/female/{filename}", headers=admin_headers)
        assert again.status_code == 404
        assert again.json()["error"] == "celebrity_not_found"

    def test_bundled_entries_are_read_only(self, client_with_mocks, admin_headers):
        response = client_with_mocks.delete("/api/celebrities/male/1.jpg", headers=admin_headers)

        assert response.status_code == 404
        assert client_with_mocks.get("/api/celebrities").json()["data"]["total"] == 3

    def test_remove_requires_api_key(self, client_with_mocks):
        assert client_with_mocks.delete("/api/celebrities/male/1.jpg").status_code == 403


class TestMaintenance:
    """Test cleanup + circuit breaker admin endpoints"""

    def test_cleanup(self, client_with_mocks, admin_headers):
        response = client_with_mocks.post("/api/cleanup", headers=admin_headers)
        data = response.json()["data"]

        assert response.status_code == 200
        assert set(data) == {"uploadsRemoved", "photoCacheRemoved"}

    def test_cleanup_requires_api_key(self, client_with_mocks):
        assert client_with_mocks.post("/api/cleanup").status_code == 403

    def test_circuit_breaker_status(self, client_with_mocks, admin_headers):
        data = client_with_mocks.get("/api/admin/circuit-breaker-status", headers=admin_headers).json()["data"]

        assert data["vision_api"]["state"] == "closed"
        assert set(data["photo_backends"]) == {"baidu", "bing", "sogou"}

    def test_circuit_breaker_reset(self, client_with_mocks, admin_headers):
        vision_breaker.open()

        data = client_with_mocks.post("/api/admin/circuit-breaker-reset", headers=admin_headers).json()["data"]

        assert data["vision_api"]["is_closed"] is True
        assert vision_breaker.current_state == "closed"
