"""Tests for uploaded photo storage"""

import os
import time

import pytest
from PIL import Image

from conftest import FakeClock, make_data_url, make_image_bytes
from core.exceptions import ImageNotFoundException, InvalidFileFormatException, InvalidImageException
from services.upload_storage import UploadStorage
from utils.image_utils import base64_to_bytes


@pytest.fixture
def storage(tmp_path):
    return UploadStorage(tmp_path / "uploads")


class TestSave:
    """Test data URL + multipart saves"""

    def test_save_data_url(self, storage, sample_data_url):
        result = storage.save_data_url(sample_data_url)

        assert result["filename"] == f"{result['imageId']}.jpg"
        assert result["imagePath"] == f"/uploads/{result['filename']}"
        assert (storage.upload_dir / result["filename"]).stat().st_size == result["size"]

    def test_large_image_is_shrunk(self, storage):
        result = storage.save_data_url(make_data_url(make_image_bytes(size=(1600, 1200))))

        with Image.open(storage.get_path(result["imageId"])) as image:
            assert image.size == (800, 600)

    def test_png_keeps_format(self, storage):
        result = storage.save_data_url(make_data_url(make_image_bytes(image_format="PNG"), "image/png"))

        assert result["filename"].endswith(".png")
        with Image.open(storage.get_path(result["imageId"])) as image:
            assert image.format == "PNG"

    def test_empty_data_url(self, storage):
        with pytest.raises(InvalidImageException) as exc_info:
            storage.save_data_url("")
        assert exc_info.value.message == "请提供图片数据"

    def test_not_a_data_url(self, storage):
        with pytest.raises(InvalidImageException):
            storage.save_data_url("aGVsbG8=")

    def test_unsupported_mime(self, storage):
        with pytest.raises(InvalidFileFormatException):
            storage.save_data_url("data:image/gif;base64,R0lGODlhAQABAAAAACw=")

    def test_undecodable_image(self, storage):
        with pytest.raises(InvalidImageException):
            storage.save_data_url("data:image/jpeg;base64,aGVsbG8gd29ybGQ=")

    def test_save_file(self, storage, sample_image_bytes):
        result = storage.save_file(sample_image_bytes, "image/jpeg", "selfie.jpg")

        assert result["originalName"] == "selfie.jpg"
        assert storage.find(result["imageId"]) is not None

    def test_save_file_bad_mime(self, storage, sample_image_bytes):
        with pytest.raises(InvalidFileFormatException):
            storage.save_file(sample_image_bytes, "application/pdf", "doc.pdf")

    def test_save_file_empty(self, storage):
        with pytest.raises(InvalidImageException):
            storage.save_file(b"", "image/png", "empty.png")


class TestLookup:
    """Test find / load / delete"""

    def test_load_data_url_round_trip(self, storage, sample_data_url):
        result = storage.save_data_url(sample_data_url)
        data_url = storage.load_data_url(result["imageId"])

        assert data_url.startswith("data:image/jpeg;base64,")
        assert base64_to_bytes(data_url) == storage.get_path(result["imageId"]).read_bytes()

    def test_load_is_stable(self, storage, sample_data_url):
        image_id = storage.save_data_url(sample_data_url)["imageId"]
        assert storage.load_data_url(image_id) == storage.load_data_url(image_id)

    @pytest.mark.parametrize("image_id", ["", "../etc/passwd", "not-a-valid-id!", "abc"])
    def test_rejects_bad_ids(self, storage, image_id):
        assert storage.find(image_id) is None
        with pytest.raises(ImageNotFoundException):
            storage.get_path(image_id)

    def test_missing_id(self, storage):
        with pytest.raises(ImageNotFoundException):
            storage.load_data_url("12345678-1234-1234-1234-123456789abc")

    def test_delete(self, storage, sample_data_url):
        image_id = storage.save_data_url(sample_data_url)["imageId"]
        storage.delete(image_id)

        assert storage.find(image_id) is None
        with pytest.raises(ImageNotFoundException):
            storage.delete(image_id)


class TestCleanup:
    """Test age-based cleanup"""

    def test_cleanup_removes_old_files(self, tmp_path, sample_data_url):
        clock = FakeClock(time.time())
        storage = UploadStorage(tmp_path / "uploads", max_age=3600, clock=clock)
        old_id = storage.save_data_url(sample_data_url)["imageId"]
        new_id = storage.save_data_url(sample_data_url)["imageId"]

        # 새 파일은 방금 만든 것으로
        new_path = storage.get_path(new_id)
        os.utime(new_path, (clock.now + 3000, clock.now + 3000))
        clock.advance(3700)

        assert storage.cleanup() == 1
        assert storage.find(old_id) is None
        assert storage.find(new_id) is not None

    def test_cleanup_missing_directory(self, tmp_path):
        assert UploadStorage(tmp_path / "nope").cleanup() == 0
