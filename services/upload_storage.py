"""Uploaded photo storage (save, lookup, delete, age-based cleanup)"""

import mimetypes
import re
import time
import uuid
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from core.exceptions import ImageNotFoundException, InvalidFileFormatException, InvalidImageException
from core.logging import logger
from utils.image_utils import (
    MIME_EXTENSIONS,
    base64_to_bytes,
    bytes_to_data_url,
    cleanup_old_files,
    compress_image,
    delete_file,
    get_extension_from_mime,
    get_mime_type,
    is_data_url,
    save_image,
)

IMAGE_ID_PATTERN = re.compile(r"^[0-9a-fA-F-]{8,36}$")
LOOKUP_EXTENSIONS = (".jpg", ".png", ".webp")


class UploadStorage:
    """
    업로드 사진 저장소

    파일명은 <uuid><ext>, 800x600 안쪽으로 축소 후 저장합니다.
    """

    def __init__(
        self,
        upload_dir: Union[str, Path],
        url_prefix: str = "/uploads",
        max_age: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.time
    ):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.max_age = max_age
        self.clock = clock

    def _store(self, image_data: bytes, extension: str) -> Dict[str, object]:
        image_id = str(uuid.uuid4())
        filename = f"{image_id}{extension}"
        compressed = compress_image(image_data, extension=extension)
        save_image(compressed, filename, self.upload_dir)

        logger.info(f"📥 업로드 저장: {filename} ({round(len(compressed) / 1024, 2)}KB)")
        return {
            "imageId": image_id,
            "imagePath": f"{self.url_prefix}/{filename}",
            "filename": filename,
            "size": len(compressed),
        }

    def save_data_url(self, data_url: str) -> Dict[str, object]:
        """
        data URL 업로드 저장

        Raises:
            InvalidImageException: 데이터가 없거나 data URL 형식이 아닐 때
        """
        if not data_url:
            raise InvalidImageException("请提供图片数据")
        if not is_data_url(data_url):
            raise InvalidImageException()

        mime_type = get_mime_type(data_url)
        if mime_type not in MIME_EXTENSIONS:
            raise InvalidFileFormatException()

        return self._store(base64_to_bytes(data_url), get_extension_from_mime(mime_type))

    def save_file(self, image_data: bytes, content_type: Optional[str], original_name: str = "") -> Dict[str, object]:
        """
        multipart 업로드 저장

        Raises:
            InvalidFileFormatException: 허용되지 않은 MIME 타입
            InvalidImageException: 빈 파일
        """
        if (content_type or "").lower() not in MIME_EXTENSIONS:
            raise InvalidFileFormatException()
        if not image_data:
            raise InvalidImageException("请上传图片文件")

        result = self._store(image_data, get_extension_from_mime(content_type))
        result["originalName"] = original_name
        return result

    def find(self, image_id: str) -> Optional[Path]:
        if not image_id or not IMAGE_ID_PATTERN.match(image_id):
            return None
        for extension in LOOKUP_EXTENSIONS:
            path = self.upload_dir / f"{image_id}{extension}"
            if path.is_file():
                return path
        return None

    def get_path(self, image_id: str) -> Path:
        path = self.find(image_id)
        if path is None:
            raise ImageNotFoundException(image_id)
        return path

    def load_data_url(self, image_id: str) -> str:
        """저장된 업로드를 data URL로 다시 읽기 (분석 시드 원천)"""
        path = self.get_path(image_id)
        mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
        return bytes_to_data_url(path.read_bytes(), mime_type)

    def delete(self, image_id: str) -> None:
        path = self.find(image_id)
        if path is None or not delete_file(path):
            raise ImageNotFoundException(image_id)
        logger.info(f"🗑️ 업로드 삭제: {path.name}")

    def cleanup(self) -> int:
        """max_age보다 오래된 업로드 정리"""
        return cleanup_old_files(self.upload_dir, self.max_age, clock=self.clock)
