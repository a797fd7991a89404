"""
Image helpers: data URL decoding, compression, square normalization, storage
"""

import base64
import binascii
import io
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from core.exceptions import InvalidImageException
from core.logging import logger

DATA_URL_PATTERN = re.compile(r"^data:(image/[\w.+-]+);base64,", re.IGNORECASE)

MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}

SAVE_FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".webp": "WEBP",
}


def is_data_url(value: str) -> bool:
    return bool(value) and DATA_URL_PATTERN.match(value) is not None


def base64_to_bytes(value: str) -> bytes:
    """
    Decode a base64 image (with or without the data URL prefix)

    Raises:
        InvalidImageException: if the payload is empty or not valid base64
    """
    if not value:
        raise InvalidImageException("请提供图片数据")

    raw = DATA_URL_PATTERN.sub("", value.strip(), count=1)
    try:
        data = base64.b64decode(raw, validate=False)
    except (binascii.Error, ValueError):
        raise InvalidImageException()

    if not data:
        raise InvalidImageException()
    return data


def get_mime_type(value: str) -> str:
    """MIME type from a data URL, defaulting to image/jpeg"""
    match = DATA_URL_PATTERN.match(value or "")
    return match.group(1).lower() if match else "image/jpeg"


def get_extension_from_mime(mime_type: str) -> str:
    return MIME_EXTENSIONS.get((mime_type or "").lower(), ".jpg")


def bytes_to_data_url(data: bytes, mime_type: str = "image/jpeg") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def get_image_size(image_data: bytes) -> Optional[Tuple[int, int]]:
    """(width, height) or None when Pillow cannot decode the image"""
    try:
        with Image.open(io.BytesIO(image_data)) as image:
            return image.size
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning(f"이미지 디코딩 실패: {str(e)}")
        return None


def compress_image(
    image_data: bytes,
    width: int = 800,
    height: int = 600,
    quality: int = 80,
    extension: str = ".jpg"
) -> bytes:
    """
    Shrink to fit inside width x height (never enlarges) and re-encode

    The output format follows extension (.jpg, .png or .webp).

    Raises:
        InvalidImageException: if the image cannot be decoded
    """
    try:
        with Image.open(io.BytesIO(image_data)) as image:
            image = ImageOps.exif_transpose(image)
            image.thumbnail((width, height))
            output = io.BytesIO()
            image_format = SAVE_FORMATS.get(extension.lower(), "JPEG")
            if image_format == "JPEG":
                image = image.convert("RGB")
            image.save(output, format=image_format, quality=quality)
            return output.getvalue()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.error(f"이미지 압축 실패: {str(e)}")
        raise InvalidImageException("图片处理失败")


def fit_square(image_data: bytes, size: int = 500, quality: int = 85) -> bytes:
    """
    Resize and center-crop to a size x size JPEG (cover fit)

    Raises:
        InvalidImageException: if the image cannot be decoded
    """
    try:
        with Image.open(io.BytesIO(image_data)) as image:
            image = ImageOps.exif_transpose(image)
            fitted = ImageOps.fit(image.convert("RGB"), (size, size), centering=(0.5, 0.5))
            output = io.BytesIO()
            fitted.save(output, format="JPEG", quality=quality)
            return output.getvalue()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.error(f"이미지 정규화 실패: {str(e)}")
        raise InvalidImageException("图片处理失败")


def write_atomic(path: Union[str, Path], data: bytes) -> Path:
    """Write bytes via temp file + os.replace so readers never see a partial file"""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return target


def save_image(image_data: bytes, filename: str, directory: Union[str, Path]) -> Path:
    """Save image bytes under directory (created if missing)"""
    return write_atomic(Path(directory) / filename, image_data)


def delete_file(path: Union[str, Path]) -> bool:
    try:
        Path(path).unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.error(f"파일 삭제 실패 {path}: {str(e)}")
        return False


def cleanup_old_files(
    directory: Union[str, Path],
    max_age: float,
    clock: Callable[[], float] = time.time
) -> int:
    """
    Delete regular files older than max_age seconds (by mtime)

    Returns:
        Number of deleted files
    """
    removed = 0
    root = Path(directory)
    if not root.is_dir():
        return 0

    now = clock()
    try:
        for path in root.iterdir():
            if not path.is_file():
                continue
            try:
                if now - path.stat().st_mtime > max_age and delete_file(path):
                    removed += 1
                    logger.info(f"🧹 만료 파일 정리: {path.name}")
            except OSError as e:
                logger.warning(f"파일 상태 조회 실패 {path}: {str(e)}")
    except OSError as e:
        logger.error(f"디렉토리 정리 실패 {directory}: {str(e)}")
    return removed
