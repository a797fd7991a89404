"""Face presence check based on image dimensions"""

from typing import Any, Dict

from core.logging import log_structured
from utils.image_utils import get_image_size

MIN_FACE_IMAGE_SIZE = 100


class FaceDetectionService:
    """
    Lightweight face presence check

    Images smaller than 100x100 are unlikely to contain a clear face;
    undecodable images never do. Real analysis is left to the vision API.
    """

    def __init__(self, min_size: int = MIN_FACE_IMAGE_SIZE):
        self.min_size = min_size

    def detect_face(self, image_data: bytes) -> Dict[str, Any]:
        """
        Args:
            image_data: Image binary data

        Returns:
            {"has_face": bool, "face_count": int, "method": "dimension_check",
             "width": int|None, "height": int|None}
        """
        size = get_image_size(image_data)
        width, height = size if size else (None, None)
        has_face = size is not None and width >= self.min_size and height >= self.min_size

        log_structured("face_detection", {
            "method": "dimension_check",
            "success": has_face,
            "width": width,
            "height": height
        })

        return {
            "has_face": has_face,
            "face_count": 1 if has_face else 0,
            "method": "dimension_check",
            "width": width,
            "height": height
        }
