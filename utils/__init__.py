"""
유틸리티 모듈
"""

from .image_utils import (
    base64_to_bytes,
    bytes_to_data_url,
    compress_image,
    fit_square,
    is_data_url
)
from .response_helper import error_response, success_response

__all__ = [
    'base64_to_bytes',
    'bytes_to_data_url',
    'compress_image',
    'fit_square',
    'is_data_url',
    'error_response',
    'success_response'
]
