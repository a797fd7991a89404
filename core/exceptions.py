"""Custom exception classes for NXNS Match backend"""

import re

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


class MatchAppException(Exception):
    """Base exception for the match application"""

    status_code = 500

    def __init__(self, message: str = "发生错误"):
        self.message = message
        super().__init__(self.message)

    @property
    def error_code(self) -> str:
        """snake_case error name used in response envelopes"""
        name = self.__class__.__name__.replace("Exception", "")
        return _CAMEL_BOUNDARY.sub("_", name).lower()


# ========== Input errors ==========
class InvalidImageException(MatchAppException):
    """Raised when the photo payload is missing or malformed"""

    status_code = 400

    def __init__(self, message: str = "图片格式无效"):
        super().__init__(message)


class InvalidFileFormatException(MatchAppException):
    """Raised when uploaded file format is invalid"""

    status_code = 400

    def __init__(self, message: str = "只支持 JPG、PNG 和 WebP 格式的图片"):
        super().__init__(message)


class NoFaceDetectedException(MatchAppException):
    """Raised when no usable face is found in the photo"""

    status_code = 400

    def __init__(self, message: str = "图片中未检测到清晰的人脸"):
        super().__init__(message)


class ImageNotFoundException(MatchAppException):
    """Raised when an uploaded image id does not exist"""

    status_code = 404

    def __init__(self, image_id: str = "", message: str = None):
        if message is None:
            message = f"图片不存在: {image_id}" if image_id else "图片不存在"
        self.image_id = image_id
        super().__init__(message)


class AnalysisNotFoundException(MatchAppException):
    """Raised when an analysis id matches no cached or pending analysis"""

    status_code = 404

    def __init__(self, message: str = "分析结果不存在或已过期"):
        super().__init__(message)


# ========== Upstream vision errors ==========
class VisionAPIException(MatchAppException):
    """Raised when the vision analysis API fails"""

    status_code = 503

    def __init__(self, message: str = "AI分析服务暂时不可用，请稍后再试"):
        super().__init__(message)


class VisionInvalidResponseException(VisionAPIException):
    """Raised when the vision API returns an unparseable or incomplete response"""

    status_code = 500

    def __init__(self, message: str = "AI分析结果解析失败"):
        super().__init__(message)


class VisionAuthenticationException(VisionAPIException):
    """Raised when the vision API rejects the credentials"""

    status_code = 401

    def __init__(self, message: str = "API密钥无效或已过期"):
        super().__init__(message)


class VisionRateLimitException(VisionAPIException):
    """Raised when the vision API rate limit is exceeded"""

    status_code = 429

    def __init__(self, message: str = "API调用频率过高，请稍后再试"):
        super().__init__(message)


class VisionTimeoutException(VisionAPIException):
    """Raised when the vision API does not answer in time"""

    status_code = 408

    def __init__(self, message: str = "请求超时，请稍后再试"):
        super().__init__(message)


class VisionUnavailableException(VisionAPIException):
    """Raised when the vision API is unreachable or its circuit is open"""

    status_code = 503


# ========== Celebrity administration ==========
class CelebrityValidationException(MatchAppException):
    """Raised when a celebrity submission is invalid"""

    status_code = 400

    def __init__(self, message: str = "性别必须是 male 或 female"):
        super().__init__(message)


class CelebrityNotFoundException(MatchAppException):
    """Raised when a custom celebrity entry does not exist"""

    status_code = 404

    def __init__(self, filename: str = "", message: str = None):
        if message is None:
            message = f"名人不存在或删除失败: {filename}"
        self.filename = filename
        super().__init__(message)

