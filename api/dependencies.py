"""FastAPI request models (JSON bodies use the frontend's camelCase keys)"""

from typing import Optional
from pydantic import BaseModel, Field


# ========== Pydantic Models ==========
class UploadRequest(BaseModel):
    """Base64 image upload request"""
    image: Optional[str] = Field(default=None, description="data:image/<type>;base64,... 형식 이미지")


class AnalyzeRequest(BaseModel):
    """Face analysis request - imageBase64 or a previously uploaded imageId"""
    imageBase64: Optional[str] = Field(default=None, description="Base64 이미지 (data URL 허용)")
    imageId: Optional[str] = Field(default=None, description="업로드 API가 반환한 이미지 ID")


class AnalysisStartResponse(BaseModel):
    """Analysis task creation payload"""
    analysisId: str
    status: str = "processing"
    message: str = "分析任务已开始"
