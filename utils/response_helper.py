"""
统一响应格式

成功: {"success": true, "message", "data", "timestamp"}
失败: {"success": false, "error", "message", "timestamp"}
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi.responses import JSONResponse

from core.exceptions import MatchAppException


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def success_response(data: Any = None, message: str = "操作成功") -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": _timestamp()
    }


def error_body(error: str, message: str) -> Dict[str, Any]:
    return {
        "success": False,
        "error": error,
        "message": message,
        "timestamp": _timestamp()
    }


def error_response(exc: MatchAppException) -> JSONResponse:
    """MatchAppException → 错误响应 (状态码来自异常类)"""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.error_code, exc.message)
    )
