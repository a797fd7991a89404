"""Admin API key check for celebrity administration endpoints"""

from fastapi import Security, HTTPException, status
from fastapi.security import APIKeyHeader
from config.settings import settings

# API Key Header
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_admin_api_key(api_key: str = Security(api_key_header)) -> str:
    """
    Verify admin API key (X-API-Key header)

    Raises:
        HTTPException: 403 if the key is missing or wrong,
            500 if the server has no ADMIN_API_KEY configured
    """
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="缺少管理员密钥，请提供 X-API-Key 请求头"
        )

    if not settings.ADMIN_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="服务器未配置管理员密钥"
        )

    if api_key != settings.ADMIN_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="管理员密钥无效"
        )

    return api_key
