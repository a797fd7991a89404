"""
NXNS Match Backend - Face analysis and celebrity matching service
Version: 1.2.0
"""

import asyncio
import time
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import settings
from core.cache import init_redis
from core.dependencies import get_celebrity_pool, run_cleanup
from core.logging import logger
from core.monitoring import init_sentry
from core.exceptions import MatchAppException
from services.circuit_breaker import get_circuit_breaker_status
from utils.response_helper import error_body, error_response, success_response

from routers.admin import router as admin_router
from api.endpoints.analyze import limiter, router as analyze_router
from api.endpoints.upload import router as upload_router

CLEANUP_INTERVAL = 60 * 60  # 1 hour

_started_at = time.time()
_cleanup_task = None


# ========== Initialize Sentry (if configured) ==========
sentry_enabled = init_sentry()


# ========== FastAPI App Initialization ==========
app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION
)

# Attach limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ========== CORS Middleware ==========
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ========== Security Headers Middleware ==========
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """
    Add security headers to all responses

    img-src includes https: for remote celebrity photo URLs.
    """
    response = await call_next(request)

    response.headers["Content-Security-Policy"] = (
        "default-src 'self'; "
        "img-src 'self' data: blob: https:; "
        "script-src 'self'; "
        "style-src 'self' 'unsafe-inline'; "
        "font-src 'self'; "
        "connect-src 'self'; "
        "frame-ancestors 'none';"
    )
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-XSS-Protection"] = "1; mode=block"

    if request.url.scheme == "https" or settings.ENVIRONMENT == "production":
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )

    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    # camera stays enabled for the webcam capture page
    response.headers["Permissions-Policy"] = (
        "geolocation=(), microphone=(), payment=(), usb=()"
    )

    if "Server" in response.headers:
        del response.headers["Server"]

    return response


# ========== File Size Limit Middleware ==========
@app.middleware("http")
async def limit_upload_size(request: Request, call_next):
    """Reject request bodies larger than MAX_FILE_SIZE"""
    if request.method == "POST":
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > settings.MAX_FILE_SIZE:
            logger.warning(f"🚫 File too large: {int(content_length)} bytes (max: {settings.MAX_FILE_SIZE})")
            return JSONResponse(
                status_code=413,
                content=error_body(
                    "file_too_large",
                    f"文件过大，最大支持 {settings.MAX_FILE_SIZE // (1024 * 1024)}MB"
                )
            )
    return await call_next(request)


# ========== Exception Handlers ==========
@app.exception_handler(MatchAppException)
async def match_exception_handler(request: Request, exc: MatchAppException):
    if exc.status_code >= 500:
        logger.error(f"❌ {exc.error_code}: {exc.message}")
    else:
        logger.info(f"⚠️ {exc.error_code}: {exc.message}")
    return error_response(exc)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error = "not_found" if exc.status_code == 404 else f"http_{exc.status_code}"
    message = exc.detail if isinstance(exc.detail, str) else "请求失败"
    if exc.status_code == 404 and message == "Not Found":
        message = f"API端点不存在: {request.url.path}"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(error, message),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ 처리되지 않은 오류 ({request.url.path}): {str(exc)}")
    return JSONResponse(
        status_code=500,
        content=error_body("internal_error", "服务器内部错误")
    )


# ========== Register Routers ==========
app.include_router(upload_router, prefix="/api", tags=["upload"])
app.include_router(analyze_router, prefix="/api", tags=["analysis"])
app.include_router(admin_router, prefix="/api", tags=["admin"])


# ========== Static Files ==========
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")
app.mount(
    settings.CUSTOM_CELEBRITY_URL_PREFIX,
    StaticFiles(directory=settings.CUSTOM_CELEBRITY_DIR, check_dir=False),
    name="celebrities"
)
app.mount(
    settings.BUNDLED_CELEBRITY_URL_PREFIX,
    StaticFiles(directory=settings.BUNDLED_CELEBRITY_DIR, check_dir=False),
    name="assets"
)
app.mount(
    settings.PHOTO_CACHE_URL_PREFIX,
    StaticFiles(directory=settings.PHOTO_CACHE_DIR, check_dir=False),
    name="photo-cache"
)


# ========== Periodic Cleanup ==========
async def periodic_cleanup():
    """Sweep expired uploads and photo-cache files every hour"""
    while True:
        await asyncio.sleep(CLEANUP_INTERVAL)
        try:
            await run_in_threadpool(run_cleanup)
        except Exception as e:
            logger.error(f"❌ 주기 정리 실패: {str(e)}")


# ========== Startup / Shutdown Events ==========
@app.on_event("startup")
async def startup_event():
    """Initialize essential services on server startup"""
    global _cleanup_task
    logger.info("🚀 서버 시작 중...")

    import google.generativeai as genai

    genai.configure(api_key=settings.GEMINI_API_KEY)
    logger.info("✅ Gemini API 설정 완료")

    for directory in (settings.UPLOAD_DIR, settings.CUSTOM_CELEBRITY_DIR, settings.PHOTO_CACHE_DIR):
        Path(directory).mkdir(parents=True, exist_ok=True)

    init_redis()

    _cleanup_task = asyncio.create_task(periodic_cleanup())
    logger.info("✅ 기본 서비스 초기화 완료")


@app.on_event("shutdown")
async def shutdown_event():
    if _cleanup_task is not None:
        _cleanup_task.cancel()


# ========== Root Endpoint ==========
@app.get("/")
async def root():
    """Root endpoint with service status"""
    from core.cache import redis_client

    return {
        "message": f"{settings.APP_TITLE} - v{settings.APP_VERSION}",
        "version": settings.APP_VERSION,
        "model": settings.MODEL_NAME,
        "status": "running",
        "features": {
            "vision_analysis": "enabled" if settings.GEMINI_API_KEY else "disabled",
            "celebrity_match": "enabled",
            "remote_photo_fetch": "enabled" if settings.PHOTO_FETCH_ENABLED else "disabled",
            "pool_merge_custom": "enabled" if settings.POOL_MERGE_CUSTOM else "disabled",
            "match_without_analysis": "enabled" if settings.ALLOW_MATCH_WITHOUT_ANALYSIS else "disabled",
            "redis_cache": "enabled" if redis_client is not None else "disabled",
            "error_tracking": "enabled" if sentry_enabled else "disabled"
        }
    }


# ========== Health Check Endpoint ==========
@app.get("/api/health")
async def health_check():
    """
    Health check

    Returns status, uptime, pool size, photo cache directory and breaker states.
    Pool scan failures degrade the status instead of failing the check.
    """
    status = "ok"
    try:
        pool_size = len(await run_in_threadpool(get_celebrity_pool().resolve, None))
    except Exception as e:
        logger.error(f"❌ 헬스체크 풀 조회 실패: {str(e)}")
        pool_size = 0
        status = "degraded"

    breakers = get_circuit_breaker_status()
    if breakers["vision_api"]["is_open"]:
        status = "degraded"

    return success_response({
        "status": status,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "uptime": round(time.time() - _started_at, 2),
        "poolSize": pool_size,
        "photoCacheDir": settings.PHOTO_CACHE_DIR,
        "circuitBreakers": breakers
    }, "系统运行正常" if status == "ok" else "系统部分功能异常")


# ========== Main Entry Point ==========
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
