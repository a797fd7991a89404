"""
유명인 관리 + 시스템 관리 라우터

유명인 목록/통계 조회, 커스텀 유명인 추가/삭제, 임시 파일 정리,
Circuit Breaker 상태 관리 API를 제공합니다.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from core.auth import verify_admin_api_key
from core.dependencies import get_celebrity_pool, run_cleanup
from core.exceptions import CelebrityValidationException
from models.signals import normalize_gender
from services.celebrity_pool import CelebrityPool
from services.circuit_breaker import get_circuit_breaker_status, reset_circuit_breakers
from utils.response_helper import success_response

logger = logging.getLogger(__name__)

router = APIRouter()


# ========== Celebrities ==========
@router.get("/celebrities")
async def list_celebrities(
    gender: Optional[str] = None,
    pool: CelebrityPool = Depends(get_celebrity_pool)
):
    """
    유명인 목록 조회

    Query:
        gender: male/female (별칭 허용), 생략하거나 all이면 전체
    """
    category = None
    if gender and gender.lower() != "all":
        category = normalize_gender(gender)
        if category is None:
            raise CelebrityValidationException()

    entries = await run_in_threadpool(pool.resolve, category)
    return success_response({
        "celebrities": [entry.to_dict() for entry in entries],
        "total": len(entries),
        "gender": category.value if category else "all"
    }, "获取名人列表成功")


@router.get("/celebrities/stats")
async def get_celebrity_statistics(pool: CelebrityPool = Depends(get_celebrity_pool)):
    statistics = await run_in_threadpool(pool.get_statistics)
    return success_response(statistics, "获取统计信息成功")


@router.post("/celebrities")
async def add_celebrity(
    name: str = Form(""),
    gender: str = Form(""),
    description: str = Form(""),
    image: Optional[UploadFile] = File(None),
    pool: CelebrityPool = Depends(get_celebrity_pool),
    api_key: str = Depends(verify_admin_api_key)
):
    """커스텀 유명인 추가 (관리자 전용, multipart)"""
    if not name.strip() or not gender.strip():
        raise CelebrityValidationException("请提供名人姓名和性别")
    if image is None:
        raise CelebrityValidationException("请上传名人照片")

    image_data = await image.read()
    entry = await run_in_threadpool(pool.add_celebrity, name, gender, image_data, description)

    logger.info(f"[ADMIN] 유명인 추가: {entry.display_name}")
    return success_response(entry.to_dict(), "名人添加成功")


@router.delete("/celebrities/{gender}/{filename}")
async def remove_celebrity(
    gender: str,
    filename: str,
    pool: CelebrityPool = Depends(get_celebrity_pool),
    api_key: str = Depends(verify_admin_api_key)
):
    """커스텀 유명인 삭제 (관리자 전용, 번들 항목은 삭제 불가)"""
    await run_in_threadpool(pool.remove_celebrity, gender, filename)

    logger.info(f"[ADMIN] 유명인 삭제: {gender}/{filename}")
    return success_response(None, "名人删除成功")


# ========== Maintenance ==========
@router.post("/cleanup")
async def cleanup_temp_files(api_key: str = Depends(verify_admin_api_key)):
    """만료된 업로드 + 사진 캐시 정리"""
    result = await run_in_threadpool(run_cleanup)
    return success_response(result, "清理完成")


@router.get("/admin/circuit-breaker-status")
async def get_circuit_status(api_key: str = Depends(verify_admin_api_key)):
    """
    Circuit Breaker 상태 조회

    Returns:
        - vision_api: 비전 API Circuit Breaker 상태
        - photo_backends: 사진 검색 백엔드별 상태
            - state: 현재 상태 (closed/open/half-open)
            - fail_counter: 현재 실패 횟수
            - fail_max: 최대 허용 실패 횟수
            - reset_timeout: 재시도 대기 시간 (초)
    """
    try:
        status = get_circuit_breaker_status()
    except Exception as e:
        logger.error(f"❌ Circuit Breaker 상태 조회 실패: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"熔断器状态查询失败: {str(e)}"
        )

    logger.info(f"⚡ Circuit Breaker 상태 조회: {status}")
    return success_response(status, "获取熔断器状态成功")


@router.post("/admin/circuit-breaker-reset")
async def reset_circuit(api_key: str = Depends(verify_admin_api_key)):
    """Circuit Breaker 수동 리셋 (관리자 전용)"""
    reset_circuit_breakers()
    return success_response(get_circuit_breaker_status(), "熔断器已重置")
