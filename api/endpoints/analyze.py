"""Face analysis and celebrity match endpoints"""

import threading
import time
from collections import OrderedDict
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.concurrency import run_in_threadpool
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.dependencies import AnalysisStartResponse, AnalyzeRequest
from core.cache import calculate_image_hash
from core.dependencies import get_face_analysis_service, get_upload_storage
from core.exceptions import AnalysisNotFoundException, InvalidImageException, MatchAppException
from core.logging import logger
from services.face_analysis_service import FaceAnalysisService
from services.upload_storage import UploadStorage
from utils.response_helper import success_response


router = APIRouter()

# Rate limiter
limiter = Limiter(key_func=get_remote_address)

# Background analyses not yet in the result cache (id → status)
MAX_PENDING_ANALYSES = 100
_pending_analyses: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
_pending_lock = threading.Lock()


def _resolve_payload(body: AnalyzeRequest, storage: UploadStorage) -> str:
    if body.imageBase64:
        return body.imageBase64
    if body.imageId:
        return storage.load_data_url(body.imageId)
    raise InvalidImageException("请提供 imageId 或 imageBase64")


def _track_pending(analysis_id: str, status: Dict[str, Any]) -> None:
    with _pending_lock:
        _pending_analyses[analysis_id] = status
        _pending_analyses.move_to_end(analysis_id)
        while len(_pending_analyses) > MAX_PENDING_ANALYSES:
            _pending_analyses.popitem(last=False)


def _clear_pending(analysis_id: str) -> None:
    with _pending_lock:
        _pending_analyses.pop(analysis_id, None)


def _find_pending(analysis_id: str) -> Optional[Dict[str, Any]]:
    if not analysis_id:
        return None
    with _pending_lock:
        snapshot = list(_pending_analyses.items())
    for pending_id, status in snapshot:
        if pending_id.startswith(analysis_id[:8]):
            return status
    return None


def _run_background_analysis(
    analysis_service: FaceAnalysisService,
    analysis_id: str,
    image_base64: str
) -> None:
    try:
        analysis_service.analyze_face(image_base64)
        _clear_pending(analysis_id)
    except MatchAppException as e:
        logger.warning(f"⚠️ 백그라운드 분석 실패 ({analysis_id[:8]}): {e.message}")
        _track_pending(analysis_id, {
            "analysisId": analysis_id,
            "status": "failed",
            "error": e.error_code,
            "message": e.message
        })
    except Exception as e:
        logger.error(f"❌ 백그라운드 분석 중 예상치 못한 오류 ({analysis_id[:8]}): {str(e)}")
        _track_pending(analysis_id, {
            "analysisId": analysis_id,
            "status": "failed",
            "error": "internal_error",
            "message": "人脸分析失败"
        })


# ========== API Endpoints ==========
@router.post("/analyze/start")
@limiter.limit("10/minute")  # /analyze와 같은 제한
async def start_analysis(
    request: Request,
    body: AnalyzeRequest,
    background_tasks: BackgroundTasks,
    analysis_service: FaceAnalysisService = Depends(get_face_analysis_service),
    storage: UploadStorage = Depends(get_upload_storage)
):
    """
    분석 작업 생성 (비동기)

    analysisId로 /api/result/{analysisId}를 조회합니다.
    """
    image_base64 = await run_in_threadpool(_resolve_payload, body, storage)
    analysis_id = calculate_image_hash(image_base64)

    _track_pending(analysis_id, {"analysisId": analysis_id, "status": "processing"})
    background_tasks.add_task(_run_background_analysis, analysis_service, analysis_id, image_base64)

    logger.info(f"🚀 분석 작업 생성: {analysis_id[:8]}")
    return success_response(AnalysisStartResponse(analysisId=analysis_id).model_dump(), "分析任务已创建")


@router.post("/analyze")
@limiter.limit("10/minute")  # 분당 10회 제한
async def analyze_face(
    request: Request,
    body: AnalyzeRequest,
    analysis_service: FaceAnalysisService = Depends(get_face_analysis_service),
    storage: UploadStorage = Depends(get_upload_storage)
):
    """
    얼굴 분석 + 유명인 매칭 (동기)

    같은 사진은 항상 같은 유명인/유사도/매칭 이유를 반환합니다.
    """
    start_time = time.time()

    image_base64 = await run_in_threadpool(_resolve_payload, body, storage)
    result = await run_in_threadpool(analysis_service.analyze_face, image_base64)

    logger.info(f"✅ 분석 완료 ({round(time.time() - start_time, 2)}초): {result['celebrity']['name']}")
    return success_response(result, "分析完成")


@router.get("/result/{analysis_id}")
async def get_analysis_result(
    analysis_id: str,
    analysis_service: FaceAnalysisService = Depends(get_face_analysis_service)
):
    """분석 결과 조회 (ID 앞 8자리로 매칭)"""
    summary = analysis_service.find_result(analysis_id)
    if summary is not None:
        return success_response(summary, "获取分析结果成功")

    status = _find_pending(analysis_id)
    if status is not None:
        return success_response(status, "分析任务进行中" if status["status"] == "processing" else "分析任务失败")

    raise AnalysisNotFoundException()


@router.get("/history")
async def get_analysis_history(
    analysis_service: FaceAnalysisService = Depends(get_face_analysis_service)
):
    """캐시된 분석 기록 (최신순)"""
    history = analysis_service.get_analysis_history()
    return success_response({
        "history": history,
        "total": len(history)
    }, "获取历史记录成功")
