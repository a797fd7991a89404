"""Photo upload endpoints (base64 + multipart)"""

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse

from api.dependencies import UploadRequest
from core.dependencies import get_upload_storage
from services.upload_storage import UploadStorage
from utils.response_helper import success_response


router = APIRouter()


@router.post("/upload")
async def upload_base64_image(
    body: UploadRequest,
    storage: UploadStorage = Depends(get_upload_storage)
):
    """data URL 이미지 업로드"""
    result = await run_in_threadpool(storage.save_data_url, body.image)
    return success_response(result, "图片上传成功")


@router.post("/upload/file")
async def upload_image_file(
    image: UploadFile = File(...),
    storage: UploadStorage = Depends(get_upload_storage)
):
    """multipart/form-data 이미지 업로드 (필드명: image)"""
    image_data = await image.read()
    result = await run_in_threadpool(
        storage.save_file, image_data, image.content_type, image.filename or ""
    )
    return success_response(result, "图片上传成功")


@router.get("/upload/{image_id}")
async def get_uploaded_image(
    image_id: str,
    storage: UploadStorage = Depends(get_upload_storage)
):
    return FileResponse(storage.get_path(image_id))


@router.delete("/upload/{image_id}")
async def delete_uploaded_image(
    image_id: str,
    storage: UploadStorage = Depends(get_upload_storage)
):
    storage.delete(image_id)
    return success_response(None, "图片删除成功")
