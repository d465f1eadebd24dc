"""水印 API 路由"""
from fastapi import APIRouter

from ..schemas.attachment import AttachmentResponse
from ..schemas.common import ApiResponse
from ..schemas.watermark import PlaceholderInfo, WatermarkApplyRequest
from ..services.watermark_service import WatermarkService
from ..utils.watermark_placeholders import WATERMARK_PLACEHOLDERS
from .deps import DbSession, StorageRoot, respond

router = APIRouter(prefix="/api/watermark", tags=["水印"])


@router.get("/placeholders", response_model=ApiResponse[list[PlaceholderInfo]])
async def list_placeholders():
    """水印模板支持的占位符"""
    return ApiResponse(
        success=True,
        data=[
            PlaceholderInfo(token=p.token, label=p.label, description=p.description)
            for p in WATERMARK_PLACEHOLDERS
        ],
    )


@router.post("/attachments/{attachment_id}/apply", response_model=ApiResponse[AttachmentResponse])
async def apply_watermark(
    attachment_id: int,
    data: WatermarkApplyRequest,
    db: DbSession,
    storage_root: StorageRoot,
):
    """为附件生成水印副本"""
    service = WatermarkService(db, storage_root)
    return await respond(
        db,
        service.apply_watermark(attachment_id, data.watermark_text, data.config),
        AttachmentResponse,
    )


@router.get("/attachments/{attachment_id}/text", response_model=ApiResponse[str])
async def resolve_watermark_text(attachment_id: int, db: DbSession, storage_root: StorageRoot):
    """预览本次将使用的水印文本"""
    service = WatermarkService(db, storage_root)
    return await respond(db, service.resolve_watermark_text(attachment_id))


@router.post("/attachments/{attachment_id}/clear", response_model=ApiResponse[AttachmentResponse])
async def clear_watermark(attachment_id: int, db: DbSession, storage_root: StorageRoot):
    service = WatermarkService(db, storage_root)
    return await respond(db, service.clear_watermark(attachment_id), AttachmentResponse)
