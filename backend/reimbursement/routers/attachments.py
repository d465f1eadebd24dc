"""附件 API 路由"""
from fastapi import APIRouter, Query

from ..schemas.attachment import (
    AttachmentRenameRequest,
    AttachmentResponse,
    StorageMigrateRequest,
)
from ..schemas.common import ApiResponse
from ..services.attachment_service import AttachmentService
from .deps import DbSession, StorageRoot, respond

router = APIRouter(prefix="/api/attachments", tags=["附件"])


@router.get("/resolve", response_model=ApiResponse[str])
async def resolve_relative_path(
    db: DbSession,
    storage_root: StorageRoot,
    relative_path: str = Query(..., min_length=1),
):
    """将存储根目录下的相对路径解析为绝对路径"""

    async def _resolve() -> str:
        return AttachmentService(db, storage_root).resolve_path(relative_path)

    return await respond(db, _resolve())


@router.post("/storage/migrate", response_model=ApiResponse[str])
async def migrate_storage(data: StorageMigrateRequest, db: DbSession, storage_root: StorageRoot):
    """迁移存储根目录，返回新的根目录"""
    return await respond(db, AttachmentService(db, storage_root).migrate_storage(data.new_root))


@router.get("/{attachment_id}", response_model=ApiResponse[AttachmentResponse])
async def get_attachment(attachment_id: int, db: DbSession, storage_root: StorageRoot):
    service = AttachmentService(db, storage_root)
    return await respond(db, service.get_attachment(attachment_id), AttachmentResponse)


@router.delete("/{attachment_id}", response_model=ApiResponse[bool])
async def delete_attachment(attachment_id: int, db: DbSession, storage_root: StorageRoot):
    """删除附件及其文件"""
    return await respond(
        db, AttachmentService(db, storage_root).delete_attachment(attachment_id),
        success_from_bool=True, failure_message="附件不存在",
    )


@router.put("/{attachment_id}/rename", response_model=ApiResponse[AttachmentResponse])
async def rename_attachment(
    attachment_id: int,
    data: AttachmentRenameRequest,
    db: DbSession,
    storage_root: StorageRoot,
):
    service = AttachmentService(db, storage_root)
    return await respond(
        db, service.rename_attachment(attachment_id, data.new_name), AttachmentResponse
    )


@router.get("/{attachment_id}/path", response_model=ApiResponse[str])
async def get_file_path(
    attachment_id: int,
    db: DbSession,
    storage_root: StorageRoot,
    use_watermarked: bool = Query(False),
):
    """附件绝对路径"""
    service = AttachmentService(db, storage_root)
    return await respond(db, service.get_file_path(attachment_id, use_watermarked))


@router.get("/{attachment_id}/relative-path", response_model=ApiResponse[str])
async def get_relative_path(
    attachment_id: int,
    db: DbSession,
    storage_root: StorageRoot,
    use_watermarked: bool = Query(False),
):
    service = AttachmentService(db, storage_root)
    return await respond(db, service.get_relative_path(attachment_id, use_watermarked))
