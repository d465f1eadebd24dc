"""项目 API 路由"""
from fastapi import APIRouter, File, Query, UploadFile

from ..models.project import ProjectStatus
from ..schemas.attachment import AttachmentResponse, UploadFromPathsRequest
from ..schemas.common import ApiResponse, DestinationRequest
from ..schemas.document import ProjectDocumentResponse
from ..schemas.project import (
    ProjectCreate,
    ProjectImportRequest,
    ProjectItemResponse,
    ProjectItemUpdate,
    ProjectResponse,
    ProjectUpdate,
    ProjectWithDetails,
)
from ..services.attachment_service import AttachmentService
from ..services.document_service import DocumentService
from ..services.export_import_service import ExportImportService
from ..services.print_service import PrintService
from ..services.project_service import ProjectService
from .deps import DbSession, StorageRoot, respond

router = APIRouter(prefix="/api/projects", tags=["项目"])
items_router = APIRouter(prefix="/api/project-items", tags=["项目材料"])


@router.post("", response_model=ApiResponse[ProjectResponse])
async def create_project(data: ProjectCreate, db: DbSession, storage_root: StorageRoot):
    """基于模板创建项目"""
    return await respond(db, ProjectService(db, storage_root).create_project(data), ProjectResponse)


@router.get("", response_model=ApiResponse[list[ProjectResponse]])
async def list_projects(
    db: DbSession,
    storage_root: StorageRoot,
    search: str | None = Query(None),
    status: ProjectStatus | None = Query(None),
    template_id: int | None = Query(None),
):
    """获取项目列表（按更新时间倒序）"""
    service = ProjectService(db, storage_root)
    return await respond(db, service.list_projects(search, status, template_id), ProjectResponse)


@router.post("/import", response_model=ApiResponse[ProjectResponse])
async def import_project(data: ProjectImportRequest, db: DbSession, storage_root: StorageRoot):
    """从 zip 包导入项目"""
    service = ExportImportService(db, storage_root)
    return await respond(db, service.import_project(data.zip_path), ProjectResponse)


@router.get("/{project_id}", response_model=ApiResponse[ProjectWithDetails])
async def get_project(project_id: int, db: DbSession, storage_root: StorageRoot):
    """获取项目详情（含模板、材料与附件）"""
    return await respond(db, ProjectService(db, storage_root).get_project_with_details(project_id))


@router.put("/{project_id}", response_model=ApiResponse[ProjectResponse])
async def update_project(
    project_id: int, data: ProjectUpdate, db: DbSession, storage_root: StorageRoot
):
    service = ProjectService(db, storage_root)
    return await respond(db, service.update_project(project_id, data), ProjectResponse)


@router.delete("/{project_id}", response_model=ApiResponse[bool])
async def delete_project(project_id: int, db: DbSession, storage_root: StorageRoot):
    """删除项目及其全部附件文件"""
    return await respond(
        db, ProjectService(db, storage_root).delete_project(project_id),
        success_from_bool=True, failure_message="项目不存在",
    )


@router.get("/{project_id}/items", response_model=ApiResponse[list[ProjectItemResponse]])
async def list_project_items(project_id: int, db: DbSession, storage_root: StorageRoot):
    service = ProjectService(db, storage_root)
    return await respond(db, service.list_project_items(project_id), ProjectItemResponse)


@router.get("/{project_id}/complete", response_model=ApiResponse[bool])
async def check_project_complete(project_id: int, db: DbSession, storage_root: StorageRoot):
    """所有必填材料是否都已上传"""
    return await respond(db, ProjectService(db, storage_root).check_project_complete(project_id))


@router.post("/{project_id}/export", response_model=ApiResponse[str])
async def export_project(
    project_id: int,
    data: DestinationRequest,
    db: DbSession,
    storage_root: StorageRoot,
):
    """导出项目为 zip 包，返回文件路径"""
    service = ExportImportService(db, storage_root)
    return await respond(db, service.export_project(project_id, data.destination_path))


@router.post("/{project_id}/print", response_model=ApiResponse[str])
async def print_project(project_id: int, db: DbSession, storage_root: StorageRoot):
    """合并项目附件为打印用 PDF，返回相对路径"""
    return await respond(db, PrintService(db, storage_root).print_project(project_id))


@router.get("/{project_id}/documents", response_model=ApiResponse[list[ProjectDocumentResponse]])
async def list_project_documents(project_id: int, db: DbSession, storage_root: StorageRoot):
    service = DocumentService(db, storage_root)
    return await respond(db, service.list_project_documents(project_id), ProjectDocumentResponse)


@items_router.get("/{project_item_id}", response_model=ApiResponse[ProjectItemResponse])
async def get_project_item(project_item_id: int, db: DbSession, storage_root: StorageRoot):
    service = ProjectService(db, storage_root)
    return await respond(db, service.get_project_item(project_item_id), ProjectItemResponse)


@items_router.put("/{project_item_id}", response_model=ApiResponse[ProjectItemResponse])
async def update_project_item(
    project_item_id: int,
    data: ProjectItemUpdate,
    db: DbSession,
    storage_root: StorageRoot,
):
    """更新材料状态或备注"""
    service = ProjectService(db, storage_root)
    return await respond(db, service.update_project_item(project_item_id, data), ProjectItemResponse)


@items_router.get(
    "/{project_item_id}/attachments",
    response_model=ApiResponse[list[AttachmentResponse]],
)
async def list_attachments(project_item_id: int, db: DbSession, storage_root: StorageRoot):
    service = AttachmentService(db, storage_root)
    return await respond(db, service.list_attachments(project_item_id), AttachmentResponse)


@items_router.post(
    "/{project_item_id}/attachments",
    response_model=ApiResponse[list[AttachmentResponse]],
)
async def upload_from_paths(
    project_item_id: int,
    data: UploadFromPathsRequest,
    db: DbSession,
    storage_root: StorageRoot,
):
    """按本地文件路径上传附件"""
    service = AttachmentService(db, storage_root)
    return await respond(
        db, service.upload_from_paths(project_item_id, data.files), AttachmentResponse
    )


@items_router.post(
    "/{project_item_id}/attachments/upload",
    response_model=ApiResponse[list[AttachmentResponse]],
)
async def upload_files(
    project_item_id: int,
    db: DbSession,
    storage_root: StorageRoot,
    files: list[UploadFile] = File(...),
):
    """multipart 方式上传附件"""
    service = AttachmentService(db, storage_root)

    async def _upload():
        uploaded = []
        for file in files:
            content = await file.read()
            uploaded.append(
                await service.upload_bytes(project_item_id, content, file.filename or "file")
            )
        return uploaded

    return await respond(db, _upload(), AttachmentResponse)
