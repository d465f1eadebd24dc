"""模板 API 路由"""
from fastapi import APIRouter, Query

from ..schemas.common import ApiResponse, DestinationRequest, PathRequest
from ..schemas.template import (
    AssociatedProject,
    ModificationCheckResult,
    SafeDeleteResult,
    TemplateBatchExportRequest,
    TemplateCloneRequest,
    TemplateCreate,
    TemplateItemCreate,
    TemplateItemResponse,
    TemplateItemUpdate,
    TemplateResponse,
    TemplateUpdate,
    TemplateWithItems,
)
from ..services.export_import_service import ExportImportService
from ..services.template_service import TemplateService
from .deps import DbSession, StorageRoot, respond

router = APIRouter(prefix="/api/templates", tags=["模板"])
items_router = APIRouter(prefix="/api/template-items", tags=["模板项"])


def _safe_delete_response(result: SafeDeleteResult) -> ApiResponse[SafeDeleteResult]:
    return ApiResponse(success=result.success, data=result, error=result.error)


@router.post("", response_model=ApiResponse[TemplateResponse])
async def create_template(data: TemplateCreate, db: DbSession):
    """创建模板"""
    return await respond(db, TemplateService(db).create_template(data), TemplateResponse)


@router.get("", response_model=ApiResponse[list[TemplateResponse]])
async def list_templates(db: DbSession, search: str | None = Query(None)):
    """获取模板列表（默认模板在前）"""
    return await respond(db, TemplateService(db).list_templates(search), TemplateResponse)


@router.post("/import", response_model=ApiResponse[TemplateResponse])
async def import_template(data: PathRequest, db: DbSession, storage_root: StorageRoot):
    """从 JSON 文件导入模板"""
    service = ExportImportService(db, storage_root)
    return await respond(db, service.import_template(data.file_path), TemplateResponse)


@router.post("/export-batch", response_model=ApiResponse[str])
async def export_templates_batch(
    data: TemplateBatchExportRequest, db: DbSession, storage_root: StorageRoot
):
    """批量导出模板为 zip"""
    service = ExportImportService(db, storage_root)
    return await respond(
        db, service.export_templates_batch(data.template_ids, data.destination_path)
    )


@router.post("/import-batch", response_model=ApiResponse[list[TemplateResponse]])
async def import_templates_batch(data: PathRequest, db: DbSession, storage_root: StorageRoot):
    """从 zip 批量导入模板"""
    service = ExportImportService(db, storage_root)
    return await respond(db, service.import_templates_batch(data.file_path), TemplateResponse)


@router.get("/{template_id}", response_model=ApiResponse[TemplateWithItems])
async def get_template(template_id: int, db: DbSession):
    """获取模板详情（含模板项）"""
    return await respond(db, TemplateService(db).get_template_with_items(template_id))


@router.put("/{template_id}", response_model=ApiResponse[TemplateResponse])
async def update_template(template_id: int, data: TemplateUpdate, db: DbSession):
    return await respond(db, TemplateService(db).update_template(template_id, data), TemplateResponse)


@router.delete("/{template_id}", response_model=ApiResponse[bool])
async def delete_template(template_id: int, db: DbSession):
    return await respond(db, TemplateService(db).delete_template(template_id), success_from_bool=True)


@router.post("/{template_id}/safe-delete", response_model=ApiResponse[SafeDeleteResult])
async def safe_delete_template(template_id: int, db: DbSession):
    """仅在模板未被项目使用时删除"""
    response = await respond(db, TemplateService(db).safe_delete_template(template_id))
    if not response.success:
        return response
    return _safe_delete_response(response.data)


@router.post("/{template_id}/clone", response_model=ApiResponse[TemplateWithItems])
async def clone_template(template_id: int, data: TemplateCloneRequest, db: DbSession):
    return await respond(db, TemplateService(db).clone_template(template_id, data.new_name))


@router.get("/{template_id}/projects", response_model=ApiResponse[list[AssociatedProject]])
async def get_associated_projects(template_id: int, db: DbSession):
    return await respond(db, TemplateService(db).get_associated_projects(template_id))


@router.get(
    "/{template_id}/modification-check",
    response_model=ApiResponse[ModificationCheckResult],
)
async def check_modification(
    template_id: int,
    db: DbSession,
    critical_changes: bool = Query(False),
):
    """检查模板项能否修改"""
    return await respond(
        db, TemplateService(db).check_modification(template_id, critical_changes)
    )


@router.get("/{template_id}/items", response_model=ApiResponse[list[TemplateItemResponse]])
async def list_template_items(template_id: int, db: DbSession):
    return await respond(db, TemplateService(db).list_items(template_id), TemplateItemResponse)


@router.post("/{template_id}/items", response_model=ApiResponse[TemplateItemResponse])
async def create_template_item(template_id: int, data: TemplateItemCreate, db: DbSession):
    return await respond(
        db, TemplateService(db).create_item(template_id, data), TemplateItemResponse
    )


@router.post("/{template_id}/export", response_model=ApiResponse[str])
async def export_template(
    template_id: int,
    data: DestinationRequest,
    db: DbSession,
    storage_root: StorageRoot,
):
    """导出模板为 JSON 文件，返回文件路径"""
    service = ExportImportService(db, storage_root)
    return await respond(db, service.export_template(template_id, data.destination_path))


@items_router.get("/{item_id}", response_model=ApiResponse[TemplateItemResponse])
async def get_template_item(item_id: int, db: DbSession):
    return await respond(db, TemplateService(db).get_item(item_id), TemplateItemResponse)


@items_router.put("/{item_id}", response_model=ApiResponse[TemplateItemResponse])
async def update_template_item(
    item_id: int,
    data: TemplateItemUpdate,
    db: DbSession,
    critical_changes: bool = Query(False),
):
    """更新模板项，关键修改在模板被使用时会被拒绝"""
    return await respond(
        db,
        TemplateService(db).update_item(item_id, data, critical_changes),
        TemplateItemResponse,
    )


@items_router.delete("/{item_id}", response_model=ApiResponse[bool])
async def delete_template_item(item_id: int, db: DbSession):
    return await respond(db, TemplateService(db).delete_item(item_id), success_from_bool=True)


@items_router.post("/{item_id}/safe-delete", response_model=ApiResponse[SafeDeleteResult])
async def safe_delete_template_item(item_id: int, db: DbSession):
    response = await respond(db, TemplateService(db).safe_delete_item(item_id))
    if not response.success:
        return response
    return _safe_delete_response(response.data)
