"""文书 API 路由"""
from fastapi import APIRouter, Query

from ..schemas.common import ApiResponse, DestinationRequest, PathRequest
from ..schemas.document import (
    DocumentTemplateCreate,
    DocumentTemplateResponse,
    DocumentTemplateUpdate,
    ProjectDocumentCreate,
    ProjectDocumentResponse,
    ProjectDocumentUpdate,
)
from ..services.document_service import DocumentService
from ..services.export_import_service import ExportImportService
from .deps import DbSession, StorageRoot, respond

router = APIRouter(prefix="/api/documents", tags=["文书模板"])
project_router = APIRouter(prefix="/api/project-documents", tags=["项目文书"])


@router.post("", response_model=ApiResponse[DocumentTemplateResponse])
async def create_document_template(
    data: DocumentTemplateCreate, db: DbSession, storage_root: StorageRoot
):
    service = DocumentService(db, storage_root)
    return await respond(db, service.create_template(data), DocumentTemplateResponse)


@router.get("", response_model=ApiResponse[list[DocumentTemplateResponse]])
async def list_document_templates(
    db: DbSession, storage_root: StorageRoot, search: str | None = Query(None)
):
    service = DocumentService(db, storage_root)
    return await respond(db, service.list_templates(search), DocumentTemplateResponse)


@router.post("/import", response_model=ApiResponse[DocumentTemplateResponse])
async def import_document_template(data: PathRequest, db: DbSession, storage_root: StorageRoot):
    service = ExportImportService(db, storage_root)
    return await respond(
        db, service.import_document_template(data.file_path), DocumentTemplateResponse
    )


@router.get("/{document_id}", response_model=ApiResponse[DocumentTemplateResponse])
async def get_document_template(document_id: int, db: DbSession, storage_root: StorageRoot):
    service = DocumentService(db, storage_root)
    return await respond(db, service.get_template(document_id), DocumentTemplateResponse)


@router.put("/{document_id}", response_model=ApiResponse[DocumentTemplateResponse])
async def update_document_template(
    document_id: int,
    data: DocumentTemplateUpdate,
    db: DbSession,
    storage_root: StorageRoot,
):
    service = DocumentService(db, storage_root)
    return await respond(db, service.update_template(document_id, data), DocumentTemplateResponse)


@router.delete("/{document_id}", response_model=ApiResponse[bool])
async def delete_document_template(document_id: int, db: DbSession, storage_root: StorageRoot):
    return await respond(
        db, DocumentService(db, storage_root).delete_template(document_id),
        success_from_bool=True, failure_message="文书模板不存在",
    )


@router.post("/{document_id}/export", response_model=ApiResponse[str])
async def export_document_template(
    document_id: int,
    data: DestinationRequest,
    db: DbSession,
    storage_root: StorageRoot,
):
    service = ExportImportService(db, storage_root)
    return await respond(db, service.export_document_template(document_id, data.destination_path))


@project_router.post("", response_model=ApiResponse[ProjectDocumentResponse])
async def create_project_document(
    data: ProjectDocumentCreate, db: DbSession, storage_root: StorageRoot
):
    service = DocumentService(db, storage_root)
    return await respond(db, service.create_project_document(data), ProjectDocumentResponse)


@project_router.get("/{project_document_id}", response_model=ApiResponse[ProjectDocumentResponse])
async def get_project_document(
    project_document_id: int, db: DbSession, storage_root: StorageRoot
):
    service = DocumentService(db, storage_root)
    return await respond(
        db, service.get_project_document(project_document_id), ProjectDocumentResponse
    )


@project_router.put("/{project_document_id}", response_model=ApiResponse[ProjectDocumentResponse])
async def update_project_document(
    project_document_id: int,
    data: ProjectDocumentUpdate,
    db: DbSession,
    storage_root: StorageRoot,
):
    service = DocumentService(db, storage_root)
    return await respond(
        db, service.update_project_document(project_document_id, data), ProjectDocumentResponse
    )


@project_router.delete("/{project_document_id}", response_model=ApiResponse[bool])
async def delete_project_document(
    project_document_id: int, db: DbSession, storage_root: StorageRoot
):
    return await respond(
        db, DocumentService(db, storage_root).delete_project_document(project_document_id),
        success_from_bool=True, failure_message="项目文书不存在",
    )


@project_router.post(
    "/{project_document_id}/export-pdf",
    response_model=ApiResponse[ProjectDocumentResponse],
)
async def export_project_document_pdf(
    project_document_id: int, db: DbSession, storage_root: StorageRoot
):
    """将项目文书导出为 PDF（支持 {signatureImage} 签名占位符）"""
    service = DocumentService(db, storage_root)
    return await respond(
        db, service.export_project_document_pdf(project_document_id), ProjectDocumentResponse
    )
