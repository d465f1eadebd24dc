"""Pydantic schema 模块"""
from .common import ApiResponse, PathRequest, DestinationRequest
from .template import (
    TemplateBase,
    TemplateCreate,
    TemplateUpdate,
    TemplateResponse,
    TemplateItemCreate,
    TemplateItemUpdate,
    TemplateItemResponse,
    TemplateWithItems,
    TemplateCloneRequest,
    AssociatedProject,
    ModificationCheckResult,
    SafeDeleteResult,
    TemplateBatchExportRequest,
)
from .attachment import (
    AttachmentResponse,
    UploadSource,
    UploadFromPathsRequest,
    AttachmentRenameRequest,
    StorageMigrateRequest,
)
from .project import (
    ProjectMetadata,
    ProjectCreate,
    ProjectUpdate,
    ProjectResponse,
    ProjectItemResponse,
    ProjectItemUpdate,
    ProjectItemWithDetails,
    ProjectWithDetails,
    ProjectImportRequest,
)
from .settings import AppSettings, AppSettingsUpdate, WatermarkSettings

__all__ = [
    "ApiResponse",
    "PathRequest",
    "DestinationRequest",
    "TemplateBase",
    "TemplateCreate",
    "TemplateUpdate",
    "TemplateResponse",
    "TemplateItemCreate",
    "TemplateItemUpdate",
    "TemplateItemResponse",
    "TemplateWithItems",
    "TemplateCloneRequest",
    "AssociatedProject",
    "ModificationCheckResult",
    "SafeDeleteResult",
    "TemplateBatchExportRequest",
    "AttachmentResponse",
    "UploadSource",
    "UploadFromPathsRequest",
    "AttachmentRenameRequest",
    "StorageMigrateRequest",
    "ProjectMetadata",
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectResponse",
    "ProjectItemResponse",
    "ProjectItemUpdate",
    "ProjectItemWithDetails",
    "ProjectWithDetails",
    "ProjectImportRequest",
    "AppSettings",
    "AppSettingsUpdate",
    "WatermarkSettings",
]
