"""项目相关 Pydantic schema"""
from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from ..models.project import ProjectStatus, ProjectItemStatus
from .attachment import AttachmentResponse
from .template import TemplateResponse, TemplateItemResponse


class ProjectMetadata(BaseModel):
    """项目元数据，允许附加自定义字段"""
    location: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    description: str | None = None
    department: str | None = None
    budget_code: str | None = None
    notes: str | None = None

    model_config = {"extra": "allow"}


class ProjectBase(BaseModel):
    """项目基础字段"""
    name: str = Field(..., min_length=1, max_length=255, description="项目名称")
    creator: str | None = Field(None, max_length=255, description="创建者")


class ProjectCreate(ProjectBase):
    """基于模板创建项目请求"""
    template_id: int = Field(..., description="来源模板 ID")
    metadata: ProjectMetadata | None = None


class ProjectUpdate(BaseModel):
    """更新项目请求（所有字段可选）"""
    name: str | None = Field(None, min_length=1, max_length=255)
    creator: str | None = None
    status: ProjectStatus | None = None
    metadata: ProjectMetadata | None = None


class ProjectResponse(ProjectBase):
    """项目响应"""
    id: int
    template_id: int
    status: ProjectStatus
    metadata: dict | None = Field(
        None, validation_alias=AliasChoices("project_metadata", "metadata")
    )
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectItemResponse(BaseModel):
    """项目材料响应"""
    id: int
    project_id: int
    template_item_id: int
    status: ProjectItemStatus
    notes: str | None = None
    upload_time: datetime | None = None

    model_config = {"from_attributes": True}


class ProjectItemUpdate(BaseModel):
    """更新项目材料请求"""
    status: ProjectItemStatus | None = None
    notes: str | None = None


class ProjectItemWithDetails(ProjectItemResponse):
    """项目材料详情（含模板项与附件）"""
    template_item: TemplateItemResponse
    attachments: list[AttachmentResponse] = Field(default_factory=list)


class ProjectWithDetails(ProjectResponse):
    """项目详情"""
    template: TemplateResponse
    items: list[ProjectItemWithDetails] = Field(default_factory=list)


class ProjectImportRequest(BaseModel):
    """导入项目请求"""
    zip_path: str = Field(..., min_length=1)
