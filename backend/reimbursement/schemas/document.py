"""文书相关 Pydantic schema"""
from datetime import datetime

from pydantic import BaseModel, Field


class DocumentTemplateCreate(BaseModel):
    """创建文书模板请求"""
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    creator: str | None = Field(None, max_length=255)
    content_html: str = ""


class DocumentTemplateUpdate(BaseModel):
    """更新文书模板请求（所有字段可选）"""
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    creator: str | None = None
    content_html: str | None = None


class DocumentTemplateResponse(BaseModel):
    """文书模板响应"""
    id: int
    name: str
    description: str | None
    creator: str | None
    content_html: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectDocumentCreate(BaseModel):
    """创建项目文书请求"""
    project_id: int
    name: str = Field(..., min_length=1, max_length=255)
    content_html: str = ""


class ProjectDocumentUpdate(BaseModel):
    """更新项目文书请求"""
    name: str | None = Field(None, min_length=1, max_length=255)
    content_html: str | None = None


class ProjectDocumentResponse(BaseModel):
    """项目文书响应"""
    id: int
    project_id: int
    name: str
    content_html: str
    pdf_path: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
