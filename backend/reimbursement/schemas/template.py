"""模板相关 Pydantic schema"""
from datetime import datetime

from pydantic import BaseModel, Field, field_validator


def normalize_file_types(value: list[str] | None) -> list[str] | None:
    """扩展名统一为小写、去掉前导点，按首次出现顺序去重"""
    if value is None:
        return None
    result: list[str] = []
    for ext in value:
        cleaned = ext.strip().lstrip(".").lower()
        if cleaned and cleaned not in result:
            result.append(cleaned)
    return result


class TemplateBase(BaseModel):
    """模板基础字段"""
    name: str = Field(..., min_length=1, max_length=255, description="模板名称")
    description: str | None = Field(None, description="模板描述")


class TemplateCreate(TemplateBase):
    """创建模板请求"""
    creator: str | None = Field(None, max_length=255, description="创建者")
    is_default: bool = Field(default=False, description="是否为默认模板")


class TemplateUpdate(BaseModel):
    """更新模板请求（所有字段可选）"""
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    creator: str | None = None
    is_default: bool | None = None


class TemplateResponse(TemplateBase):
    """模板响应"""
    id: int
    creator: str | None
    is_default: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TemplateItemBase(BaseModel):
    """模板项基础字段"""
    name: str = Field(..., min_length=1, max_length=255, description="材料名称")
    description: str | None = None
    is_required: bool = False
    file_types: list[str] | None = Field(None, description="允许的扩展名，如 ['pdf', 'jpg']")
    needs_watermark: bool = False
    watermark_template: str | None = Field(None, description="水印文本模板")
    allows_multiple_files: bool = False
    display_order: int = 0
    category: str | None = Field(None, max_length=100)

    _normalize_file_types = field_validator("file_types")(normalize_file_types)


class TemplateItemCreate(TemplateItemBase):
    """创建模板项请求"""
    pass


class TemplateItemUpdate(BaseModel):
    """更新模板项请求（所有字段可选）"""
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    is_required: bool | None = None
    file_types: list[str] | None = None
    needs_watermark: bool | None = None
    watermark_template: str | None = None
    allows_multiple_files: bool | None = None
    display_order: int | None = None
    category: str | None = Field(None, max_length=100)

    _normalize_file_types = field_validator("file_types")(normalize_file_types)


class TemplateItemResponse(TemplateItemBase):
    """模板项响应"""
    id: int
    template_id: int

    model_config = {"from_attributes": True}


class TemplateWithItems(TemplateResponse):
    """模板详情（含模板项）"""
    items: list[TemplateItemResponse] = Field(default_factory=list)


class TemplateCloneRequest(BaseModel):
    """复制模板请求"""
    new_name: str = Field(..., min_length=1, max_length=255)


class AssociatedProject(BaseModel):
    """引用模板的项目摘要"""
    id: int
    name: str
    creator: str | None = None

    model_config = {"from_attributes": True}


class ModificationCheckResult(BaseModel):
    """模板可修改性检查结果"""
    can_modify: bool
    reason: str | None = None
    projects: list[AssociatedProject] = Field(default_factory=list)


class SafeDeleteResult(BaseModel):
    """安全删除结果"""
    success: bool
    error: str | None = None
    projects: list[AssociatedProject] = Field(default_factory=list)


class TemplateBatchExportRequest(BaseModel):
    """批量导出模板请求"""
    template_ids: list[int] = Field(..., min_length=1)
    destination_path: str | None = None
