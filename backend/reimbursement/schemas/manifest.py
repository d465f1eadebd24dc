"""导出包清单（manifest）结构

当前仅支持 1.0 版本；版本校验在导入服务中进行，以便给出明确的错误信息。
"""
from pydantic import BaseModel, Field

MANIFEST_VERSION = "1.0"


class ManifestTemplateItem(BaseModel):
    name: str
    description: str | None = None
    is_required: bool = False
    file_types: list[str] | None = None
    needs_watermark: bool = False
    watermark_template: str | None = None
    allows_multiple_files: bool = False
    display_order: int = 0
    category: str | None = None

    model_config = {"from_attributes": True}


class ManifestTemplate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    creator: str | None = None
    items: list[ManifestTemplateItem] = Field(default_factory=list)


class ManifestFile(BaseModel):
    original_name: str
    file_name: str
    has_watermark: bool = False
    watermarked_file_name: str | None = None
    expenditure: str | float | None = None


class ManifestItem(BaseModel):
    item_name: str
    files: list[ManifestFile] = Field(default_factory=list)


class ManifestProject(BaseModel):
    name: str = Field(..., min_length=1)
    creator: str | None = None
    metadata: dict | None = None


class ProjectExportManifest(BaseModel):
    """项目导出包清单"""
    version: str
    export_time: int = Field(..., description="导出时间（毫秒时间戳）")
    project: ManifestProject
    template: ManifestTemplate
    items: list[ManifestItem] = Field(default_factory=list)


class TemplateExportManifest(BaseModel):
    """模板导出清单"""
    version: str
    export_time: int
    template: ManifestTemplate


class BatchManifestEntry(BaseModel):
    name: str
    creator: str | None = None
    item_count: int


class BatchTemplateManifest(BaseModel):
    """批量导出的汇总清单"""
    version: str
    export_time: int
    template_count: int
    templates: list[BatchManifestEntry] = Field(default_factory=list)


class ManifestDocument(BaseModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    creator: str | None = None
    content_html: str = ""


class DocumentExportManifest(BaseModel):
    """文书模板导出清单"""
    version: str
    export_time: int
    document: ManifestDocument
