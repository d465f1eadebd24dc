"""附件相关 Pydantic schema"""
from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field


class AttachmentResponse(BaseModel):
    """附件响应"""
    id: int
    project_item_id: int
    file_name: str
    original_name: str
    file_path: str
    file_type: str
    file_size: int
    has_watermark: bool
    watermarked_path: str | None = None
    upload_time: datetime
    metadata: dict | None = Field(
        None, validation_alias=AliasChoices("extra_metadata", "metadata")
    )

    model_config = {"from_attributes": True}


class UploadSource(BaseModel):
    """待上传的本地文件"""
    path: str = Field(..., min_length=1)
    original_name: str | None = None


class UploadFromPathsRequest(BaseModel):
    """按本地路径批量上传"""
    files: list[UploadSource] = Field(..., min_length=1)


class AttachmentRenameRequest(BaseModel):
    """重命名附件（修改原始文件名）"""
    new_name: str = Field(..., min_length=1, max_length=255)


class StorageMigrateRequest(BaseModel):
    """迁移存储根目录"""
    new_root: str = Field(..., min_length=1)
