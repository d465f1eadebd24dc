"""设置相关 Pydantic schema

持久化的键名沿用前端使用的驼峰命名（如 defaultStoragePath），
Python 侧字段使用下划线命名，二者通过别名互通。
"""
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_camel_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WatermarkSettings(BaseModel):
    """水印默认样式"""
    model_config = _camel_config

    text_mode: Literal["template", "custom"] = "template"
    custom_text: str | None = None
    font_family: str | None = "Arial"
    font_size: int | None = Field(48, ge=1, le=1000)
    bold: bool | None = False
    italic: bool | None = False
    underline: bool | None = False
    color: str | None = Field("#000000", pattern=r"^#[0-9a-fA-F]{6}$")
    opacity: float | None = Field(0.3, ge=0, le=1)
    rotation: float | None = -45
    x_percent: float | None = Field(50, ge=0, le=100)
    y_percent: float | None = Field(50, ge=0, le=100)


class AppSettings(BaseModel):
    """类型化的应用设置"""
    model_config = _camel_config

    default_user_name: str | None = None
    student_id: str | None = None
    signature_image_path: str | None = None
    theme: Literal["light", "dark", "system"] = "system"
    default_storage_path: str | None = None
    language: str = "zh-CN"
    hover_preview_width: int = 400
    hover_preview_height: int = 400
    auto_watermark_images: bool = False
    watermark: WatermarkSettings | None = None
    signature_image_height_cm: float = 1.7


class AppSettingsUpdate(BaseModel):
    """部分更新应用设置"""
    model_config = _camel_config

    default_user_name: str | None = None
    student_id: str | None = None
    signature_image_path: str | None = None
    theme: Literal["light", "dark", "system"] | None = None
    default_storage_path: str | None = None
    language: str | None = None
    hover_preview_width: int | None = Field(None, ge=1)
    hover_preview_height: int | None = Field(None, ge=1)
    auto_watermark_images: bool | None = None
    watermark: WatermarkSettings | None = None
    signature_image_height_cm: float | None = Field(None, gt=0)


class SettingValue(BaseModel):
    """单个设置项的值"""
    value: str


class SignatureUploadRequest(BaseModel):
    """从本地路径上传签名图片"""
    path: str = Field(..., min_length=1)
    original_name: str | None = None
