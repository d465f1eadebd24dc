"""水印相关 Pydantic schema"""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WatermarkPosition(str, Enum):
    """预设锚点位置"""
    CENTER = "center"
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM_RIGHT = "bottom_right"


class WatermarkConfig(BaseModel):
    """单次水印样式覆盖，未设置的字段取设置中的默认值"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    position: WatermarkPosition | None = None
    x_percent: float | None = Field(None, ge=0, le=100, description="文本中心 X（百分比）")
    y_percent: float | None = Field(None, ge=0, le=100, description="文本中心 Y（百分比）")
    font_size: int | None = Field(None, ge=1, le=1000)
    opacity: float | None = Field(None, ge=0, le=1)
    rotation: float | None = None
    color: str | None = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    font_family: str | None = None
    bold: bool | None = None
    italic: bool | None = None
    underline: bool | None = None


class WatermarkApplyRequest(BaseModel):
    """应用水印请求"""
    watermark_text: str | None = Field(None, description="显式水印文本，留空则自动生成")
    config: WatermarkConfig | None = None


class PlaceholderInfo(BaseModel):
    """占位符说明"""
    token: str
    label: str
    description: str
