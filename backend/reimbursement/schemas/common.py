"""通用响应结构"""
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """统一响应包裹：调用方根据 success 分支处理"""
    success: bool = Field(..., description="操作是否成功")
    data: T | None = Field(None, description="成功时的返回数据")
    error: str | None = Field(None, description="失败时的错误信息")


class PathRequest(BaseModel):
    """以文件路径为参数的请求（导入等）"""
    file_path: str = Field(..., min_length=1, description="文件绝对路径")


class DestinationRequest(BaseModel):
    """导出请求，未指定目标路径时使用默认位置"""
    destination_path: str | None = Field(None, description="导出目标路径")
