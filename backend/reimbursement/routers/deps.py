"""路由公共依赖与响应封装"""
import logging
from typing import Annotated, Any, Awaitable

from fastapi import Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.database import get_db
from ..schemas.common import ApiResponse
from ..services.errors import ServiceError
from ..services.settings_service import SettingsService

logger = logging.getLogger(__name__)

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_storage_root(db: DbSession) -> str:
    """当前请求使用的存储根目录（每个请求解析一次）"""
    return await SettingsService(db).get_storage_root()


StorageRoot = Annotated[str, Depends(get_storage_root)]


def _convert(data: Any, schema: type[BaseModel] | None) -> Any:
    if schema is None or data is None:
        return data
    if isinstance(data, list):
        return [schema.model_validate(item) for item in data]
    return schema.model_validate(data)


async def respond(
    db: AsyncSession,
    operation: Awaitable[Any],
    schema: type[BaseModel] | None = None,
    success_from_bool: bool = False,
    failure_message: str = "操作失败",
) -> ApiResponse:
    """
    执行服务调用并转换为统一响应

    服务层异常回滚本次请求的数据库改动后转为 success=False；
    success_from_bool 为 True 时，返回值直接决定 success。
    """
    try:
        data = await operation
    except ServiceError as e:
        await db.rollback()
        logger.info(f"请求失败: {e}")
        return ApiResponse(success=False, error=str(e))
    except Exception as e:
        await db.rollback()
        logger.exception(f"请求处理异常: {e}")
        return ApiResponse(success=False, error=str(e) or e.__class__.__name__)

    if success_from_bool:
        ok = bool(data)
        return ApiResponse(success=ok, data=ok, error=None if ok else failure_message)
    return ApiResponse(success=True, data=_convert(data, schema))
