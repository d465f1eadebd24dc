"""设置 API 路由"""
from fastapi import APIRouter, File, UploadFile

from ..schemas.common import ApiResponse
from ..schemas.settings import (
    AppSettings,
    AppSettingsUpdate,
    SettingValue,
    SignatureUploadRequest,
)
from ..services.settings_service import SettingsService
from .deps import DbSession, StorageRoot, respond

router = APIRouter(prefix="/api/settings", tags=["设置"])


@router.get("", response_model=ApiResponse[AppSettings])
async def get_app_settings(db: DbSession):
    """获取类型化的应用设置"""
    return await respond(db, SettingsService(db).get_app_settings())


@router.put("", response_model=ApiResponse[AppSettings])
async def update_app_settings(data: AppSettingsUpdate, db: DbSession):
    """部分更新应用设置"""
    return await respond(db, SettingsService(db).update_app_settings(data))


@router.get("/raw", response_model=ApiResponse[dict[str, str]])
async def get_all_settings(db: DbSession):
    return await respond(db, SettingsService(db).get_all_settings())


@router.get("/storage-root", response_model=ApiResponse[str])
async def get_storage_root(storage_root: StorageRoot):
    return ApiResponse(success=True, data=storage_root)


@router.get("/keys/{key}", response_model=ApiResponse[str | None])
async def get_setting(key: str, db: DbSession):
    return await respond(db, SettingsService(db).get_setting(key))


@router.put("/keys/{key}", response_model=ApiResponse[bool])
async def set_setting(key: str, data: SettingValue, db: DbSession):
    async def _set() -> bool:
        await SettingsService(db).set_setting(key, data.value)
        return True

    return await respond(db, _set(), success_from_bool=True)


@router.delete("/keys/{key}", response_model=ApiResponse[bool])
async def delete_setting(key: str, db: DbSession):
    return await respond(
        db, SettingsService(db).delete_setting(key),
        success_from_bool=True, failure_message="设置项不存在",
    )


@router.post("/signature", response_model=ApiResponse[str])
async def upload_signature_from_path(data: SignatureUploadRequest, db: DbSession):
    """从本地路径设置签名图片，返回相对路径"""
    return await respond(
        db, SettingsService(db).upload_signature_from_path(data.path, data.original_name)
    )


@router.post("/signature/upload", response_model=ApiResponse[str])
async def upload_signature_file(db: DbSession, file: UploadFile = File(...)):
    """上传签名图片文件"""
    content = await file.read()
    return await respond(
        db, SettingsService(db).upload_signature_bytes(content, file.filename or "signature.png")
    )
