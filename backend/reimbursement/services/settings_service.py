"""设置服务：键值存储与类型化访问"""
import json
import logging
import os
import time

from pydantic import ValidationError as SchemaValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings as app_config
from ..models.setting import Setting
from ..schemas.settings import AppSettings, AppSettingsUpdate, WatermarkSettings
from ..utils.naming import file_extension, safe_file_stem
from .attachment_service import resolve_under_root
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

SIGNATURE_DIR = "user/signature"
SIGNATURE_EXTENSIONS = {"png", "jpg", "jpeg"}

DEFAULT_WATERMARK = WatermarkSettings()

DEFAULT_SETTINGS: dict[str, str] = {
    "theme": "system",
    "language": "zh-CN",
    "hoverPreviewWidth": "400",
    "hoverPreviewHeight": "400",
    "watermark": DEFAULT_WATERMARK.model_dump_json(by_alias=True),
}

_BOOL_KEYS = {"autoWatermarkImages"}
_INT_KEYS = {"hoverPreviewWidth", "hoverPreviewHeight"}
_FLOAT_KEYS = {"signatureImageHeightCm"}
_JSON_KEYS = {"watermark"}
_SETTING_KEYS = {to_camel(name) for name in AppSettings.model_fields}


def _serialize(key: str, value) -> str:
    if key in _BOOL_KEYS:
        return "true" if value else "false"
    if key in _JSON_KEYS:
        if isinstance(value, WatermarkSettings):
            return value.model_dump_json(by_alias=True)
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _deserialize(key: str, raw: str):
    if key in _BOOL_KEYS:
        return raw == "true"
    if key in _INT_KEYS:
        try:
            return int(raw)
        except ValueError:
            return None
    if key in _FLOAT_KEYS:
        try:
            return float(raw)
        except ValueError:
            return None
    if key in _JSON_KEYS:
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"设置项 {key} 不是合法 JSON，已忽略")
            return None
    return raw


class SettingsService:
    """应用设置服务"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_setting(self, key: str) -> str | None:
        """读取单个设置项，不存在返回 None"""
        row = await self.db.get(Setting, key)
        return row.setting_value if row else None

    async def set_setting(self, key: str, value: str) -> Setting:
        """写入设置项（存在则覆盖）"""
        row = await self.db.get(Setting, key)
        if row is None:
            row = Setting(setting_key=key, setting_value=value)
            self.db.add(row)
        else:
            row.setting_value = value
        await self.db.flush()
        await self.db.refresh(row)
        return row

    async def delete_setting(self, key: str) -> bool:
        result = await self.db.execute(delete(Setting).where(Setting.setting_key == key))
        return result.rowcount > 0

    async def get_all_settings(self) -> dict[str, str]:
        result = await self.db.execute(select(Setting).order_by(Setting.setting_key))
        return {row.setting_key: row.setting_value for row in result.scalars().all()}

    async def initialize_defaults(self) -> None:
        """写入默认设置，已存在的键保持不变"""
        existing = await self.get_all_settings()
        for key, value in DEFAULT_SETTINGS.items():
            if key not in existing:
                self.db.add(Setting(setting_key=key, setting_value=value))
                logger.info(f"初始化默认设置: {key}")
        await self.db.flush()

    async def get_app_settings(self) -> AppSettings:
        """读取全部设置并转换为类型化结构"""
        raw = await self.get_all_settings()
        data = {}
        for key, value in raw.items():
            if key not in _SETTING_KEYS:
                continue
            parsed = _deserialize(key, value)
            if parsed is not None:
                data[key] = parsed
        # 非法值逐项丢弃并回退为默认值
        while True:
            try:
                return AppSettings.model_validate(data)
            except SchemaValidationError as e:
                invalid = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
                invalid |= {to_camel(name) for name in invalid}
                dropped = [key for key in data if key in invalid]
                if not dropped:
                    raise
                logger.warning(f"设置项解析失败，回退为默认值: {', '.join(dropped)}")
                data = {k: v for k, v in data.items() if k not in invalid}

    async def update_app_settings(self, update: AppSettingsUpdate) -> AppSettings:
        """部分更新设置，仅写入显式提供的字段"""
        values = update.model_dump(by_alias=True, exclude_unset=True)
        if values.get("signatureImagePath") is not None:
            raise ValidationError("签名图片只能通过上传设置")
        for key, value in values.items():
            if value is None:
                await self.delete_setting(key)
                continue
            if key == "watermark":
                value = WatermarkSettings.model_validate(value)
            await self.set_setting(key, _serialize(key, value))
        return await self.get_app_settings()

    async def get_storage_root(self) -> str:
        """当前生效的存储根目录：设置项优先，其次进程配置"""
        configured = await self.get_setting("defaultStoragePath")
        return os.path.abspath(configured or app_config.storage_root)

    async def get_watermark_defaults(self) -> WatermarkSettings:
        app_settings = await self.get_app_settings()
        return app_settings.watermark or DEFAULT_WATERMARK

    async def upload_signature_from_path(
        self,
        source_path: str,
        original_name: str | None = None,
    ) -> str:
        """复制本地签名图片到存储目录，返回相对路径"""
        if not os.path.isfile(source_path):
            raise NotFoundError(f"文件不存在: {source_path}")
        with open(source_path, "rb") as f:
            content = f.read()
        return await self.upload_signature_bytes(
            content, original_name or os.path.basename(source_path)
        )

    async def upload_signature_bytes(self, content: bytes, file_name: str) -> str:
        """保存签名图片并记录 signatureImagePath"""
        ext = file_extension(file_name)
        if ext not in SIGNATURE_EXTENSIONS:
            raise ValidationError(f"签名图片仅支持 {', '.join(sorted(SIGNATURE_EXTENSIONS))} 格式")

        root = await self.get_storage_root()
        target_dir = os.path.join(root, *SIGNATURE_DIR.split("/"))
        os.makedirs(target_dir, exist_ok=True)

        stem = safe_file_stem(os.path.splitext(file_name)[0], default="signature")
        stored_name = f"{stem}_{int(time.time() * 1000)}.{ext}"
        with open(os.path.join(target_dir, stored_name), "wb") as f:
            f.write(content)

        # 替换后删除旧签名
        previous = await self.get_setting("signatureImagePath")
        relative_path = f"{SIGNATURE_DIR}/{stored_name}"
        await self.set_setting("signatureImagePath", relative_path)
        if previous and previous != relative_path:
            previous_path = self._signature_file(root, previous)
            if previous_path:
                self._remove_quietly(previous_path)

        logger.info(f"签名图片已保存: {relative_path}")
        return relative_path

    async def get_signature_image_path(self) -> str | None:
        """签名图片绝对路径，未设置或文件丢失时返回 None"""
        relative = await self.get_setting("signatureImagePath")
        if not relative:
            return None
        root = await self.get_storage_root()
        return self._signature_file(root, relative)

    @staticmethod
    def _signature_file(root: str, relative_path: str) -> str | None:
        """签名目录下的已有文件，越界或不存在时返回 None"""
        signature_dir = os.path.join(os.path.abspath(root), *SIGNATURE_DIR.split("/"))
        try:
            path = resolve_under_root(root, relative_path)
        except ValidationError:
            path = None
        if path is None or os.path.commonpath([signature_dir, path]) != signature_dir:
            logger.warning(f"忽略签名目录之外的路径: {relative_path}")
            return None
        return path if os.path.isfile(path) else None

    @staticmethod
    def _remove_quietly(path: str) -> None:
        try:
            if os.path.isfile(path):
                os.remove(path)
        except OSError as e:
            logger.warning(f"清理文件失败 {path}: {e}")
