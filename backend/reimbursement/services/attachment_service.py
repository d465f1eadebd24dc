"""附件服务：文件落盘、路径解析与存储根目录迁移

所有路径在数据库中均以相对存储根目录的 POSIX 形式保存，
形如 <project_id>/items/<project_item_id>/original/<file_name>。
"""
import logging
import os
import shutil
import time
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings as app_config
from ..models.attachment import Attachment
from ..models.project import ProjectItem, ProjectItemStatus
from ..models.template import TemplateItem
from ..schemas.attachment import UploadSource
from ..utils.naming import file_extension, timestamped_file_name
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "pdf", "ofd"}
WATERMARKABLE_EXTENSIONS = {"png", "jpg", "jpeg", "pdf"}


def to_relative(*parts: str | int) -> str:
    """拼接相对存储路径，统一使用正斜杠"""
    return "/".join(str(part).strip("/") for part in parts)


def normalize_relative(path: str) -> str:
    return path.replace("\\", "/").lstrip("/")


def resolve_under_root(root: str, relative_path: str) -> str:
    """将相对路径解析为存储根目录下的绝对路径，拒绝越界路径"""
    root_abs = os.path.abspath(root)
    target = os.path.abspath(os.path.join(root_abs, *normalize_relative(relative_path).split("/")))
    if os.path.commonpath([root_abs, target]) != root_abs:
        raise ValidationError(f"非法的文件路径: {relative_path}")
    return target


class AttachmentService:
    """附件管理服务"""

    def __init__(self, db: AsyncSession, storage_root: str):
        self.db = db
        self.storage_root = os.path.abspath(storage_root)

    # ---------- 上传 ----------

    async def upload_attachment(
        self,
        project_item_id: int,
        source_path: str,
        original_name: str | None = None,
        metadata: dict | None = None,
        auto_watermark: bool = True,
    ) -> Attachment:
        """
        复制本地文件到项目材料目录并登记附件

        Args:
            project_item_id: 项目材料 ID
            source_path: 源文件绝对路径
            original_name: 原始文件名，默认取源文件名
            metadata: 附加元数据（如报销金额）
            auto_watermark: 是否按设置自动添加水印

        Returns:
            新登记的附件
        """
        if not os.path.isfile(source_path):
            raise NotFoundError(f"文件不存在: {source_path}")
        name = original_name or os.path.basename(source_path)

        def write(destination: str) -> None:
            shutil.copyfile(source_path, destination)

        return await self._store(
            project_item_id, name, os.path.getsize(source_path), write, metadata, auto_watermark
        )

    async def upload_bytes(
        self,
        project_item_id: int,
        content: bytes,
        original_name: str,
        metadata: dict | None = None,
    ) -> Attachment:
        """保存上传的文件内容（multipart 上传）"""

        def write(destination: str) -> None:
            with open(destination, "wb") as f:
                f.write(content)

        return await self._store(project_item_id, original_name, len(content), write, metadata)

    async def upload_from_paths(
        self,
        project_item_id: int,
        sources: list[UploadSource],
    ) -> list[Attachment]:
        """批量上传，任一文件校验失败则整体失败"""
        attachments = []
        for source in sources:
            attachments.append(
                await self.upload_attachment(project_item_id, source.path, source.original_name)
            )
        return attachments

    async def _store(
        self,
        project_item_id: int,
        original_name: str,
        size: int,
        write: Callable[[str], None],
        metadata: dict | None,
        auto_watermark: bool = True,
    ) -> Attachment:
        project_item = await self.db.get(ProjectItem, project_item_id)
        if project_item is None:
            raise NotFoundError(f"项目材料 {project_item_id} 不存在")
        template_item = await self.db.get(TemplateItem, project_item.template_item_id)

        ext = file_extension(original_name)
        self._validate_upload(ext, size, template_item)

        item_dir = to_relative(project_item.project_id, "items", project_item_id, "original")
        abs_dir = resolve_under_root(self.storage_root, item_dir)
        os.makedirs(abs_dir, exist_ok=True)

        timestamp = int(time.time() * 1000)
        file_name = timestamped_file_name(original_name, timestamp)
        # 同一毫秒内的重名上传顺延时间戳
        while os.path.exists(os.path.join(abs_dir, file_name)):
            timestamp += 1
            file_name = timestamped_file_name(original_name, timestamp)

        destination = os.path.join(abs_dir, file_name)
        write(destination)

        attachment = Attachment(
            project_item_id=project_item_id,
            file_name=file_name,
            original_name=original_name,
            file_path=to_relative(item_dir, file_name),
            file_type=ext,
            file_size=os.path.getsize(destination),
            has_watermark=False,
            extra_metadata=metadata,
        )
        self.db.add(attachment)

        if project_item.status == ProjectItemStatus.PENDING:
            project_item.status = ProjectItemStatus.UPLOADED
        project_item.upload_time = datetime.now(timezone.utc)

        await self.db.flush()
        await self.db.refresh(attachment)
        logger.info(f"上传附件 {original_name} -> {attachment.file_path}")

        if auto_watermark and template_item is not None and template_item.needs_watermark:
            await self._auto_watermark(attachment)
        return attachment

    def _validate_upload(self, ext: str, size: int, template_item: TemplateItem | None) -> None:
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                f"不支持的文件类型: {ext or '无扩展名'}，仅支持 {', '.join(sorted(ALLOWED_EXTENSIONS))}"
            )
        if template_item is not None and template_item.file_types:
            if ext not in template_item.file_types:
                raise ValidationError(
                    f"材料「{template_item.name}」仅接受 {', '.join(template_item.file_types)} 格式"
                )
        if size > app_config.max_file_size:
            raise ValidationError(
                f"文件过大，最大允许 {app_config.max_file_size // (1024 * 1024)}MB"
            )

    async def _auto_watermark(self, attachment: Attachment) -> None:
        """上传后自动加水印，失败仅记录日志"""
        if attachment.file_type not in WATERMARKABLE_EXTENSIONS:
            return
        # 延迟导入，水印服务依赖本服务
        from .settings_service import SettingsService
        from .watermark_service import WatermarkService

        app_settings = await SettingsService(self.db).get_app_settings()
        if not app_settings.auto_watermark_images:
            return
        try:
            await WatermarkService(self.db, self.storage_root).apply_watermark(attachment.id)
            await self.db.refresh(attachment)
        except Exception as e:
            logger.warning(f"自动水印失败 {attachment.original_name}: {e}")

    # ---------- 查询与修改 ----------

    async def get_attachment(self, attachment_id: int) -> Attachment:
        attachment = await self.db.get(Attachment, attachment_id)
        if attachment is None:
            raise NotFoundError(f"附件 {attachment_id} 不存在")
        return attachment

    async def list_attachments(self, project_item_id: int) -> list[Attachment]:
        """按上传时间升序列出项目材料下的附件"""
        result = await self.db.execute(
            select(Attachment)
            .where(Attachment.project_item_id == project_item_id)
            .order_by(Attachment.upload_time.asc(), Attachment.id.asc())
        )
        return list(result.scalars().all())

    async def rename_attachment(self, attachment_id: int, new_name: str) -> Attachment:
        """修改显示用的原始文件名，磁盘文件不变"""
        attachment = await self.get_attachment(attachment_id)
        name = new_name.strip()
        if not name:
            raise ValidationError("文件名不能为空")
        attachment.original_name = name
        await self.db.flush()
        await self.db.refresh(attachment)
        return attachment

    async def delete_attachment(self, attachment_id: int) -> bool:
        """删除附件文件与记录，最后一个附件删除后材料状态回到 pending"""
        attachment = await self.db.get(Attachment, attachment_id)
        if attachment is None:
            return False

        self.remove_file(attachment.file_path)
        if attachment.watermarked_path:
            self.remove_file(attachment.watermarked_path)

        project_item_id = attachment.project_item_id
        await self.db.delete(attachment)
        await self.db.flush()

        remaining = await self.db.execute(
            select(func.count()).select_from(Attachment).where(
                Attachment.project_item_id == project_item_id
            )
        )
        if not remaining.scalar():
            project_item = await self.db.get(ProjectItem, project_item_id)
            if project_item is not None:
                project_item.status = ProjectItemStatus.PENDING
                project_item.upload_time = None
                await self.db.flush()
        logger.info(f"删除附件: id={attachment_id}")
        return True

    async def set_watermarked_path(self, attachment: Attachment, relative_path: str) -> Attachment:
        """登记水印文件并将所属材料标记为 watermarked"""
        attachment.has_watermark = True
        attachment.watermarked_path = normalize_relative(relative_path)
        project_item = await self.db.get(ProjectItem, attachment.project_item_id)
        if project_item is not None:
            project_item.status = ProjectItemStatus.WATERMARKED
        await self.db.flush()
        await self.db.refresh(attachment)
        return attachment

    # ---------- 路径 ----------

    async def get_relative_path(self, attachment_id: int, use_watermarked: bool = False) -> str:
        attachment = await self.get_attachment(attachment_id)
        if use_watermarked and attachment.watermarked_path:
            return attachment.watermarked_path
        return attachment.file_path

    async def get_file_path(self, attachment_id: int, use_watermarked: bool = False) -> str:
        """附件的绝对路径"""
        return self.resolve_path(await self.get_relative_path(attachment_id, use_watermarked))

    def resolve_path(self, relative_path: str) -> str:
        return resolve_under_root(self.storage_root, relative_path)

    def remove_file(self, relative_path: str) -> None:
        """删除存储根目录下的文件，失败时记录警告"""
        try:
            path = self.resolve_path(relative_path)
        except ValidationError as e:
            logger.warning(str(e))
            return
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError as e:
            logger.warning(f"删除文件失败 {path}: {e}")

    # ---------- 存储迁移 ----------

    async def migrate_storage(self, new_root: str) -> str:
        """
        将整个存储目录移动到新位置，并更新 defaultStoragePath 设置

        数据库中的相对路径无需改写。目标目录中已存在同名条目时，
        在移动任何文件之前拒绝迁移。

        Returns:
            新存储根目录的绝对路径
        """
        from .settings_service import SettingsService

        old_root = self.storage_root
        target = os.path.abspath(new_root)
        if target == old_root:
            return target
        if os.path.commonpath([old_root, target]) == old_root:
            raise ValidationError("新的存储目录不能位于当前存储目录之内")

        os.makedirs(target, exist_ok=True)
        entries = sorted(os.listdir(old_root)) if os.path.isdir(old_root) else []
        conflicts = [name for name in entries if os.path.exists(os.path.join(target, name))]
        if conflicts:
            raise ValidationError(f"目标目录中已存在同名文件: {', '.join(conflicts)}")

        for name in entries:
            shutil.move(os.path.join(old_root, name), os.path.join(target, name))

        await SettingsService(self.db).set_setting("defaultStoragePath", target)
        self.storage_root = target
        logger.info(f"存储目录已迁移: {old_root} -> {target}")
        return target
