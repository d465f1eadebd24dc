"""水印服务：解析水印文本、合并样式并生成水印副本"""
import asyncio
import logging
import os
from functools import partial

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.attachment import Attachment
from ..models.project import Project, ProjectItem, ProjectItemStatus
from ..models.template import TemplateItem
from ..schemas.settings import WatermarkSettings
from ..schemas.watermark import WatermarkConfig
from ..utils.naming import watermarked_file_name
from ..utils.watermark_placeholders import format_locale_date, resolve_watermark_template
from .attachment_service import AttachmentService, to_relative
from .errors import NotFoundError, ValidationError
from .settings_service import SettingsService
from .watermark_renderer import (
    POSITION_ANCHORS,
    SUPPORTED_EXTENSIONS,
    WatermarkStyle,
    render_watermark,
)

logger = logging.getLogger(__name__)

FALLBACK_TEXT = "Reimbursement"
FALLBACK_USER = "User"


def build_style(defaults: WatermarkSettings, config: WatermarkConfig | None = None) -> WatermarkStyle:
    """
    合并设置中的默认样式与本次调用的覆盖项

    锚点优先级：显式 x/y 百分比 > 预设位置 > 设置中的 x/y > 居中
    """
    override = config.model_dump(exclude_none=True) if config else {}

    def pick(field: str, fallback):
        if field in override:
            return override[field]
        value = getattr(defaults, field, None)
        return fallback if value is None else value

    if config is not None and config.position is not None:
        preset_x, preset_y = POSITION_ANCHORS[config.position.value]
    else:
        preset_x = pick("x_percent", 50)
        preset_y = pick("y_percent", 50)

    return WatermarkStyle(
        font_family=pick("font_family", "Arial"),
        font_size=pick("font_size", 48),
        bold=pick("bold", False),
        italic=pick("italic", False),
        underline=pick("underline", False),
        color=pick("color", "#000000"),
        opacity=pick("opacity", 0.3),
        rotation=pick("rotation", -45),
        x_percent=override.get("x_percent", preset_x),
        y_percent=override.get("y_percent", preset_y),
    )


class WatermarkService:
    """水印管理服务"""

    def __init__(self, db: AsyncSession, storage_root: str):
        self.db = db
        self.attachments = AttachmentService(db, storage_root)
        self.settings = SettingsService(db)

    async def generate_watermark_text(self, project_item_id: int) -> str:
        """根据模板项的水印模板生成文本，未配置模板时使用 "<创建者> - <项目名>" """
        project_item = await self.db.get(ProjectItem, project_item_id)
        if project_item is None:
            return FALLBACK_TEXT
        project = await self.db.get(Project, project_item.project_id)
        if project is None:
            return FALLBACK_TEXT

        user_name = project.creator or FALLBACK_USER
        template_item = await self.db.get(TemplateItem, project_item.template_item_id)
        if template_item is None or not template_item.watermark_template:
            return f"{user_name} - {project.name}"

        return resolve_watermark_template(
            template_item.watermark_template,
            {
                "userName": user_name,
                "itemName": template_item.name,
                "projectName": project.name,
                "date": format_locale_date(),
            },
        )

    async def resolve_watermark_text(
        self,
        attachment_id: int,
        explicit_text: str | None = None,
        defaults: WatermarkSettings | None = None,
    ) -> str:
        """本次应用水印将使用的文本"""
        if explicit_text and explicit_text.strip():
            return explicit_text
        attachment = await self.attachments.get_attachment(attachment_id)
        defaults = defaults or await self.settings.get_watermark_defaults()
        if defaults.text_mode == "custom" and defaults.custom_text and defaults.custom_text.strip():
            return defaults.custom_text.strip()
        return await self.generate_watermark_text(attachment.project_item_id)

    async def apply_watermark(
        self,
        attachment_id: int,
        watermark_text: str | None = None,
        config: WatermarkConfig | None = None,
    ) -> Attachment:
        """
        为附件生成水印副本

        Args:
            attachment_id: 附件 ID
            watermark_text: 显式水印文本，为空时自动解析
            config: 样式覆盖项

        Returns:
            已登记水印路径的附件
        """
        attachment = await self.attachments.get_attachment(attachment_id)
        file_type = attachment.file_type.lower()
        if file_type not in SUPPORTED_EXTENSIONS:
            raise ValidationError(f"不支持为该类型文件添加水印: {file_type}")

        source = self.attachments.resolve_path(attachment.file_path)
        if not os.path.isfile(source):
            raise NotFoundError("原始文件不存在")

        defaults = await self.settings.get_watermark_defaults()
        text = await self.resolve_watermark_text(attachment_id, watermark_text, defaults)
        style = build_style(defaults, config)

        item_dir = os.path.dirname(os.path.dirname(attachment.file_path.replace("\\", "/")))
        relative = to_relative(item_dir, "watermarked", watermarked_file_name(attachment.file_name))
        target = self.attachments.resolve_path(relative)

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, partial(render_watermark, source, target, text, style))

        # 旧水印文件名不同（如 jpeg 统一为 jpg）时清理旧文件
        if attachment.watermarked_path and attachment.watermarked_path != relative:
            self.attachments.remove_file(attachment.watermarked_path)

        attachment = await self.attachments.set_watermarked_path(attachment, relative)
        logger.info(f"已添加水印: {attachment.original_name} -> {relative}")
        return attachment

    async def clear_watermark(self, attachment_id: int) -> Attachment:
        """删除水印副本并将材料状态恢复为 uploaded"""
        attachment = await self.attachments.get_attachment(attachment_id)
        if attachment.watermarked_path:
            self.attachments.remove_file(attachment.watermarked_path)

        attachment.has_watermark = False
        attachment.watermarked_path = None
        project_item = await self.db.get(ProjectItem, attachment.project_item_id)
        if project_item is not None:
            project_item.status = ProjectItemStatus.UPLOADED
        await self.db.flush()
        await self.db.refresh(attachment)
        return attachment
