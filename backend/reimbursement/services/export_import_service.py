"""导出 / 导入服务

项目导出为 zip 包：manifest.json 描述项目、模板与文件清单，
文件本体位于 files/<材料名>/<文件名>。模板与文书模板导出为 JSON，
批量模板导出为包含多个 JSON 的 zip。
"""
import json
import logging
import os
import tempfile
import time
import zipfile
from typing import Any

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings as app_config
from ..models.document import DocumentTemplate
from ..models.project import Project, ProjectStatus
from ..models.template import Template
from ..schemas.document import DocumentTemplateCreate
from ..schemas.manifest import (
    MANIFEST_VERSION,
    BatchManifestEntry,
    BatchTemplateManifest,
    DocumentExportManifest,
    ManifestDocument,
    ManifestFile,
    ManifestItem,
    ManifestProject,
    ManifestTemplate,
    ManifestTemplateItem,
    ProjectExportManifest,
    TemplateExportManifest,
)
from ..schemas.project import ProjectCreate, ProjectMetadata
from ..utils.naming import is_name_variant, safe_file_stem, unique_name
from ..utils.template_compare import template_items_equivalent
from .attachment_service import AttachmentService, to_relative
from .document_service import DocumentService
from .errors import ManifestError, NotFoundError, ServiceError, ValidationError
from .project_service import ProjectService
from .template_service import TemplateService

logger = logging.getLogger(__name__)

MANIFEST_ENTRY = "manifest.json"
BATCH_MANIFEST_ENTRY = "batch_manifest.json"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _dump_json(model: BaseModel) -> str:
    return json.dumps(model.model_dump(mode="json"), ensure_ascii=False, indent=2)


def parse_manifest(raw: bytes | str, model: type[BaseModel], source: str) -> Any:
    """解析并校验清单 JSON，任何问题都以 ManifestError 报告"""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestError(f"{source} 不是合法的 JSON: {e}")
    if not isinstance(data, dict):
        raise ManifestError(f"{source} 格式错误")

    version = data.get("version")
    if version != MANIFEST_VERSION:
        raise ManifestError(f"不支持的导出版本: {version}")
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ManifestError(f"{source} 内容不完整: {e.error_count()} 处错误")


class ExportImportService:
    """导出导入服务"""

    def __init__(self, db: AsyncSession, storage_root: str, export_dir: str | None = None):
        self.db = db
        self.storage_root = storage_root
        self.export_dir = os.path.abspath(export_dir or app_config.export_dir)
        self.templates = TemplateService(db)
        self.projects = ProjectService(db, storage_root)
        self.attachments = AttachmentService(db, storage_root)

    # ---------- 项目 ----------

    async def export_project(self, project_id: int, destination_path: str | None = None) -> str:
        """
        导出项目为 zip 包，导出后项目状态置为 exported

        Args:
            project_id: 项目 ID
            destination_path: 目标文件路径，默认写入 <存储根>/<项目ID>/export/

        Returns:
            zip 文件绝对路径
        """
        details = await self.projects.get_project_with_details(project_id)

        template_items: list[ManifestTemplateItem] = []
        manifest_items: list[ManifestItem] = []
        payload: list[tuple[str, str]] = []

        for item in details.items:
            template_item = item.template_item
            template_items.append(ManifestTemplateItem.model_validate(template_item))

            files: list[ManifestFile] = []
            for attachment in item.attachments:
                original = self.attachments.resolve_path(attachment.file_path)
                if not os.path.isfile(original):
                    logger.warning(f"导出时跳过缺失文件: {attachment.file_path}")
                    continue
                payload.append((original, f"files/{template_item.name}/{attachment.file_name}"))

                entry = ManifestFile(
                    original_name=attachment.original_name,
                    file_name=attachment.file_name,
                    has_watermark=attachment.has_watermark,
                    expenditure=(attachment.metadata or {}).get("expenditure"),
                )
                if attachment.has_watermark and attachment.watermarked_path:
                    watermarked = self.attachments.resolve_path(attachment.watermarked_path)
                    if os.path.isfile(watermarked):
                        wm_name = os.path.basename(watermarked)
                        payload.append((watermarked, f"files/{template_item.name}/{wm_name}"))
                        entry.watermarked_file_name = wm_name
                files.append(entry)

            if files:
                manifest_items.append(ManifestItem(item_name=template_item.name, files=files))

        manifest = ProjectExportManifest(
            version=MANIFEST_VERSION,
            export_time=_now_ms(),
            project=ManifestProject(
                name=details.name, creator=details.creator, metadata=details.metadata
            ),
            template=ManifestTemplate(
                name=details.template.name,
                description=details.template.description,
                creator=details.template.creator,
                items=template_items,
            ),
            items=manifest_items,
        )

        if destination_path:
            export_path = os.path.abspath(destination_path)
        else:
            export_path = self.attachments.resolve_path(
                to_relative(project_id, "export", f"{safe_file_stem(details.name, 'project')}.zip")
            )
        os.makedirs(os.path.dirname(export_path), exist_ok=True)

        with zipfile.ZipFile(export_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for source, arcname in payload:
                zf.write(source, arcname)
            zf.writestr(MANIFEST_ENTRY, _dump_json(manifest))

        await self.projects.set_status(project_id, ProjectStatus.EXPORTED)
        logger.info(f"项目已导出: {details.name} -> {export_path}")
        return export_path

    async def import_project(self, zip_path: str) -> Project:
        """
        从 zip 包导入项目

        清单在任何数据库写入之前完成校验。同名（或其 "(n)" 变体）且结构等价的
        模板直接复用，否则以不冲突的名称新建模板。单个文件导入失败只记录日志。
        """
        if not os.path.isfile(zip_path):
            raise NotFoundError("ZIP 文件不存在")
        try:
            zf = zipfile.ZipFile(zip_path)
        except zipfile.BadZipFile:
            raise ManifestError("无效的导出包：不是合法的 ZIP 文件")

        with zf:
            if MANIFEST_ENTRY not in zf.namelist():
                raise ManifestError("无效的导出包：缺少 manifest.json")
            manifest: ProjectExportManifest = parse_manifest(
                zf.read(MANIFEST_ENTRY), ProjectExportManifest, MANIFEST_ENTRY
            )

            template = await self._resolve_template(manifest.template)
            project = await self.projects.create_project(
                ProjectCreate(
                    template_id=template.id,
                    name=manifest.project.name,
                    creator=manifest.project.creator,
                    metadata=(
                        ProjectMetadata.model_validate(manifest.project.metadata)
                        if manifest.project.metadata
                        else None
                    ),
                )
            )

            item_ids: dict[str, int] = {}
            for project_item in await self.projects.list_project_items(project.id):
                template_item = await self.templates.get_item(project_item.template_item_id)
                item_ids.setdefault(template_item.name, project_item.id)

            with tempfile.TemporaryDirectory(dir=app_config.temp_dir) as staging:
                for manifest_item in manifest.items:
                    project_item_id = item_ids.get(manifest_item.item_name)
                    if project_item_id is None:
                        logger.warning(f"导入时未找到材料: {manifest_item.item_name}")
                        continue
                    for file_info in manifest_item.files:
                        try:
                            await self._import_file(
                                zf, staging, project.id, project_item_id,
                                manifest_item.item_name, file_info,
                            )
                        except (KeyError, OSError, ServiceError) as e:
                            logger.warning(f"导入文件失败，已跳过 {file_info.file_name}: {e}")

        await self.db.refresh(project)
        logger.info(f"项目已导入: {project.name} (id={project.id}, 模板={template.name})")
        return project

    async def _resolve_template(self, definition: ManifestTemplate) -> Template:
        """复用结构等价的已有模板，否则新建"""
        names = await self.templates.list_template_names()
        for template in await self.templates.list_templates():
            if not is_name_variant(template.name, definition.name):
                continue
            items = await self.templates.list_items(template.id)
            if template_items_equivalent(items, definition.items):
                logger.info(f"复用已有模板: {template.name}")
                return template

        return await self.templates.create_template_with_items(
            unique_name(definition.name, names),
            definition.description,
            definition.creator,
            definition.items,
        )

    async def _import_file(
        self,
        zf: zipfile.ZipFile,
        staging: str,
        project_id: int,
        project_item_id: int,
        item_name: str,
        file_info: ManifestFile,
    ) -> None:
        data = zf.read(f"files/{item_name}/{file_info.file_name}")
        staged = os.path.join(staging, f"{project_item_id}_{os.path.basename(file_info.file_name)}")
        with open(staged, "wb") as f:
            f.write(data)

        metadata = None
        if file_info.expenditure is not None:
            metadata = {"expenditure": file_info.expenditure}
        restore_watermark = bool(file_info.has_watermark and file_info.watermarked_file_name)
        attachment = await self.attachments.upload_attachment(
            project_item_id,
            staged,
            file_info.original_name,
            metadata=metadata,
            auto_watermark=not restore_watermark,
        )

        if restore_watermark:
            wm_name = os.path.basename(file_info.watermarked_file_name)
            wm_data = zf.read(f"files/{item_name}/{file_info.watermarked_file_name}")
            relative = to_relative(project_id, "items", project_item_id, "watermarked", wm_name)
            target = self.attachments.resolve_path(relative)
            os.makedirs(os.path.dirname(target), exist_ok=True)
            with open(target, "wb") as f:
                f.write(wm_data)
            await self.attachments.set_watermarked_path(attachment, relative)

    # ---------- 模板 ----------

    async def _template_manifest(self, template_id: int) -> ManifestTemplate:
        template = await self.templates.get_template_with_items(template_id)
        return ManifestTemplate(
            name=template.name,
            description=template.description,
            creator=template.creator,
            items=[ManifestTemplateItem.model_validate(item) for item in template.items],
        )

    def _default_export_path(self, subdir: str, file_name: str) -> str:
        directory = os.path.join(self.export_dir, subdir)
        os.makedirs(directory, exist_ok=True)
        return os.path.join(directory, file_name)

    async def export_template(self, template_id: int, destination_path: str | None = None) -> str:
        """导出单个模板为 JSON 文件"""
        definition = await self._template_manifest(template_id)
        manifest = TemplateExportManifest(
            version=MANIFEST_VERSION, export_time=_now_ms(), template=definition
        )
        export_path = os.path.abspath(destination_path) if destination_path else self._default_export_path(
            "templates", f"{safe_file_stem(definition.name, 'template')}_template.json"
        )
        os.makedirs(os.path.dirname(export_path), exist_ok=True)
        with open(export_path, "w", encoding="utf-8") as f:
            f.write(_dump_json(manifest))
        logger.info(f"模板已导出: {definition.name} -> {export_path}")
        return export_path

    async def _create_from_definition(self, definition: ManifestTemplate) -> Template:
        names = await self.templates.list_template_names()
        return await self.templates.create_template_with_items(
            unique_name(definition.name, names),
            definition.description,
            definition.creator,
            definition.items,
        )

    async def import_template(self, json_path: str) -> Template:
        """导入模板 JSON，总是新建模板，重名时追加 " (n)" """
        if not os.path.isfile(json_path):
            raise NotFoundError("模板文件不存在")
        with open(json_path, "rb") as f:
            raw = f.read()
        manifest: TemplateExportManifest = parse_manifest(
            raw, TemplateExportManifest, os.path.basename(json_path)
        )
        template = await self._create_from_definition(manifest.template)
        logger.info(f"模板已导入: {template.name}")
        return template

    async def export_templates_batch(
        self,
        template_ids: list[int],
        destination_path: str | None = None,
    ) -> str:
        """批量导出模板为 zip，附带 batch_manifest.json 汇总"""
        if not template_ids:
            raise ValidationError("未选择要导出的模板")

        entries: list[tuple[str, TemplateExportManifest]] = []
        used_names: set[str] = set()
        for template_id in template_ids:
            try:
                definition = await self._template_manifest(template_id)
            except NotFoundError:
                logger.warning(f"批量导出时跳过不存在的模板: id={template_id}")
                continue
            stem = safe_file_stem(definition.name, "template")
            entry_name = f"{stem}.json"
            counter = 2
            while entry_name in used_names:
                entry_name = f"{stem}_{counter}.json"
                counter += 1
            used_names.add(entry_name)
            entries.append(
                (
                    entry_name,
                    TemplateExportManifest(
                        version=MANIFEST_VERSION, export_time=_now_ms(), template=definition
                    ),
                )
            )

        if not entries:
            raise NotFoundError("所选模板均不存在")

        batch = BatchTemplateManifest(
            version=MANIFEST_VERSION,
            export_time=_now_ms(),
            template_count=len(entries),
            templates=[
                BatchManifestEntry(
                    name=manifest.template.name,
                    creator=manifest.template.creator,
                    item_count=len(manifest.template.items),
                )
                for _, manifest in entries
            ],
        )

        export_path = os.path.abspath(destination_path) if destination_path else self._default_export_path(
            "templates", f"templates_batch_{_now_ms()}.zip"
        )
        os.makedirs(os.path.dirname(export_path), exist_ok=True)
        with zipfile.ZipFile(export_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for entry_name, manifest in entries:
                zf.writestr(entry_name, _dump_json(manifest))
            zf.writestr(BATCH_MANIFEST_ENTRY, _dump_json(batch))
        logger.info(f"已批量导出 {len(entries)} 个模板 -> {export_path}")
        return export_path

    async def import_templates_batch(self, zip_path: str) -> list[Template]:
        """批量导入模板，单个条目失败时跳过，至少导入一个才算成功"""
        if not os.path.isfile(zip_path):
            raise NotFoundError("ZIP 文件不存在")
        try:
            zf = zipfile.ZipFile(zip_path)
        except zipfile.BadZipFile:
            raise ManifestError("无效的模板包：不是合法的 ZIP 文件")

        imported: list[Template] = []
        with zf:
            for entry_name in zf.namelist():
                if "/" in entry_name or not entry_name.endswith(".json"):
                    continue
                if entry_name == BATCH_MANIFEST_ENTRY:
                    continue
                try:
                    manifest: TemplateExportManifest = parse_manifest(
                        zf.read(entry_name), TemplateExportManifest, entry_name
                    )
                    imported.append(await self._create_from_definition(manifest.template))
                except ServiceError as e:
                    logger.warning(f"导入模板失败，已跳过 {entry_name}: {e}")

        if not imported:
            raise ManifestError("ZIP 文件中没有有效的模板")
        logger.info(f"已批量导入 {len(imported)} 个模板")
        return imported

    # ---------- 文书模板 ----------

    async def export_document_template(
        self,
        document_id: int,
        destination_path: str | None = None,
    ) -> str:
        document = await DocumentService(self.db, self.storage_root).get_template(document_id)
        manifest = DocumentExportManifest(
            version=MANIFEST_VERSION,
            export_time=_now_ms(),
            document=ManifestDocument(
                name=document.name,
                description=document.description,
                creator=document.creator,
                content_html=document.content_html,
            ),
        )
        export_path = os.path.abspath(destination_path) if destination_path else self._default_export_path(
            "documents", f"{safe_file_stem(document.name, 'document')}_document.json"
        )
        os.makedirs(os.path.dirname(export_path), exist_ok=True)
        with open(export_path, "w", encoding="utf-8") as f:
            f.write(_dump_json(manifest))
        return export_path

    async def import_document_template(self, json_path: str) -> DocumentTemplate:
        """导入文书模板，重名时追加 " (n)" """
        if not os.path.isfile(json_path):
            raise NotFoundError("文书模板文件不存在")
        with open(json_path, "rb") as f:
            raw = f.read()
        manifest: DocumentExportManifest = parse_manifest(
            raw, DocumentExportManifest, os.path.basename(json_path)
        )
        documents = DocumentService(self.db, self.storage_root)
        names = await documents.list_template_names()
        return await documents.create_template(
            DocumentTemplateCreate(
                name=unique_name(manifest.document.name, names),
                description=manifest.document.description,
                creator=manifest.document.creator,
                content_html=manifest.document.content_html,
            )
        )
