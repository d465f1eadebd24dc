"""文书服务：文书模板与项目文书，以及 HTML 导出 PDF"""
import asyncio
import html
import logging
import os
from functools import partial
from pathlib import Path

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.document import DocumentTemplate, ProjectDocument
from ..models.project import Project
from ..schemas.document import (
    DocumentTemplateCreate,
    DocumentTemplateUpdate,
    ProjectDocumentCreate,
    ProjectDocumentUpdate,
)
from ..utils.naming import safe_file_stem
from .attachment_service import resolve_under_root, to_relative
from .errors import NotFoundError
from .settings_service import SettingsService

logger = logging.getLogger(__name__)

SIGNATURE_TOKEN = "{signatureImage}"
DEFAULT_SIGNATURE_HEIGHT_CM = 1.7

PAGE_CSS = """
@page { size: A4; margin: 2cm; }
body { font-family: "Noto Sans CJK SC", "Microsoft YaHei", "SimSun", sans-serif; font-size: 12pt; }
"""


def build_signature_html(image_path: str | None, height_cm: float | None) -> str:
    """签名图片占位符的替换内容，未配置签名时为空"""
    if not image_path:
        return ""
    height = height_cm if height_cm and height_cm > 0 else DEFAULT_SIGNATURE_HEIGHT_CM
    src = html.escape(Path(image_path).resolve().as_uri(), quote=True)
    return (
        '<span style="position:relative;">'
        f'<img src="{src}" alt="signature" style="position:absolute; height:{height}cm; z-index:-1;" />'
        "</span>"
    )


def wrap_html_document(body: str) -> str:
    return (
        '<!DOCTYPE html><html><head><meta charset="utf-8" />'
        f"<style>{PAGE_CSS}</style></head><body>\n{body}\n</body></html>"
    )


def write_html_pdf(document_html: str, target: str, base_url: str | None = None) -> None:
    """使用 WeasyPrint 将 HTML 渲染为 PDF"""
    # WeasyPrint 依赖系统 Pango 库，仅在实际导出时加载
    from weasyprint import HTML

    HTML(string=document_html, base_url=base_url).write_pdf(target)


class DocumentService:
    """文书管理服务"""

    def __init__(self, db: AsyncSession, storage_root: str):
        self.db = db
        self.storage_root = storage_root

    # ---------- 文书模板 ----------

    async def create_template(self, data: DocumentTemplateCreate) -> DocumentTemplate:
        document = DocumentTemplate(**data.model_dump())
        self.db.add(document)
        await self.db.flush()
        await self.db.refresh(document)
        return document

    async def list_templates(self, search: str | None = None) -> list[DocumentTemplate]:
        query = select(DocumentTemplate)
        keyword = (search or "").strip()
        if keyword:
            pattern = f"%{keyword}%"
            query = query.where(
                or_(DocumentTemplate.name.like(pattern), DocumentTemplate.description.like(pattern))
            )
        result = await self.db.execute(
            query.order_by(DocumentTemplate.updated_at.desc(), DocumentTemplate.id.desc())
        )
        return list(result.scalars().all())

    async def list_template_names(self) -> list[str]:
        result = await self.db.execute(select(DocumentTemplate.name))
        return list(result.scalars().all())

    async def get_template(self, document_id: int) -> DocumentTemplate:
        document = await self.db.get(DocumentTemplate, document_id)
        if document is None:
            raise NotFoundError("文书模板不存在")
        return document

    async def update_template(self, document_id: int, data: DocumentTemplateUpdate) -> DocumentTemplate:
        document = await self.get_template(document_id)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(document, field, value)
        await self.db.flush()
        await self.db.refresh(document)
        return document

    async def delete_template(self, document_id: int) -> bool:
        document = await self.db.get(DocumentTemplate, document_id)
        if document is None:
            return False
        await self.db.delete(document)
        await self.db.flush()
        return True

    # ---------- 项目文书 ----------

    async def create_project_document(self, data: ProjectDocumentCreate) -> ProjectDocument:
        if await self.db.get(Project, data.project_id) is None:
            raise NotFoundError("项目不存在")
        document = ProjectDocument(**data.model_dump())
        self.db.add(document)
        await self.db.flush()
        await self.db.refresh(document)
        return document

    async def list_project_documents(self, project_id: int) -> list[ProjectDocument]:
        result = await self.db.execute(
            select(ProjectDocument)
            .where(ProjectDocument.project_id == project_id)
            .order_by(ProjectDocument.updated_at.desc(), ProjectDocument.id.desc())
        )
        return list(result.scalars().all())

    async def get_project_document(self, project_document_id: int) -> ProjectDocument:
        document = await self.db.get(ProjectDocument, project_document_id)
        if document is None:
            raise NotFoundError("项目文书不存在")
        return document

    async def update_project_document(
        self, project_document_id: int, data: ProjectDocumentUpdate
    ) -> ProjectDocument:
        document = await self.get_project_document(project_document_id)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(document, field, value)
        await self.db.flush()
        await self.db.refresh(document)
        return document

    async def delete_project_document(self, project_document_id: int) -> bool:
        document = await self.db.get(ProjectDocument, project_document_id)
        if document is None:
            return False
        if document.pdf_path:
            pdf = resolve_under_root(self.storage_root, document.pdf_path)
            try:
                if os.path.exists(pdf):
                    os.remove(pdf)
            except OSError as e:
                logger.warning(f"删除文书 PDF 失败 {pdf}: {e}")
        await self.db.delete(document)
        await self.db.flush()
        return True

    # ---------- PDF 导出 ----------

    async def render_signature(self, content_html: str) -> str:
        """替换 {signatureImage} 占位符"""
        if SIGNATURE_TOKEN not in content_html:
            return content_html
        settings_service = SettingsService(self.db)
        image_path = await settings_service.get_signature_image_path()
        app_settings = await settings_service.get_app_settings()
        return content_html.replace(
            SIGNATURE_TOKEN,
            build_signature_html(image_path, app_settings.signature_image_height_cm),
        )

    async def html_to_pdf_for_project(self, project_id: int, name: str, content_html: str) -> str:
        """
        将 HTML 渲染为 PDF 并保存到 <存储根>/<项目ID>/documents/

        Returns:
            PDF 相对存储根目录的路径
        """
        body = await self.render_signature(content_html)
        relative = to_relative(project_id, "documents", f"{safe_file_stem(name, 'document')}.pdf")
        target = resolve_under_root(self.storage_root, relative)
        os.makedirs(os.path.dirname(target), exist_ok=True)

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None,
            partial(write_html_pdf, wrap_html_document(body), target, self.storage_root),
        )
        logger.info(f"文书已导出 PDF: {relative}")
        return relative

    async def export_project_document_pdf(self, project_document_id: int) -> ProjectDocument:
        """导出项目文书为 PDF 并记录 pdf_path"""
        document = await self.get_project_document(project_document_id)
        document.pdf_path = await self.html_to_pdf_for_project(
            document.project_id, document.name, document.content_html
        )
        await self.db.flush()
        await self.db.refresh(document)
        return document
