"""打印合并服务：将项目全部附件合并为一个 PDF，每个附件一页"""
import asyncio
import io
import logging
import os

from pypdf import PdfReader, PdfWriter
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.attachment import AttachmentResponse
from ..utils.naming import safe_file_stem
from .attachment_service import AttachmentService, to_relative
from .project_service import ProjectService
from .watermark_renderer import ensure_cjk_pdf_font, needs_cjk_font

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
PAGE_MARGIN = 20
IMAGE_TYPES = {"jpg", "jpeg", "png"}


def _single_page(draw) -> PdfReader:
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    draw(c)
    c.showPage()
    c.save()
    buffer.seek(0)
    return PdfReader(buffer)


def image_page(path: str):
    """图片按比例缩放到 A4 页边距内并居中"""
    image = ImageReader(path)
    width, height = image.getSize()
    scale = min((PAGE_WIDTH - PAGE_MARGIN * 2) / width, (PAGE_HEIGHT - PAGE_MARGIN * 2) / height)
    draw_w, draw_h = width * scale, height * scale

    def draw(c):
        c.drawImage(
            image,
            (PAGE_WIDTH - draw_w) / 2,
            (PAGE_HEIGHT - draw_h) / 2,
            width=draw_w,
            height=draw_h,
            mask="auto",
        )

    return _single_page(draw).pages[0]


def placeholder_page(message: str, font_size: int = 14, line_height: int = 18):
    """占位页：在左上方写出说明文字"""
    font_name = ensure_cjk_pdf_font() if needs_cjk_font(message) else "Helvetica"

    def draw(c):
        text = c.beginText(40, PAGE_HEIGHT - 80)
        text.setFont(font_name, font_size, leading=line_height)
        for line in message.splitlines():
            text.textLine(line)
        c.drawText(text)

    return _single_page(draw).pages[0]


def build_print_pdf(entries: list[tuple[AttachmentResponse, str]], target: str) -> int:
    """
    按顺序合并附件页面，返回写入的页数

    不支持的类型与读取失败的文件各生成一页占位页，保证页数与附件数一致。
    """
    writer = PdfWriter()
    for attachment, path in entries:
        file_type = (attachment.file_type or "").lower()
        name = os.path.basename(path)
        try:
            if file_type in IMAGE_TYPES:
                writer.add_page(image_page(path))
            elif file_type == "pdf":
                source = PdfReader(path)
                if len(source.pages) > 0:
                    writer.add_page(source.pages[0])
                else:
                    writer.add_page(placeholder_page(f"Empty PDF\n{name}"))
            elif file_type == "ofd":
                writer.add_page(placeholder_page(f"OFD file not supported in print merge\n{name}"))
            else:
                writer.add_page(placeholder_page(f"Unsupported file type: {file_type}\n{name}"))
        except Exception as e:
            logger.warning(f"打印合并时无法读取 {name}: {e}")
            writer.add_page(
                placeholder_page(f"Failed to include: {name}\n{e}", font_size=12, line_height=16)
            )

    with open(target, "wb") as f:
        writer.write(f)
    return len(writer.pages)


class PrintService:
    """打印服务"""

    def __init__(self, db: AsyncSession, storage_root: str):
        self.db = db
        self.attachments = AttachmentService(db, storage_root)
        self.projects = ProjectService(db, storage_root)

    async def print_project(self, project_id: int) -> str:
        """
        合并项目附件为 <存储根>/<项目ID>/print/<项目名>.pdf

        材料按模板显示顺序、附件按上传时间排列，有水印副本时优先使用水印副本。

        Returns:
            合并文件相对存储根目录的路径
        """
        details = await self.projects.get_project_with_details(project_id)

        entries: list[tuple[AttachmentResponse, str]] = []
        for item in details.items:
            for attachment in item.attachments:
                relative = (
                    attachment.watermarked_path
                    if attachment.has_watermark and attachment.watermarked_path
                    else attachment.file_path
                )
                entries.append((attachment, self.attachments.resolve_path(relative)))

        relative_out = to_relative(
            project_id, "print", f"{safe_file_stem(details.name, f'project_{project_id}')}.pdf"
        )
        target = self.attachments.resolve_path(relative_out)
        os.makedirs(os.path.dirname(target), exist_ok=True)

        loop = asyncio.get_running_loop()
        pages = await loop.run_in_executor(None, build_print_pdf, entries, target)
        logger.info(f"项目 {details.name} 已合并 {pages} 页 -> {relative_out}")
        return relative_out
