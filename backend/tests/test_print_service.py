"""打印合并测试"""
import os

import pytest
from pypdf import PdfReader

from factories import item_by_name, make_image, make_pdf
from reimbursement.schemas.attachment import AttachmentResponse
from reimbursement.schemas.watermark import WatermarkConfig
from reimbursement.services.attachment_service import AttachmentService
from reimbursement.services.print_service import PrintService, build_print_pdf, placeholder_page
from reimbursement.services.watermark_service import WatermarkService


def _entry(file_type: str, path: str) -> tuple[AttachmentResponse, str]:
    attachment = AttachmentResponse(
        id=1,
        project_item_id=1,
        file_name=os.path.basename(path),
        original_name=os.path.basename(path),
        file_path=os.path.basename(path),
        file_type=file_type,
        file_size=0,
        has_watermark=False,
        watermarked_path=None,
        upload_time="2024-01-01T00:00:00",
    )
    return attachment, path


class TestBuildPrintPdf:
    """每个附件恰好一页"""

    def test_one_page_per_entry(self, tmp_path):
        image = make_image(str(tmp_path / "a.png"), size=(1200, 300))
        pdf = make_pdf(str(tmp_path / "b.pdf"), pages=3)
        ofd = tmp_path / "c.ofd"
        ofd.write_bytes(b"OFD")
        broken = tmp_path / "d.png"
        broken.write_bytes(b"not an image")
        other = tmp_path / "e.docx"
        other.write_bytes(b"doc")

        target = str(tmp_path / "out.pdf")
        pages = build_print_pdf(
            [
                _entry("png", image),
                _entry("pdf", pdf),
                _entry("ofd", str(ofd)),
                _entry("png", str(broken)),
                _entry("docx", str(other)),
            ],
            target,
        )
        assert pages == 5
        reader = PdfReader(target)
        assert len(reader.pages) == 5
        assert "OFD file not supported" in reader.pages[2].extract_text()
        assert "Failed to include" in reader.pages[3].extract_text()
        assert "Unsupported file type: docx" in reader.pages[4].extract_text()

    def test_empty_list(self, tmp_path):
        target = str(tmp_path / "empty.pdf")
        assert build_print_pdf([], target) == 0
        assert os.path.isfile(target)

    def test_placeholder_with_chinese(self):
        page = placeholder_page("无法读取\n发票.pdf")
        assert page is not None


class TestPrintProject:
    @pytest.mark.asyncio
    async def test_prefers_watermarked_copy(
        self, db_session, storage_root, travel_project, sample_pdf, sample_image, tmp_path
    ):
        attachments = AttachmentService(db_session, storage_root)
        invoice = await item_by_name(db_session, storage_root, travel_project.id, "发票")
        other = await item_by_name(db_session, storage_root, travel_project.id, "其他材料")
        receipt = await attachments.upload_attachment(invoice.id, sample_pdf)
        await WatermarkService(db_session, storage_root).apply_watermark(
            receipt.id, "PRINTMARK", WatermarkConfig(rotation=0)
        )
        await attachments.upload_attachment(other.id, sample_image)
        await attachments.upload_bytes(other.id, b"OFD", "电子发票.ofd")

        relative = await PrintService(db_session, storage_root).print_project(travel_project.id)
        assert relative == f"{travel_project.id}/print/北京出差.pdf"

        reader = PdfReader(attachments.resolve_path(relative))
        assert len(reader.pages) == 3
        assert "PRINTMARK" in reader.pages[0].extract_text()
