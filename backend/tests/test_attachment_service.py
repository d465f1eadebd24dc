"""附件服务测试：上传校验、状态流转、存储迁移"""
import os

import pytest

from factories import item_by_name, list_files
from reimbursement.models.project import ProjectItem, ProjectItemStatus
from reimbursement.schemas.attachment import UploadSource
from reimbursement.services.attachment_service import (
    AttachmentService,
    resolve_under_root,
    to_relative,
)
from reimbursement.services.errors import NotFoundError, ValidationError
from reimbursement.services.settings_service import SettingsService


class TestPaths:
    """相对路径工具"""

    def test_to_relative(self):
        assert to_relative(3, "items", 7, "original", "a.pdf") == "3/items/7/original/a.pdf"

    def test_resolve_under_root(self, tmp_path):
        root = str(tmp_path)
        assert resolve_under_root(root, "1\\items\\a.png") == os.path.join(root, "1", "items", "a.png")

    def test_traversal_rejected(self, tmp_path):
        with pytest.raises(ValidationError):
            resolve_under_root(str(tmp_path), "../outside.pdf")


class TestUpload:
    """上传校验与存储布局"""

    @pytest.mark.asyncio
    async def test_layout_and_record(self, db_session, storage_root, travel_project, sample_pdf):
        item = await item_by_name(db_session, storage_root, travel_project.id, "发票")
        service = AttachmentService(db_session, storage_root)

        attachment = await service.upload_attachment(
            item.id, sample_pdf, "机票发票.pdf", metadata={"expenditure": 1280.5}
        )
        assert attachment.original_name == "机票发票.pdf"
        assert attachment.file_name.startswith("机票发票_")
        assert attachment.file_type == "pdf"
        assert attachment.file_path == f"{travel_project.id}/items/{item.id}/original/{attachment.file_name}"
        assert attachment.file_size == os.path.getsize(sample_pdf)
        assert attachment.extra_metadata == {"expenditure": 1280.5}
        assert os.path.isfile(await service.get_file_path(attachment.id))

    @pytest.mark.asyncio
    async def test_same_name_twice_kept_apart(self, db_session, storage_root, travel_project, sample_image):
        item = await item_by_name(db_session, storage_root, travel_project.id, "行程单")
        service = AttachmentService(db_session, storage_root)
        first = await service.upload_attachment(item.id, sample_image)
        second = await service.upload_attachment(item.id, sample_image)
        assert first.file_name != second.file_name
        assert [a.id for a in await service.list_attachments(item.id)] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_rejects_unknown_extension(self, db_session, storage_root, travel_project, tmp_path):
        item = await item_by_name(db_session, storage_root, travel_project.id, "行程单")
        source = tmp_path / "notes.txt"
        source.write_text("hello")
        with pytest.raises(ValidationError):
            await AttachmentService(db_session, storage_root).upload_attachment(item.id, str(source))

    @pytest.mark.asyncio
    async def test_rejects_extension_outside_item_types(
        self, db_session, storage_root, travel_project, tmp_path
    ):
        item = await item_by_name(db_session, storage_root, travel_project.id, "发票")
        source = tmp_path / "invoice.ofd"
        source.write_bytes(b"OFD")
        with pytest.raises(ValidationError):
            await AttachmentService(db_session, storage_root).upload_attachment(item.id, str(source))
        assert list_files(storage_root) == []

    @pytest.mark.asyncio
    async def test_missing_source(self, db_session, storage_root, travel_project, tmp_path):
        item = await item_by_name(db_session, storage_root, travel_project.id, "行程单")
        with pytest.raises(NotFoundError):
            await AttachmentService(db_session, storage_root).upload_attachment(
                item.id, str(tmp_path / "nope.pdf")
            )

    @pytest.mark.asyncio
    async def test_upload_bytes_and_paths(
        self, db_session, storage_root, travel_project, sample_pdf, sample_jpeg
    ):
        item = await item_by_name(db_session, storage_root, travel_project.id, "其他材料")
        service = AttachmentService(db_session, storage_root)
        from_bytes = await service.upload_bytes(item.id, b"OFD-DATA", "电子发票.ofd")
        assert from_bytes.file_type == "ofd"

        uploaded = await service.upload_from_paths(
            item.id,
            [UploadSource(path=sample_pdf), UploadSource(path=sample_jpeg, original_name="车票.jpg")],
        )
        assert [a.original_name for a in uploaded] == ["invoice.pdf", "车票.jpg"]


class TestStatusTransitions:
    """项目材料状态随附件变化"""

    @pytest.mark.asyncio
    async def test_upload_then_delete_all(self, db_session, storage_root, travel_project, sample_pdf):
        item = await item_by_name(db_session, storage_root, travel_project.id, "行程单")
        service = AttachmentService(db_session, storage_root)

        first = await service.upload_attachment(item.id, sample_pdf)
        second = await service.upload_attachment(item.id, sample_pdf)
        row = await db_session.get(ProjectItem, item.id)
        assert row.status == ProjectItemStatus.UPLOADED
        assert row.upload_time is not None

        assert await service.delete_attachment(first.id) is True
        assert row.status == ProjectItemStatus.UPLOADED

        second_path = service.resolve_path(second.file_path)
        assert await service.delete_attachment(second.id) is True
        await db_session.refresh(row)
        assert row.status == ProjectItemStatus.PENDING
        assert row.upload_time is None
        assert not os.path.exists(second_path)

    @pytest.mark.asyncio
    async def test_delete_missing(self, db_session, storage_root):
        assert await AttachmentService(db_session, storage_root).delete_attachment(12345) is False

    @pytest.mark.asyncio
    async def test_rename_keeps_file(self, db_session, storage_root, travel_project, sample_pdf):
        item = await item_by_name(db_session, storage_root, travel_project.id, "行程单")
        service = AttachmentService(db_session, storage_root)
        attachment = await service.upload_attachment(item.id, sample_pdf)
        file_name = attachment.file_name

        renamed = await service.rename_attachment(attachment.id, "  高铁票.pdf ")
        assert renamed.original_name == "高铁票.pdf"
        assert renamed.file_name == file_name
        with pytest.raises(ValidationError):
            await service.rename_attachment(attachment.id, "   ")


class TestStorageMigration:
    """存储根目录迁移"""

    @pytest.mark.asyncio
    async def test_move_all_files(self, db_session, storage_root, travel_project, sample_pdf, tmp_path):
        item = await item_by_name(db_session, storage_root, travel_project.id, "行程单")
        service = AttachmentService(db_session, storage_root)
        attachment = await service.upload_attachment(item.id, sample_pdf)
        before = list_files(storage_root)

        new_root = str(tmp_path / "moved")
        result = await service.migrate_storage(new_root)

        assert result == os.path.abspath(new_root)
        assert list_files(new_root) == before
        assert list_files(storage_root) == []
        assert await SettingsService(db_session).get_setting("defaultStoragePath") == result

        fresh = AttachmentService(db_session, await SettingsService(db_session).get_storage_root())
        assert os.path.isfile(await fresh.get_file_path(attachment.id))

    @pytest.mark.asyncio
    async def test_conflict_moves_nothing(self, db_session, storage_root, travel_project, sample_pdf, tmp_path):
        item = await item_by_name(db_session, storage_root, travel_project.id, "行程单")
        service = AttachmentService(db_session, storage_root)
        await service.upload_attachment(item.id, sample_pdf)
        before = list_files(storage_root)

        target = tmp_path / "occupied"
        (target / str(travel_project.id)).mkdir(parents=True)
        with pytest.raises(ValidationError):
            await service.migrate_storage(str(target))
        assert list_files(storage_root) == before

    @pytest.mark.asyncio
    async def test_nested_target_rejected(self, db_session, storage_root):
        with pytest.raises(ValidationError):
            await AttachmentService(db_session, storage_root).migrate_storage(
                os.path.join(storage_root, "inner")
            )

    @pytest.mark.asyncio
    async def test_same_root_is_noop(self, db_session, storage_root):
        service = AttachmentService(db_session, storage_root)
        assert await service.migrate_storage(storage_root) == os.path.abspath(storage_root)
        assert await SettingsService(db_session).get_setting("defaultStoragePath") is None
