"""ORM 模型结构测试"""
from reimbursement.models import (
    Attachment,
    DocumentTemplate,
    Project,
    ProjectDocument,
    ProjectItem,
    ProjectItemStatus,
    ProjectStatus,
    Setting,
    Template,
    TemplateItem,
)


class TestTemplateModels:
    """模板与模板项模型"""

    def test_table_names(self):
        assert Template.__tablename__ == "templates"
        assert TemplateItem.__tablename__ == "template_items"

    def test_template_item_columns(self):
        columns = {c.name for c in TemplateItem.__table__.columns}
        assert {
            "template_id",
            "name",
            "is_required",
            "file_types",
            "needs_watermark",
            "watermark_template",
            "allows_multiple_files",
            "display_order",
            "category",
        } <= columns

    def test_template_item_cascades_with_template(self):
        fk = next(iter(TemplateItem.__table__.c.template_id.foreign_keys))
        assert fk.column.table.name == "templates"
        assert fk.ondelete == "CASCADE"


class TestProjectModels:
    """项目、项目材料与附件模型"""

    def test_status_values(self):
        assert [s.value for s in ProjectStatus] == ["incomplete", "complete", "exported"]
        assert [s.value for s in ProjectItemStatus] == [
            "pending",
            "uploaded",
            "watermarked",
            "approved",
        ]

    def test_metadata_column_name(self):
        """属性名避开 DeclarativeBase.metadata，列名仍为 metadata"""
        assert "metadata" in Project.__table__.columns
        assert "metadata" in Attachment.__table__.columns

    def test_project_template_reference_does_not_cascade(self):
        fk = next(iter(Project.__table__.c.template_id.foreign_keys))
        assert fk.ondelete is None

    def test_project_children_cascade(self):
        for table, column in (
            (ProjectItem.__table__, "project_id"),
            (Attachment.__table__, "project_item_id"),
            (ProjectDocument.__table__, "project_id"),
        ):
            fk = next(iter(table.c[column].foreign_keys))
            assert fk.ondelete == "CASCADE"

    def test_attachment_paths(self):
        columns = {c.name for c in Attachment.__table__.columns}
        assert {"file_path", "watermarked_path", "has_watermark", "file_type", "file_size"} <= columns


class TestMiscModels:
    def test_setting_primary_key(self):
        assert [c.name for c in Setting.__table__.primary_key.columns] == ["setting_key"]

    def test_document_tables(self):
        assert DocumentTemplate.__tablename__ == "documents"
        assert ProjectDocument.__tablename__ == "project_documents"
