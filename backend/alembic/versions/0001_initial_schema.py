"""create reimbursement tables

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "templates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False, comment="模板名称"),
        sa.Column("description", sa.Text(), nullable=True, comment="模板描述"),
        sa.Column("creator", sa.String(255), nullable=True, comment="创建者"),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false(), comment="是否为默认模板"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_templates")),
    )
    op.create_index(op.f("ix_templates_name"), "templates", ["name"])

    op.create_table(
        "template_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("template_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("file_types", sa.JSON(), nullable=True, comment="允许的文件扩展名列表"),
        sa.Column("needs_watermark", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("watermark_template", sa.Text(), nullable=True, comment="水印文本模板，支持 {userName} 等占位符"),
        sa.Column("allows_multiple_files", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("category", sa.String(100), nullable=True),
        sa.ForeignKeyConstraint(
            ["template_id"], ["templates.id"],
            name=op.f("fk_template_items_template_id_templates"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_template_items")),
    )
    op.create_index(op.f("ix_template_items_template_id"), "template_items", ["template_id"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("template_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("creator", sa.String(255), nullable=True),
        sa.Column(
            "status",
            sa.Enum("incomplete", "complete", "exported", name="project_status", native_enum=False, length=20),
            nullable=False,
            server_default="incomplete",
        ),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["template_id"], ["templates.id"],
            name=op.f("fk_projects_template_id_templates"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_projects")),
    )
    op.create_index(op.f("ix_projects_template_id"), "projects", ["template_id"])
    op.create_index(op.f("ix_projects_name"), "projects", ["name"])

    op.create_table(
        "project_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("template_item_id", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "pending", "uploaded", "watermarked", "approved",
                name="project_item_status", native_enum=False, length=20,
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("upload_time", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["project_id"], ["projects.id"],
            name=op.f("fk_project_items_project_id_projects"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["template_item_id"], ["template_items.id"],
            name=op.f("fk_project_items_template_item_id_template_items"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_project_items")),
    )
    op.create_index(op.f("ix_project_items_project_id"), "project_items", ["project_id"])
    op.create_index(op.f("ix_project_items_template_item_id"), "project_items", ["template_item_id"])

    op.create_table(
        "attachments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_item_id", sa.Integer(), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False, comment="存储文件名"),
        sa.Column("original_name", sa.String(255), nullable=False, comment="原始文件名"),
        sa.Column("file_path", sa.String(1024), nullable=False, comment="相对存储根目录的路径"),
        sa.Column("file_type", sa.String(20), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("has_watermark", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("watermarked_path", sa.String(1024), nullable=True),
        sa.Column("upload_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(
            ["project_item_id"], ["project_items.id"],
            name=op.f("fk_attachments_project_item_id_project_items"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_attachments")),
    )
    op.create_index(op.f("ix_attachments_project_item_id"), "attachments", ["project_item_id"])

    op.create_table(
        "settings",
        sa.Column("setting_key", sa.String(100), nullable=False),
        sa.Column("setting_value", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("setting_key", name=op.f("pk_settings")),
    )

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("creator", sa.String(255), nullable=True),
        sa.Column("content_html", sa.Text(), nullable=False, server_default=""),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_documents")),
    )
    op.create_index(op.f("ix_documents_name"), "documents", ["name"])

    op.create_table(
        "project_documents",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("content_html", sa.Text(), nullable=False, server_default=""),
        sa.Column("pdf_path", sa.String(1024), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["project_id"], ["projects.id"],
            name=op.f("fk_project_documents_project_id_projects"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_project_documents")),
    )
    op.create_index(op.f("ix_project_documents_project_id"), "project_documents", ["project_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_project_documents_project_id"), table_name="project_documents")
    op.drop_table("project_documents")
    op.drop_index(op.f("ix_documents_name"), table_name="documents")
    op.drop_table("documents")
    op.drop_table("settings")
    op.drop_index(op.f("ix_attachments_project_item_id"), table_name="attachments")
    op.drop_table("attachments")
    op.drop_index(op.f("ix_project_items_template_item_id"), table_name="project_items")
    op.drop_index(op.f("ix_project_items_project_id"), table_name="project_items")
    op.drop_table("project_items")
    op.drop_index(op.f("ix_projects_name"), table_name="projects")
    op.drop_index(op.f("ix_projects_template_id"), table_name="projects")
    op.drop_table("projects")
    op.drop_index(op.f("ix_template_items_template_id"), table_name="template_items")
    op.drop_table("template_items")
    op.drop_index(op.f("ix_templates_name"), table_name="templates")
    op.drop_table("templates")
