"""模板 ORM 模型"""
from datetime import datetime

from sqlalchemy import String, Text, Integer, Boolean, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import Mapped, mapped_column

from ..db.base import Base


class Template(Base):
    """模板表 - 定义一类报销所需的材料清单"""
    __tablename__ = "templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(255), nullable=False, index=True,
        comment="模板名称"
    )
    description: Mapped[str | None] = mapped_column(
        Text, nullable=True,
        comment="模板描述"
    )
    creator: Mapped[str | None] = mapped_column(
        String(255), nullable=True,
        comment="创建者"
    )
    is_default: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
        comment="是否为默认模板"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Template {self.name}>"


class TemplateItem(Base):
    """模板项表 - 模板中的一个材料类别"""
    __tablename__ = "template_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    template_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    file_types: Mapped[list | None] = mapped_column(
        JSON, nullable=True,
        comment="允许的文件扩展名列表"
    )
    needs_watermark: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    watermark_template: Mapped[str | None] = mapped_column(
        Text, nullable=True,
        comment="水印文本模板，支持 {userName} 等占位符"
    )
    allows_multiple_files: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<TemplateItem {self.name}>"
