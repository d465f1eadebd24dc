"""项目 ORM 模型"""
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, JSON, Enum, func
from sqlalchemy.orm import Mapped, mapped_column

from ..db.base import Base


class ProjectStatus(str, PyEnum):
    """项目状态枚举"""
    INCOMPLETE = "incomplete"
    COMPLETE = "complete"
    EXPORTED = "exported"


class ProjectItemStatus(str, PyEnum):
    """项目材料状态枚举"""
    PENDING = "pending"
    UPLOADED = "uploaded"
    WATERMARKED = "watermarked"
    APPROVED = "approved"


def _enum_values(enum_cls: type[PyEnum]) -> list[str]:
    return [member.value for member in enum_cls]


class Project(Base):
    """项目表 - 一次具体的报销"""
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    template_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("templates.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(
        String(255), nullable=False, index=True
    )
    creator: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    status: Mapped[ProjectStatus] = mapped_column(
        Enum(
            ProjectStatus,
            name="project_status",
            native_enum=False,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=ProjectStatus.INCOMPLETE,
    )
    # 列名为 metadata，属性名避开 DeclarativeBase.metadata
    project_metadata: Mapped[dict | None] = mapped_column(
        "metadata", JSON, nullable=True
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
        return f"<Project {self.name}>"


class ProjectItem(Base):
    """项目材料表 - 模板项在项目中的实例"""
    __tablename__ = "project_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    template_item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("template_items.id"), nullable=False, index=True
    )
    status: Mapped[ProjectItemStatus] = mapped_column(
        Enum(
            ProjectItemStatus,
            name="project_item_status",
            native_enum=False,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=ProjectItemStatus.PENDING,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    upload_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<ProjectItem {self.id} status={self.status}>"
