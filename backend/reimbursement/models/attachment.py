"""附件 ORM 模型"""
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column

from ..db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Attachment(Base):
    """附件表 - 项目材料下上传的文件

    file_path / watermarked_path 均为相对存储根目录的路径
    """
    __tablename__ = "attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_item_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("project_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_name: Mapped[str] = mapped_column(
        String(255), nullable=False,
        comment="存储文件名"
    )
    original_name: Mapped[str] = mapped_column(
        String(255), nullable=False,
        comment="原始文件名"
    )
    file_path: Mapped[str] = mapped_column(
        String(1024), nullable=False,
        comment="相对存储根目录的路径"
    )
    file_type: Mapped[str] = mapped_column(String(20), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    has_watermark: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    watermarked_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    upload_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    extra_metadata: Mapped[dict | None] = mapped_column(
        "metadata", JSON, nullable=True
    )

    def __repr__(self) -> str:
        return f"<Attachment {self.original_name}>"
