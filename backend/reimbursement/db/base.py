"""SQLAlchemy declarative base"""
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import MetaData

# 命名约定，确保 Alembic 自动生成的约束名可预测
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """所有 ORM 模型的基类"""
    metadata = MetaData(naming_convention=convention)
