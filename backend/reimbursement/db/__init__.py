"""数据库模块"""
from .database import get_db, engine, async_session_factory, init_db
from .base import Base

__all__ = ["get_db", "engine", "async_session_factory", "init_db", "Base"]
