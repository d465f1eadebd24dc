"""应用配置管理"""
from pydantic_settings import BaseSettings
from typing import Optional, List, Union
import os
import json


def parse_cors_origins(value: Union[str, List[str], None]) -> List[str]:
    """解析 CORS 来源配置，支持 JSON 数组或逗号分隔的字符串"""
    if value is None:
        return []

    if isinstance(value, list):
        return value

    if isinstance(value, str):
        # 尝试解析为 JSON 数组
        try:
            parsed = json.loads(value)
            if isinstance(parsed, list):
                return parsed
        except json.JSONDecodeError:
            pass

        # 尝试解析为逗号分隔的字符串
        return [origin.strip() for origin in value.split(",") if origin.strip()]

    return []


class Settings(BaseSettings):
    """应用设置"""
    app_name: str = "报销材料管理助手"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # 桌面前端通过 localhost 访问
    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost",
        "http://127.0.0.1",
    ]

    # 文件上传设置
    max_file_size: int = 50 * 1024 * 1024  # 50MB

    # 存储设置：附件根目录（可被 defaultStoragePath 设置项覆盖）
    storage_root: str = os.path.join("storage", "projects")
    export_dir: str = "exports"
    temp_dir: Optional[str] = None

    # 数据库设置 - 支持环境变量注入
    database_url: str = "sqlite+aiosqlite:///./reimbursement.db"

    class Config:
        env_file = ".env"
        env_parse_none_str = ""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # 处理 CORS_ORIGINS 环境变量
        cors_env = os.getenv("CORS_ORIGINS")
        if cors_env:
            self.cors_origins = parse_cors_origins(cors_env)


# 全局设置实例
settings = Settings()

# 确保存储目录存在
os.makedirs(settings.storage_root, exist_ok=True)
os.makedirs(settings.export_dir, exist_ok=True)
