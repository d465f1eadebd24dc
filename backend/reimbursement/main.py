"""FastAPI 应用入口"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db.database import async_session_factory, init_db
from .middleware.request_logging import RequestLoggingMiddleware
from .routers import attachments, documents, projects, settings as settings_router, templates, watermark
from .services.settings_service import SettingsService

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 启动：建表并写入默认设置
    await init_db()
    async with async_session_factory() as session:
        await SettingsService(session).initialize_defaults()
        await session.commit()
    logger.info(f"{settings.app_name} v{settings.app_version} 已启动")
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(settings_router.router)
app.include_router(templates.router)
app.include_router(templates.items_router)
app.include_router(projects.router)
app.include_router(projects.items_router)
app.include_router(attachments.router)
app.include_router(watermark.router)
app.include_router(documents.router)
app.include_router(documents.project_router)


@app.get("/health")
async def health_check():
    """健康检查"""
    return {"status": "healthy", "version": settings.app_version}
