"""测试公共 fixture：内存数据库、临时存储目录与样例文件"""
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from factories import make_image, make_pdf
from reimbursement.db.database import init_db
from reimbursement.schemas.project import ProjectCreate
from reimbursement.schemas.template import TemplateCreate, TemplateItemCreate
from reimbursement.services.project_service import ProjectService
from reimbursement.services.template_service import TemplateService


@pytest_asyncio.fixture()
async def db_session() -> AsyncSession:
    """内存 SQLite 数据库，每个测试独立"""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await init_db(engine)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    session = factory()
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest.fixture
def storage_root(tmp_path) -> str:
    root = tmp_path / "storage"
    root.mkdir()
    return str(root)


@pytest.fixture
def sample_image(tmp_path) -> str:
    return make_image(str(tmp_path / "receipt.png"))


@pytest.fixture
def sample_jpeg(tmp_path) -> str:
    return make_image(str(tmp_path / "ticket.jpg"), color=(200, 220, 240))


@pytest.fixture
def sample_pdf(tmp_path) -> str:
    return make_pdf(str(tmp_path / "invoice.pdf"), pages=2)


@pytest_asyncio.fixture()
async def travel_template(db_session):
    """差旅报销模板：发票（必填、需水印）、行程单、其他材料"""
    service = TemplateService(db_session)
    template = await service.create_template(
        TemplateCreate(name="差旅报销", description="出差报销材料", creator="财务处")
    )
    await service.create_item(
        template.id,
        TemplateItemCreate(
            name="发票",
            is_required=True,
            file_types=["pdf", "jpg", "png"],
            needs_watermark=True,
            watermark_template="{userName} - {itemName}",
            display_order=1,
        ),
    )
    await service.create_item(
        template.id,
        TemplateItemCreate(name="行程单", is_required=False, display_order=2),
    )
    await service.create_item(
        template.id,
        TemplateItemCreate(name="其他材料", is_required=False, display_order=3, category="附加"),
    )
    return template


@pytest_asyncio.fixture()
async def travel_project(db_session, storage_root, travel_template):
    service = ProjectService(db_session, storage_root)
    return await service.create_project(
        ProjectCreate(template_id=travel_template.id, name="北京出差", creator="Alice")
    )


