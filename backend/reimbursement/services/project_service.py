"""项目服务：基于模板快照创建项目及项目材料管理"""
import logging
import os
import shutil

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.project import Project, ProjectItem, ProjectItemStatus, ProjectStatus
from ..models.template import Template, TemplateItem
from ..schemas.attachment import AttachmentResponse
from ..schemas.project import (
    ProjectCreate,
    ProjectItemUpdate,
    ProjectItemWithDetails,
    ProjectUpdate,
    ProjectWithDetails,
)
from ..schemas.template import TemplateItemResponse, TemplateResponse
from .attachment_service import AttachmentService, resolve_under_root
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class ProjectService:
    """项目管理服务"""

    def __init__(self, db: AsyncSession, storage_root: str):
        self.db = db
        self.storage_root = storage_root
        self.attachments = AttachmentService(db, storage_root)

    async def create_project(self, data: ProjectCreate) -> Project:
        """
        创建项目并为模板的每个模板项生成一条 pending 状态的项目材料

        模板之后的变更不会影响已创建项目的材料列表。
        """
        template = await self.db.get(Template, data.template_id)
        if template is None:
            raise NotFoundError("模板不存在")

        project = Project(
            template_id=template.id,
            name=data.name,
            creator=data.creator,
            status=ProjectStatus.INCOMPLETE,
            project_metadata=(
                data.metadata.model_dump(exclude_none=True) if data.metadata else None
            ),
        )
        self.db.add(project)
        await self.db.flush()

        result = await self.db.execute(
            select(TemplateItem.id).where(TemplateItem.template_id == template.id)
        )
        for template_item_id in result.scalars().all():
            self.db.add(
                ProjectItem(
                    project_id=project.id,
                    template_item_id=template_item_id,
                    status=ProjectItemStatus.PENDING,
                )
            )
        await self.db.flush()
        await self.db.refresh(project)
        logger.info(f"创建项目: {project.name} (id={project.id}, 模板={template.name})")
        return project

    async def get_project(self, project_id: int) -> Project:
        project = await self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError("项目不存在")
        return project

    async def list_projects(
        self,
        search: str | None = None,
        status: ProjectStatus | None = None,
        template_id: int | None = None,
    ) -> list[Project]:
        query = select(Project)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(Project.name.like(pattern), Project.creator.like(pattern)))
        if status:
            query = query.where(Project.status == status)
        if template_id is not None:
            query = query.where(Project.template_id == template_id)
        query = query.order_by(Project.updated_at.desc(), Project.id.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_project(self, project_id: int, data: ProjectUpdate) -> Project:
        project = await self.get_project(project_id)
        values = data.model_dump(exclude_unset=True)
        if "metadata" in values:
            metadata = values.pop("metadata")
            project.project_metadata = (
                {k: v for k, v in metadata.items() if v is not None} if metadata else None
            )
        for field, value in values.items():
            setattr(project, field, value)
        await self.db.flush()
        await self.db.refresh(project)
        return project

    async def set_status(self, project_id: int, status: ProjectStatus) -> Project:
        project = await self.get_project(project_id)
        project.status = status
        await self.db.flush()
        await self.db.refresh(project)
        return project

    async def delete_project(self, project_id: int) -> bool:
        """删除项目、全部附件文件及项目目录"""
        project = await self.db.get(Project, project_id)
        if project is None:
            return False

        for item in await self.list_project_items(project_id):
            for attachment in await self.attachments.list_attachments(item.id):
                await self.attachments.delete_attachment(attachment.id)

        await self.db.delete(project)
        await self.db.flush()

        # 打印、导出等派生文件随项目目录一并清理
        project_dir = resolve_under_root(self.storage_root, str(project_id))
        if os.path.isdir(project_dir):
            try:
                shutil.rmtree(project_dir)
            except OSError as e:
                logger.warning(f"清理项目目录失败 {project_dir}: {e}")
        logger.info(f"删除项目: id={project_id}")
        return True

    # ---------- 项目材料 ----------

    async def get_project_item(self, project_item_id: int) -> ProjectItem:
        item = await self.db.get(ProjectItem, project_item_id)
        if item is None:
            raise NotFoundError("项目材料不存在")
        return item

    async def list_project_items(self, project_id: int) -> list[ProjectItem]:
        """按模板项显示顺序列出项目材料"""
        result = await self.db.execute(
            select(ProjectItem)
            .join(TemplateItem, ProjectItem.template_item_id == TemplateItem.id)
            .where(ProjectItem.project_id == project_id)
            .order_by(TemplateItem.display_order.asc(), TemplateItem.id.asc())
        )
        return list(result.scalars().all())

    async def update_project_item(
        self, project_item_id: int, data: ProjectItemUpdate
    ) -> ProjectItem:
        item = await self.get_project_item(project_item_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "status" and value is None:
                raise ValidationError("状态不能为空")
            setattr(item, field, value)
        await self.db.flush()
        await self.db.refresh(item)
        return item

    async def get_project_with_details(self, project_id: int) -> ProjectWithDetails:
        """项目详情：模板、按显示顺序排列的材料及各自附件"""
        project = await self.get_project(project_id)
        template = await self.db.get(Template, project.template_id)
        if template is None:
            raise NotFoundError("项目关联的模板不存在")

        items: list[ProjectItemWithDetails] = []
        for project_item in await self.list_project_items(project_id):
            template_item = await self.db.get(TemplateItem, project_item.template_item_id)
            if template_item is None:
                continue
            attachments = await self.attachments.list_attachments(project_item.id)
            detail = ProjectItemWithDetails(
                id=project_item.id,
                project_id=project_item.project_id,
                template_item_id=project_item.template_item_id,
                status=project_item.status,
                notes=project_item.notes,
                upload_time=project_item.upload_time,
                template_item=TemplateItemResponse.model_validate(template_item),
                attachments=[AttachmentResponse.model_validate(a) for a in attachments],
            )
            items.append(detail)

        return ProjectWithDetails(
            id=project.id,
            template_id=project.template_id,
            name=project.name,
            creator=project.creator,
            status=project.status,
            metadata=project.project_metadata,
            created_at=project.created_at,
            updated_at=project.updated_at,
            template=TemplateResponse.model_validate(template),
            items=items,
        )

    async def check_project_complete(self, project_id: int) -> bool:
        """所有必填材料至少有一个附件时视为完整"""
        details = await self.get_project_with_details(project_id)
        return all(
            item.attachments for item in details.items if item.template_item.is_required
        )
