"""模板服务：模板与模板项的 CRUD 及引用检查"""
import logging
from typing import Any, Iterable

from sqlalchemy import select, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.template import Template, TemplateItem
from ..models.project import Project
from ..schemas.template import (
    AssociatedProject,
    ModificationCheckResult,
    SafeDeleteResult,
    TemplateCreate,
    TemplateItemCreate,
    TemplateItemResponse,
    TemplateItemUpdate,
    TemplateUpdate,
    TemplateWithItems,
    normalize_file_types,
)
from .errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

TEMPLATE_IN_USE_MESSAGE = "此模板已被以下项目使用，无法修改关键属性。请先删除相关项目后再进行修改。"
TEMPLATE_DELETE_BLOCKED_MESSAGE = "无法删除此模板，因为它正在被以下项目使用："

_ITEM_FIELDS = (
    "name",
    "description",
    "is_required",
    "file_types",
    "needs_watermark",
    "watermark_template",
    "allows_multiple_files",
    "display_order",
    "category",
)


class TemplateService:
    """模板管理服务"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ---------- 模板 ----------

    async def create_template(self, data: TemplateCreate) -> Template:
        template = Template(
            name=data.name,
            description=data.description,
            creator=data.creator,
            is_default=data.is_default,
        )
        self.db.add(template)
        await self.db.flush()
        await self.db.refresh(template)
        logger.info(f"创建模板: {template.name} (id={template.id})")
        return template

    async def get_template(self, template_id: int) -> Template:
        template = await self.db.get(Template, template_id)
        if template is None:
            raise NotFoundError("模板不存在")
        return template

    async def get_template_with_items(self, template_id: int) -> TemplateWithItems:
        template = await self.get_template(template_id)
        items = await self.list_items(template_id)
        result = TemplateWithItems.model_validate(template)
        result.items = [TemplateItemResponse.model_validate(item) for item in items]
        return result

    async def list_templates(self, search: str | None = None) -> list[Template]:
        """
        获取模板列表

        Args:
            search: 可选关键字，模糊匹配名称、描述与创建者

        Returns:
            默认模板在前，其余按更新时间倒序
        """
        query = select(Template)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Template.name.like(pattern),
                    Template.description.like(pattern),
                    Template.creator.like(pattern),
                )
            )
        query = query.order_by(
            Template.is_default.desc(), Template.updated_at.desc(), Template.id.desc()
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_template_names(self) -> list[str]:
        result = await self.db.execute(select(Template.name))
        return list(result.scalars().all())

    async def update_template(self, template_id: int, data: TemplateUpdate) -> Template:
        template = await self.get_template(template_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(template, field, value)
        await self.db.flush()
        await self.db.refresh(template)
        return template

    async def delete_template(self, template_id: int) -> bool:
        """删除模板及其模板项，被项目引用时拒绝"""
        template = await self.get_template(template_id)
        projects = await self.get_associated_projects(template_id)
        if projects:
            raise ConflictError(TEMPLATE_DELETE_BLOCKED_MESSAGE, projects)

        await self.db.execute(delete(TemplateItem).where(TemplateItem.template_id == template_id))
        await self.db.delete(template)
        await self.db.flush()
        logger.info(f"删除模板: id={template_id}")
        return True

    async def safe_delete_template(self, template_id: int) -> SafeDeleteResult:
        projects = await self.get_associated_projects(template_id)
        if projects:
            return SafeDeleteResult(
                success=False,
                error=TEMPLATE_DELETE_BLOCKED_MESSAGE,
                projects=projects,
            )
        return SafeDeleteResult(success=await self.delete_template(template_id))

    async def create_template_with_items(
        self,
        name: str,
        description: str | None,
        creator: str | None,
        items: Iterable[Any],
    ) -> Template:
        """创建模板并逐项复制模板项（克隆与导入共用）"""
        template = await self.create_template(
            TemplateCreate(name=name, description=description, creator=creator)
        )
        for item in items:
            values = {field: getattr(item, field, None) for field in _ITEM_FIELDS}
            self.db.add(
                TemplateItem(
                    template_id=template.id,
                    name=values["name"],
                    description=values["description"],
                    is_required=bool(values["is_required"]),
                    file_types=normalize_file_types(values["file_types"]),
                    needs_watermark=bool(values["needs_watermark"]),
                    watermark_template=values["watermark_template"],
                    allows_multiple_files=bool(values["allows_multiple_files"]),
                    display_order=values["display_order"] or 0,
                    category=values["category"],
                )
            )
        await self.db.flush()
        return template

    async def clone_template(self, template_id: int, new_name: str) -> TemplateWithItems:
        """深拷贝模板及全部模板项，新模板不作为默认模板"""
        original = await self.get_template(template_id)
        items = await self.list_items(template_id)
        cloned = await self.create_template_with_items(
            new_name, original.description, original.creator, items
        )
        logger.info(f"复制模板 {original.name} -> {new_name}")
        return await self.get_template_with_items(cloned.id)

    async def get_associated_projects(self, template_id: int) -> list[AssociatedProject]:
        result = await self.db.execute(
            select(Project).where(Project.template_id == template_id).order_by(Project.id)
        )
        return [AssociatedProject.model_validate(p) for p in result.scalars().all()]

    async def check_modification(
        self, template_id: int, critical_changes: bool = False
    ) -> ModificationCheckResult:
        """非关键修改总是允许；关键修改仅在模板未被项目使用时允许"""
        if not critical_changes:
            return ModificationCheckResult(can_modify=True)

        projects = await self.get_associated_projects(template_id)
        if not projects:
            return ModificationCheckResult(can_modify=True)
        return ModificationCheckResult(
            can_modify=False,
            reason=TEMPLATE_IN_USE_MESSAGE,
            projects=projects,
        )

    # ---------- 模板项 ----------

    async def create_item(self, template_id: int, data: TemplateItemCreate) -> TemplateItem:
        await self.get_template(template_id)
        item = TemplateItem(template_id=template_id, **data.model_dump())
        self.db.add(item)
        await self.db.flush()
        await self.db.refresh(item)
        return item

    async def get_item(self, item_id: int) -> TemplateItem:
        item = await self.db.get(TemplateItem, item_id)
        if item is None:
            raise NotFoundError("模板项目不存在")
        return item

    async def list_items(self, template_id: int) -> list[TemplateItem]:
        result = await self.db.execute(
            select(TemplateItem)
            .where(TemplateItem.template_id == template_id)
            .order_by(TemplateItem.display_order.asc(), TemplateItem.id.asc())
        )
        return list(result.scalars().all())

    async def update_item(
        self,
        item_id: int,
        data: TemplateItemUpdate,
        critical_changes: bool = False,
    ) -> TemplateItem:
        item = await self.get_item(item_id)
        check = await self.check_modification(item.template_id, critical_changes)
        if not check.can_modify:
            raise ConflictError(check.reason or TEMPLATE_IN_USE_MESSAGE, check.projects)

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(item, field, value)
        await self.db.flush()
        await self.db.refresh(item)
        return item

    async def delete_item(self, item_id: int) -> bool:
        item = await self.get_item(item_id)
        await self.db.delete(item)
        await self.db.flush()
        return True

    async def safe_delete_item(self, item_id: int) -> SafeDeleteResult:
        item = await self.db.get(TemplateItem, item_id)
        if item is None:
            return SafeDeleteResult(success=False, error="模板项目不存在")

        check = await self.check_modification(item.template_id, critical_changes=True)
        if not check.can_modify:
            return SafeDeleteResult(success=False, error=check.reason, projects=check.projects)
        return SafeDeleteResult(success=await self.delete_item(item_id))
