"""模板服务测试"""
import pytest
from sqlalchemy import func, select

from reimbursement.models.template import TemplateItem
from reimbursement.schemas.template import TemplateCreate, TemplateItemUpdate, TemplateUpdate
from reimbursement.services.errors import ConflictError, NotFoundError
from reimbursement.services.template_service import (
    TEMPLATE_DELETE_BLOCKED_MESSAGE,
    TEMPLATE_IN_USE_MESSAGE,
    TemplateService,
)


class TestTemplateCrud:
    """模板增删改查"""

    @pytest.mark.asyncio
    async def test_get_with_items_ordered(self, db_session, travel_template):
        result = await TemplateService(db_session).get_template_with_items(travel_template.id)
        assert [item.name for item in result.items] == ["发票", "行程单", "其他材料"]
        assert result.items[0].file_types == ["pdf", "jpg", "png"]

    @pytest.mark.asyncio
    async def test_missing_template(self, db_session):
        with pytest.raises(NotFoundError):
            await TemplateService(db_session).get_template(999)

    @pytest.mark.asyncio
    async def test_list_default_first_and_search(self, db_session, travel_template):
        service = TemplateService(db_session)
        await service.create_template(TemplateCreate(name="会议报销", is_default=True))
        await service.create_template(TemplateCreate(name="采购报销", creator="采购部"))

        names = [t.name for t in await service.list_templates()]
        assert names[0] == "会议报销"
        assert set(names) == {"差旅报销", "会议报销", "采购报销"}

        assert [t.name for t in await service.list_templates("采购部")] == ["采购报销"]
        assert [t.name for t in await service.list_templates("出差")] == ["差旅报销"]

    @pytest.mark.asyncio
    async def test_update(self, db_session, travel_template):
        service = TemplateService(db_session)
        updated = await service.update_template(travel_template.id, TemplateUpdate(description="新描述"))
        assert updated.description == "新描述"
        assert updated.name == "差旅报销"

    @pytest.mark.asyncio
    async def test_clone_copies_items(self, db_session, travel_template):
        service = TemplateService(db_session)
        await service.update_template(travel_template.id, TemplateUpdate(is_default=True))

        cloned = await service.clone_template(travel_template.id, "差旅报销（副本）")
        assert cloned.id != travel_template.id
        assert cloned.is_default is False
        assert [item.name for item in cloned.items] == ["发票", "行程单", "其他材料"]
        assert cloned.items[0].needs_watermark is True
        assert cloned.items[0].watermark_template == "{userName} - {itemName}"


class TestSafeDelete:
    """被项目引用的模板不可删除"""

    @pytest.mark.asyncio
    async def test_unused_template_deleted_with_items(self, db_session, travel_template):
        service = TemplateService(db_session)
        result = await service.safe_delete_template(travel_template.id)
        assert result.success is True

        count = await db_session.execute(select(func.count()).select_from(TemplateItem))
        assert count.scalar() == 0
        with pytest.raises(NotFoundError):
            await service.get_template(travel_template.id)

    @pytest.mark.asyncio
    async def test_used_template_kept(self, db_session, travel_template, travel_project):
        service = TemplateService(db_session)
        result = await service.safe_delete_template(travel_template.id)
        assert result.success is False
        assert result.error == TEMPLATE_DELETE_BLOCKED_MESSAGE
        assert [p.name for p in result.projects] == ["北京出差"]

        assert (await service.get_template(travel_template.id)).name == "差旅报销"
        assert len(await service.list_items(travel_template.id)) == 3

    @pytest.mark.asyncio
    async def test_delete_raises_conflict(self, db_session, travel_template, travel_project):
        with pytest.raises(ConflictError) as exc_info:
            await TemplateService(db_session).delete_template(travel_template.id)
        assert exc_info.value.projects[0].id == travel_project.id


class TestModificationCheck:
    """关键修改检查"""

    @pytest.mark.asyncio
    async def test_non_critical_always_allowed(self, db_session, travel_template, travel_project):
        check = await TemplateService(db_session).check_modification(travel_template.id)
        assert check.can_modify is True

    @pytest.mark.asyncio
    async def test_critical_blocked_when_used(self, db_session, travel_template, travel_project):
        service = TemplateService(db_session)
        check = await service.check_modification(travel_template.id, critical_changes=True)
        assert check.can_modify is False
        assert check.reason == TEMPLATE_IN_USE_MESSAGE
        assert check.projects[0].creator == "Alice"

        items = await service.list_items(travel_template.id)
        with pytest.raises(ConflictError):
            await service.update_item(
                items[0].id, TemplateItemUpdate(is_required=False), critical_changes=True
            )

    @pytest.mark.asyncio
    async def test_non_critical_item_update(self, db_session, travel_template, travel_project):
        service = TemplateService(db_session)
        items = await service.list_items(travel_template.id)
        updated = await service.update_item(items[1].id, TemplateItemUpdate(description="火车票或机票"))
        assert updated.description == "火车票或机票"

    @pytest.mark.asyncio
    async def test_safe_delete_item(self, db_session, travel_template):
        service = TemplateService(db_session)
        items = await service.list_items(travel_template.id)
        assert (await service.safe_delete_item(items[2].id)).success is True
        assert len(await service.list_items(travel_template.id)) == 2
        missing = await service.safe_delete_item(items[2].id)
        assert missing.success is False

    @pytest.mark.asyncio
    async def test_safe_delete_item_blocked(self, db_session, travel_template, travel_project):
        service = TemplateService(db_session)
        items = await service.list_items(travel_template.id)
        result = await service.safe_delete_item(items[0].id)
        assert result.success is False
        assert result.projects
