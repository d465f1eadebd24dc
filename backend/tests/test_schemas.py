"""Pydantic schema 测试"""
import pytest
from pydantic import ValidationError

from reimbursement.schemas.common import ApiResponse
from reimbursement.schemas.project import ProjectCreate, ProjectResponse
from reimbursement.schemas.settings import AppSettings, AppSettingsUpdate, WatermarkSettings
from reimbursement.schemas.template import (
    TemplateItemCreate,
    TemplateItemUpdate,
    normalize_file_types,
)
from reimbursement.schemas.watermark import WatermarkConfig, WatermarkPosition


class TestFileTypes:
    """扩展名规范化"""

    def test_normalize(self):
        assert normalize_file_types([".PDF", "jpg", " png ", "pdf", ""]) == ["pdf", "jpg", "png"]

    def test_none_kept(self):
        assert normalize_file_types(None) is None

    def test_item_create_normalizes(self):
        item = TemplateItemCreate(name="发票", file_types=[".JPG", "jpeg"])
        assert item.file_types == ["jpg", "jpeg"]

    def test_item_update_normalizes(self):
        assert TemplateItemUpdate(file_types=["PDF"]).file_types == ["pdf"]

    def test_item_name_required(self):
        with pytest.raises(ValidationError):
            TemplateItemCreate(name="")


class TestApiResponse:
    def test_success(self):
        response = ApiResponse[int](success=True, data=3)
        assert response.model_dump() == {"success": True, "data": 3, "error": None}

    def test_failure(self):
        response = ApiResponse(success=False, error="模板不存在")
        assert response.data is None
        assert response.error == "模板不存在"


class TestProjectSchemas:
    def test_metadata_extra_fields_allowed(self):
        data = ProjectCreate(
            template_id=1,
            name="出差",
            metadata={"location": "上海", "budget_code": "B-01", "trip_no": "T7"},
        )
        dumped = data.metadata.model_dump(exclude_none=True)
        assert dumped == {"location": "上海", "budget_code": "B-01", "trip_no": "T7"}

    def test_response_reads_orm_metadata_attribute(self):
        class Row:
            id = 1
            template_id = 2
            name = "出差"
            creator = "Alice"
            status = "incomplete"
            project_metadata = {"location": "北京"}
            created_at = "2024-01-01T00:00:00"
            updated_at = "2024-01-01T00:00:00"

        response = ProjectResponse.model_validate(Row())
        assert response.metadata == {"location": "北京"}
        assert response.model_dump()["metadata"] == {"location": "北京"}


class TestSettingsSchemas:
    """设置项使用驼峰别名"""

    def test_app_settings_aliases(self):
        settings = AppSettings.model_validate(
            {"defaultUserName": "张三", "autoWatermarkImages": True, "hoverPreviewWidth": 300}
        )
        assert settings.default_user_name == "张三"
        assert settings.auto_watermark_images is True
        assert settings.hover_preview_width == 300
        assert settings.signature_image_height_cm == 1.7

    def test_dump_by_alias(self):
        dumped = AppSettings().model_dump(by_alias=True)
        assert "defaultStoragePath" in dumped
        assert dumped["theme"] == "system"

    def test_invalid_theme(self):
        with pytest.raises(ValidationError):
            AppSettingsUpdate(theme="blue")

    def test_watermark_defaults(self):
        watermark = WatermarkSettings()
        assert watermark.text_mode == "template"
        assert watermark.opacity == 0.3
        assert watermark.rotation == -45
        assert (watermark.x_percent, watermark.y_percent) == (50, 50)

    def test_watermark_color_pattern(self):
        with pytest.raises(ValidationError):
            WatermarkSettings(color="red")


class TestWatermarkConfig:
    def test_camel_and_snake_accepted(self):
        assert WatermarkConfig.model_validate({"fontSize": 20}).font_size == 20
        assert WatermarkConfig(font_size=20).font_size == 20

    def test_position_enum(self):
        config = WatermarkConfig.model_validate({"position": "top_left"})
        assert config.position is WatermarkPosition.TOP_LEFT

    @pytest.mark.parametrize("field,value", [("opacity", 1.5), ("x_percent", -1), ("y_percent", 101)])
    def test_range_checks(self, field, value):
        with pytest.raises(ValidationError):
            WatermarkConfig(**{field: value})
