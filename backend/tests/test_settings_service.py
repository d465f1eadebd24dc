"""设置服务测试"""
import os

import pytest

from reimbursement.schemas.settings import AppSettingsUpdate, WatermarkSettings
from reimbursement.services.errors import ValidationError
from reimbursement.services.settings_service import DEFAULT_SETTINGS, SettingsService


class TestKeyValue:
    """原始键值读写"""

    @pytest.mark.asyncio
    async def test_set_get_delete(self, db_session):
        service = SettingsService(db_session)
        assert await service.get_setting("studentId") is None

        await service.set_setting("studentId", "2024001")
        await service.set_setting("studentId", "2024002")
        assert await service.get_setting("studentId") == "2024002"

        assert await service.delete_setting("studentId") is True
        assert await service.delete_setting("studentId") is False

    @pytest.mark.asyncio
    async def test_initialize_defaults_keeps_existing(self, db_session):
        service = SettingsService(db_session)
        await service.set_setting("theme", "dark")
        await service.initialize_defaults()

        values = await service.get_all_settings()
        assert values["theme"] == "dark"
        assert values["language"] == DEFAULT_SETTINGS["language"]
        assert "watermark" in values


class TestAppSettings:
    """类型化设置"""

    @pytest.mark.asyncio
    async def test_typed_parsing(self, db_session):
        service = SettingsService(db_session)
        await service.initialize_defaults()
        await service.set_setting("autoWatermarkImages", "true")
        await service.set_setting("hoverPreviewWidth", "320")
        await service.set_setting("signatureImageHeightCm", "2.5")

        settings = await service.get_app_settings()
        assert settings.auto_watermark_images is True
        assert settings.hover_preview_width == 320
        assert settings.signature_image_height_cm == 2.5
        assert settings.watermark.font_size == 48

    @pytest.mark.asyncio
    async def test_malformed_values_fall_back(self, db_session):
        service = SettingsService(db_session)
        await service.set_setting("hoverPreviewHeight", "abc")
        await service.set_setting("watermark", "{broken")

        settings = await service.get_app_settings()
        assert settings.hover_preview_height == 400
        assert settings.watermark is None
        assert (await service.get_watermark_defaults()).rotation == -45

    @pytest.mark.asyncio
    async def test_invalid_watermark_ignored(self, db_session):
        service = SettingsService(db_session)
        await service.set_setting("watermark", '{"opacity": 5}')
        await service.set_setting("defaultUserName", "Alice")

        settings = await service.get_app_settings()
        assert settings.watermark is None
        assert settings.default_user_name == "Alice"

    @pytest.mark.asyncio
    async def test_invalid_scalar_values_fall_back(self, db_session):
        """非法的单个设置值回退为默认值，其余设置照常读取"""
        service = SettingsService(db_session)
        await service.initialize_defaults()
        await service.set_setting("theme", "blue")
        await service.set_setting("language", "en-US")

        settings = await service.get_app_settings()
        assert settings.theme == "system"
        assert settings.language == "en-US"
        assert (await service.get_watermark_defaults()).font_size == 48

    @pytest.mark.asyncio
    async def test_several_invalid_values_fall_back(self, db_session):
        service = SettingsService(db_session)
        await service.set_setting("theme", "blue")
        await service.set_setting("watermark", '{"opacity": 5}')
        await service.set_setting("defaultUserName", "Alice")

        settings = await service.get_app_settings()
        assert settings.theme == "system"
        assert settings.watermark is None
        assert settings.default_user_name == "Alice"

    @pytest.mark.asyncio
    async def test_update_partial(self, db_session):
        service = SettingsService(db_session)
        await service.set_setting("studentId", "S1")

        updated = await service.update_app_settings(
            AppSettingsUpdate.model_validate(
                {
                    "defaultUserName": "Bob",
                    "autoWatermarkImages": True,
                    "watermark": {"textMode": "custom", "customText": "仅供报销"},
                }
            )
        )
        assert updated.default_user_name == "Bob"
        assert updated.student_id == "S1"
        assert updated.auto_watermark_images is True
        assert updated.watermark.custom_text == "仅供报销"
        assert await service.get_setting("autoWatermarkImages") == "true"

    @pytest.mark.asyncio
    async def test_update_none_deletes(self, db_session):
        service = SettingsService(db_session)
        await service.set_setting("studentId", "S1")
        await service.update_app_settings(AppSettingsUpdate(student_id=None))
        assert await service.get_setting("studentId") is None

    @pytest.mark.asyncio
    async def test_watermark_round_trip(self, db_session):
        service = SettingsService(db_session)
        await service.update_app_settings(
            AppSettingsUpdate(watermark=WatermarkSettings(font_size=30, color="#FF0000"))
        )
        defaults = await service.get_watermark_defaults()
        assert defaults.font_size == 30
        assert defaults.color == "#FF0000"


class TestStorageRoot:
    @pytest.mark.asyncio
    async def test_setting_overrides_config(self, db_session, tmp_path):
        service = SettingsService(db_session)
        await service.set_setting("defaultStoragePath", str(tmp_path / "data"))
        assert await service.get_storage_root() == os.path.abspath(str(tmp_path / "data"))


class TestSignature:
    """签名图片"""

    @pytest.mark.asyncio
    async def test_upload_replaces_previous(self, db_session, storage_root, sample_image):
        service = SettingsService(db_session)
        await service.set_setting("defaultStoragePath", storage_root)

        first = await service.upload_signature_from_path(sample_image, "我的 签名.png")
        assert first.startswith("user/signature/我的_签名_")
        first_abs = os.path.join(storage_root, *first.split("/"))
        assert os.path.isfile(first_abs)

        second = await service.upload_signature_bytes(b"\x89PNG fake", "sign.png")
        assert await service.get_setting("signatureImagePath") == second
        assert not os.path.exists(first_abs)
        assert await service.get_signature_image_path() == os.path.join(
            storage_root, *second.split("/")
        )

    @pytest.mark.asyncio
    async def test_rejects_non_image(self, db_session, storage_root):
        service = SettingsService(db_session)
        await service.set_setting("defaultStoragePath", storage_root)
        with pytest.raises(ValidationError):
            await service.upload_signature_bytes(b"%PDF", "sign.pdf")

    @pytest.mark.asyncio
    async def test_missing_file_returns_none(self, db_session, storage_root):
        service = SettingsService(db_session)
        await service.set_setting("defaultStoragePath", storage_root)
        await service.set_setting("signatureImagePath", "user/signature/gone.png")
        assert await service.get_signature_image_path() is None

    @pytest.mark.asyncio
    async def test_update_rejects_signature_path(self, db_session):
        service = SettingsService(db_session)
        with pytest.raises(ValidationError):
            await service.update_app_settings(AppSettingsUpdate(signature_image_path="."))
        assert await service.get_setting("signatureImagePath") is None

    @pytest.mark.asyncio
    async def test_update_can_clear_signature(self, db_session, storage_root, sample_image):
        service = SettingsService(db_session)
        await service.set_setting("defaultStoragePath", storage_root)
        await service.upload_signature_from_path(sample_image, "sign.png")

        await service.update_app_settings(AppSettingsUpdate(signature_image_path=None))
        assert await service.get_setting("signatureImagePath") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stored", [".", "user", "1/items/2/original", "../outside.png"])
    async def test_replace_keeps_files_outside_signature_dir(
        self, db_session, storage_root, sample_image, stored
    ):
        """旧签名路径指向签名目录之外时，替换签名不删除任何文件"""
        attachment = os.path.join(storage_root, "1", "items", "2", "original", "a.pdf")
        os.makedirs(os.path.dirname(attachment))
        with open(attachment, "wb") as f:
            f.write(b"%PDF-1.4")
        outside = os.path.join(os.path.dirname(storage_root), "outside.png")
        with open(outside, "wb") as f:
            f.write(b"\x89PNG")

        service = SettingsService(db_session)
        await service.set_setting("defaultStoragePath", storage_root)
        await service.set_setting("signatureImagePath", stored)
        assert await service.get_signature_image_path() is None

        relative = await service.upload_signature_from_path(sample_image, "sign.png")
        assert os.path.isfile(attachment)
        assert os.path.isfile(outside)
        assert os.path.isfile(os.path.join(storage_root, *relative.split("/")))
        assert await service.get_signature_image_path() is not None
