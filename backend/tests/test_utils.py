"""工具函数测试：命名、占位符、模板结构比较"""
from datetime import date

import pytest

from reimbursement.utils.naming import (
    file_extension,
    is_name_variant,
    safe_file_stem,
    timestamped_file_name,
    unique_name,
    watermarked_file_name,
)
from reimbursement.utils.template_compare import template_items_equivalent
from reimbursement.utils.watermark_placeholders import (
    WATERMARK_PLACEHOLDERS,
    format_locale_date,
    format_placeholder_list,
    resolve_watermark_template,
)


class TestUniqueName:
    """名称去重"""

    def test_free_name_unchanged(self):
        assert unique_name("差旅报销", ["会议报销"]) == "差旅报销"

    def test_first_suffix(self):
        assert unique_name("差旅报销", ["差旅报销"]) == "差旅报销 (1)"

    def test_smallest_free_suffix(self):
        existing = ["X", "X (1)", "X (3)"]
        assert unique_name("X", existing) == "X (2)"

    def test_result_never_collides(self):
        existing = ["X"]
        for _ in range(5):
            name = unique_name("X", existing)
            assert name not in existing
            existing.append(name)
        assert existing[-1] == "X (5)"


class TestNameVariant:
    def test_variants(self):
        assert is_name_variant("差旅报销", "差旅报销")
        assert is_name_variant("差旅报销 (2)", "差旅报销")

    def test_non_variants(self):
        assert not is_name_variant("差旅报销2", "差旅报销")
        assert not is_name_variant("差旅报销 (a)", "差旅报销")
        assert not is_name_variant("(1)", "差旅报销")

    def test_regex_characters_escaped(self):
        assert is_name_variant("a.b (1)", "a.b")
        assert not is_name_variant("axb", "a.b")


class TestFileNames:
    def test_extension(self):
        assert file_extension("发票.PDF") == "pdf"
        assert file_extension("C:\\docs\\scan.Jpeg") == "jpeg"
        assert file_extension("README") == ""

    def test_timestamped(self):
        assert timestamped_file_name("发票.pdf", 1700000000000) == "发票_1700000000000.pdf"

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("a_1.png", "a_1_wm.png"),
            ("a_1.JPEG", "a_1_wm.jpg"),
            ("a_1.jpg", "a_1_wm.jpg"),
            ("a_1.pdf", "a_1_wm.pdf"),
        ],
    )
    def test_watermarked(self, name, expected):
        assert watermarked_file_name(name) == expected

    def test_safe_stem(self):
        assert safe_file_stem("北京 出差/2024") == "北京_出差_2024"
        assert safe_file_stem("***", default="project") == "project"
        assert safe_file_stem(None) == "file"


class TestWatermarkPlaceholders:
    """占位符替换"""

    def test_all_tokens(self):
        text = resolve_watermark_template(
            "{userName} - {itemName} - {projectName} - {date}",
            {"userName": "Alice", "itemName": "发票", "projectName": "北京出差", "date": "2024-03-01"},
        )
        assert text == "Alice - 发票 - 北京出差 - 2024-03-01"

    def test_repeated_token(self):
        assert resolve_watermark_template("{userName}/{userName}", {"userName": "A"}) == "A/A"

    def test_unknown_token_left(self):
        assert resolve_watermark_template("{foo} {userName}", {"userName": "A"}) == "{foo} A"

    def test_none_value_left(self):
        assert resolve_watermark_template("{userName}", {"userName": None}) == "{userName}"

    def test_value_with_backslash(self):
        assert resolve_watermark_template("{userName}", {"userName": r"a\1"}) == r"a\1"

    def test_placeholder_list(self):
        listed = format_placeholder_list()
        assert listed == ", ".join(p.token for p in WATERMARK_PLACEHOLDERS)
        assert "{userName}" in listed

    def test_locale_date(self):
        assert format_locale_date(date(2024, 3, 1)) == "2024/3/1"
        assert format_locale_date(date(2023, 12, 25)) == "2023/12/25"

    def test_date_placeholder_resolution(self):
        """{date} 使用不补零的 年/月/日"""
        text = resolve_watermark_template(
            "{userName} - {itemName} ({date})",
            {"userName": "Alice", "itemName": "Receipt", "date": format_locale_date(date(2024, 3, 1))},
        )
        assert text == "Alice - Receipt (2024/3/1)"


def _item(name, **overrides):
    item = {
        "name": name,
        "description": None,
        "is_required": True,
        "file_types": ["pdf", "jpg"],
        "needs_watermark": False,
        "watermark_template": None,
        "allows_multiple_files": False,
        "display_order": 0,
        "category": None,
    }
    item.update(overrides)
    return item


class TestTemplateCompare:
    """模板结构等价性"""

    def test_equivalent_ignores_order(self):
        left = [_item("发票"), _item("行程单", display_order=1)]
        right = [_item("行程单", display_order=1), _item("发票", file_types=["JPG", ".pdf"])]
        assert template_items_equivalent(left, right)

    def test_empty_description_equals_none(self):
        assert template_items_equivalent([_item("发票", description="")], [_item("发票")])

    def test_field_difference(self):
        assert not template_items_equivalent([_item("发票")], [_item("发票", is_required=False)])
        assert not template_items_equivalent([_item("发票")], [_item("发票", category="交通")])

    def test_extra_item(self):
        assert not template_items_equivalent([_item("发票")], [_item("发票"), _item("行程单")])

    def test_different_names(self):
        assert not template_items_equivalent([_item("发票")], [_item("收据")])

    def test_duplicate_names(self):
        assert not template_items_equivalent(
            [_item("发票"), _item("发票")], [_item("发票"), _item("收据")]
        )

    def test_objects_supported(self):
        class Row:
            def __init__(self, **values):
                self.__dict__.update(values)

        assert template_items_equivalent([Row(**_item("发票"))], [_item("发票")])
