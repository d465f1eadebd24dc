"""模板结构等价性比较

导入项目时用于判断已有模板能否复用：两份模板的所有模板项按名称一一配对，
且描述、必填、扩展名集合（忽略顺序）、水印标记、水印文本、多文件标记、
显示顺序、分类均相同，则视为等价。
"""
from typing import Any, Iterable


def _text(value: Any) -> str:
    return (value or "").strip() if isinstance(value, str) else ("" if value is None else str(value))


def _extensions(value: Iterable[str] | None) -> frozenset[str]:
    return frozenset(ext.strip().lstrip(".").lower() for ext in (value or []) if ext and ext.strip())


def item_signature(item: Any) -> tuple:
    """提取参与比较的字段，item 可以是 ORM 对象、pydantic 模型或 dict"""
    get = item.get if isinstance(item, dict) else lambda key: getattr(item, key, None)
    return (
        _text(get("description")),
        bool(get("is_required")),
        _extensions(get("file_types")),
        bool(get("needs_watermark")),
        _text(get("watermark_template")),
        bool(get("allows_multiple_files")),
        int(get("display_order") or 0),
        _text(get("category")),
    )


def _item_name(item: Any) -> str:
    return item["name"] if isinstance(item, dict) else item.name


def template_items_equivalent(left: Iterable[Any], right: Iterable[Any]) -> bool:
    """按名称配对比较两组模板项，任一侧多出或缺少模板项均视为不等价"""
    left_items = list(left)
    right_items = list(right)
    if len(left_items) != len(right_items):
        return False

    left_by_name = {_item_name(item): item for item in left_items}
    right_by_name = {_item_name(item): item for item in right_items}
    # 名称重复时无法一一配对
    if len(left_by_name) != len(left_items) or len(right_by_name) != len(right_items):
        return False
    if left_by_name.keys() != right_by_name.keys():
        return False

    return all(
        item_signature(left_by_name[name]) == item_signature(right_by_name[name])
        for name in left_by_name
    )
