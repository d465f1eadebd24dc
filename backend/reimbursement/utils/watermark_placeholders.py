"""水印文本占位符"""
import re
from dataclasses import dataclass
from datetime import date
from typing import Mapping


@dataclass(frozen=True)
class WatermarkPlaceholder:
    token: str
    label: str
    description: str


WATERMARK_PLACEHOLDERS: tuple[WatermarkPlaceholder, ...] = (
    WatermarkPlaceholder("{userName}", "User Name", "项目创建者姓名"),
    WatermarkPlaceholder("{itemName}", "Item Name", "模板项名称"),
    WatermarkPlaceholder("{projectName}", "Project Name", "项目名称"),
    WatermarkPlaceholder("{date}", "Date", "当前日期（本地格式）"),
)


def format_placeholder_list() -> str:
    """返回逗号分隔的占位符列表，用于界面提示"""
    return ", ".join(p.token for p in WATERMARK_PLACEHOLDERS)


def format_locale_date(day: date | None = None) -> str:
    """zh-CN 本地日期格式，如 2024/3/1"""
    day = day or date.today()
    return f"{day.year}/{day.month}/{day.day}"


def resolve_watermark_template(
    template: str,
    context: Mapping[str, str | int | float | bool | None],
) -> str:
    """将模板中的 {key} 替换为上下文中的值，值为 None 的占位符保持原样"""
    text = template
    for key, value in context.items():
        if value is None:
            continue
        text = re.sub(r"\{" + re.escape(key) + r"\}", lambda _m: str(value), text)
    return text
