"""文件名与模板名称处理"""
import re
from pathlib import PurePosixPath
from typing import Iterable

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9一-龥]+")


def safe_file_stem(name: str | None, default: str = "file") -> str:
    """保留字母、数字与中文，其余字符替换为下划线"""
    stem = _UNSAFE_CHARS.sub("_", name or "").strip("_")
    return stem or default


def unique_name(base: str, existing: Iterable[str]) -> str:
    """名称冲突时追加 " (n)"，n 取最小可用值"""
    taken = set(existing)
    if base not in taken:
        return base
    counter = 1
    while f"{base} ({counter})" in taken:
        counter += 1
    return f"{base} ({counter})"


def is_name_variant(name: str, base: str) -> bool:
    """判断 name 是否为 base 或其 " (n)" 去重变体"""
    if name == base:
        return True
    return re.fullmatch(re.escape(base) + r" \(\d+\)", name) is not None


def file_extension(name: str) -> str:
    """小写扩展名（不含点）"""
    suffix = PurePosixPath(name.replace("\\", "/")).suffix
    return suffix[1:].lower() if suffix else ""


def timestamped_file_name(original_name: str, timestamp_ms: int) -> str:
    """生成存储文件名：<原名>_<毫秒时间戳><扩展名>"""
    path = PurePosixPath(original_name.replace("\\", "/"))
    return f"{path.stem}_{timestamp_ms}{path.suffix}"


def watermarked_file_name(file_name: str) -> str:
    """水印文件名：在扩展名前加 _wm，jpeg 统一输出为 .jpg"""
    path = PurePosixPath(file_name)
    ext = path.suffix.lower()
    if ext in (".jpg", ".jpeg"):
        out_ext = ".jpg"
    elif ext == ".pdf":
        out_ext = ".pdf"
    else:
        out_ext = ".png"
    return f"{path.stem}_wm{out_ext}"
