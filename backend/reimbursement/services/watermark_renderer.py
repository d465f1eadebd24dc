"""水印渲染

图片使用 Pillow 绘制，PDF 使用 reportlab 生成印章页后通过 pypdf 叠加到每一页。
坐标统一以百分比表示文本中心：图片原点在左上角，PDF 原点在左下角，
因此 PDF 的纵向坐标需要翻转。
"""
import io
import logging
import os
import tempfile
from dataclasses import dataclass

from PIL import Image, ImageDraw, ImageFont, ImageOps
from pypdf import PdfReader, PdfWriter
from reportlab.lib.colors import HexColor
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"png", "jpg", "jpeg"}
PDF_EXTENSIONS = {"pdf"}
SUPPORTED_EXTENSIONS = IMAGE_EXTENSIONS | PDF_EXTENSIONS

# 预设锚点（百分比）：中心与四个象限中心
POSITION_ANCHORS: dict[str, tuple[float, float]] = {
    "center": (50.0, 50.0),
    "top_left": (25.0, 25.0),
    "top_right": (75.0, 25.0),
    "bottom_left": (25.0, 75.0),
    "bottom_right": (75.0, 75.0),
}

LINE_HEIGHT_RATIO = 1.2
ITALIC_SHEAR = 0.2
CJK_PDF_FONT = "STSong-Light"

_CJK_FONT_FILES = (
    "NotoSansCJK-Regular.ttc",
    "NotoSansSC-Regular.otf",
    "msyh.ttc",
    "simhei.ttf",
    "simsun.ttc",
    "PingFang.ttc",
    "wqy-microhei.ttc",
)

_PDF_FONT_FACES = {
    "helvetica": ("Helvetica", "Helvetica-Bold", "Helvetica-Oblique", "Helvetica-BoldOblique"),
    "times": ("Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic"),
    "courier": ("Courier", "Courier-Bold", "Courier-Oblique", "Courier-BoldOblique"),
}


@dataclass
class WatermarkStyle:
    """一次渲染使用的完整样式"""
    font_family: str = "Arial"
    font_size: int = 48
    bold: bool = False
    italic: bool = False
    underline: bool = False
    color: str = "#000000"
    opacity: float = 0.3
    rotation: float = -45
    x_percent: float = 50
    y_percent: float = 50

    def anchor(self) -> tuple[float, float]:
        """限制在 0-100 之间的锚点百分比"""
        return (
            min(100.0, max(0.0, float(self.x_percent))),
            min(100.0, max(0.0, float(self.y_percent))),
        )

    def alpha(self) -> float:
        return min(1.0, max(0.0, float(self.opacity)))


def needs_cjk_font(text: str) -> bool:
    return any(ord(ch) > 0xFF for ch in text)


def split_lines(text: str) -> list[str]:
    return text.splitlines() or [""]


def _hex_to_rgb(color: str) -> tuple[int, int, int]:
    value = color.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


# ---------- 图片 ----------

def _font_candidates(family: str, bold: bool) -> list[str]:
    base = family.strip()
    compact = base.replace(" ", "")
    if bold:
        return [f"{base} Bold.ttf", f"{compact}-Bold.ttf", f"{compact.lower()}bd.ttf"]
    return [f"{base}.ttf", f"{compact}.ttf", f"{compact.lower()}.ttf"]


def load_image_font(family: str, size: int, bold: bool, text: str):
    """
    按字体族加载字体，找不到时依次回退到中文字体、DejaVuSans 与 Pillow 内置字体

    Returns:
        (字体对象, 是否为真正的粗体字形)
    """
    attempts: list[tuple[str, bool]] = []
    if needs_cjk_font(text):
        attempts += [(name, False) for name in _CJK_FONT_FILES]
    else:
        if bold:
            attempts += [(name, True) for name in _font_candidates(family, True)]
        attempts += [(name, False) for name in _font_candidates(family, False)]
    if bold:
        attempts.append(("DejaVuSans-Bold.ttf", True))
    attempts.append(("DejaVuSans.ttf", False))

    for name, is_bold in attempts:
        try:
            return ImageFont.truetype(name, size), is_bold
        except OSError:
            continue
    logger.debug(f"未找到字体 {family}，使用内置字体")
    return ImageFont.load_default(size=size), False


def render_text_layer(text: str, style: WatermarkStyle) -> Image.Image:
    """将文本绘制到透明图层（未旋转）"""
    font_size = max(1, int(style.font_size))
    font, real_bold = load_image_font(style.font_family or "Arial", font_size, style.bold, text)
    stroke = max(1, font_size // 30) if style.bold and not real_bold else 0

    lines = split_lines(text)
    line_height = max(1, round(font_size * LINE_HEIGHT_RATIO))
    underline_width = max(1, round(font_size / 15))

    probe = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    boxes = [probe.textbbox((0, 0), line, font=font, stroke_width=stroke) for line in lines]
    text_width = max((box[2] - box[0] for box in boxes), default=0)
    width = max(1, int(text_width) + 2 * stroke + 4)
    height = max(1, line_height * len(lines) + 2 * underline_width + 4)

    layer = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    r, g, b = _hex_to_rgb(style.color or "#000000")
    fill = (r, g, b, round(255 * style.alpha()))

    for index, (line, box) in enumerate(zip(lines, boxes)):
        line_w = box[2] - box[0]
        line_h = box[3] - box[1]
        center_y = line_height * index + line_height / 2 + 2
        x = (width - line_w) / 2 - box[0]
        y = center_y - line_h / 2 - box[1]
        draw.text((x, y), line, font=font, fill=fill, stroke_width=stroke, stroke_fill=fill)
        if style.underline and line:
            underline_y = center_y + line_h / 2 + underline_width
            draw.line(
                [((width - line_w) / 2, underline_y), ((width + line_w) / 2, underline_y)],
                fill=fill,
                width=underline_width,
            )

    if style.italic:
        shear = ITALIC_SHEAR * height
        layer = layer.transform(
            (width + int(shear) + 1, height),
            Image.Transform.AFFINE,
            (1, ITALIC_SHEAR, -shear, 0, 1, 0),
            resample=Image.Resampling.BICUBIC,
        )
    return layer


def render_image_watermark(source: str, target: str, text: str, style: WatermarkStyle) -> None:
    """在图片上绘制水印，jpg/jpeg 输出 JPEG，其余输出 PNG"""
    with Image.open(source) as opened:
        base = ImageOps.exif_transpose(opened).convert("RGBA")

    layer = render_text_layer(text, style)
    rotated = layer.rotate(-float(style.rotation or 0), expand=True, resample=Image.Resampling.BICUBIC)

    x_percent, y_percent = style.anchor()
    center_x = base.width * x_percent / 100
    center_y = base.height * y_percent / 100
    offset = (round(center_x - rotated.width / 2), round(center_y - rotated.height / 2))

    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    overlay.paste(rotated, offset)
    result = Image.alpha_composite(base, overlay)

    if os.path.splitext(target)[1].lower() in (".jpg", ".jpeg"):
        result.convert("RGB").save(target, "JPEG", quality=95)
    else:
        result.save(target, "PNG")


# ---------- PDF ----------

def ensure_cjk_pdf_font() -> str:
    """注册 reportlab 内置的中文 CID 字体并返回字体名"""
    if CJK_PDF_FONT not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(UnicodeCIDFont(CJK_PDF_FONT))
    return CJK_PDF_FONT


def _pdf_font(style: WatermarkStyle, text: str) -> tuple[str, bool]:
    """
    选择 PDF 字体

    Returns:
        (字体名, 是否需要模拟粗体/斜体)
    """
    if needs_cjk_font(text):
        return ensure_cjk_pdf_font(), True

    family = (style.font_family or "").lower()
    if "times" in family or ("serif" in family and "sans" not in family):
        faces = _PDF_FONT_FACES["times"]
    elif "courier" in family or "mono" in family:
        faces = _PDF_FONT_FACES["courier"]
    else:
        faces = _PDF_FONT_FACES["helvetica"]
    index = (1 if style.bold else 0) + (2 if style.italic else 0)
    return faces[index], False


def build_pdf_stamp(
    left: float,
    bottom: float,
    width: float,
    height: float,
    text: str,
    style: WatermarkStyle,
):
    """生成与目标页面坐标一致的单页水印 PDF，返回其 PageObject"""
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=(left + width, bottom + height))
    font_name, simulated = _pdf_font(style, text)
    font_size = max(1, int(style.font_size))
    color = HexColor(style.color or "#000000")

    c.setFillColor(color)
    c.setStrokeColor(color)
    c.setFillAlpha(style.alpha())
    c.setStrokeAlpha(style.alpha())

    x_percent, y_percent = style.anchor()
    c.translate(left + width * x_percent / 100, bottom + height * (1 - y_percent / 100))
    c.rotate(-float(style.rotation or 0))
    if simulated and style.italic:
        c.skew(0, 11.3)

    lines = split_lines(text)
    line_height = font_size * LINE_HEIGHT_RATIO
    start = (len(lines) - 1) * line_height / 2
    for index, line in enumerate(lines):
        baseline = start - index * line_height - font_size * 0.35
        text_obj = c.beginText()
        text_obj.setFont(font_name, font_size)
        if simulated and style.bold:
            text_obj.setTextRenderMode(2)
            c.setLineWidth(max(0.5, font_size / 30))
        line_width = pdfmetrics.stringWidth(line, font_name, font_size)
        text_obj.setTextOrigin(-line_width / 2, baseline)
        text_obj.textLine(line)
        c.drawText(text_obj)
        if style.underline and line:
            c.setLineWidth(max(1, font_size / 15))
            underline_y = baseline - font_size * 0.12
            c.line(-line_width / 2, underline_y, line_width / 2, underline_y)

    c.showPage()
    c.save()
    buffer.seek(0)
    return PdfReader(buffer).pages[0]


def render_pdf_watermark(source: str, target: str, text: str, style: WatermarkStyle) -> None:
    """在 PDF 每一页相同的相对位置叠加水印，页数保持不变"""
    reader = PdfReader(source)
    writer = PdfWriter()
    for page in reader.pages:
        if page.rotation:
            page.transfer_rotation_to_content()
        box = page.mediabox
        stamp = build_pdf_stamp(
            float(box.left), float(box.bottom), float(box.width), float(box.height), text, style
        )
        page.merge_page(stamp)
        writer.add_page(page)
    with open(target, "wb") as f:
        writer.write(f)


# ---------- 入口 ----------

def render_watermark(source: str, target: str, text: str, style: WatermarkStyle) -> None:
    """
    根据源文件扩展名渲染水印并写入 target

    先写入同目录下的临时文件，成功后再替换为目标文件，
    失败时不会留下不完整的输出。
    """
    ext = os.path.splitext(source)[1].lower().lstrip(".")
    if ext not in SUPPORTED_EXTENSIONS:
        raise ValueError(f"不支持的水印文件类型: {ext}")

    target_dir = os.path.dirname(target)
    os.makedirs(target_dir, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=target_dir, suffix=os.path.splitext(target)[1])
    os.close(fd)
    try:
        if ext in PDF_EXTENSIONS:
            render_pdf_watermark(source, tmp_path, text, style)
        else:
            render_image_watermark(source, tmp_path, text, style)
        os.replace(tmp_path, target)
    except Exception:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
