from typing import List, Optional, Tuple, Union
import io
import os
from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError
from core.config import logger
from core.errors import AnnotationError

BAND_OPACITY = 0.75
TITLE_COLOR = (255, 214, 0, 255)
TEXT_COLOR = (255, 255, 255, 255)
LOGO_WIDTH_REL = 0.15
LOGO_MARGIN = 20

_REGULAR_FONTS = [
    os.getenv("WATERMARK_TTF"),
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/System/Library/Fonts/Supplemental/Arial.ttf",
    "C:/Windows/Fonts/arial.ttf",
    "arial.ttf",
    "DejaVuSans.ttf",
]
_BOLD_FONTS = [
    os.getenv("WATERMARK_TTF_BOLD"),
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    "C:/Windows/Fonts/arialbd.ttf",
    "arialbd.ttf",
    "DejaVuSans-Bold.ttf",
]

_font_cache: dict[tuple[int, bool], ImageFont.ImageFont] = {}


def _load_font(size: int, bold: bool = False):
    key = (size, bold)
    if key in _font_cache:
        return _font_cache[key]
    font = None
    for fp in (_BOLD_FONTS if bold else _REGULAR_FONTS):
        if not fp:
            continue
        try:
            font = ImageFont.truetype(fp, size)
            break
        except Exception:
            continue
    if font is None:
        try:
            font = ImageFont.load_default(size=size)
        except TypeError:
            font = ImageFont.load_default()
        logger.warning("Falling back to PIL default font for captions. Provide WATERMARK_TTF or install DejaVuSans.")
    _font_cache[key] = font
    return font


def _compute_position(img_w: int, img_h: int, box_w: int, box_h: int, padding: int, pos: str) -> Tuple[int, int]:
    pos = (pos or 'bottom-right').lower()
    if pos == 'top-left':
        return padding, padding
    if pos == 'top-right':
        return img_w - box_w - padding, padding
    if pos == 'bottom-left':
        return padding, img_h - box_h - padding
    # default bottom-right
    return img_w - box_w - padding, img_h - box_h - padding


def caption_metrics(width: int) -> Tuple[int, int, int]:
    """Font size, line height and padding for a caption band on an image of this width."""
    font_size = max(12, int(width * 0.022))
    line_height = int(font_size * 1.5)
    padding = max(10, font_size)
    return font_size, line_height, padding


def band_height(num_lines: int, line_height: int, padding: int) -> int:
    # one extra line for the bold title
    return (num_lines + 1) * line_height + 2 * padding


def _fit_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> str:
    if max_width <= 0 or draw.textlength(text, font=font) <= max_width:
        return text
    ellipsis = "..."
    lo, hi = 0, len(text)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if draw.textlength(text[:mid] + ellipsis, font=font) <= max_width:
            lo = mid
        else:
            hi = mid - 1
    return text[:lo].rstrip() + ellipsis


def add_caption_band(img: Image.Image, title: str, lines: List[str]) -> Image.Image:
    """Draw a dark translucent band at the bottom with a yellow title and white caption lines."""
    base = img.convert("RGBA")
    width, height = base.size
    font_size, line_height, padding = caption_metrics(width)
    bh = min(height, band_height(len(lines), line_height, padding))
    y0 = height - bh

    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    draw.rectangle([0, y0, width, height], fill=(0, 0, 0, int(BAND_OPACITY * 255)))

    max_text_w = width - 2 * padding
    title_font = _load_font(font_size, bold=True)
    text_font = _load_font(font_size)
    y = y0 + padding
    draw.text((padding, y), _fit_text(draw, title, title_font, max_text_w), font=title_font, fill=TITLE_COLOR)
    for line in lines:
        y += line_height
        draw.text((padding, y), _fit_text(draw, line, text_font, max_text_w), font=text_font, fill=TEXT_COLOR)

    return Image.alpha_composite(base, overlay)


def add_logo(img: Image.Image, logo: Image.Image, position: str = 'bottom-right') -> Image.Image:
    """Composite a logo at a corner. The logo image passed in is left untouched."""
    base = img.convert("RGBA")
    width, height = base.size
    sig = logo.convert("RGBA")
    target_w = max(32, int(width * LOGO_WIDTH_REL))
    scale = target_w / float(sig.width)
    target_h = max(1, int(round(sig.height * scale)))
    sig_resized = sig.resize((target_w, target_h), Image.Resampling.LANCZOS)
    x, y = _compute_position(width, height, target_w, target_h, LOGO_MARGIN, position)
    base.alpha_composite(sig_resized, (max(0, x), max(0, y)))
    return base


def load_logo(data: Optional[bytes]) -> Optional[Image.Image]:
    if not data:
        return None
    try:
        logo = Image.open(io.BytesIO(data))
        logo.load()
        return logo
    except Exception as ex:
        logger.warning(f"logo decode failed: {ex}")
        return None


def annotate(
    image_bytes: bytes,
    lines: List[str],
    logo: Optional[Union[Image.Image, bytes]] = None,
    title: str = "",
    quality: int = 90,
) -> bytes:
    """Burn the caption band (and logo, if any) into a photo and return JPEG bytes.

    If the image header cannot be read the source bytes come back unchanged.
    Any later decode/compose/encode problem raises AnnotationError.
    """
    try:
        img = Image.open(io.BytesIO(image_bytes))
        width, height = img.size
    except (UnidentifiedImageError, OSError, ValueError) as ex:
        logger.warning(f"image size unreadable, leaving photo unannotated: {ex}")
        return image_bytes
    if not width or not height:
        return image_bytes

    try:
        img = ImageOps.exif_transpose(img)
        out = add_caption_band(img, title, lines)
        if isinstance(logo, (bytes, bytearray)):
            logo = load_logo(bytes(logo))
        if logo is not None:
            out = add_logo(out, logo)
        buf = io.BytesIO()
        out.convert("RGB").save(buf, format="JPEG", quality=quality, optimize=True)
        return buf.getvalue()
    except Exception as ex:
        raise AnnotationError(f"anotasi gagal: {ex}") from ex
