"""Screenshot annotation: highlight violation regions with numbered badges."""

import base64
import io
import logging
import re
from typing import List, Sequence, Tuple, Union

import requests
from PIL import Image, ImageDraw, ImageFont

from utils.scoring import BoundingBox, Severity, Violation

logger = logging.getLogger(__name__)

ANNOTATION_COLORS = {
    Severity.HIGH: "#ef4444",
    Severity.MEDIUM: "#f59e0b",
    Severity.LOW: "#3b82f6",
}
FILL_ALPHA = 0x20
BORDER_WIDTH = 4
BADGE_SIZE = 32
CROP_BORDER_WIDTH = 3

_DATA_URI = re.compile(r'^data:image/[\w.+-]+;base64,', re.I)


def _rgb(hex_color: str) -> Tuple[int, int, int]:
    value = hex_color.lstrip('#')
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def _font(size: int):
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", size)
    except OSError:
        return ImageFont.load_default()


def load_image(source: Union[str, bytes], timeout: int = 30) -> Image.Image:
    """
    Open a screenshot from raw bytes, a base64 string, a data URI or an
    http(s) URL (crawl screenshots are hosted by the crawl service).
    """
    if isinstance(source, bytes):
        data = source
    elif source.startswith(("http://", "https://")):
        response = requests.get(source, timeout=timeout)
        response.raise_for_status()
        data = response.content
    else:
        data = base64.b64decode(_DATA_URI.sub('', source))
    image = Image.open(io.BytesIO(data))
    image.load()
    return image.convert("RGBA")


def image_to_data_uri(image: Image.Image, fmt: str = "PNG") -> str:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    encoded = base64.b64encode(buffer.getvalue()).decode('utf-8')
    return f"data:image/{fmt.lower()};base64,{encoded}"


def image_to_bytes(image: Image.Image, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def legend_entries(violations: Sequence[Violation]) -> List[Tuple[int, Violation]]:
    """Numbered list of violations that have a region on the screenshot."""
    boxed = [v for v in violations if v.bounding_box is not None]
    return [(i + 1, v) for i, v in enumerate(boxed)]


def _draw_region(overlay: Image.Image, rect: Tuple[float, float, float, float], color: str, border: int):
    left, top, width, height = rect
    r, g, b = _rgb(color)
    draw = ImageDraw.Draw(overlay)
    draw.rectangle(
        [left, top, left + width, top + height],
        fill=(r, g, b, FILL_ALPHA),
        outline=(r, g, b, 255),
        width=border,
    )


def _draw_badge(overlay: Image.Image, number: int, center: Tuple[float, float], color: str):
    cx, cy = center
    radius = BADGE_SIZE / 2
    draw = ImageDraw.Draw(overlay)
    draw.ellipse([cx - radius, cy - radius, cx + radius, cy + radius], fill=_rgb(color) + (255,))
    draw.text((cx, cy), str(number), fill=(255, 255, 255, 255), font=_font(16), anchor="mm")


def annotate_screenshot(image: Image.Image, violations: Sequence[Violation]) -> Image.Image:
    """
    Return a copy of the screenshot with each boxed violation highlighted.

    Badge numbers match legend_entries() so the image and its legend agree.
    """
    base = image.convert("RGBA")
    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    width, height = base.size

    for number, violation in legend_entries(violations):
        color = ANNOTATION_COLORS[violation.severity]
        left, top, box_w, box_h = violation.bounding_box.to_pixels(width, height)
        _draw_region(overlay, (left, top, box_w, box_h), color, BORDER_WIDTH)
        _draw_badge(overlay, number, (left + box_w - BADGE_SIZE / 2, top - BADGE_SIZE / 2), color)

    return Image.alpha_composite(base, overlay)


def crop_violation(
    image: Image.Image,
    box: BoundingBox,
    severity: Severity,
    padding: float = 0.2,
    max_width: int = 400,
) -> Image.Image:
    """
    Crop the region around one violation with context padding, highlight it
    and scale the result down to at most max_width pixels wide.
    """
    base = image.convert("RGBA")
    width, height = base.size
    left, top, box_w, box_h = box.to_pixels(width, height)

    pad_x = box_w * padding
    pad_y = box_h * padding
    # a box on the right or bottom edge still yields at least one pixel
    crop_left = int(min(width - 1, max(0, left - pad_x)))
    crop_top = int(min(height - 1, max(0, top - pad_y)))
    crop_right = max(crop_left + 1, int(round(min(width, left + box_w + pad_x))))
    crop_bottom = max(crop_top + 1, int(round(min(height, top + box_h + pad_y))))

    cropped = base.crop((crop_left, crop_top, crop_right, crop_bottom))
    overlay = Image.new("RGBA", cropped.size, (0, 0, 0, 0))
    _draw_region(
        overlay,
        (left - crop_left, top - crop_top, box_w, box_h),
        ANNOTATION_COLORS[severity],
        CROP_BORDER_WIDTH,
    )
    highlighted = Image.alpha_composite(cropped, overlay)

    if highlighted.width > max_width:
        scale = max_width / highlighted.width
        highlighted = highlighted.resize((max_width, max(1, int(highlighted.height * scale))))
    return highlighted
