from __future__ import annotations
"""Sheet codec: split a four-up composite into angle images and lay angle images out as one sheet.

Grid positions are fixed for both directions:

    +-------+-------+
    | front | left  |
    +-------+-------+
    | right | back  |
    +-------+-------+
"""

import io
import logging
from dataclasses import dataclass
from typing import Mapping

from PIL import Image, ImageDraw, ImageFilter, ImageFont, UnidentifiedImageError

from barberbooth.schemas.generation import ANGLES, Angle
from barberbooth.schemas.parts import ImagePart
from barberbooth.services.errors import (
    DecompositionFailedError,
    InvalidInputError,
    SheetCodecError,
)

logger = logging.getLogger(__name__)

Box = tuple[int, int, int, int]

_DECODE_ERRORS = (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError)

# ---------------------------------------------------------------------------
# Sheet layout constants (portrait A4 at 300 dpi)
# ---------------------------------------------------------------------------

CANVAS_SIZE = (2480, 3508)
GRID_PADDING = 120
CONTENT_TOP = 450
POLAROID_PADDING = 40
CAPTION_HEIGHT = 120
SHADOW_MARGIN = 75

BG_START = (30, 27, 75)      # indigo-950, top-left
BG_END = (12, 10, 9)         # neutral-950, bottom-right
TITLE_LEFT = (244, 114, 182)  # pink-400
TITLE_RIGHT = (167, 139, 250)  # violet-400
SUBTITLE_COLOR = (161, 161, 170)
FOOTER_COLOR = (113, 113, 122)
FRAME_COLOR = (243, 244, 246)
CAPTION_COLOR = (31, 41, 55)

DEFAULT_TITLE = "Barber Booth Pro"
DEFAULT_SUBTITLE = "Your Personal AI Hair Salon"
DEFAULT_FOOTER = "Powered by the Gemini family of models"


@dataclass(frozen=True)
class CellLayout:
    """Geometry of one polaroid cell on the sheet."""
    frame: Box
    image_area: Box
    caption_center: tuple[int, int]


def quadrant_boxes(width: int, height: int) -> dict[Angle, Box]:
    """Crop boxes of the four quadrants, cut at ``width // 2`` and ``height // 2``."""
    half_w, half_h = width // 2, height // 2
    origins = [(0, 0), (half_w, 0), (0, half_h), (half_w, half_h)]
    return {
        angle: (x, y, x + half_w, y + half_h)
        for angle, (x, y) in zip(ANGLES, origins)
    }


def sheet_layout(canvas_size: tuple[int, int] = CANVAS_SIZE) -> dict[Angle, CellLayout]:
    """Frame and image rectangles of the 2x2 polaroid grid below the header."""
    canvas_w, canvas_h = canvas_size
    content_h = canvas_h - CONTENT_TOP - GRID_PADDING
    cell_w = (canvas_w - GRID_PADDING * 3) // 2
    cell_h = (content_h - GRID_PADDING * 3) // 2
    image_area_h = cell_h - CAPTION_HEIGHT - POLAROID_PADDING

    layout: dict[Angle, CellLayout] = {}
    for index, angle in enumerate(ANGLES):
        row, col = divmod(index, 2)
        x = GRID_PADDING * (col + 1) + cell_w * col
        y = CONTENT_TOP + GRID_PADDING * (row + 1) + cell_h * row
        layout[angle] = CellLayout(
            frame=(x, y, x + cell_w, y + cell_h),
            image_area=(
                x + POLAROID_PADDING,
                y + POLAROID_PADDING,
                x + cell_w - POLAROID_PADDING,
                y + POLAROID_PADDING + image_area_h,
            ),
            caption_center=(x + cell_w // 2, y + cell_h - CAPTION_HEIGHT // 2),
        )
    return layout


def letterbox(source_size: tuple[int, int], area_size: tuple[int, int]) -> tuple[int, int]:
    """Largest size with the source aspect ratio that fits inside the area."""
    src_w, src_h = source_size
    area_w, area_h = area_size
    if src_w <= 0 or src_h <= 0:
        raise SheetCodecError(f"Invalid image size {source_size}")
    aspect = src_w / src_h
    draw_w = area_w
    draw_h = round(draw_w / aspect)
    if draw_h > area_h:
        draw_h = area_h
        draw_w = round(draw_h * aspect)
    return max(draw_w, 1), max(draw_h, 1)


class SheetCodec:
    """Stateless; safe to share across sessions."""

    def __init__(
        self,
        *,
        image_format: str = "JPEG",
        quality: int = 90,
        font_path: str | None = None,
        canvas_size: tuple[int, int] = CANVAS_SIZE,
        title: str = DEFAULT_TITLE,
        subtitle: str = DEFAULT_SUBTITLE,
        footer: str = DEFAULT_FOOTER,
    ) -> None:
        self.image_format = image_format.upper()
        self.quality = quality
        self.font_path = font_path
        self.canvas_size = canvas_size
        self.title = title
        self.subtitle = subtitle
        self.footer = footer

    @property
    def mime_type(self) -> str:
        """MIME type of the images this codec writes."""
        return Image.MIME.get(self.image_format, "image/jpeg")

    # -----------------------------------------------------------------------
    # Decompose
    # -----------------------------------------------------------------------

    def decompose(self, sheet: bytes) -> dict[Angle, bytes]:
        """Split a 2x2 composite into four angle images.

        All four quadrants are produced or ``DecompositionFailedError`` is
        raised; there is no partial result.
        """
        try:
            image = _open_rgb(sheet)
        except _DECODE_ERRORS as e:
            raise DecompositionFailedError(f"Could not decode the generated sheet: {e}") from e

        width, height = image.size
        if width < 2 or height < 2:
            raise DecompositionFailedError(
                f"Generated sheet is too small to split into a 2x2 grid ({width}x{height})"
            )

        quadrants: dict[Angle, bytes] = {}
        for angle, box in quadrant_boxes(width, height).items():
            try:
                quadrants[angle] = self._encode(image.crop(box))
            except (OSError, ValueError) as e:
                raise DecompositionFailedError(
                    f"Could not encode the {angle.value} quadrant: {e}"
                ) from e

        logger.info(
            "Decomposed %dx%d sheet into four %dx%d views",
            width, height, width // 2, height // 2,
        )
        return quadrants

    # -----------------------------------------------------------------------
    # Compose
    # -----------------------------------------------------------------------

    def compose(
        self,
        images: Mapping[Angle, bytes],
        captions: Mapping[Angle, str] | None = None,
    ) -> bytes:
        """Lay the four angle images out as one branded, captioned sheet."""
        missing = [angle.value for angle in ANGLES if not images.get(angle)]
        if missing:
            raise InvalidInputError(
                f"All four views are required to build a sheet; missing: {', '.join(missing)}"
            )
        captions = captions or {}

        canvas = _diagonal_gradient(self.canvas_size, BG_START, BG_END).convert("RGBA")
        self._draw_header(canvas)

        for angle, cell in sheet_layout(self.canvas_size).items():
            try:
                source = _open_rgb(images[angle])
            except _DECODE_ERRORS as e:
                raise SheetCodecError(f"Could not decode the {angle.value} image: {e}") from e
            self._draw_cell(canvas, cell, source, captions.get(angle) or angle.label)

        draw = ImageDraw.Draw(canvas)
        canvas_w, canvas_h = self.canvas_size
        _draw_centered(
            draw, self.footer, (canvas_w // 2, canvas_h - 80), self._font(40), FOOTER_COLOR,
        )

        return self._encode(canvas.convert("RGB"))

    def _draw_header(self, canvas: Image.Image) -> None:
        canvas_w = canvas.width

        # Title filled with a horizontal pink → violet gradient.
        text_mask = Image.new("L", canvas.size, 0)
        _draw_centered(ImageDraw.Draw(text_mask), self.title, (canvas_w // 2, 250), self._font(150), 255)
        fill = _horizontal_gradient(canvas.size, TITLE_LEFT, TITLE_RIGHT).convert("RGBA")
        canvas.paste(fill, (0, 0), text_mask)

        draw = ImageDraw.Draw(canvas)
        _draw_centered(draw, self.subtitle, (canvas_w // 2, 350), self._font(60), SUBTITLE_COLOR)

    def _draw_cell(
        self, canvas: Image.Image, cell: CellLayout, source: Image.Image, caption: str,
    ) -> None:
        x0, y0, x1, y1 = cell.frame

        # Blurred drop shadow, offset 10px down-right.
        margin = SHADOW_MARGIN
        shadow = Image.new("RGBA", (x1 - x0 + 2 * margin, y1 - y0 + 2 * margin), (0, 0, 0, 0))
        ImageDraw.Draw(shadow).rectangle(
            [margin + 10, margin + 10, margin + (x1 - x0) + 10, margin + (y1 - y0) + 10],
            fill=(0, 0, 0, 128),
        )
        canvas.alpha_composite(
            shadow.filter(ImageFilter.GaussianBlur(25)),
            dest=(max(x0 - margin, 0), max(y0 - margin, 0)),
        )

        draw = ImageDraw.Draw(canvas)
        draw.rectangle([x0, y0, x1 - 1, y1 - 1], fill=FRAME_COLOR)

        ax0, ay0, ax1, ay1 = cell.image_area
        draw_w, draw_h = letterbox(source.size, (ax1 - ax0, ay1 - ay0))
        resized = source.resize((draw_w, draw_h), Image.Resampling.LANCZOS)
        paste_x = x0 + ((x1 - x0) - draw_w) // 2
        paste_y = ay0 + ((ay1 - ay0) - draw_h) // 2
        canvas.paste(resized, (paste_x, paste_y))

        _draw_centered(draw, caption, cell.caption_center, self._font(70), CAPTION_COLOR)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _font(self, size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
        if self.font_path:
            try:
                return ImageFont.truetype(self.font_path, size)
            except OSError:
                logger.warning("Sheet font not found: %s, using default", self.font_path)
        return ImageFont.load_default(size=size)

    def _encode(self, image: Image.Image) -> bytes:
        return _encode_image(image, self.image_format, self.quality)


# ---------------------------------------------------------------------------
# Image preparation
# ---------------------------------------------------------------------------

def resize_for_api(image: ImagePart, max_dimension: int = 1024, quality: int = 90) -> ImagePart:
    """Downscale to at most ``max_dimension`` on the long side and re-encode as JPEG."""
    try:
        data = _downscale(image.data, max_dimension, quality)
    except _DECODE_ERRORS as e:
        raise InvalidInputError(f"Could not read the provided image: {e}") from e
    return ImagePart(data=data, mime_type="image/jpeg")


def compress_for_storage(data: bytes, max_dimension: int = 512, quality: int = 80) -> bytes:
    """Smaller JPEG copy for persisting a finished session."""
    try:
        return _downscale(data, max_dimension, quality)
    except _DECODE_ERRORS as e:
        raise SheetCodecError(f"Could not compress image for storage: {e}") from e


def _downscale(data: bytes, max_dimension: int, quality: int) -> bytes:
    image = _open_rgb(data)
    width, height = image.size
    longest = max(width, height)
    if longest > max_dimension:
        scale = max_dimension / longest
        image = image.resize(
            (max(round(width * scale), 1), max(round(height * scale), 1)),
            Image.Resampling.LANCZOS,
        )
    return _encode_image(image, "JPEG", quality)


def _open_rgb(data: bytes) -> Image.Image:
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        return img.convert("RGB")


def _encode_image(image: Image.Image, image_format: str, quality: int) -> bytes:
    buf = io.BytesIO()
    if image_format in ("JPEG", "WEBP"):
        image.save(buf, image_format, quality=quality)
    else:
        image.save(buf, image_format)
    return buf.getvalue()


def _diagonal_gradient(
    size: tuple[int, int], start: tuple[int, int, int], end: tuple[int, int, int],
) -> Image.Image:
    """Linear gradient along the (0, 0) → (w, h) diagonal."""
    width, height = size
    across = Image.linear_gradient("L").rotate(90).resize(size)
    down = Image.linear_gradient("L").resize(size)
    # Projection onto the diagonal: t = (x*w + y*h) / (w² + h²).
    mask = Image.blend(across, down, height * height / (width * width + height * height))
    return Image.composite(Image.new("RGB", size, end), Image.new("RGB", size, start), mask)


def _horizontal_gradient(
    size: tuple[int, int], left: tuple[int, int, int], right: tuple[int, int, int],
) -> Image.Image:
    mask = Image.linear_gradient("L").rotate(90).resize(size)
    return Image.composite(Image.new("RGB", size, right), Image.new("RGB", size, left), mask)


def _draw_centered(
    draw: ImageDraw.ImageDraw,
    text: str,
    center: tuple[int, int],
    font: ImageFont.ImageFont | ImageFont.FreeTypeFont,
    fill,
) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    cx, cy = center
    draw.text(
        (cx - (right - left) / 2 - left, cy - (bottom - top) / 2 - top),
        text, font=font, fill=fill,
    )
