"""
Subtítulos por escena renderizados como PNG transparente.
Ajusta el texto al área segura reduciendo la fuente y, en último caso, truncando.
"""
import io
import logging
import math
import re
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from ..domain.models import CaptionLayout

logger = logging.getLogger(__name__)

SAFE_MARGIN_X = 64
SAFE_MARGIN_Y = 48
MIN_FONT_SIZE = 24
FONT_STEP = 2
LINE_HEIGHT = 1.3
MAX_BLOCK_RATIO = 0.30
ELLIPSIS = "…"

MAX_LINES = {"portrait": 4, "landscape": 6, "square": 5}

BOX_PADDING = 16
BOX_COLOR = (0, 0, 0, 178)
SHADOW_COLOR = (0, 0, 0, 204)
OUTLINE_COLOR = (0, 0, 0, 230)

FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "C:/Windows/Fonts/arial.ttf",
]


def aspect_for(width: int, height: int) -> str:
    if height > width:
        return "portrait"
    if width > height:
        return "landscape"
    return "square"


def max_lines_for(width: int, height: int) -> int:
    return MAX_LINES[aspect_for(width, height)]


def initial_font_size(height: int) -> int:
    return 56 if height >= 1080 else 48


@lru_cache(maxsize=64)
def _load_font(font_path: Optional[str], size: int) -> ImageFont.FreeTypeFont:
    """Fuente configurada, luego fuentes del sistema, luego la fuente escalable de Pillow."""
    candidates = [font_path] if font_path else []
    for path in candidates + FONT_CANDIDATES:
        if path and Path(path).exists():
            try:
                return ImageFont.truetype(path, size)
            except OSError:
                continue
    return ImageFont.load_default(size=size)


class CaptionLayoutEngine:
    """Convierte texto en líneas ajustadas al área segura del cuadro."""

    def __init__(self, font_path: Optional[str] = None):
        self.font_path = font_path

    def font(self, size: int) -> ImageFont.FreeTypeFont:
        return _load_font(self.font_path, size)

    def measure(self, text: str, size: int) -> float:
        return self.font(size).getlength(text)

    def wrap(self, text: str, size: int, max_width: float) -> Tuple[List[str], List[str]]:
        """
        Ajuste voraz por palabras. Los saltos de línea explícitos son cortes duros.

        Returns:
            (líneas, palabras más anchas que max_width)
        """
        lines: List[str] = []
        overlong: List[str] = []

        for paragraph in re.split(r"\\n|\n", text):
            words = paragraph.split()
            current = ""
            for word in words:
                candidate = f"{current} {word}" if current else word
                if self.measure(candidate, size) <= max_width:
                    current = candidate
                    continue
                if current:
                    lines.append(current)
                    current = ""
                if self.measure(word, size) > max_width:
                    # Va sola en su línea, sin recortar
                    overlong.append(word)
                    lines.append(word)
                else:
                    current = word
            if current:
                lines.append(current)

        return lines, overlong

    def _ellipsize(self, line: str, size: int, max_width: float) -> str:
        words = line.split()
        while words and self.measure(" ".join(words) + ELLIPSIS, size) > max_width:
            words.pop()
        return (" ".join(words) + ELLIPSIS) if words else ELLIPSIS

    def layout(self, text: str, target_width: int, target_height: int) -> CaptionLayout:
        """
        Calcula líneas y tamaño de fuente para una escena.

        La fuente baja de a 2px hasta que el bloque cabe en el 30% inferior del
        cuadro y no supera el máximo de líneas del aspecto; al llegar al mínimo
        se trunca con una elipsis visible.
        """
        max_lines = max_lines_for(target_width, target_height)
        safe_width = target_width - 2 * SAFE_MARGIN_X
        max_block = target_height * MAX_BLOCK_RATIO
        warnings: List[str] = []

        size = initial_font_size(target_height)
        while True:
            lines, overlong = self.wrap(text, size, safe_width)
            block_height = len(lines) * size * LINE_HEIGHT
            fits = len(lines) <= max_lines and block_height <= max_block
            if fits or size - FONT_STEP < MIN_FONT_SIZE:
                break
            size -= FONT_STEP

        for word in overlong:
            warnings.append(f"Palabra más ancha que el área segura a {size}px: '{word}'")

        if not fits:
            keep = min(max_lines, max(1, math.floor(max_block / (size * LINE_HEIGHT))))
            dropped = len(lines) - keep
            lines = lines[:keep]
            lines[-1] = self._ellipsize(lines[-1], size, safe_width)
            warnings.append(
                f"Subtítulo truncado a {keep} líneas a {size}px ({dropped} líneas omitidas)"
            )

        for warning in warnings:
            logger.warning(warning)
        logger.debug(f"Subtítulo: {len(lines)} líneas a {size}px")

        return CaptionLayout(
            lines=lines,
            font_size_px=size,
            line_height_px=size * LINE_HEIGHT,
            safe_width_px=safe_width,
            canvas_width=target_width,
            canvas_height=target_height,
            warnings=warnings,
        )


class CaptionRasterizer:
    """Dibuja un CaptionLayout sobre un lienzo RGBA transparente."""

    def __init__(self, engine: Optional[CaptionLayoutEngine] = None):
        self.engine = engine or CaptionLayoutEngine()

    def rasterize(self, layout: CaptionLayout) -> Image.Image:
        width, height = layout.canvas_width, layout.canvas_height
        canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        if not layout.lines:
            return canvas

        font = self.engine.font(layout.font_size_px)
        line_height = layout.line_height_px
        total_height = len(layout.lines) * line_height
        start_y = height - SAFE_MARGIN_Y - total_height
        widest = max(font.getlength(line) for line in layout.lines)

        draw = ImageDraw.Draw(canvas)
        draw.rectangle(
            [
                SAFE_MARGIN_X - BOX_PADDING,
                start_y - BOX_PADDING,
                SAFE_MARGIN_X + widest + BOX_PADDING,
                start_y + total_height + BOX_PADDING,
            ],
            fill=BOX_COLOR,
        )

        # Sombra difuminada en una capa aparte
        shadow = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        shadow_draw = ImageDraw.Draw(shadow)
        for i, line in enumerate(layout.lines):
            y = start_y + i * line_height
            shadow_draw.text((SAFE_MARGIN_X + 2, y + 2), line, font=font, fill=SHADOW_COLOR)
        canvas = Image.alpha_composite(canvas, shadow.filter(ImageFilter.GaussianBlur(4)))

        draw = ImageDraw.Draw(canvas)
        for i, line in enumerate(layout.lines):
            y = start_y + i * line_height
            draw.text(
                (SAFE_MARGIN_X, y),
                line,
                font=font,
                fill=(255, 255, 255, 255),
                stroke_width=2,
                stroke_fill=OUTLINE_COLOR,
            )
        return canvas

    def render_png(self, layout: CaptionLayout) -> bytes:
        return to_png_bytes(self.rasterize(layout))


def to_png_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
