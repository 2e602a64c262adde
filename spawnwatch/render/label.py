"""Render a matched name into a small PNG label."""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

LABEL_SIZE = (400, 80)
ICON_SIZE = (50, 50)
TEXT_COLOR = (0x06, 0x45, 0xAD, 255)
FONT_SIZE = 35


class LabelRenderer:
    """Draw text over an optional background with an optional leading icon."""

    def __init__(
        self,
        background_path: str | Path | None = None,
        icon_path: str | Path | None = None,
        font_path: str | Path | None = None,
        size: tuple[int, int] = LABEL_SIZE,
    ) -> None:
        self.background_path = Path(background_path) if background_path else None
        self.icon_path = Path(icon_path) if icon_path else None
        self.font_path = Path(font_path) if font_path else None
        self.size = size

    def render(self, text: str) -> bytes:
        """Return PNG bytes showing *text*."""
        canvas = self._background()
        try:
            icon = self._icon()
            if icon is not None:
                top = (canvas.height - icon.height) // 2
                canvas.paste(icon, (5, top), mask=icon)
                icon.close()

            draw = ImageDraw.Draw(canvas)
            font = self._font()
            left, top, _, bottom = draw.textbbox((0, 0), text, font=font)
            x = int(canvas.width * 0.15) - left
            y = (canvas.height - (bottom - top)) // 2 - top
            draw.text((x, y), text, font=font, fill=TEXT_COLOR)

            buffer = BytesIO()
            canvas.save(buffer, format="PNG")
            return buffer.getvalue()
        finally:
            canvas.close()

    def _background(self) -> Image.Image:
        if self.background_path is None:
            return Image.new("RGBA", self.size, (0, 0, 0, 0))
        with Image.open(self.background_path) as img:
            return img.convert("RGBA").resize(self.size, Image.Resampling.LANCZOS)

    def _icon(self) -> Image.Image | None:
        if self.icon_path is None:
            return None
        with Image.open(self.icon_path) as img:
            return img.convert("RGBA").resize(ICON_SIZE, Image.Resampling.LANCZOS)

    def _font(self) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
        if self.font_path is not None:
            return ImageFont.truetype(str(self.font_path), FONT_SIZE)
        return ImageFont.load_default(size=FONT_SIZE)
