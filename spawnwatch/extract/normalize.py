"""Utilities for normalizing images into canonical fixed-size pixel buffers."""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from PIL.Image import DecompressionBombError

from ..fetch.http import DEFAULT_TIMEOUT, FetchError, fetch_image_bytes, is_remote

logger = logging.getLogger(__name__)

CANONICAL_MODE = "RGB"

Scale = tuple[int, int]


class DecodeError(Exception):
    """Raised when bytes cannot be decoded as a raster image."""


def load_source(source: str, timeout: float = DEFAULT_TIMEOUT) -> bytes:
    """Return raw bytes for *source*, a local path or an HTTP(S) URL."""
    if is_remote(source):
        return fetch_image_bytes(source.strip(), timeout=timeout)
    try:
        return Path(source).read_bytes()
    except OSError as exc:
        raise FetchError(source, exc.strerror or str(exc)) from exc


def to_rgb(image_bytes: bytes) -> Image.Image:
    """Decode *image_bytes* into a Pillow image in RGB mode."""
    if not image_bytes:
        raise DecodeError("Empty image payload cannot be normalized")
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            return img.convert(CANONICAL_MODE)
    except (UnidentifiedImageError, DecompressionBombError, OSError) as exc:
        raise DecodeError(f"Unsupported or malformed image data ({exc})") from exc


def resize_to_scale(img: Image.Image, scale: Scale) -> Image.Image:
    """Return *img* stretched to exactly *scale*, ignoring its aspect ratio."""
    width, height = scale
    if width <= 0 or height <= 0:
        raise ValueError("Scale dimensions must be positive integers")
    return img.resize((width, height), Image.Resampling.LANCZOS)


def normalize_image_bytes(image_bytes: bytes, scale: Scale) -> bytes:
    """Full normalization pipeline returning raw RGB bytes at *scale*."""
    img = to_rgb(image_bytes)
    try:
        resized = resize_to_scale(img, scale)
    finally:
        img.close()
    try:
        return resized.tobytes()
    finally:
        resized.close()


def canonical_length(scale: Scale) -> int:
    """Byte length of a canonical buffer at *scale*."""
    width, height = scale
    return width * height * len(CANONICAL_MODE)


def normalize_source(
    source: str, scale: Scale, timeout: float = DEFAULT_TIMEOUT
) -> bytes | None:
    """Load and normalize *source*, returning ``None`` when that fails.

    Failures are logged and never raised; callers decide whether a missing
    buffer aborts their work.
    """
    try:
        image_bytes = load_source(source, timeout=timeout)
    except FetchError as exc:
        logger.warning("Could not load image %s: %s", source, exc.reason)
        return None
    try:
        return normalize_image_bytes(image_bytes, scale)
    except DecodeError as exc:
        logger.warning("Could not decode image %s: %s", source, exc)
        return None
