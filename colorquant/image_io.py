"""Raster image loading and writing.

Images are handled as ``uint8`` arrays of shape ``(H, W, 3)``. Everything is
converted to RGB on load so palette, grayscale, and alpha images enter the
pipeline with the same channel layout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from colorquant.errors import LoadError


@dataclass(frozen=True)
class ImageSummary:
    """Metadata describing a source image file."""

    path: Path
    width: int
    height: int
    mode: str
    image_format: Optional[str]
    byte_size: int

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def is_square(self) -> bool:
        return self.width == self.height


def _check_file(path: Path) -> None:
    if not path.exists():
        raise LoadError(f"Image file not found: {path}")
    if not path.is_file():
        raise LoadError(f"Image path is not a file: {path}")


def describe_image(path: Path) -> ImageSummary:
    """Read size, mode and format without decoding the pixel data."""

    path = Path(path)
    _check_file(path)
    try:
        with Image.open(path) as img:
            width, height = img.size
            mode = img.mode
            image_format = img.format
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise LoadError(f"Unable to read image {path}: {exc}") from exc
    return ImageSummary(
        path=path,
        width=width,
        height=height,
        mode=mode,
        image_format=image_format,
        byte_size=path.stat().st_size,
    )


def load_image(path: Path, size: Optional[int] = None) -> np.ndarray:
    """Load ``path`` as an RGB ``uint8`` array of shape ``(H, W, 3)``.

    When ``size`` is given the image is resampled to ``size x size`` so runs
    over differently sized sources operate on the same pixel budget.
    """

    path = Path(path)
    _check_file(path)
    if size is not None and size < 1:
        raise ValueError(f"size must be positive, got {size}")
    try:
        with Image.open(path) as img:
            rgb = img.convert("RGB")
            if size is not None and rgb.size != (size, size):
                logging.info("Resizing %s from %sx%s to %sx%s", path, rgb.width, rgb.height, size, size)
                rgb = rgb.resize((size, size), Image.BILINEAR)
            pixels = np.asarray(rgb, dtype=np.uint8)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise LoadError(f"Unable to decode image {path}: {exc}") from exc

    logging.info("Loaded %s (%sx%s)", path, pixels.shape[1], pixels.shape[0])
    return pixels


def to_uint8(image: np.ndarray) -> np.ndarray:
    """Round and clip a (possibly float) image into displayable ``uint8``."""

    array = np.asarray(image)
    if array.dtype == np.uint8:
        return array
    return np.clip(np.rint(array), 0, 255).astype(np.uint8)


def save_image(image: np.ndarray, output_path: Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(to_uint8(image)).save(output_path)
    logging.info("Wrote image to %s", output_path)
    return output_path
