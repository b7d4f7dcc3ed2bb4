from __future__ import annotations

import os
from dataclasses import dataclass

import numpy as np
from PySide6.QtGui import QImage

from termleek.errors import ImageDecodeError, ImageNotFoundError, ScaleError
from termleek.logger import get_logger

from .decoder import decode_image, resize_array

_logger = get_logger("image_provider")


@dataclass(frozen=True, eq=False)
class ImageBuffer:
    """Immutable RGB pixel buffer (HxWx3 uint8)."""

    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def to_qimage(self) -> QImage:
        data = np.ascontiguousarray(self.pixels).tobytes()
        qimg = QImage(data, self.width, self.height, 3 * self.width, QImage.Format.Format_RGB888)
        # Own the pixel data; the bytes object is temporary.
        return qimg.copy()


@dataclass(frozen=True, eq=False)
class SourceImage(ImageBuffer):
    """Background as first decoded; every rescale starts from this buffer."""

    path: str = ""


@dataclass(frozen=True, eq=False)
class DisplayedImage(ImageBuffer):
    """Background as currently shown, scaled to the window allocation."""


class ImageProvider:
    """Loads the background image and rescales it for the current window size."""

    def load(self, path: str, target_width: int, target_height: int, preserve_aspect_ratio: bool) -> SourceImage:
        if not os.path.isfile(path):
            raise ImageNotFoundError(f"Unable to load image: {path}: no such file")
        try:
            pixels = decode_image(path, target_width, target_height, preserve_aspect_ratio)
        except Exception as e:
            raise ImageDecodeError(f"Unable to load image: {path}: {e}") from e
        _logger.debug("source image loaded: %s %dx%d", path, pixels.shape[1], pixels.shape[0])
        return SourceImage(pixels=pixels, path=path)

    def rescale(self, source: ImageBuffer, width: int, height: int) -> DisplayedImage:
        if width <= 0 or height <= 0:
            raise ScaleError(f"invalid scale target {width}x{height}")
        try:
            pixels = resize_array(source.pixels, width, height)
        except Exception as e:
            raise ScaleError(f"failed to scale image to {width}x{height}: {e}") from e
        return DisplayedImage(pixels=pixels)

    def display(self, source: ImageBuffer) -> DisplayedImage:
        """Wrap a buffer for display without scaling it."""
        return DisplayedImage(pixels=source.pixels)
