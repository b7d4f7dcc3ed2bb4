"""Window compositor.

Owns the window geometry policy and keeps the background image in step with
the window allocation. The source image is decoded once at the initial window
size; every later resize rescales from that source (never from the image on
screen) to the exact new allocation.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from typing import Any

from .errors import ScaleError
from .image_engine import DisplayedImage, ImageProvider, SourceImage
from .logger import get_logger
from .settings_manager import MIN_HEIGHT, MIN_WIDTH, Configuration

_logger = get_logger("compositor")

DEFAULT_TITLE = "TermLeek"


class CompositorState(enum.Enum):
    IDLE = "idle"
    RESCALING = "rescaling"


def _raise(error: Exception) -> None:
    raise error


class WindowCompositor:
    """Lays the background and the terminal into one fixed-position layout."""

    def __init__(
        self,
        config: Configuration,
        image_provider: ImageProvider,
        terminal: Any,
        surface: Any,
        layout: Any,
        on_fatal: Callable[[Exception], None] | None = None,
    ) -> None:
        self.config = config
        self._images = image_provider
        self._terminal = terminal
        self._surface = surface
        self._layout = layout
        self._on_fatal = on_fatal or _raise

        self.state = CompositorState.IDLE
        self.width = max(config.min_width, MIN_WIDTH)
        self.height = max(config.min_height, MIN_HEIGHT)

        self.source_image: SourceImage | None = None
        self.displayed_image: DisplayedImage | None = None
        self.image_view: Any | None = None
        self.container: Any | None = None
        self._container_size: tuple[int, int] | None = None
        self.rescale_count = 0

        self._build()

    @property
    def has_background(self) -> bool:
        return self.source_image is not None

    def _build(self) -> None:
        surface = self._surface
        surface.set_title(DEFAULT_TITLE)
        surface.set_geometry_policy(self.width, self.height)
        if self.config.icon:
            surface.set_icon_from_file(self.config.icon)

        if self.config.has_background:
            self.source_image = self._images.load(
                self.config.background_source,
                self.width,
                self.height,
                self.config.preserve_aspect_ratio,
            )
            self.displayed_image = self._images.display(self.source_image)
            self.image_view = self._layout.make_image_view()
            self.image_view.set_image(self.displayed_image)
            self._layout.put(self.image_view, 0, 0)
            self._layout.set_child_size(self.image_view, self.width, self.height)

        self.container = self._layout.make_scroll_container(self._terminal)
        self._layout.put(self.container, 0, 0)
        self._resize_container(self.width, self.height)

        surface.set_body(self._layout)
        surface.on_allocation(self.on_allocation)
        _logger.debug(
            "compositor built: size=%dx%d background=%s",
            self.width,
            self.height,
            self.config.background_source or "-",
        )

    def _resize_container(self, width: int, height: int) -> None:
        if self._container_size == (width, height):
            return
        self._layout.set_child_size(self.container, width, height)
        self._container_size = (width, height)

    def needs_rescale(self, width: int, height: int) -> bool:
        if self.displayed_image is None:
            return False
        return (width, height) != self.displayed_image.size

    def on_allocation(self, width: int, height: int) -> None:
        """Resize-event handler; fatal if the background cannot be rescaled."""
        try:
            self.resize_to(width, height)
        except ScaleError as e:
            _logger.error("background rescale failed: %s", e)
            self._on_fatal(e)

    def resize_to(self, width: int, height: int) -> None:
        if self.source_image is None:
            self._resize_container(width, height)
            return
        if not self.needs_rescale(width, height):
            return
        self.state = CompositorState.RESCALING
        try:
            displayed = self._images.rescale(self.source_image, width, height)
            self.displayed_image = displayed
            self.rescale_count += 1
            self.image_view.set_image(displayed)
            self._layout.set_child_size(self.image_view, width, height)
            self._resize_container(width, height)
        finally:
            self.state = CompositorState.IDLE
        _logger.debug("background rescaled to %dx%d", width, height)
