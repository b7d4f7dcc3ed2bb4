"""Plain-Python stand-ins for the window, layout, terminal, image provider and loop.

They record every call so tests can assert on what the compositor and the app
controller asked for, without a display or a child process.
"""

from __future__ import annotations

import numpy as np

from termleek.errors import ScaleError, SpawnError
from termleek.image_engine import DisplayedImage, SourceImage


def _pixels(width: int, height: int) -> np.ndarray:
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr.flags.writeable = False
    return arr


class FakeImageProvider:
    def __init__(self, natural_size: tuple[int, int] = (400, 300)):
        self.natural_size = natural_size
        self.loads: list[tuple] = []
        self.rescales: list[tuple] = []
        self.fail_rescale = False
        self.fail_load = False

    def load(self, path, target_width, target_height, preserve_aspect_ratio):
        self.loads.append((path, target_width, target_height, preserve_aspect_ratio))
        if self.fail_load:
            raise ScaleError(f"Unable to load image: {path}")
        w, h = target_width, target_height
        if preserve_aspect_ratio:
            nw, nh = self.natural_size
            scale = min(target_width / nw, target_height / nh)
            w, h = round(nw * scale), round(nh * scale)
        return SourceImage(pixels=_pixels(w, h), path=path)

    def rescale(self, source, width, height):
        self.rescales.append((source, width, height))
        if self.fail_rescale:
            raise ScaleError(f"failed to scale image to {width}x{height}")
        return DisplayedImage(pixels=_pixels(width, height))

    def display(self, source):
        return DisplayedImage(pixels=source.pixels)


class FakeSurface:
    def __init__(self):
        self.titles: list[str] = []
        self.geometry: tuple[int, int] | None = None
        self.icon: str | None = None
        self.body = None
        self.shown = False
        self._allocation_handlers = []
        self._destroy_handlers = []

    @property
    def title(self) -> str | None:
        return self.titles[-1] if self.titles else None

    def set_title(self, title):
        self.titles.append(title)

    def set_geometry_policy(self, width, height):
        self.geometry = (width, height)

    def set_icon_from_file(self, path):
        self.icon = path

    def set_body(self, body):
        self.body = body

    def show(self):
        self.shown = True

    def on_allocation(self, handler):
        self._allocation_handlers.append(handler)

    def on_destroy(self, handler):
        self._destroy_handlers.append(handler)

    def allocate(self, width, height):
        for handler in self._allocation_handlers:
            handler(width, height)

    def destroy(self):
        for handler in self._destroy_handlers:
            handler()


class FakeImageView:
    def __init__(self):
        self.images = []

    def set_image(self, image):
        self.images.append(image)


class FakeContainer:
    def __init__(self, view):
        self.view = view


class FakeLayout:
    def __init__(self):
        self.placed: list[tuple] = []
        self.sizes: dict[int, tuple[int, int]] = {}
        self.resize_calls: list[tuple] = []

    def put(self, widget, x, y):
        self.placed.append((widget, x, y))

    def set_child_size(self, widget, width, height):
        self.sizes[id(widget)] = (width, height)
        self.resize_calls.append((widget, width, height))

    def size_of(self, widget):
        return self.sizes.get(id(widget))

    def make_image_view(self):
        return FakeImageView()

    def make_scroll_container(self, view):
        return FakeContainer(view)


class FakeTerminal:
    def __init__(self, spawn_error: bool = False):
        self.spawn_error = spawn_error
        self.spawned_with: list = []
        self._exit_handlers = []
        self._title_handlers = []

    def spawn(self, shell_command=None):
        if self.spawn_error:
            raise SpawnError(f"{shell_command}: command not found")
        self.spawned_with.append(shell_command)

    def on_child_exited(self, handler):
        self._exit_handlers.append(handler)

    def on_title_changed(self, handler):
        self._title_handlers.append(handler)

    def exit(self, status=0):
        for handler in self._exit_handlers:
            handler(status)

    def report_title(self, title):
        for handler in self._title_handlers:
            handler(title)


class FakeLoop:
    def __init__(self):
        self.exits: list[int] = []

    def exit(self, code=0):
        self.exits.append(code)
