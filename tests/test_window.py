import pytest

pytest.importorskip("PySide6")

import numpy as np
from PySide6.QtWidgets import QScrollArea, QWidget

from helpers.fakes import FakeImageProvider
from termleek.compositor import WindowCompositor
from termleek.image_engine import DisplayedImage
from termleek.settings_manager import Configuration
from termleek.window import BackgroundView, FixedLayout, TermWindow


def test_window_reports_allocation(qtbot):
    win = TermWindow()
    qtbot.addWidget(win)
    seen = []
    win.on_allocation(lambda w, h: seen.append((w, h)))
    win.set_geometry_policy(400, 300)
    win.show()

    win.resize(640, 480)

    qtbot.waitUntil(lambda: bool(seen) and seen[-1] == (640, 480), timeout=2000)
    assert win.minimumWidth() == 400
    assert win.minimumHeight() == 300


def test_window_close_notifies(qtbot):
    win = TermWindow()
    qtbot.addWidget(win)
    closed = []
    win.on_destroy(lambda: closed.append(True))
    win.show()

    win.close()

    assert closed == [True]


def test_fixed_layout_places_children_at_origin(qtbot):
    layout = FixedLayout()
    qtbot.addWidget(layout)
    a, b = QWidget(), QWidget()

    layout.put(a, 0, 0)
    layout.put(b, 10, 20)
    layout.set_child_size(b, 120, 80)

    assert layout.children_in_order() == [a, b]
    assert a.parent() is layout
    assert (b.x(), b.y()) == (10, 20)
    assert layout.child_size(b) == (120, 80)


def test_background_view_shows_image_at_pixel_size(qtbot):
    view = BackgroundView()
    qtbot.addWidget(view)
    image = DisplayedImage(pixels=np.full((30, 50, 3), 200, dtype=np.uint8))

    view.set_image(image)

    assert view.image_size() == (50, 30)


def test_compositor_with_real_widgets_follows_window(qtbot):
    provider = FakeImageProvider()
    win = TermWindow()
    qtbot.addWidget(win)
    layout = FixedLayout()
    terminal = QWidget()
    comp = WindowCompositor(Configuration(background_source="/bg.png"), provider, terminal, win, layout)

    assert isinstance(comp.container, QScrollArea)
    assert comp.container.widget() is terminal
    assert layout.children_in_order() == [comp.image_view, comp.container]

    win.show()
    win.resize(900, 500)
    qtbot.waitUntil(lambda: comp.displayed_image.size == (900, 500), timeout=2000)

    w, h = win.allocation()
    assert comp.displayed_image.size == (w, h)
    assert comp.image_view.image_size() == (w, h)
    assert layout.child_size(comp.container) == (w, h)
    assert win.title() == "TermLeek"
