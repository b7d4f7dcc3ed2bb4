"""Qt widgets driven by the window compositor.

The compositor never subclasses these; it holds a ``TermWindow`` (window
surface) and a ``FixedLayout`` (absolute-position layout) and talks to them
through the small methods below, passing only plain data.
"""

from __future__ import annotations

from collections.abc import Callable

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QCloseEvent, QGuiApplication, QIcon, QPixmap, QResizeEvent
from PySide6.QtWidgets import QFrame, QLabel, QScrollArea, QVBoxLayout, QWidget

from .image_engine import DisplayedImage
from .logger import get_logger

_logger = get_logger("window")


class TermWindow(QWidget):
    """Top-level window surface.

    Reports its allocation as ``(width, height)`` after every resize and a
    single ``closed`` notification when the user closes it.
    """

    allocationChanged = Signal(int, int)
    closed = Signal()

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._body: QWidget | None = None
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

    # ---- configuration ----
    def set_title(self, title: str) -> None:
        self.setWindowTitle(title)

    def title(self) -> str:
        return self.windowTitle()

    def set_icon_from_file(self, path: str) -> None:
        icon = QIcon(path)
        if icon.isNull():
            _logger.warning("icon could not be loaded: %s", path)
        self.setWindowIcon(icon)

    def set_geometry_policy(self, width: int, height: int) -> None:
        """Default and minimum size, resizable, centered on the primary screen."""
        self.setMinimumSize(width, height)
        self.resize(width, height)
        screen = QGuiApplication.primaryScreen()
        if screen is not None:
            frame = self.frameGeometry()
            frame.moveCenter(screen.availableGeometry().center())
            self.move(frame.topLeft())

    def set_body(self, body: QWidget) -> None:
        if self._body is not None:
            self.layout().removeWidget(self._body)
        self._body = body
        self.layout().addWidget(body)

    def allocation(self) -> tuple[int, int]:
        return self.width(), self.height()

    # ---- event registration ----
    def on_allocation(self, handler: Callable[[int, int], None]) -> None:
        self.allocationChanged.connect(handler)

    def on_destroy(self, handler: Callable[[], None]) -> None:
        self.closed.connect(handler)

    # ---- Qt events ----
    def resizeEvent(self, event: QResizeEvent) -> None:
        super().resizeEvent(event)
        size = event.size()
        self.allocationChanged.emit(size.width(), size.height())

    def closeEvent(self, event: QCloseEvent) -> None:
        super().closeEvent(event)
        if event.isAccepted():
            self.closed.emit()


class BackgroundView(QLabel):
    """Shows the displayed background image at its own pixel size."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop)
        self.setScaledContents(False)

    def set_image(self, image: DisplayedImage) -> None:
        self.setPixmap(QPixmap.fromImage(image.to_qimage()))
        self.resize(image.width, image.height)

    def image_size(self) -> tuple[int, int]:
        pix = self.pixmap()
        if pix is None or pix.isNull():
            return 0, 0
        return pix.width(), pix.height()


class FixedLayout(QWidget):
    """Absolute-position container: children sit where they are put."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._children: list[QWidget] = []

    def put(self, widget: QWidget, x: int, y: int) -> None:
        widget.setParent(self)
        widget.move(x, y)
        widget.show()
        self._children.append(widget)

    def children_in_order(self) -> list[QWidget]:
        return list(self._children)

    def set_child_size(self, widget: QWidget, width: int, height: int) -> None:
        widget.resize(width, height)

    def child_size(self, widget: QWidget) -> tuple[int, int]:
        return widget.width(), widget.height()

    def make_image_view(self) -> BackgroundView:
        return BackgroundView()

    def make_scroll_container(self, view: QWidget) -> QScrollArea:
        """Transparent scroll container so the background shows through."""
        scroll = QScrollArea()
        scroll.setFrameShape(QFrame.Shape.NoFrame)
        scroll.setWidgetResizable(True)
        scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAsNeeded)
        scroll.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAsNeeded)
        scroll.setStyleSheet("QScrollArea { background: transparent; border: none; }")
        scroll.viewport().setAutoFillBackground(False)
        scroll.setWidget(view)
        return scroll
