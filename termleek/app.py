from __future__ import annotations

from typing import Any

from .compositor import WindowCompositor
from .errors import TermleekError
from .image_engine import ImageProvider
from .logger import get_logger
from .settings_manager import Configuration

_logger = get_logger("app")

EXIT_OK = 0
EXIT_FAILURE = 1


class AppController:
    """Wires the window, the terminal and the event loop together.

    - window closed -> quit the loop
    - shell exited -> quit the loop, whatever the window is doing
    - shell title -> window title, verbatim
    """

    def __init__(
        self,
        config: Configuration,
        loop: Any,
        surface: Any,
        layout: Any,
        terminal: Any,
        image_provider: ImageProvider | None = None,
    ) -> None:
        self.config = config
        self.loop = loop
        self.surface = surface
        self.layout = layout
        self.terminal = terminal
        self.image_provider = image_provider or ImageProvider()
        self.compositor: WindowCompositor | None = None
        self.exit_code: int | None = None

    def start(self) -> None:
        """Build the window and spawn the shell. Errors here are fatal."""
        try:
            self.compositor = WindowCompositor(
                self.config,
                self.image_provider,
                self.terminal,
                self.surface,
                self.layout,
                on_fatal=self.fatal,
            )
            self.surface.on_destroy(self.on_window_destroyed)
            self.terminal.on_child_exited(self.on_child_exited)
            self.terminal.on_title_changed(self.on_title_changed)
            self.terminal.spawn(self.config.shell)
        except TermleekError as e:
            self.fatal(e)

    def show(self) -> None:
        self.surface.show()

    def quit(self, code: int = EXIT_OK) -> None:
        if self.exit_code is None:
            self.exit_code = code
        self.loop.exit(code)

    def fatal(self, error: Exception) -> None:
        _logger.critical("%s", error)
        self.quit(EXIT_FAILURE)

    # ---- event handlers (plain data in) ----
    def on_window_destroyed(self) -> None:
        _logger.debug("window closed")
        self.quit(EXIT_OK)

    def on_child_exited(self, status: int = 0) -> None:
        _logger.debug("shell exited with status %s", status)
        self.quit(EXIT_OK)

    def on_title_changed(self, title: str) -> None:
        self.surface.set_title(title)
