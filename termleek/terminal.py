"""Terminal host: one pty-backed shell rendered through a pyte screen.

The widget owns exactly one child process. Output from the pty is read on the
Qt event loop through a QSocketNotifier, fed to pyte, and painted; keyboard
input is translated to bytes and written back to the pty. The host reports two
things to the outside world, both as plain data: the window title requested by
the child (OSC 0/2) and the child's exit status.
"""

from __future__ import annotations

import contextlib
import errno
import fcntl
import os
import pty
import pwd
import shlex
import shutil
import struct
import termios
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import pyte
from PySide6.QtCore import QSocketNotifier, Qt, QTimer, Signal
from PySide6.QtGui import QColor, QFont, QFontMetrics, QKeyEvent, QPainter, QPaintEvent, QResizeEvent
from PySide6.QtWidgets import QGraphicsOpacityEffect, QWidget

from .errors import SpawnError
from .logger import get_logger

_logger = get_logger("terminal")

DEFAULT_FONT = "monospace 10"
FALLBACK_SHELL = "/bin/sh"
READ_CHUNK = 65536
REAP_INTERVAL_MS = 50

_FONT_STYLE_WORDS = {"bold", "italic", "oblique", "regular", "normal", "book", "medium", "light"}

_KEY_SEQUENCES: dict[int, bytes] = {
    Qt.Key.Key_Backspace.value: b"\x7f",
    Qt.Key.Key_Return.value: b"\r",
    Qt.Key.Key_Enter.value: b"\r",
    Qt.Key.Key_Tab.value: b"\t",
    Qt.Key.Key_Escape.value: b"\x1b",
    Qt.Key.Key_Up.value: b"\x1b[A",
    Qt.Key.Key_Down.value: b"\x1b[B",
    Qt.Key.Key_Right.value: b"\x1b[C",
    Qt.Key.Key_Left.value: b"\x1b[D",
    Qt.Key.Key_Home.value: b"\x1b[H",
    Qt.Key.Key_End.value: b"\x1b[F",
    Qt.Key.Key_PageUp.value: b"\x1b[5~",
    Qt.Key.Key_PageDown.value: b"\x1b[6~",
    Qt.Key.Key_Insert.value: b"\x1b[2~",
    Qt.Key.Key_Delete.value: b"\x1b[3~",
}


@dataclass(frozen=True)
class FontSpec:
    family: str
    point_size: float
    bold: bool = False
    italic: bool = False


def parse_font_descriptor(descriptor: str) -> FontSpec:
    """Parse a Pango-style descriptor such as ``"DejaVu Sans Mono Bold 12"``."""
    words = (descriptor or "").split()
    size = 10.0
    if words:
        try:
            size = float(words[-1])
            words = words[:-1]
        except ValueError:
            pass
    bold = italic = False
    while words and words[-1].lower() in _FONT_STYLE_WORDS:
        style = words.pop().lower()
        if style == "bold":
            bold = True
        elif style in ("italic", "oblique"):
            italic = True
    family = " ".join(words) or "monospace"
    return FontSpec(family=family, point_size=size, bold=bold, italic=italic)


def font_from_descriptor(descriptor: str) -> QFont:
    parsed = parse_font_descriptor(descriptor)
    font = QFont(parsed.family)
    font.setPointSizeF(parsed.point_size)
    font.setBold(parsed.bold)
    font.setItalic(parsed.italic)
    font.setStyleHint(QFont.StyleHint.Monospace)
    font.setFixedPitch(True)
    return font


def resolve_shell(shell_command: str | Sequence[str] | None = None) -> list[str]:
    """Command line for the shell: configured, else $SHELL, else passwd, else /bin/sh."""
    if shell_command:
        argv = shlex.split(shell_command) if isinstance(shell_command, str) else list(shell_command)
        if argv:
            return argv
    shell = os.environ.get("SHELL")
    if not shell:
        try:
            shell = pwd.getpwuid(os.getuid()).pw_shell
        except KeyError:
            shell = None
    return [shell or FALLBACK_SHELL]


def _read_exec_errno(fd: int) -> int | None:
    """Errno written by a forked child whose execve failed, None on success."""
    chunks = []
    try:
        while True:
            chunk = os.read(fd, 64)
            if not chunk:
                break
            chunks.append(chunk)
    finally:
        os.close(fd)
    if not chunks:
        return None
    try:
        return int(b"".join(chunks)) or errno.ENOEXEC
    except ValueError:
        return errno.ENOEXEC


def _qcolor(name: str, default: QColor) -> QColor:
    if not name or name == "default":
        return default
    # pyte reports 24-bit colors as bare hex ("ff8700"), palette colors by name
    is_hex = len(name) == 6 and all(c in "0123456789abcdefABCDEF" for c in name)
    color = QColor(f"#{name}") if is_hex else QColor(name)
    return color if color.isValid() else default


class _TerminalScreen(pyte.Screen):
    """pyte screen that reports title changes and routes replies to the pty."""

    def __init__(self, columns: int, lines: int, on_title: Callable[[str], None], on_reply: Callable[[bytes], None]):
        self._on_title = on_title
        self._on_reply = on_reply
        super().__init__(columns, lines)

    def set_title(self, param: str) -> None:
        super().set_title(param)
        self._on_title(self.title)

    def write_process_input(self, data: str) -> None:
        self._on_reply(data.encode("utf-8"))


class TerminalHost(QWidget):
    """Terminal view bound to a single shell process."""

    childExited = Signal(int)
    titleChanged = Signal(str)

    def __init__(self, font: str = DEFAULT_FONT, opacity: float = 1.0, parent: QWidget | None = None):
        super().__init__(parent)
        self.setObjectName("TerminalHost")
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setAttribute(Qt.WidgetAttribute.WA_OpaquePaintEvent, True)

        self._pid: int | None = None
        self._fd: int | None = None
        self._notifier: QSocketNotifier | None = None
        self._exit_status: int | None = None
        self._reap_timer: QTimer | None = None

        self._bg_default = QColor(0, 0, 0)
        self._fg_default = QColor(0xD3, 0xD7, 0xCF)

        self._cell_w = self._cell_h = self._baseline = 1
        self._screen = _TerminalScreen(80, 24, self._emit_title, self._write)
        self._stream = pyte.ByteStream(self._screen)

        self._opacity_effect = QGraphicsOpacityEffect(self)
        self.setGraphicsEffect(self._opacity_effect)

        self.set_font(font)
        self.set_opacity(opacity)

    # -------- Configuration --------
    def set_font(self, descriptor: str) -> None:
        self.setFont(font_from_descriptor(descriptor))
        fm = QFontMetrics(self.font())
        self._cell_w = max(1, fm.horizontalAdvance("M"))
        self._cell_h = max(1, fm.height())
        self._baseline = fm.ascent()
        self._sync_grid()

    def set_opacity(self, value: float) -> None:
        self._opacity_effect.setOpacity(min(1.0, max(0.0, float(value))))

    def opacity(self) -> float:
        return float(self._opacity_effect.opacity())

    # -------- Event registration --------
    def on_child_exited(self, handler: Callable[[int], None]) -> None:
        self.childExited.connect(handler)

    def on_title_changed(self, handler: Callable[[str], None]) -> None:
        self.titleChanged.connect(handler)

    # -------- Process --------
    @property
    def pid(self) -> int | None:
        return self._pid

    @property
    def exit_status(self) -> int | None:
        return self._exit_status

    def is_running(self) -> bool:
        return self._pid is not None and self._exit_status is None

    def title(self) -> str:
        return self._screen.title

    def spawn(self, shell_command: str | Sequence[str] | None = None) -> None:
        """Start the shell on a new pty; returns without waiting for it."""
        if self._pid is not None:
            raise SpawnError("shell already spawned")
        argv = resolve_shell(shell_command)
        executable = shutil.which(argv[0])
        if executable is None:
            raise SpawnError(f"{argv[0]}: command not found")

        env = os.environ.copy()
        env["TERM"] = "xterm-256color"
        # The write end is close-on-exec: EOF without data means execve succeeded.
        errpipe_read, errpipe_write = os.pipe()
        try:
            pid, fd = pty.fork()
        except OSError as e:
            os.close(errpipe_read)
            os.close(errpipe_write)
            raise SpawnError(f"failed to fork {argv[0]}: {e}") from e
        if pid == 0:
            try:
                os.close(errpipe_read)
                os.execve(executable, argv, env)
            except OSError as e:
                os.write(errpipe_write, str(e.errno or 0).encode())
            finally:
                os._exit(127)

        os.close(errpipe_write)
        exec_errno = _read_exec_errno(errpipe_read)
        if exec_errno is not None:
            with contextlib.suppress(OSError):
                os.close(fd)
            with contextlib.suppress(ChildProcessError):
                os.waitpid(pid, 0)
            raise SpawnError(f"failed to execute {argv[0]}: {os.strerror(exec_errno)}")

        self._pid, self._fd = pid, fd
        fl = fcntl.fcntl(fd, fcntl.F_GETFL)
        fcntl.fcntl(fd, fcntl.F_SETFL, fl | os.O_NONBLOCK)
        self._set_winsize(self._screen.lines, self._screen.columns)

        self._notifier = QSocketNotifier(fd, QSocketNotifier.Type.Read, self)
        self._notifier.activated.connect(self._read_ready)
        _logger.debug("shell spawned: pid=%s argv=%s", pid, argv)

    def _write(self, data: bytes) -> None:
        if self._fd is None or not data:
            return
        try:
            os.write(self._fd, data)
        except BlockingIOError:
            _logger.debug("pty write would block, dropped %d bytes", len(data))
        except OSError as e:
            _logger.debug("pty write failed: %s", e)

    def _read_ready(self, *_args) -> None:
        if self._fd is None:
            return
        try:
            data = os.read(self._fd, READ_CHUNK)
        except BlockingIOError:
            return
        except OSError:
            # EIO: every slave end is closed, the child is gone.
            data = b""
        if not data:
            self._close_pty()
            self._reap()
            return
        self._stream.feed(data)
        self.update()

    def _close_pty(self) -> None:
        if self._notifier is not None:
            self._notifier.setEnabled(False)
            self._notifier.deleteLater()
            self._notifier = None
        if self._fd is not None:
            with contextlib.suppress(OSError):
                os.close(self._fd)
            self._fd = None

    def _reap(self) -> None:
        if self._pid is None or self._exit_status is not None:
            return
        try:
            pid, status = os.waitpid(self._pid, os.WNOHANG)
        except ChildProcessError:
            pid, status = self._pid, 0
        if pid == 0:
            # pty closed before the process finished exiting; poll on the loop.
            if self._reap_timer is None:
                self._reap_timer = QTimer(self)
                self._reap_timer.setInterval(REAP_INTERVAL_MS)
                self._reap_timer.timeout.connect(self._reap)
                self._reap_timer.start()
            return
        if self._reap_timer is not None:
            self._reap_timer.stop()
        self._exit_status = os.waitstatus_to_exitcode(status)
        _logger.debug("shell exited: pid=%s status=%s", self._pid, self._exit_status)
        self.childExited.emit(self._exit_status)

    def _emit_title(self, title: str) -> None:
        _logger.debug("title changed: %r", title)
        self.titleChanged.emit(title)

    # -------- Geometry --------
    def grid_size(self) -> tuple[int, int]:
        """(columns, lines) of the emulated screen."""
        return self._screen.columns, self._screen.lines

    def _sync_grid(self) -> None:
        cols = max(1, self.width() // self._cell_w)
        rows = max(1, self.height() // self._cell_h)
        if (cols, rows) == (self._screen.columns, self._screen.lines):
            return
        self._screen.resize(lines=rows, columns=cols)
        self._set_winsize(rows, cols)

    def _set_winsize(self, rows: int, cols: int) -> None:
        if self._fd is None:
            return
        buf = struct.pack("HHHH", rows, cols, 0, 0)
        try:
            fcntl.ioctl(self._fd, termios.TIOCSWINSZ, buf)
        except OSError as e:
            _logger.debug("TIOCSWINSZ failed: %s", e)

    def resizeEvent(self, event: QResizeEvent) -> None:
        super().resizeEvent(event)
        self._sync_grid()

    # -------- Input --------
    def focusNextPrevChild(self, next: bool) -> bool:  # noqa: A002
        # Keep focus so Tab reaches the shell instead of moving to other widgets.
        return False

    def keyPressEvent(self, event: QKeyEvent) -> None:
        key, mods = event.key(), event.modifiers()
        seq = _KEY_SEQUENCES.get(key)
        ctrl = bool(mods & Qt.KeyboardModifier.ControlModifier)
        if seq is None and ctrl and Qt.Key.Key_A.value <= key <= Qt.Key.Key_Z.value:
            seq = bytes([key - Qt.Key.Key_A.value + 1])
        if seq is None:
            text = event.text()
            seq = text.encode("utf-8") if text else None
        if seq is None:
            super().keyPressEvent(event)
            return
        self._write(seq)

    # -------- Painting --------
    def paintEvent(self, event: QPaintEvent) -> None:
        painter = QPainter(self)
        try:
            painter.fillRect(self.rect(), self._bg_default)
            painter.setFont(self.font())
            for row in range(self._screen.lines):
                line = self._screen.buffer[row]
                for col in range(self._screen.columns):
                    cell = line[col]
                    fg = _qcolor(cell.fg, self._fg_default)
                    bg = _qcolor(cell.bg, self._bg_default)
                    if cell.reverse:
                        fg, bg = bg, fg
                    x, y = col * self._cell_w, row * self._cell_h
                    if bg != self._bg_default:
                        painter.fillRect(x, y, self._cell_w, self._cell_h, bg)
                    if cell.data and cell.data != " ":
                        painter.setPen(fg)
                        painter.drawText(x, y + self._baseline, cell.data)
            cursor = self._screen.cursor
            if not cursor.hidden and self.is_running():
                painter.fillRect(
                    cursor.x * self._cell_w, cursor.y * self._cell_h, self._cell_w, self._cell_h, self._fg_default
                )
        finally:
            painter.end()
