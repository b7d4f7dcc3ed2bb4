import argparse
import os
import sys

from PySide6.QtWidgets import QApplication

from termleek.app import EXIT_FAILURE, AppController
from termleek.errors import TermleekError
from termleek.image_engine import ImageProvider
from termleek.logger import get_logger
from termleek.settings_manager import DEFAULT_CONFIG_NAME, load_configuration
from termleek.terminal import TerminalHost
from termleek.window import FixedLayout, TermWindow

# --- CLI options ---------------------------------------------------------------
# To prevent Qt from exiting due to unknown options, we preemptively parse
# our own options, reflect the logging ones in environment variables
# (TERMLEEK_LOG_LEVEL, TERMLEEK_LOG_CATS), and remove them from argv.


def _parse_cli(argv: list[str]) -> tuple[argparse.Namespace, list[str]]:
    parser = argparse.ArgumentParser(prog="termleek", description="TermLeek terminal")
    parser.add_argument("--config", default=DEFAULT_CONFIG_NAME, help="Path to the INI configuration file")
    parser.add_argument("--log-level", help="Set log level")
    parser.add_argument("--log-cats", help="Set log categories")
    args, remaining = parser.parse_known_args(argv[1:])
    if args.log_level:
        os.environ["TERMLEEK_LOG_LEVEL"] = args.log_level
    if args.log_cats:
        os.environ["TERMLEEK_LOG_CATS"] = args.log_cats
    return args, [argv[0], *remaining]


def run(argv: list[str] | None = None) -> int:
    """Application entrypoint (packaging-friendly)."""
    if argv is None:
        argv = sys.argv
    args, qt_argv = _parse_cli(list(argv))
    logger = get_logger("main")

    # Configuration problems end the program before any window exists.
    try:
        config = load_configuration(args.config)
    except TermleekError as e:
        print(e, file=sys.stderr)
        return EXIT_FAILURE

    app = QApplication.instance() or QApplication(qt_argv)
    window = TermWindow()
    terminal = TerminalHost(font=config.font, opacity=config.opacity)
    controller = AppController(
        config,
        loop=app,
        surface=window,
        layout=FixedLayout(),
        terminal=terminal,
        image_provider=ImageProvider(),
    )
    controller.start()
    if controller.exit_code is not None:
        return controller.exit_code

    controller.show()
    terminal.setFocus()
    logger.debug("entering event loop")
    code = app.exec()
    return controller.exit_code if controller.exit_code is not None else code


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
