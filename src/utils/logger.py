import logging
import os

from rich.console import Console
from rich.logging import RichHandler

from utils import config

ROOT_LOGGER = "buypoint"


class CenteredFormatter(logging.Formatter):
    """
    Centers the module name (without the "buypoint." prefix) in a column
    that widens to the longest name seen so far.
    """

    def __init__(self, fmt=None, datefmt=None, style="%", initial_width=14):
        super().__init__(fmt, datefmt, style)
        self.width = initial_width

    def format(self, record):
        name = record.name.removeprefix(f"{ROOT_LOGGER}.")
        self.width = max(self.width, len(name))
        record.short_name = name.center(self.width)
        return super().format(record)


def _level() -> int:
    if os.getenv("DEBUG"):
        return logging.DEBUG
    level = logging.getLevelName(config.LOG_LEVEL.upper())
    return level if isinstance(level, int) else logging.INFO


def _root_logger() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers:
        return root

    root.setLevel(_level())

    # stderr, so logs never land inside the textual screen buffer
    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        log_time_format="[%X]",
    )
    console_handler.setFormatter(CenteredFormatter("[%(short_name)s]  %(message)s"))
    root.addHandler(console_handler)

    # the terminal belongs to the UI while it runs, a file keeps the history
    if config.LOG_FILE:
        file_handler = logging.FileHandler(config.LOG_FILE, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
        )
        root.addHandler(file_handler)

    root.propagate = False
    root.debug(f"Logging at {logging.getLevelName(root.level)}.")
    return root


def get_logger(name=None) -> logging.Logger:
    """
    Returns the logger for a module. All of them are children of the
    "buypoint" logger and share its handlers, so `get_logger("store.cart")`
    logs as "buypoint.store.cart".

    Level: DEBUG if DEBUG is set in the environment, else BUYPOINT_LOG_LEVEL.
    Set BUYPOINT_LOG_FILE to also write plain-text logs to a file.
    """
    root = _root_logger()
    if not name:
        return root
    return root.getChild(name)
