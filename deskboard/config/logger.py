import logging
import os
import threading
from functools import cache
from logging import Formatter
from pathlib import Path
from typing import Optional

import rich
from rich import reconfigure
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

from deskboard.config.settings import global_settings, LogLevel
from deskboard.config.text_styles import (
    DeskboardHighlighter,
    EMOJI_ERROR,
    EMOJI_WARN,
    RICH_STYLES,
)

LOG_FILE_NAME = "deskboard.log"

_log_lock = threading.RLock()


def log_file_path() -> Path:
    return global_settings().log_dir / LOG_FILE_NAME


@cache
def get_highlighter():
    return DeskboardHighlighter()


@cache
def get_theme():
    return Theme(RICH_STYLES)


reconfigure(theme=get_theme(), highlighter=get_highlighter())


def get_console() -> Console:
    return rich.get_console()


_file_handler: Optional[logging.FileHandler] = None
_console_handler: Optional[RichHandler] = None


def logging_setup():
    """
    Set up or reset logging setup. Call at initial run and again if the log directory
    or levels change. Replaces previous deskboard handlers on the root logger.
    """
    global _file_handler, _console_handler

    with _log_lock:
        settings = global_settings()
        os.makedirs(settings.log_dir, exist_ok=True)

        root = logging.getLogger()
        for handler in (_file_handler, _console_handler):
            if handler is not None:
                root.removeHandler(handler)
                handler.close()

        # Verbose logging to file, important logging to console.
        _file_handler = logging.FileHandler(log_file_path(), encoding="utf-8")
        _file_handler.setLevel(settings.file_log_level.value)
        _file_handler.setFormatter(Formatter("%(asctime)s %(levelname).1s %(name)s - %(message)s"))

        _console_handler = RichHandler(
            console=get_console(),
            level=settings.console_log_level.value,
            show_time=False,
            show_path=False,
            show_level=False,
            highlighter=get_highlighter(),
            markup=False,
        )
        _console_handler.setLevel(settings.console_log_level.value)
        _console_handler.setFormatter(Formatter("%(message)s"))

        root.setLevel(min(settings.file_log_level.value, settings.console_log_level.value))
        root.addHandler(_console_handler)
        root.addHandler(_file_handler)


def prefix(line, warn_emoji: str = ""):
    return " ".join(filter(None, [warn_emoji, str(line)]))


def prefix_args(args, warn_emoji: str = ""):
    if len(args) > 0:
        args = (prefix(args[0], warn_emoji),) + args[1:]
    return args


class CustomLogger:
    """
    Custom logger to be clearer about user messages.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def debug(self, *args, **kwargs):
        self.logger.debug(*args, **kwargs)

    def info(self, *args, **kwargs):
        self.logger.info(*args, **kwargs)

    def message(self, *args, **kwargs):
        self.logger.warning(*args, **kwargs)

    def warning(self, *args, **kwargs):
        self.logger.warning(*prefix_args(args, warn_emoji=EMOJI_WARN), **kwargs)

    def error(self, *args, **kwargs):
        self.logger.error(*prefix_args(args, warn_emoji=EMOJI_ERROR), **kwargs)

    def log(self, level: LogLevel, *args, **kwargs):
        getattr(self, level.name)(*args, **kwargs)

    # Fallback for other attributes/methods.
    def __getattr__(self, attr):
        return getattr(self.logger, attr)


def get_logger(name: str):
    return CustomLogger(name)


## Tests


def test_prefix_args():
    assert prefix_args(("Saved %s", "x"), warn_emoji=EMOJI_WARN) == (f"{EMOJI_WARN} Saved %s", "x")
    assert prefix_args(()) == ()


def test_custom_logger_levels(caplog):
    log = get_logger("deskboard.test")
    with caplog.at_level(logging.DEBUG, logger="deskboard.test"):
        log.message("Moved %s", "item")
        log.warning("Careful")
    assert caplog.records[0].levelno == logging.WARNING
    assert caplog.records[0].getMessage() == "Moved item"
    assert caplog.records[1].getMessage() == f"{EMOJI_WARN} Careful"
