import os
import threading
from contextlib import contextmanager
from enum import Enum
from logging import DEBUG, ERROR, INFO, WARNING
from pathlib import Path

from pydantic.dataclasses import dataclass


APP_NAME = "deskboard"

DEFAULT_STORE_PATH = "~/.local/deskboard/workspace.yml"

DEFAULT_LOG_DIR = "~/.local/deskboard/logs"

SAVE_DEBOUNCE_SECS = 0.3

REMOTE_POLL_SECS = 1.0

SIDE_NOTE_SLOTS = 16


class LogLevel(Enum):
    debug = DEBUG
    info = INFO
    warning = WARNING
    message = WARNING  # Same as warning, just for important console messages.
    error = ERROR

    @classmethod
    def parse(cls, level_str: str):
        canon_name = level_str.strip().lower()
        if canon_name == "warn":
            canon_name = "warning"
        try:
            return cls[canon_name]
        except KeyError:
            raise ValueError(
                f"Invalid log level: `{level_str}`. Valid options are: {', '.join(f'`{name}`' for name in cls.__members__)}"
            )

    def __str__(self):
        return self.name


@dataclass
class Settings:
    store_path: Path
    """The YAML file holding the workspace document for the file-backed store."""

    save_debounce_secs: float
    """Quiet time after the last local edit before the document is saved."""

    remote_poll_secs: float
    """How often the file-backed store checks for changes from other sessions."""

    console_log_level: LogLevel
    """The log level for console-based logging."""

    file_log_level: LogLevel
    """The log level for file-based logging."""

    log_dir: Path
    """Directory for the log file."""


# Initial default settings.
_settings = Settings(
    store_path=Path(DEFAULT_STORE_PATH).expanduser(),
    save_debounce_secs=SAVE_DEBOUNCE_SECS,
    remote_poll_secs=REMOTE_POLL_SECS,
    console_log_level=LogLevel.warning,
    file_log_level=LogLevel.info,
    log_dir=Path(DEFAULT_LOG_DIR).expanduser(),
)


def global_settings() -> Settings:
    """
    Read access to global settings.
    """
    return _settings


_settings_lock = threading.RLock()


@contextmanager
def update_global_settings():
    """
    Context manager for thread-safe updates to global settings.
    """
    with _settings_lock:
        yield _settings


def apply_env_settings(environ=os.environ) -> Settings:
    """
    Override settings from `DESKBOARD_*` environment variables, if set.
    Millisecond values are used for the timing settings.
    """
    with update_global_settings() as settings:
        if environ.get("DESKBOARD_STORE_PATH"):
            settings.store_path = Path(environ["DESKBOARD_STORE_PATH"]).expanduser()
        if environ.get("DESKBOARD_DEBOUNCE_MS"):
            settings.save_debounce_secs = int(environ["DESKBOARD_DEBOUNCE_MS"]) / 1000.0
        if environ.get("DESKBOARD_POLL_MS"):
            settings.remote_poll_secs = int(environ["DESKBOARD_POLL_MS"]) / 1000.0
        if environ.get("DESKBOARD_LOG_LEVEL"):
            settings.console_log_level = LogLevel.parse(environ["DESKBOARD_LOG_LEVEL"])
        if environ.get("DESKBOARD_LOG_DIR"):
            settings.log_dir = Path(environ["DESKBOARD_LOG_DIR"]).expanduser()
    return _settings


## Tests


def test_log_level_parse():
    assert LogLevel.parse("WARN") == LogLevel.warning
    assert LogLevel.parse(" debug ") == LogLevel.debug
    try:
        LogLevel.parse("loud")
        assert False
    except ValueError as e:
        assert "loud" in str(e)


def test_apply_env_settings():
    old_debounce = global_settings().save_debounce_secs
    old_level = global_settings().console_log_level
    try:
        settings = apply_env_settings(
            {"DESKBOARD_DEBOUNCE_MS": "50", "DESKBOARD_LOG_LEVEL": "info"}
        )
        assert settings.save_debounce_secs == 0.05
        assert settings.console_log_level == LogLevel.info
    finally:
        with update_global_settings() as settings:
            settings.save_debounce_secs = old_debounce
            settings.console_log_level = old_level
