import functools
import time
from typing import Callable

from deskboard.config.logger import get_logger
from deskboard.config.settings import LogLevel
from deskboard.config.text_styles import EMOJI_TIMING

log = get_logger(__name__)


def format_duration(seconds: float) -> str:
    if seconds < 100.0 / 1000.0:
        return f"{seconds * 1000:.2f}ms"
    elif seconds < 1.0:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 100.0:
        return f"{seconds:.2f}s"
    else:
        return f"{seconds:.0f}s"


def log_if_slow(if_slower_than: float = 0.5, level: LogLevel = LogLevel.info):
    """
    Decorator to log the duration of calls slower than `if_slower_than` seconds.
    Works on plain functions only, not coroutines.
    """

    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                duration = time.time() - start_time
                if duration >= if_slower_than:
                    log.log(
                        level,
                        "%s %s() took %s",
                        EMOJI_TIMING,
                        func.__qualname__,
                        format_duration(duration),
                    )

        return wrapper

    return decorator


## Tests


def test_format_duration():
    assert format_duration(0.0123) == "12.30ms"
    assert format_duration(0.3) == "300ms"
    assert format_duration(12.5) == "12.50s"
    assert format_duration(250) == "250s"


def test_log_if_slow():
    @log_if_slow(if_slower_than=0.0)
    def add(a, b):
        return a + b

    assert add(1, 2) == 3
    assert add.__name__ == "add"
