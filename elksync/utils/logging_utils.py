"""
Logging helpers for elk-sync.

Provides a formatter that stamps records with the time elapsed since the
application started, and a throttle for messages that would otherwise be
emitted on every tick of a 30 Hz loop (transport and capture failures).
"""

import logging
import threading
import time
from typing import Dict, Optional, Tuple

DEFAULT_FORMAT = "%(asctime)s - %(app_time)s - %(name)s - %(levelname)s - %(message)s"


class AppTimeFormatter(logging.Formatter):
    """Formatter that adds an ``app_time`` field (mm:ss.mmm since start)."""

    def __init__(
        self, fmt: Optional[str] = None, datefmt: Optional[str] = None, app_start_time: Optional[float] = None
    ):
        super().__init__(fmt, datefmt)
        self.app_start_time = app_start_time or time.time()

    def format(self, record):
        elapsed = max(0.0, record.created - self.app_start_time)
        minutes, seconds = divmod(elapsed, 60)
        record.app_time = f"{int(minutes):02d}:{seconds:06.3f}"
        return super().format(record)


_app_start_time: Optional[float] = None


def get_app_start_time() -> float:
    """Get the application start time, initialising it on first use."""
    global _app_start_time
    if _app_start_time is None:
        _app_start_time = time.time()
    return _app_start_time


def set_app_start_time(start_time: float) -> None:
    """Set the application start time."""
    global _app_start_time
    _app_start_time = start_time


def create_app_time_formatter(fmt: Optional[str] = None, datefmt: Optional[str] = None) -> AppTimeFormatter:
    """
    Create a formatter bound to the global application start time.

    Args:
        fmt: Log format string. If None, uses DEFAULT_FORMAT.
        datefmt: Date format string

    Returns:
        AppTimeFormatter instance
    """
    return AppTimeFormatter(fmt=fmt or DEFAULT_FORMAT, datefmt=datefmt, app_start_time=get_app_start_time())


class RateLimitedLogger:
    """
    Emit each message key at most once per interval.

    Repeats inside the interval are counted and the count is appended to
    the next message that gets through, so a sustained failure shows up as
    one line every ``interval`` seconds instead of thirty per second.
    """

    def __init__(self, logger: logging.Logger, interval: float = 2.0, clock=time.monotonic):
        """
        Args:
            logger: Logger to emit through
            interval: Minimum seconds between two emissions of the same key
            clock: Time source (injectable for tests)
        """
        self.logger = logger
        self.interval = interval
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (last emit time, suppressed count)
        self._history: Dict[str, Tuple[float, int]] = {}

    def log(self, level: int, key: str, message: str) -> bool:
        """
        Log ``message`` under ``key`` unless the key fired recently.

        Returns:
            True if the message was emitted, False if it was suppressed
        """
        now = self._clock()
        with self._lock:
            last, suppressed = self._history.get(key, (None, 0))
            if last is not None and now - last < self.interval:
                self._history[key] = (last, suppressed + 1)
                return False
            self._history[key] = (now, 0)

        if suppressed:
            message = f"{message} ({suppressed} similar messages suppressed)"
        self.logger.log(level, message)
        return True

    def warning(self, key: str, message: str) -> bool:
        return self.log(logging.WARNING, key, message)

    def error(self, key: str, message: str) -> bool:
        return self.log(logging.ERROR, key, message)

    def debug(self, key: str, message: str) -> bool:
        return self.log(logging.DEBUG, key, message)

    def reset(self, key: Optional[str] = None) -> None:
        """Forget history for one key, or for all keys."""
        with self._lock:
            if key is None:
                self._history.clear()
            else:
                self._history.pop(key, None)
