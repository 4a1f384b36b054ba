"""
Logging configuration for the DX Cluster app.

Sets up console and rotating-file handlers, and provides a rate-limited
error logger so that a feed which stays down does not flood the log.
"""

import logging
import logging.handlers
import os
import threading
import time
from typing import Dict, Optional
from config import get_config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Identical errors are logged at most once per window
ERROR_LOG_INTERVAL = 5 * 60


def setup_logging(
    name: Optional[str] = None,
    level: Optional[str] = None,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        name: Logger name (``None`` configures the root logger)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path, rotated at 10MB

    Returns:
        Configured logger instance
    """
    config = get_config()

    if level is None:
        level = 'DEBUG' if config.DEBUG else 'INFO'
    numeric_level = getattr(logging, level.upper())

    target = logging.getLogger(name)
    target.setLevel(numeric_level)
    target.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    target.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        target.addHandler(file_handler)

    # requests/urllib3 are noisy at DEBUG while polling
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    return target


class ErrorRateLimiter:
    """Suppress repeats of the same error message within ``interval`` seconds."""

    def __init__(self, interval: float = ERROR_LOG_INTERVAL):
        self.interval = interval
        self._last_logged: Dict[str, float] = {}
        self._lock = threading.Lock()

    def should_log(self, key: str, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        with self._lock:
            last = self._last_logged.get(key)
            if last is not None and now - last < self.interval:
                return False
            self._last_logged[key] = now
            # Forget stale keys so the table does not grow without bound
            if len(self._last_logged) > 500:
                cutoff = now - self.interval
                self._last_logged = {k: t for k, t in self._last_logged.items() if t >= cutoff}
            return True

    def reset(self):
        with self._lock:
            self._last_logged.clear()


_error_limiter = ErrorRateLimiter()


def log_error_once(category: str, message: str,
                   target: Optional[logging.Logger] = None) -> bool:
    """Log ``[category] message`` as a warning unless it was logged recently.

    Returns True when the message was emitted.
    """
    key = f'{category}:{message}'
    if not _error_limiter.should_log(key):
        return False
    (target or logging.getLogger(__name__)).warning(f"[{category}] {message}")
    return True


def reset_error_log():
    """Forget previously logged errors (used by tests)."""
    _error_limiter.reset()
