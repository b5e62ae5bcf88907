"""
Logging setup for form registration.

Everything logs below the ``form_registration`` logger. The detection core
only emits debug records; the CLI or a host application decides what is
shown by calling setup_logging() or setup_from_config().
"""

import functools
import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Dict, Optional

ROOT_LOGGER_NAME = "form_registration"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024

_loggers: Dict[str, logging.Logger] = {}


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = 5,
    console_enabled: bool = True,
    file_enabled: bool = False
):
    """
    Configure handlers on the package logger.

    Calling it again replaces the handlers of the previous call. The console
    handler writes to stderr so that stdout stays free for CLI output; the
    rotating file handler records everything down to DEBUG.

    Args:
        log_level: Level name for the package logger and the console
        log_format: Record format; DEFAULT_FORMAT when omitted
        date_format: Timestamp format; DEFAULT_DATE_FORMAT when omitted
        log_file: Path of the rotating log file
        max_bytes: Rotation size of the log file
        backup_count: Rotated files to keep
        console_enabled: Attach the stderr handler
        file_enabled: Attach the file handler (needs log_file)
    """
    level = getattr(logging, log_level.upper())
    formatter = logging.Formatter(log_format or DEFAULT_FORMAT, datefmt=date_format or DEFAULT_DATE_FORMAT)

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    if console_enabled:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(level)
        console.setFormatter(formatter)
        package_logger.addHandler(console)

    if file_enabled and log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        rotating.setLevel(logging.DEBUG)
        rotating.setFormatter(formatter)
        package_logger.addHandler(rotating)

    if not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())

    package_logger.debug(f"Logging initialized at {log_level} (file: {log_file if file_enabled else 'off'})")


def get_logger(name: str) -> logging.Logger:
    """Module logger, cached by name (pass ``__name__``)."""
    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)
    return _loggers[name]


def setup_from_config(config):
    """
    Configure logging from the ``logging`` section of a ConfigLoader.

    Per-module levels under ``logging.loggers`` are applied afterwards, so
    e.g. the image-processing core can stay at WARNING while the services
    log INFO.
    """
    section = config.get_section("logging") or {}
    file_section = section.get("file") or {}
    console_section = section.get("console") or {}

    setup_logging(
        log_level=section.get("level", "INFO"),
        log_format=section.get("format"),
        date_format=section.get("date_format"),
        log_file=file_section.get("path"),
        max_bytes=file_section.get("max_bytes", DEFAULT_MAX_BYTES),
        backup_count=file_section.get("backup_count", 5),
        console_enabled=console_section.get("enabled", True),
        file_enabled=file_section.get("enabled", False),
    )

    for module_name, module_level in (section.get("loggers") or {}).items():
        logging.getLogger(module_name).setLevel(getattr(logging, module_level.upper()))


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter that prefixes each message with ``[key=value, ...]``."""

    def process(self, msg, kwargs):
        if self.extra:
            context = ", ".join(f"{k}={v}" for k, v in self.extra.items())
            msg = f"[{context}] {msg}"
        return msg, kwargs


def log_execution_time(logger: logging.Logger):
    """Decorator logging the wall time of each call at DEBUG, and failures at ERROR."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{func.__name__} failed after {time.perf_counter() - start:.3f}s: {e}", exc_info=True)
                raise
            finally:
                logger.debug(f"{func.__name__} took {time.perf_counter() - start:.3f}s")
        return wrapper
    return decorator
