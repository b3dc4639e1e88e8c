"""
Logging utilities for sweeps and inventory operations.

Console output is colored by level and carries optional structured extras
(``duration_ms``, ``record_count``, ``generation``) appended in brackets.
"""

import logging
import time
import sys
from datetime import datetime
from typing import Optional

# Extra record attributes rendered after the message, in this order
_EXTRA_FORMATS = (
    ('duration_ms', lambda v: f"duration={v:.1f}ms"),
    ('record_count', lambda v: f"records={v}"),
    ('generation', lambda v: f"gen={v}"),
)


class ColoredFormatter(logging.Formatter):
    """Formatter with colored level names and bracketed extras."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelname, '')
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        level_str = f"{color}{record.levelname:8}{self.RESET}"

        if record.funcName and record.funcName != '<module>':
            location = f"{record.module}.{record.funcName}"
        else:
            location = record.module

        extras = [
            render(getattr(record, key))
            for key, render in _EXTRA_FORMATS
            if getattr(record, key, None) is not None
        ]
        extra_str = f" [{', '.join(extras)}]" if extras else ""

        line = f"{timestamp} | {level_str} | {location:30} | {record.getMessage()}{extra_str}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger with a single colored stdout handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, level.upper())

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColoredFormatter())
    handler.setLevel(numeric_level)

    root.setLevel(numeric_level)
    root.addHandler(handler)

    # Audit events are always kept; engine SQL echo is noise
    logging.getLogger('audit').setLevel(logging.INFO)
    logging.getLogger('uvicorn').setLevel(logging.INFO)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogTimer:
    """
    Context manager that logs the start and end of an operation with its duration.

    Usage:
        with LogTimer(logger, "Sweep 10.0.0") as timer:
            results = ...
            timer.set_record_count(len(results))
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.INFO):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time: Optional[float] = None
        self.record_count: Optional[int] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.log(self.level, f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        extra = {'duration_ms': (time.perf_counter() - self.start_time) * 1000}
        if self.record_count is not None:
            extra['record_count'] = self.record_count

        if exc_type is None:
            self.logger.log(self.level, f"Completed: {self.operation}", extra=extra)
        elif not issubclass(exc_type, Exception):
            # Cancellation and interpreter exit are not failures
            self.logger.log(self.level, f"Interrupted: {self.operation}", extra=extra)
        else:
            self.logger.error(f"Failed: {self.operation} - {exc_val}", extra=extra)
        return False

    def set_record_count(self, count: int) -> None:
        self.record_count = count


def log_reconcile_start(logger: logging.Logger, operation: str, input_size: int) -> float:
    """Log the start of a merge of probe results with the device index."""
    logger.info(f"Reconcile started: {operation}", extra={'record_count': input_size})
    return time.perf_counter()


def log_reconcile_complete(
    logger: logging.Logger,
    operation: str,
    start_time: float,
    input_count: int,
    output_count: int,
    details: Optional[dict] = None
) -> None:
    """Log the completion of a merge with its row count."""
    duration_ms = (time.perf_counter() - start_time) * 1000

    msg = f"Reconcile complete: {operation}"
    if details:
        detail_str = ", ".join(f"{k}={v}" for k, v in details.items())
        msg = f"{msg} ({detail_str})"

    logger.info(msg, extra={'duration_ms': duration_ms, 'record_count': output_count})

    if input_count > 100 and duration_ms > 0:
        throughput = (input_count / duration_ms) * 1000
        logger.debug(f"Throughput: {throughput:.0f} rows/sec")
