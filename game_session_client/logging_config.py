"""
Logging configuration with structured output and request timing.

This module provides:
- Console and rotating file logging for the client
- Structured JSON logging for machine consumption
- Timing of remote API requests
"""

import json
import logging
import logging.handlers
import sys
import time
import traceback
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional


LOGGER_NAME = "game_session_client"

_RESERVED_ATTRS = frozenset((
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime',
))


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        if self.include_extra:
            for key, value in record.__dict__.items():
                if key not in _RESERVED_ATTRS:
                    log_data[key] = value

        return json.dumps(log_data, default=str)


class PerformanceLogger:
    """Times remote operations and keeps per-operation durations."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.metrics: Dict[str, List[float]] = {}

    @contextmanager
    def time_operation(self, operation_name: str, **context):
        """Context manager for timing an operation."""
        start_time = time.perf_counter()

        try:
            yield
        except BaseException as e:
            duration = time.perf_counter() - start_time
            self.logger.warning(
                f"Failed operation: {operation_name} after {duration:.3f}s: {e!r}",
                extra={
                    'operation': operation_name,
                    'phase': 'error',
                    'duration_seconds': duration,
                    **context
                }
            )
            raise

        duration = time.perf_counter() - start_time
        self.logger.debug(
            f"Completed operation: {operation_name} in {duration:.3f}s",
            extra={
                'operation': operation_name,
                'phase': 'complete',
                'duration_seconds': duration,
                **context
            }
        )
        self.metrics.setdefault(operation_name, []).append(duration)

    def summary(self) -> Dict[str, Dict[str, float]]:
        """Return count/avg/min/max durations per operation."""
        result = {}
        for operation, durations in self.metrics.items():
            if durations:
                result[operation] = {
                    'count': len(durations),
                    'avg_duration': sum(durations) / len(durations),
                    'min_duration': min(durations),
                    'max_duration': max(durations),
                }
        return result


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    structured: bool = False
) -> logging.Logger:
    """
    Set up logging configuration for the client.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path. If None, logs to console only.
        structured: Emit JSON records instead of plain text.

    Returns:
        logging.Logger: Configured package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.handlers.clear()

    if structured:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,
            backupCount=3
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
