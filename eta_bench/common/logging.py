"""
Logging utilities for the ETA benchmark engine.

Every ``eta_bench.*`` logger writes one line per event to stderr, as JSON when
structured logging is enabled and as plain text otherwise. Stage code attaches
context through the ``log_*`` helpers, which return the ``extra`` mapping for a
log call.
"""

import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, IO, Optional, Union

from pythonjsonlogger import jsonlogger

from .config import config

SERVICE_NAME = "eta-benchmark"
ROOT_LOGGER = "eta_bench"


class StructuredFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping service metadata onto every record."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_record["timestamp"] = created.isoformat().replace("+00:00", "Z")
        log_record["environment"] = config.environment
        log_record["service"] = SERVICE_NAME
        # "level" is a format field, so it arrives present but empty
        if not log_record.get("level"):
            log_record["level"] = record.levelname


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    numeric = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return numeric


def _build_formatter(structured: bool) -> logging.Formatter:
    if structured:
        return StructuredFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    return logging.Formatter(config.logging.format_str)


def setup_logging(
    logger_name: Optional[str] = None,
    level: Optional[Union[str, int]] = None,
    enable_structured: Optional[bool] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """
    Configure a logger with a single stream handler.

    Calling it again for the same name replaces the previous handler.

    Args:
        logger_name: Name of the logger (defaults to root)
        level: Level name or number (config default)
        enable_structured: JSON output override (config default)
        stream: Output stream, stderr by default

    Returns:
        Configured logger instance
    """
    numeric = _resolve_level(level if level is not None else config.logging.level)
    structured = (
        enable_structured
        if enable_structured is not None
        else config.logging.enable_structured_logging
    )

    logger = logging.getLogger(logger_name)
    logger.setLevel(numeric)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(numeric)
    handler.setFormatter(_build_formatter(structured))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def log_data_processing(
    stage: str,
    records_processed: int,
    records_failed: int = 0,
    duration_ms: Optional[float] = None,
    **kwargs,
) -> Dict[str, Any]:
    """
    Build the ``extra`` mapping for a stage summary line.

    Args:
        stage: Pipeline stage (adapt, normalize, classify, ...)
        records_processed: Records the stage produced
        records_failed: Records dropped or degraded by the stage
        duration_ms: Stage duration in milliseconds
        **kwargs: Stage-specific counters

    Returns:
        Log entry dictionary
    """
    seen = records_processed + records_failed
    entry: Dict[str, Any] = {
        "event": "data_processing",
        "stage": stage,
        "records_processed": records_processed,
        "records_failed": records_failed,
        "success_rate": records_processed / seen if seen else 0,
    }
    if duration_ms is not None:
        entry["duration_ms"] = duration_ms
    entry.update(kwargs)
    return entry


def log_source_read(
    source_type: str,
    source_name: str,
    rows_read: int,
    duration_ms: Optional[float] = None,
    **kwargs,
) -> Dict[str, Any]:
    """Build the ``extra`` mapping for a read from a CSV export or document store."""
    entry: Dict[str, Any] = {
        "event": "source_read",
        "source_type": source_type,
        "source_name": source_name,
        "rows_read": rows_read,
    }
    if duration_ms is not None:
        entry["duration_ms"] = duration_ms
    entry.update(kwargs)
    return entry


class TimedLogger:
    """
    Context manager that times a block and logs its outcome.

    The start line is logged at DEBUG, completion at INFO and failure at ERROR.
    Exceptions are never suppressed. ``duration_ms`` is available after exit.
    """

    def __init__(self, logger: logging.Logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.duration_ms: Optional[float] = None
        self._started: Optional[float] = None

    def _extra(self, event: str, **fields) -> Dict[str, Any]:
        return {"event": event, "operation": self.operation, **fields, **self.context}

    def __enter__(self) -> "TimedLogger":
        self._started = time.perf_counter()
        self.logger.debug(
            f"Starting {self.operation}", extra=self._extra("operation_start")
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.duration_ms = (time.perf_counter() - self._started) * 1000

        if exc_type is None:
            self.logger.info(
                f"Completed {self.operation}",
                extra=self._extra(
                    "operation_complete", duration_ms=self.duration_ms, success=True
                ),
            )
        else:
            self.logger.error(
                f"Failed {self.operation}: {exc_val}",
                extra=self._extra(
                    "operation_failed",
                    duration_ms=self.duration_ms,
                    success=False,
                    error_type=exc_type.__name__,
                    error_message=str(exc_val),
                ),
            )
        return False


def set_log_level(level: Union[str, int], prefix: str = ROOT_LOGGER) -> None:
    """Change the level of every configured logger under ``prefix``."""
    numeric = _resolve_level(level)
    for name, existing in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(existing, logging.Logger):
            continue
        if name == prefix or name.startswith(f"{prefix}."):
            existing.setLevel(numeric)
            for handler in existing.handlers:
                handler.setLevel(numeric)


logger = setup_logging(ROOT_LOGGER)


def get_logger(name: str) -> logging.Logger:
    """Logger for a module or component under the package namespace."""
    return setup_logging(f"{ROOT_LOGGER}.{name}")
