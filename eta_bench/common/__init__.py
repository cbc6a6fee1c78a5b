"""
Common utilities for the ETA benchmark engine.

This package provides shared configuration, logging, error types and run
identifier helpers used across all pipeline stages.
"""

from .config import config, AppConfig, BenchmarkConfig, load_config
from .logging import (
    logger,
    get_logger,
    setup_logging,
    TimedLogger,
    log_data_processing,
    log_source_read,
    set_log_level,
)
from .exceptions import (
    EtaBenchError,
    InvalidBatchError,
    UnknownProviderError,
    SourceError,
)
from .run_ids import (
    TimeBucket,
    derive_hour,
    derive_time_bucket,
    bucket_for_hour,
    run_id_to_datetime,
    run_id_to_iso,
    datetime_to_run_id,
    filter_by_run_id_range,
)

__all__ = [
    "config",
    "AppConfig",
    "BenchmarkConfig",
    "load_config",
    "logger",
    "get_logger",
    "setup_logging",
    "TimedLogger",
    "log_data_processing",
    "log_source_read",
    "set_log_level",
    "EtaBenchError",
    "InvalidBatchError",
    "UnknownProviderError",
    "SourceError",
    "TimeBucket",
    "derive_hour",
    "derive_time_bucket",
    "bucket_for_hour",
    "run_id_to_datetime",
    "run_id_to_iso",
    "datetime_to_run_id",
    "filter_by_run_id_range",
]
