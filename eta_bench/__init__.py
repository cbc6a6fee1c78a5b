"""
ETA benchmark normalization, classification and aggregation engine.

This package provides:
- Common utilities (config, logging, errors, run identifiers)
- Source adapters for CSV exports and document-store records
- Record normalization and per-provider accuracy classification
- Per-city, per-time-bucket and per-run aggregation, record-by-record or
  aggregate-first
"""

# Re-export key components for convenience
from .common import config, logger, get_logger, TimeBucket
from .ingest import ProviderType, SourceAdapter, CsvSource, DocumentSource
from .transform import (
    Normalizer,
    NormalizedRecord,
    Classifier,
    ClassifiedRecord,
    ComparisonFlag,
    EtaAggregator,
    BulkAggregator,
    CityStats,
    TimeBucketStats,
)
from .pipeline import BenchmarkPipeline, PipelineResult, ResponseMode, create_pipeline

__version__ = "1.0.0"

__all__ = [
    # Configuration and logging
    "config",
    "logger",
    "get_logger",
    # Ingestion
    "ProviderType",
    "SourceAdapter",
    "CsvSource",
    "DocumentSource",
    # Transformation
    "TimeBucket",
    "Normalizer",
    "NormalizedRecord",
    "Classifier",
    "ClassifiedRecord",
    "ComparisonFlag",
    "EtaAggregator",
    "BulkAggregator",
    "CityStats",
    "TimeBucketStats",
    # Pipeline
    "BenchmarkPipeline",
    "PipelineResult",
    "ResponseMode",
    "create_pipeline",
]
