"""
Data transformation utilities for the ETA benchmark engine.

This package provides record normalization, provider classification and the
two equivalent aggregation paths (record-by-record and aggregate-first).
"""

from .normalizer import (
    NormalizedRecord,
    Normalizer,
    normalize,
    UNKNOWN_CITY,
)

from .classifier import (
    ComparisonFlag,
    ProviderComparison,
    ClassifiedRecord,
    Classifier,
    classify,
    classify_variation,
    compute_variation,
    is_comparable,
)

from .aggregator import (
    EtaAggregator,
    CityStats,
    TimeBucketStats,
    RunTrendPoint,
    UidStats,
    OverallSummary,
    create_aggregator,
    aggregate_by_city,
    aggregate_by_time_bucket,
    percentage,
)

from .bulk_agg import (
    BulkAggregator,
    classify_frame,
    records_to_frame,
    create_bulk_aggregator,
    bulk_aggregate_by_city,
)

__all__ = [
    # Normalization
    "NormalizedRecord",
    "Normalizer",
    "normalize",
    "UNKNOWN_CITY",
    # Classification
    "ComparisonFlag",
    "ProviderComparison",
    "ClassifiedRecord",
    "Classifier",
    "classify",
    "classify_variation",
    "compute_variation",
    "is_comparable",
    # Record-by-record aggregation
    "EtaAggregator",
    "CityStats",
    "TimeBucketStats",
    "RunTrendPoint",
    "UidStats",
    "OverallSummary",
    "create_aggregator",
    "aggregate_by_city",
    "aggregate_by_time_bucket",
    "percentage",
    # Aggregate-first
    "BulkAggregator",
    "classify_frame",
    "records_to_frame",
    "create_bulk_aggregator",
    "bulk_aggregate_by_city",
]
