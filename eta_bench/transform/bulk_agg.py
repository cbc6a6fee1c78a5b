"""
Aggregate-first rollups for large batches.

Builds a pandas DataFrame from normalized records, classifies every row in one
vectorized pass and groups with ``groupby``. This is the large-batch
counterpart of ``EtaAggregator``: for the same records, threshold and provider
it must produce identical counts, percentages and average variation.
"""

import math
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..common import config, get_logger, TimedLogger, log_data_processing, TimeBucket
from ..ingest import ProviderType
from .aggregator import CityStats, TimeBucketStats, default_provider, flag_counts
from .classifier import ComparisonFlag
from .normalizer import NormalizedRecord

logger = get_logger("transform.bulk_agg")

FRAME_COLUMNS = [
    "run_id",
    "uid",
    "city",
    "time_bucket",
    "timestamp",
    "reference_eta",
    "compared_eta",
]


def records_to_frame(
    records: Sequence[NormalizedRecord], provider: ProviderType
) -> pd.DataFrame:
    """
    Flatten normalized records into one row per record for ``provider``.

    Args:
        records: Normalized records
        provider: Compared provider

    Returns:
        DataFrame with FRAME_COLUMNS

    Raises:
        KeyError: If a record was not normalized with ``provider`` as a
            compared provider
    """
    if not records:
        return pd.DataFrame(columns=FRAME_COLUMNS)

    data = []
    for r in records:
        if provider not in r.provider_etas:
            raise KeyError(
                f"Provider {provider.value} was not compared for record "
                f"{r.run_id}/{r.uid}"
            )
        data.append(
            {
                "run_id": r.run_id,
                "uid": r.uid,
                "city": r.city,
                "time_bucket": r.time_bucket.value,
                "timestamp": r.timestamp or "",
                "reference_eta": float(r.reference_eta),
                "compared_eta": float(r.provider_etas[provider]),
            }
        )
    return pd.DataFrame(data, columns=FRAME_COLUMNS)


def classify_frame(df: pd.DataFrame, threshold_pct: float) -> pd.DataFrame:
    """
    Add ``comparable``, ``variation_pct`` and ``comparison_flag`` columns.

    Non-comparable rows get zero variation and the Similar flag.
    """
    df = df.copy()

    reference = df["reference_eta"].astype(float)
    compared = df["compared_eta"].astype(float)
    comparable = (reference > 0) & (compared > 0)

    # Denominator of 1 keeps non-comparable rows finite before masking
    safe_reference = reference.where(comparable, 1.0)
    variation = (reference - compared) * 100 / safe_reference
    ratio_first = (reference - compared) / safe_reference * 100
    variation = variation.where(np.isfinite(variation), ratio_first)
    variation = variation.where(comparable, 0.0)

    df["comparable"] = comparable
    df["variation_pct"] = variation
    df["comparison_flag"] = np.select(
        [variation.abs() <= threshold_pct, variation > threshold_pct],
        [ComparisonFlag.SIMILAR.value, ComparisonFlag.UNDERESTIMATE.value],
        default=ComparisonFlag.OVERESTIMATE.value,
    )
    return df


class BulkAggregator:
    """Classifies and aggregates a whole batch with pandas group-bys."""

    def __init__(
        self,
        threshold_pct: Optional[float] = None,
        percent_precision: Optional[int] = None,
        variation_precision: Optional[int] = None,
    ):
        """
        Initialize bulk aggregator.

        Args:
            threshold_pct: Similar band in percentage points
            percent_precision: Decimal places for percentages
            variation_precision: Decimal places for average variation
        """
        self.threshold_pct = (
            threshold_pct
            if threshold_pct is not None
            else config.benchmark.threshold_pct
        )
        if self.threshold_pct < 0:
            raise ValueError("threshold_pct must be >= 0")
        self.percent_precision = (
            percent_precision
            if percent_precision is not None
            else config.benchmark.percent_precision
        )
        self.variation_precision = (
            variation_precision
            if variation_precision is not None
            else config.benchmark.variation_precision
        )
        self.logger = logger

    def _prepare(
        self,
        records: Sequence[NormalizedRecord],
        provider: Optional[Union[ProviderType, str]],
    ) -> pd.DataFrame:
        provider = ProviderType.parse(provider) if provider else default_provider()
        df = classify_frame(records_to_frame(records, provider), self.threshold_pct)

        flags = df["comparison_flag"]
        df["is_similar"] = flags == ComparisonFlag.SIMILAR.value
        df["is_over"] = flags == ComparisonFlag.OVERESTIMATE.value
        df["is_under"] = flags == ComparisonFlag.UNDERESTIMATE.value
        return df

    def _group(self, df: pd.DataFrame, key: str) -> pd.DataFrame:
        return (
            df.groupby(key, sort=True)
            .agg(
                total=("run_id", "size"),
                similar=("is_similar", "sum"),
                over=("is_over", "sum"),
                under=("is_under", "sum"),
                comparable=("comparable", "sum"),
                # fsum is exact, so the result does not depend on row order
                variation_sum=("variation_pct", lambda s: math.fsum(s)),
                iterations=("run_id", "nunique"),
                last_run=("timestamp", "max"),
            )
            .reset_index()
        )

    def _counts(self, row: pd.Series) -> Dict[str, Any]:
        return flag_counts(
            total=int(row["total"]),
            similar=int(row["similar"]),
            over=int(row["over"]),
            under=int(row["under"]),
            variation_sum=float(row["variation_sum"]),
            comparable=int(row["comparable"]),
            percent_precision=self.percent_precision,
            variation_precision=self.variation_precision,
        )

    def aggregate_by_city(
        self,
        records: Sequence[NormalizedRecord],
        provider: Optional[Union[ProviderType, str]] = None,
    ) -> List[CityStats]:
        """
        Classify and roll up per city in one pass.

        Args:
            records: Normalized (unclassified) records
            provider: Compared provider

        Returns:
            One CityStats per city, sorted by city
        """
        provider = ProviderType.parse(provider) if provider else default_provider()
        if not records:
            return []

        with TimedLogger(
            self.logger, f"bulk_aggregate_by_city: {len(records)} records"
        ):
            grouped = self._group(self._prepare(records, provider), "city")

            stats = [
                CityStats(
                    city=row["city"],
                    provider=provider,
                    **self._counts(row),
                    total_iterations=int(row["iterations"]),
                    last_benchmark_run=row["last_run"] or None,
                )
                for _, row in grouped.iterrows()
            ]

            self.logger.info(
                "Bulk city aggregation complete",
                extra=log_data_processing(
                    stage="bulk_aggregate_by_city",
                    records_processed=len(stats),
                    input_records=len(records),
                ),
            )
            return stats

    def aggregate_by_time_bucket(
        self,
        records: Sequence[NormalizedRecord],
        provider: Optional[Union[ProviderType, str]] = None,
    ) -> List[TimeBucketStats]:
        """Classify and roll up per observed time bucket, in day order."""
        provider = ProviderType.parse(provider) if provider else default_provider()
        if not records:
            return []

        grouped = self._group(self._prepare(records, provider), "time_bucket")
        by_bucket = {row["time_bucket"]: row for _, row in grouped.iterrows()}

        return [
            TimeBucketStats(
                time_bucket=bucket,
                provider=provider,
                **self._counts(by_bucket[bucket.value]),
            )
            for bucket in TimeBucket.ordered()
            if bucket.value in by_bucket
        ]


# Convenience functions
def create_bulk_aggregator(
    threshold_pct: Optional[float] = None,
) -> BulkAggregator:
    """Create bulk aggregator with configuration."""
    return BulkAggregator(threshold_pct)


def bulk_aggregate_by_city(
    records: Sequence[NormalizedRecord],
    provider: Optional[Union[ProviderType, str]] = None,
    threshold_pct: Optional[float] = None,
) -> List[CityStats]:
    """Aggregate-first city rollup using the default bulk aggregator."""
    return create_bulk_aggregator(threshold_pct).aggregate_by_city(records, provider)
