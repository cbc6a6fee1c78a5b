"""
Record-by-record aggregation for the ETA benchmark engine.

Rolls classified records up per city, per time bucket, per run and per test
case for one compared provider at a time. Percentages are ``count / total * 100``
rounded to ``percent_precision`` places; average variation only covers records
where both durations were positive. ``bulk_agg`` computes the same city and
time-bucket rollups aggregate-first and must agree with this module exactly.
"""

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from ..common import config, get_logger, TimedLogger, log_data_processing, TimeBucket
from ..ingest import ProviderType
from .classifier import ClassifiedRecord, ComparisonFlag

logger = get_logger("transform.aggregator")


def percentage(count: int, total: int, precision: int) -> float:
    """Share of ``count`` in ``total`` as a rounded percentage, 0 for empty groups."""
    if total <= 0:
        return 0.0
    return round(count / total * 100, precision)


def mean_variation(variation_sum: float, comparable: int, precision: int) -> float:
    """Rounded mean from an exact sum, 0 when no record qualified."""
    if comparable <= 0:
        return 0.0
    return round(variation_sum / comparable, precision)


def flag_counts(
    total: int,
    similar: int,
    over: int,
    under: int,
    variation_sum: float,
    comparable: int,
    percent_precision: int,
    variation_precision: int,
) -> Dict[str, Any]:
    """
    Derive the classification fields shared by all group statistics.

    Both aggregation paths build their stats through this function so that
    rounding is applied identically.
    """
    return {
        "total_records": total,
        "similar_count": similar,
        "over_count": over,
        "under_count": under,
        "similar_pct": percentage(similar, total, percent_precision),
        "over_pct": percentage(over, total, percent_precision),
        "under_pct": percentage(under, total, percent_precision),
        "avg_variation": mean_variation(variation_sum, comparable, variation_precision),
        "comparable_records": comparable,
    }


def default_provider() -> ProviderType:
    """First configured compared provider."""
    return ProviderType.parse(config.benchmark.compared_providers[0])


@dataclass
class CityStats:
    """Per-city rollup for one compared provider."""

    city: str
    provider: ProviderType
    total_records: int
    similar_count: int
    over_count: int
    under_count: int
    similar_pct: float
    over_pct: float
    under_pct: float
    avg_variation: float
    comparable_records: int
    total_iterations: int
    last_benchmark_run: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "city": self.city,
            "provider": self.provider.value,
            "total_records": self.total_records,
            "similar_count": self.similar_count,
            "over_count": self.over_count,
            "under_count": self.under_count,
            "similar_pct": self.similar_pct,
            "over_pct": self.over_pct,
            "under_pct": self.under_pct,
            "avg_variation": self.avg_variation,
            "comparable_records": self.comparable_records,
            "total_iterations": self.total_iterations,
            "last_benchmark_run": self.last_benchmark_run,
        }


@dataclass
class TimeBucketStats:
    """Per-time-bucket rollup for one compared provider."""

    time_bucket: TimeBucket
    provider: ProviderType
    total_records: int
    similar_count: int
    over_count: int
    under_count: int
    similar_pct: float
    over_pct: float
    under_pct: float
    avg_variation: float
    comparable_records: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "time_bucket": self.time_bucket.value,
            "provider": self.provider.value,
            "total_records": self.total_records,
            "similar_count": self.similar_count,
            "over_count": self.over_count,
            "under_count": self.under_count,
            "similar_pct": self.similar_pct,
            "over_pct": self.over_pct,
            "under_pct": self.under_pct,
            "avg_variation": self.avg_variation,
            "comparable_records": self.comparable_records,
        }


@dataclass
class RunTrendPoint:
    """Average variation of one run, for trend charts."""

    run_id: str
    timestamp: Optional[str]
    total_records: int
    avg_variation: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "timestamp": self.timestamp,
            "total_records": self.total_records,
            "avg_variation": self.avg_variation,
        }


@dataclass
class UidStats:
    """Variation spread of one test case across runs."""

    uid: str
    provider: ProviderType
    total_records: int
    comparable_records: int
    avg_variation: float
    min_variation: float
    max_variation: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uid": self.uid,
            "provider": self.provider.value,
            "total_records": self.total_records,
            "comparable_records": self.comparable_records,
            "avg_variation": self.avg_variation,
            "min_variation": self.min_variation,
            "max_variation": self.max_variation,
        }


@dataclass
class OverallSummary:
    """Whole-batch rollup for one compared provider."""

    provider: ProviderType
    total_records: int
    similar_count: int
    over_count: int
    under_count: int
    similar_pct: float
    over_pct: float
    under_pct: float
    avg_variation: float
    comparable_records: int
    total_cities: int
    total_runs: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "total_records": self.total_records,
            "similar_count": self.similar_count,
            "over_count": self.over_count,
            "under_count": self.under_count,
            "similar_pct": self.similar_pct,
            "over_pct": self.over_pct,
            "under_pct": self.under_pct,
            "avg_variation": self.avg_variation,
            "comparable_records": self.comparable_records,
            "total_cities": self.total_cities,
            "total_runs": self.total_runs,
        }


class EtaAggregator:
    """Aggregates classified records one record at a time."""

    def __init__(
        self,
        percent_precision: Optional[int] = None,
        variation_precision: Optional[int] = None,
    ):
        """
        Initialize aggregator.

        Args:
            percent_precision: Decimal places for percentages
            variation_precision: Decimal places for average variation
        """
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

    def _resolve(self, provider: Optional[Union[ProviderType, str]]) -> ProviderType:
        return ProviderType.parse(provider) if provider else default_provider()

    def _comparable_variations(
        self, records: Iterable[ClassifiedRecord], provider: ProviderType
    ) -> List[float]:
        variations = []
        for record in records:
            comparison = record.comparison(provider)
            if comparison.comparable:
                variations.append(comparison.variation_pct)
        return variations

    def tally(
        self, records: Sequence[ClassifiedRecord], provider: ProviderType
    ) -> Dict[str, Any]:
        """Count flags and average comparable variation over ``records``."""
        flags = {flag: 0 for flag in ComparisonFlag}
        for record in records:
            flags[record.flag(provider)] += 1

        variations = self._comparable_variations(records, provider)

        return flag_counts(
            total=len(records),
            similar=flags[ComparisonFlag.SIMILAR],
            over=flags[ComparisonFlag.OVERESTIMATE],
            under=flags[ComparisonFlag.UNDERESTIMATE],
            variation_sum=math.fsum(variations),
            comparable=len(variations),
            percent_precision=self.percent_precision,
            variation_precision=self.variation_precision,
        )

    def aggregate_by_city(
        self,
        records: Iterable[ClassifiedRecord],
        provider: Optional[Union[ProviderType, str]] = None,
    ) -> List[CityStats]:
        """
        Roll records up per exact city label.

        Args:
            records: Classified records
            provider: Compared provider whose flags are counted

        Returns:
            One CityStats per city, sorted by city
        """
        provider = self._resolve(provider)
        groups: Dict[str, List[ClassifiedRecord]] = defaultdict(list)
        for record in records:
            groups[record.city].append(record)

        with TimedLogger(self.logger, "aggregate_by_city", provider=provider.value):
            stats = []
            for city in sorted(groups):
                rows = groups[city]
                timestamps = [r.timestamp for r in rows if r.timestamp]
                stats.append(
                    CityStats(
                        city=city,
                        provider=provider,
                        **self.tally(rows, provider),
                        total_iterations=len({r.run_id for r in rows}),
                        last_benchmark_run=max(timestamps) if timestamps else None,
                    )
                )

            self.logger.info(
                "City aggregation complete",
                extra=log_data_processing(
                    stage="aggregate_by_city",
                    records_processed=len(stats),
                    input_records=sum(len(rows) for rows in groups.values()),
                ),
            )
            return stats

    def aggregate_by_time_bucket(
        self,
        records: Iterable[ClassifiedRecord],
        provider: Optional[Union[ProviderType, str]] = None,
    ) -> List[TimeBucketStats]:
        """
        Roll records up per time bucket.

        Returns:
            One TimeBucketStats per observed bucket, in day order
        """
        provider = self._resolve(provider)
        groups: Dict[TimeBucket, List[ClassifiedRecord]] = defaultdict(list)
        for record in records:
            groups[record.time_bucket].append(record)

        return [
            TimeBucketStats(
                time_bucket=bucket,
                provider=provider,
                **self.tally(groups[bucket], provider),
            )
            for bucket in TimeBucket.ordered()
            if bucket in groups
        ]

    def aggregate_by_run(
        self,
        records: Iterable[ClassifiedRecord],
        provider: Optional[Union[ProviderType, str]] = None,
    ) -> List[RunTrendPoint]:
        """Average variation per run, sorted by run identifier."""
        provider = self._resolve(provider)
        groups: Dict[str, List[ClassifiedRecord]] = defaultdict(list)
        for record in records:
            groups[record.run_id].append(record)

        points = []
        for run_id in sorted(groups):
            rows = groups[run_id]
            variations = self._comparable_variations(rows, provider)
            points.append(
                RunTrendPoint(
                    run_id=run_id,
                    timestamp=rows[0].timestamp,
                    total_records=len(rows),
                    avg_variation=mean_variation(
                        math.fsum(variations), len(variations), self.variation_precision
                    ),
                )
            )
        return points

    def summarize_uid(
        self,
        records: Iterable[ClassifiedRecord],
        uid: str,
        provider: Optional[Union[ProviderType, str]] = None,
        time_buckets: Optional[Sequence[TimeBucket]] = None,
    ) -> UidStats:
        """
        Variation spread for one test case, optionally limited to some buckets.

        Min and max are 0 when no record is comparable.
        """
        provider = self._resolve(provider)
        rows = [
            r
            for r in records
            if r.uid == uid and (time_buckets is None or r.time_bucket in time_buckets)
        ]
        variations = self._comparable_variations(rows, provider)

        return UidStats(
            uid=uid,
            provider=provider,
            total_records=len(rows),
            comparable_records=len(variations),
            avg_variation=mean_variation(
                math.fsum(variations), len(variations), self.variation_precision
            ),
            min_variation=min(variations) if variations else 0.0,
            max_variation=max(variations) if variations else 0.0,
        )

    def overall_summary(
        self,
        records: Iterable[ClassifiedRecord],
        provider: Optional[Union[ProviderType, str]] = None,
    ) -> OverallSummary:
        """Totals and flag distribution across the whole batch."""
        provider = self._resolve(provider)
        rows = list(records)
        return OverallSummary(
            provider=provider,
            **self.tally(rows, provider),
            total_cities=len({r.city for r in rows}),
            total_runs=len({r.run_id for r in rows}),
        )


# Convenience functions
def create_aggregator(
    percent_precision: Optional[int] = None, variation_precision: Optional[int] = None
) -> EtaAggregator:
    """Create aggregator with configuration."""
    return EtaAggregator(percent_precision, variation_precision)


def aggregate_by_city(
    records: Iterable[ClassifiedRecord],
    provider: Optional[Union[ProviderType, str]] = None,
) -> List[CityStats]:
    """Aggregate by city using the default aggregator."""
    return create_aggregator().aggregate_by_city(records, provider)


def aggregate_by_time_bucket(
    records: Iterable[ClassifiedRecord],
    provider: Optional[Union[ProviderType, str]] = None,
) -> List[TimeBucketStats]:
    """Aggregate by time bucket using the default aggregator."""
    return create_aggregator().aggregate_by_time_bucket(records, provider)
