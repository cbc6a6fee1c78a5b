"""
Accuracy classification for the ETA benchmark engine.

Each compared provider is classified against the reference provider from the
signed variation percentage

    variation_pct = (1 - compared / reference) * 100

evaluated as ``(reference - compared) * 100 / reference``. Positive variation
means the compared provider predicted a shorter trip than the reference.
Within ``threshold_pct`` either way the record is Similar; beyond it the
compared provider under- or overestimates. Records without a positive
reference and compared duration are Similar with zero variation.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from ..common import config, get_logger, log_data_processing, TimeBucket
from ..ingest import ProviderType
from .normalizer import NormalizedRecord

logger = get_logger("transform.classifier")


class ComparisonFlag(Enum):
    """Three-way accuracy band for a compared provider."""

    SIMILAR = "Similar"
    OVERESTIMATE = "Overestimate"
    UNDERESTIMATE = "Underestimate"


def is_comparable(reference: float, compared: float) -> bool:
    """Both durations are positive, so a variation can be computed."""
    return reference > 0 and compared > 0


def compute_variation(reference: float, compared: float) -> float:
    """
    Signed variation of ``compared`` relative to ``reference`` in percent.

    Returns 0.0 when either duration is not positive. Multiplying first keeps
    exact percentages exact; when that overflows for very large durations the
    ratio is taken first instead.
    """
    if not is_comparable(reference, compared):
        return 0.0
    variation = (reference - compared) * 100 / reference
    if math.isfinite(variation):
        return variation
    return (reference - compared) / reference * 100


def classify_variation(variation_pct: float, threshold_pct: float) -> ComparisonFlag:
    """Band a variation percentage. The threshold itself counts as Similar."""
    if abs(variation_pct) <= threshold_pct:
        return ComparisonFlag.SIMILAR
    if variation_pct > threshold_pct:
        return ComparisonFlag.UNDERESTIMATE
    return ComparisonFlag.OVERESTIMATE


@dataclass(frozen=True)
class ProviderComparison:
    """Classification of one compared provider against the reference."""

    provider: ProviderType
    reference_eta: float
    compared_eta: float
    flag: ComparisonFlag
    variation_pct: float

    @property
    def comparable(self) -> bool:
        return is_comparable(self.reference_eta, self.compared_eta)

    @property
    def eta_difference(self) -> float:
        """Compared minus reference duration in seconds."""
        return self.compared_eta - self.reference_eta

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "provider": self.provider.value,
            "reference_eta": self.reference_eta,
            "compared_eta": self.compared_eta,
            "eta_difference": self.eta_difference,
            "comparison_flag": self.flag.value,
            "variation_pct": self.variation_pct,
            "comparable": self.comparable,
        }


@dataclass(frozen=True)
class ClassifiedRecord:
    """A normalized record plus one comparison per compared provider."""

    record: NormalizedRecord
    comparisons: Dict[ProviderType, ProviderComparison]

    @property
    def run_id(self) -> str:
        return self.record.run_id

    @property
    def uid(self) -> str:
        return self.record.uid

    @property
    def city(self) -> str:
        return self.record.city

    @property
    def time_bucket(self) -> TimeBucket:
        return self.record.time_bucket

    @property
    def timestamp(self) -> Optional[str]:
        return self.record.timestamp

    def comparison(self, provider: Union[ProviderType, str]) -> ProviderComparison:
        """Comparison for a compared provider."""
        provider = ProviderType.parse(provider)
        try:
            return self.comparisons[provider]
        except KeyError:
            raise KeyError(
                f"Provider {provider.value} was not compared for record "
                f"{self.run_id}/{self.uid}"
            )

    def flag(self, provider: Union[ProviderType, str]) -> ComparisonFlag:
        return self.comparison(provider).flag

    def variation(self, provider: Union[ProviderType, str]) -> float:
        return self.comparison(provider).variation_pct

    def to_dict(self) -> Dict[str, Any]:
        """Flatten record and comparisons for serialization."""
        data = self.record.to_dict()
        data["comparisons"] = {
            p.value: c.to_dict() for p, c in self.comparisons.items()
        }
        return data


def classify(
    record: NormalizedRecord,
    reference_provider: Union[ProviderType, str],
    compared_provider: Union[ProviderType, str],
    threshold_pct: Optional[float] = None,
) -> ProviderComparison:
    """
    Classify one provider pair on one record. Never raises for data values.

    Args:
        record: Normalized record
        reference_provider: Provider treated as ground truth
        compared_provider: Provider being evaluated
        threshold_pct: Similar band in percentage points (config default)

    Returns:
        ProviderComparison with flag and variation
    """
    threshold = threshold_pct if threshold_pct is not None else config.benchmark.threshold_pct
    reference_provider = ProviderType.parse(reference_provider)
    compared_provider = ProviderType.parse(compared_provider)

    reference_eta = record.eta(reference_provider)
    compared_eta = record.eta(compared_provider)

    variation = compute_variation(reference_eta, compared_eta)
    if is_comparable(reference_eta, compared_eta):
        flag = classify_variation(variation, threshold)
    else:
        flag = ComparisonFlag.SIMILAR

    return ProviderComparison(
        provider=compared_provider,
        reference_eta=reference_eta,
        compared_eta=compared_eta,
        flag=flag,
        variation_pct=variation,
    )


class Classifier:
    """Applies the comparison rule to every compared provider of a record."""

    def __init__(self, threshold_pct: Optional[float] = None):
        """
        Initialize classifier.

        Args:
            threshold_pct: Similar band in percentage points
        """
        self.threshold_pct = (
            threshold_pct
            if threshold_pct is not None
            else config.benchmark.threshold_pct
        )
        if self.threshold_pct < 0:
            raise ValueError("threshold_pct must be >= 0")
        self.logger = logger

    def classify_record(self, record: NormalizedRecord) -> ClassifiedRecord:
        """Classify each compared provider independently."""
        comparisons = {
            provider: classify(
                record, record.reference_provider, provider, self.threshold_pct
            )
            for provider in record.provider_etas
        }
        return ClassifiedRecord(record=record, comparisons=comparisons)

    def classify_batch(
        self, records: Sequence[NormalizedRecord]
    ) -> List[ClassifiedRecord]:
        """Classify a batch of normalized records, preserving order."""
        classified = [self.classify_record(record) for record in records]

        not_comparable = sum(
            1
            for record in classified
            for comparison in record.comparisons.values()
            if not comparison.comparable
        )
        self.logger.info(
            "Classified records",
            extra=log_data_processing(
                stage="classify",
                records_processed=len(classified),
                threshold_pct=self.threshold_pct,
                non_comparable_pairs=not_comparable,
            ),
        )
        return classified
