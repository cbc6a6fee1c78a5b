"""
Record normalization for the ETA benchmark engine.

Maps RawFields from any source onto the canonical NormalizedRecord: identifiers,
city, reference ETA, per-provider ETAs and the derived time bucket.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from ..common import (
    config,
    get_logger,
    log_data_processing,
    TimeBucket,
    derive_time_bucket,
    run_id_to_iso,
)
from ..ingest import ProviderType, RawFields

logger = get_logger("transform.normalizer")

UNKNOWN_CITY = "Unknown"


@dataclass(frozen=True)
class NormalizedRecord:
    """Canonical benchmark record for one test case in one run."""

    run_id: str
    uid: str
    city: str
    reference_provider: ProviderType
    reference_eta: float
    provider_etas: Dict[ProviderType, float]
    day: str = ""
    source_type: Optional[str] = None
    source_name: Optional[str] = None
    time_bucket: TimeBucket = field(init=False)
    timestamp: Optional[str] = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "time_bucket", derive_time_bucket(self.run_id))
        object.__setattr__(self, "timestamp", run_id_to_iso(self.run_id))

    def eta(self, provider: ProviderType) -> float:
        """ETA for the reference or a compared provider, 0 when not tracked."""
        if provider == self.reference_provider:
            return self.reference_eta
        return self.provider_etas.get(provider, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "run_id": self.run_id,
            "uid": self.uid,
            "city": self.city,
            "day": self.day,
            "time_bucket": self.time_bucket.value,
            "timestamp": self.timestamp,
            "reference_provider": self.reference_provider.value,
            "reference_eta": self.reference_eta,
            "provider_etas": {p.value: v for p, v in self.provider_etas.items()},
            "source_type": self.source_type,
            "source_name": self.source_name,
        }


class Normalizer:
    """Builds NormalizedRecords from adapter output."""

    def __init__(
        self,
        reference_provider: Optional[Union[ProviderType, str]] = None,
        compared_providers: Optional[Sequence[Union[ProviderType, str]]] = None,
        lowercase_cities: Optional[bool] = None,
    ):
        """
        Initialize normalizer.

        Args:
            reference_provider: Provider treated as ground truth
            compared_providers: Providers evaluated against the reference
            lowercase_cities: Lowercase city labels (trimmed either way)
        """
        self.reference_provider = ProviderType.parse(
            reference_provider or config.benchmark.reference_provider
        )
        self.compared_providers = [
            ProviderType.parse(p)
            for p in (compared_providers or config.benchmark.compared_providers)
        ]
        if self.reference_provider in self.compared_providers:
            raise ValueError(
                f"Reference provider {self.reference_provider.value} "
                "cannot also be a compared provider"
            )
        self.lowercase_cities = (
            lowercase_cities
            if lowercase_cities is not None
            else config.benchmark.lowercase_cities
        )
        self.logger = logger

    def normalize_city(self, city: Optional[str]) -> str:
        """Trim a city label, defaulting blanks to Unknown."""
        label = (city or "").strip()
        if not label:
            return UNKNOWN_CITY
        return label.lower() if self.lowercase_cities else label

    def normalize(self, fields: RawFields) -> NormalizedRecord:
        """
        Normalize one adapter result. Never fails.

        Args:
            fields: RawFields from the source adapter

        Returns:
            NormalizedRecord
        """
        return NormalizedRecord(
            run_id=fields.run_id,
            uid=fields.uid,
            city=self.normalize_city(fields.city),
            reference_provider=self.reference_provider,
            reference_eta=fields.duration(self.reference_provider),
            provider_etas={
                provider: fields.duration(provider)
                for provider in self.compared_providers
            },
            day=fields.day,
            source_type=fields.source_type,
            source_name=fields.source_name,
        )

    def normalize_batch(self, batch: Sequence[RawFields]) -> List[NormalizedRecord]:
        """Normalize a batch of adapter results, preserving order."""
        records = [self.normalize(fields) for fields in batch]

        unknown_cities = sum(1 for r in records if r.city == UNKNOWN_CITY)
        missing_reference = sum(1 for r in records if r.reference_eta <= 0)
        self.logger.info(
            "Normalized records",
            extra=log_data_processing(
                stage="normalize",
                records_processed=len(records),
                unknown_cities=unknown_cities,
                missing_reference_eta=missing_reference,
            ),
        )
        return records


def normalize(
    fields: RawFields,
    reference_provider: Optional[Union[ProviderType, str]] = None,
    compared_providers: Optional[Sequence[Union[ProviderType, str]]] = None,
) -> NormalizedRecord:
    """Normalize one adapter result with a default normalizer."""
    return Normalizer(reference_provider, compared_providers).normalize(fields)
