"""
Provider identifiers and field alias table for ETA benchmark rows.

CSV exports and document-store records have used several names for the same
value over time. The alias table lists, per concept, the candidate field names
in the order they are tried.
"""

from enum import Enum
from typing import Dict, Tuple, Union

from ..common import UnknownProviderError


class ProviderType(Enum):
    """Routing providers that appear in benchmark rows."""

    GOOGLE = "google"
    MAPPLS = "mappls"
    OAUTH2 = "oauth2"

    @classmethod
    def parse(cls, value: Union["ProviderType", str]) -> "ProviderType":
        """Resolve an enum member or a case-insensitive provider name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownProviderError(
                f"Unknown provider: {value!r}",
                context={"known": [p.value for p in cls]},
            )


class FieldConcept(Enum):
    """Logical fields extracted from a raw row."""

    RUN_ID = "run_id"
    UID = "uid"
    CITY = "city"
    DAY = "day"
    GOOGLE_DURATION = "google_duration"
    MAPPLS_DURATION = "mappls_duration"
    OAUTH2_DURATION = "oauth2_duration"


# Dotted names address nested documents (e.g. aggregated run documents).
FIELD_ALIASES: Dict[FieldConcept, Tuple[str, ...]] = {
    FieldConcept.RUN_ID: ("RunID", "runId", "run_id"),
    FieldConcept.UID: ("UID", "uid"),
    FieldConcept.CITY: ("City", "city", "testCase.city"),
    FieldConcept.DAY: ("Day", "day"),
    FieldConcept.GOOGLE_DURATION: (
        "Google_Duration",
        "Google Duration",
        "googleETA",
        "metrics.providerB.duration",
    ),
    FieldConcept.MAPPLS_DURATION: (
        "Mappls_ETADuration",
        "Mappls ETADuration",
        "Mappls_Duration",
        "Mappls Duration",
        "mapplsETA",
        "metrics.providerA.etaDuration",
    ),
    FieldConcept.OAUTH2_DURATION: (
        "Oauth2_ETADuration",
        "Oauth2 ETADuration",
        "Oauth2_RouteDuration",
        "Oauth2 RouteDuration",
        "oauth2ETA",
    ),
}

PROVIDER_DURATION_FIELDS: Dict[ProviderType, FieldConcept] = {
    ProviderType.GOOGLE: FieldConcept.GOOGLE_DURATION,
    ProviderType.MAPPLS: FieldConcept.MAPPLS_DURATION,
    ProviderType.OAUTH2: FieldConcept.OAUTH2_DURATION,
}


def aliases_for(concept: FieldConcept) -> Tuple[str, ...]:
    """Candidate field names for a concept, highest priority first."""
    return FIELD_ALIASES[concept]


def duration_aliases(provider: Union[ProviderType, str]) -> Tuple[str, ...]:
    """Candidate duration field names for a provider."""
    return FIELD_ALIASES[PROVIDER_DURATION_FIELDS[ProviderType.parse(provider)]]
