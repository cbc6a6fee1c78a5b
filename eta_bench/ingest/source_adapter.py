"""
Source adapter for the ETA benchmark engine.

Turns heterogeneous raw rows (CSV-parsed dicts or document-store records) into
RawFields using the alias table in ``providers``. Lookups and numeric coercion
are total: a missing or malformed value degrades to ``0`` (or an empty string)
and never fails the row.
"""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .providers import (
    FieldConcept,
    ProviderType,
    PROVIDER_DURATION_FIELDS,
    aliases_for,
)
from ..common import get_logger, log_data_processing, InvalidBatchError

logger = get_logger("ingest.source_adapter")

_MISSING = object()


@dataclass(frozen=True)
class RawFields:
    """Values looked up from one raw row, before normalization."""

    run_id: str
    uid: str
    city: str
    durations: Dict[ProviderType, float]
    day: str = ""
    source_type: Optional[str] = None
    source_name: Optional[str] = None

    def duration(self, provider: ProviderType) -> float:
        """Duration for a provider in seconds, 0 when absent."""
        return self.durations.get(provider, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "run_id": self.run_id,
            "uid": self.uid,
            "city": self.city,
            "day": self.day,
            "durations": {p.value: v for p, v in self.durations.items()},
            "source_type": self.source_type,
            "source_name": self.source_name,
        }


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def _get_path(row: Mapping, name: str) -> Any:
    """Fetch ``name`` from row, descending into nested mappings on dots."""
    if name in row:
        return row[name]
    if "." not in name:
        return _MISSING

    current: Any = row
    for part in name.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def lookup_field(row: Mapping, aliases: Sequence[str], default: Any = None) -> Any:
    """
    Return the first non-blank value among ``aliases``.

    None, NaN and whitespace-only strings count as absent so that an empty CSV
    cell does not shadow a populated fallback column.

    Args:
        row: Raw row
        aliases: Candidate field names in priority order
        default: Value returned when no alias is present

    Returns:
        Field value or default
    """
    for name in aliases:
        value = _get_path(row, name)
        if value is _MISSING or _is_blank(value):
            continue
        return value
    return default


def to_number(value: Any) -> float:
    """
    Coerce a loosely typed value to a finite float.

    Strings are stripped and parsed; None, non-numeric
    strings, NaN and infinities all become 0.0. Never raises.
    """
    if value is None:
        return 0.0

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0

    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0

    if not math.isfinite(number):
        return 0.0
    return number


def to_text(value: Any) -> str:
    """Coerce an identifier value to a stripped string; blank for missing."""
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        # 101.0 -> "101"
        value = int(value)
    return str(value).strip()


class SourceAdapter:
    """Extracts RawFields from raw rows using the provider alias table."""

    def __init__(self, providers: Optional[Sequence[ProviderType]] = None):
        """
        Initialize source adapter.

        Args:
            providers: Providers whose durations are extracted (defaults to all)
        """
        self.providers = [ProviderType.parse(p) for p in (providers or ProviderType)]
        self.logger = logger

    def adapt(
        self,
        row: Mapping,
        source_type: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> RawFields:
        """
        Extract the known fields from one raw row.

        Args:
            row: Raw row mapping
            source_type: Origin of the row (CSV, DOCUMENT)
            source_name: File or collection name

        Returns:
            RawFields with every absent value defaulted
        """
        durations = {
            provider: to_number(
                lookup_field(row, aliases_for(PROVIDER_DURATION_FIELDS[provider]))
            )
            for provider in self.providers
        }

        return RawFields(
            run_id=to_text(lookup_field(row, aliases_for(FieldConcept.RUN_ID))),
            uid=to_text(lookup_field(row, aliases_for(FieldConcept.UID))),
            city=to_text(lookup_field(row, aliases_for(FieldConcept.CITY))),
            day=to_text(lookup_field(row, aliases_for(FieldConcept.DAY))),
            durations=durations,
            source_type=source_type,
            source_name=source_name,
        )

    def adapt_rows(
        self,
        rows: Any,
        source_type: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> List[RawFields]:
        """
        Adapt a batch of raw rows.

        Args:
            rows: Iterable of row mappings, or a pandas DataFrame
            source_type: Origin of the rows
            source_name: File or collection name

        Returns:
            One RawFields per input row, in input order

        Raises:
            InvalidBatchError: If the batch is not an iterable of mappings
        """
        batch = ensure_row_batch(rows)
        adapted = [self.adapt(row, source_type, source_name) for row in batch]

        missing_run_ids = sum(1 for r in adapted if not r.run_id)
        self.logger.info(
            "Adapted raw rows",
            extra=log_data_processing(
                stage="adapt",
                records_processed=len(adapted),
                source_type=source_type,
                source_name=source_name,
                missing_run_ids=missing_run_ids,
            ),
        )
        return adapted


def ensure_row_batch(rows: Any) -> List[Mapping]:
    """
    Validate that ``rows`` is a batch of row mappings and materialize it.

    Raises:
        InvalidBatchError: For non-iterables, strings, single mappings or
            batches containing a non-mapping element
    """
    if isinstance(rows, pd.DataFrame):
        return rows.to_dict("records")

    if isinstance(rows, (str, bytes, Mapping)) or not isinstance(rows, Iterable):
        raise InvalidBatchError(
            f"Expected an iterable of row mappings, got {type(rows).__name__}"
        )

    batch = list(rows)
    for index, row in enumerate(batch):
        if not isinstance(row, Mapping):
            raise InvalidBatchError(
                "Batch contains a non-mapping row",
                context={"index": index, "type": type(row).__name__},
            )
    return batch


def adapt(row: Mapping) -> RawFields:
    """Adapt a single row with the default adapter."""
    return SourceAdapter().adapt(row)
