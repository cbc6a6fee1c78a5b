"""
Data ingestion utilities for the ETA benchmark engine.

This package provides the provider alias table, the source adapter that
extracts provider durations from heterogeneous rows, and the CSV and
document-store row suppliers.
"""

from .providers import (
    ProviderType,
    FieldConcept,
    FIELD_ALIASES,
    aliases_for,
    duration_aliases,
)
from .source_adapter import (
    RawFields,
    SourceAdapter,
    adapt,
    lookup_field,
    to_number,
    to_text,
    ensure_row_batch,
)
from .csv_source import CsvSource, read_csv_rows
from .document_source import DocumentSource, DocumentCollection, build_query

__all__ = [
    # Providers and aliases
    "ProviderType",
    "FieldConcept",
    "FIELD_ALIASES",
    "aliases_for",
    "duration_aliases",
    # Adapter
    "RawFields",
    "SourceAdapter",
    "adapt",
    "lookup_field",
    "to_number",
    "to_text",
    "ensure_row_batch",
    # Sources
    "CsvSource",
    "read_csv_rows",
    "DocumentSource",
    "DocumentCollection",
    "build_query",
]
