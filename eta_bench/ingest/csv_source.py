"""
CSV export source for the ETA benchmark engine.

Reads benchmark CSV exports into raw rows keyed by the exact header names.
Header aliasing is left to the source adapter.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from .providers import ProviderType
from .source_adapter import SourceAdapter
from ..common import (
    config,
    get_logger,
    TimedLogger,
    log_source_read,
    log_data_processing,
    SourceError,
)

logger = get_logger("ingest.csv_source")

SOURCE_TYPE = "CSV"


def read_csv_rows(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Read a CSV export into a list of row dicts.

    All cells are read as strings and empty cells stay empty strings; numeric
    coercion happens later in the adapter.

    Args:
        path: Path to the CSV file

    Returns:
        List of rows keyed by header name

    Raises:
        SourceError: If the file is missing or cannot be parsed
    """
    path = Path(path)
    if not path.exists():
        raise SourceError(f"CSV file not found: {path}", context={"path": str(path)})

    try:
        df = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
        raise SourceError(
            f"Failed to parse CSV file: {path}", context={"error": str(e)}
        ) from e

    # Header cells may carry stray whitespace
    df.columns = [str(col).strip() for col in df.columns]
    return df.to_dict("records")


class CsvSource:
    """Raw row supplier for one CSV export."""

    def __init__(
        self,
        path: Union[str, Path],
        drop_incomplete: bool = False,
        reference_provider: Optional[Union[ProviderType, str]] = None,
        compared_providers: Optional[Sequence[Union[ProviderType, str]]] = None,
    ):
        """
        Initialize CSV source.

        Args:
            path: Path to the CSV export
            drop_incomplete: Drop rows where any tracked duration is not > 0
            reference_provider: Reference provider for completeness checks
            compared_providers: Compared providers for completeness checks
        """
        self.path = Path(path)
        self.drop_incomplete = drop_incomplete
        self.reference_provider = ProviderType.parse(
            reference_provider or config.benchmark.reference_provider
        )
        self.compared_providers = [
            ProviderType.parse(p)
            for p in (compared_providers or config.benchmark.compared_providers)
        ]
        self.logger = logger

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def source_type(self) -> str:
        return SOURCE_TYPE

    def _is_complete(self, row: Dict[str, Any], adapter: SourceAdapter) -> bool:
        fields = adapter.adapt(row)
        return all(value > 0 for value in fields.durations.values())

    def rows(self) -> List[Dict[str, Any]]:
        """
        Read the export and return its raw rows.

        Returns:
            Raw rows, with incomplete rows removed when ``drop_incomplete`` is set
        """
        with TimedLogger(self.logger, f"read_csv: {self.name}") as timer:
            rows = read_csv_rows(self.path)

        self.logger.info(
            "CSV export read",
            extra=log_source_read(
                source_type=SOURCE_TYPE,
                source_name=self.name,
                rows_read=len(rows),
                duration_ms=timer.duration_ms,
            ),
        )

        if not self.drop_incomplete:
            return rows

        adapter = SourceAdapter([self.reference_provider, *self.compared_providers])
        kept = [row for row in rows if self._is_complete(row, adapter)]
        dropped = len(rows) - len(kept)
        if dropped:
            self.logger.warning(
                f"Dropped {dropped} incomplete rows from {self.name}",
                extra=log_data_processing(
                    stage="csv_cleaning",
                    records_processed=len(kept),
                    records_failed=dropped,
                ),
            )
        return kept
