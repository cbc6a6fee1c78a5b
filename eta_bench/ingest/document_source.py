"""
Document-store source for the ETA benchmark engine.

Wraps an injected collection object (anything with a pymongo-style
``find(query)``) and supplies raw rows for a run-id range and optional city.
The engine holds no connection state of its own.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Type

from tenacity import (
    Retrying,
    RetryError,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from ..common import get_logger, TimedLogger, log_source_read, SourceError

logger = get_logger("ingest.document_source")

SOURCE_TYPE = "DOCUMENT"

RUN_ID_FIELD = "RunID"
CITY_FIELD = "City"

DEFAULT_RETRY_ON: Tuple[Type[BaseException], ...] = (ConnectionError, TimeoutError)


class DocumentCollection(Protocol):
    """Protocol for the document-store collection handed to DocumentSource."""

    def find(self, filter: Dict[str, Any]) -> Any:
        """Return an iterable of documents matching the filter."""
        ...


def build_query(
    from_run_id: Optional[str] = None,
    to_run_id: Optional[str] = None,
    city: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the range query on the run identifier field.

    Args:
        from_run_id: Inclusive lower bound (``YYYYMMDD_HHMMSS``)
        to_run_id: Inclusive upper bound
        city: Optional exact city match

    Returns:
        Query document
    """
    query: Dict[str, Any] = {}

    run_range: Dict[str, str] = {}
    if from_run_id:
        run_range["$gte"] = from_run_id
    if to_run_id:
        run_range["$lte"] = to_run_id
    if run_range:
        query[RUN_ID_FIELD] = run_range

    if city:
        query[CITY_FIELD] = city

    return query


class DocumentSource:
    """Raw row supplier backed by a document-store collection."""

    def __init__(
        self,
        collection: DocumentCollection,
        name: Optional[str] = None,
        max_attempts: int = 3,
        retry_on: Sequence[Type[BaseException]] = DEFAULT_RETRY_ON,
        wait_multiplier: float = 1.0,
        wait_max: float = 10.0,
    ):
        """
        Initialize document source.

        Args:
            collection: Collection object exposing ``find(query)``
            name: Collection name used in source metadata
            max_attempts: Attempts per fetch before giving up
            retry_on: Exception types treated as transient
            wait_multiplier: Exponential backoff multiplier in seconds
            wait_max: Maximum wait between attempts in seconds
        """
        self.collection = collection
        self.name = name or getattr(collection, "name", None) or "documents"
        self.max_attempts = max_attempts
        self.retry_on = tuple(retry_on)
        self.wait_multiplier = wait_multiplier
        self.wait_max = wait_max
        self.logger = logger

    @property
    def source_type(self) -> str:
        return SOURCE_TYPE

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.wait_multiplier, max=self.wait_max
            ),
            retry=retry_if_exception_type(self.retry_on),
            reraise=False,
        )

    def _find(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [dict(doc) for doc in self.collection.find(query)]

    def fetch(
        self,
        from_run_id: Optional[str] = None,
        to_run_id: Optional[str] = None,
        city: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch raw rows for a run-id range.

        Args:
            from_run_id: Inclusive lower bound
            to_run_id: Inclusive upper bound
            city: Optional exact city match

        Returns:
            List of document rows

        Raises:
            SourceError: If the query keeps failing after all retries
        """
        query = build_query(from_run_id, to_run_id, city)

        with TimedLogger(self.logger, f"fetch_documents: {self.name}") as timer:
            try:
                rows = self._retrying()(self._find, query)
            except RetryError as e:
                last = e.last_attempt.exception()
                raise SourceError(
                    f"Document query failed after {self.max_attempts} attempts",
                    context={"collection": self.name, "query": query},
                ) from last

        self.logger.info(
            "Documents fetched",
            extra=log_source_read(
                source_type=SOURCE_TYPE,
                source_name=self.name,
                rows_read=len(rows),
                duration_ms=timer.duration_ms,
                query=query,
            ),
        )
        return rows
