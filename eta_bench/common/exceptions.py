"""Exception hierarchy for the ETA benchmark engine.

Row-level data problems never raise; these cover programming errors at the
call site and failures in the sources that feed the pipeline.
"""

from typing import Any, Mapping, Optional


class EtaBenchError(Exception):
    """Base class for all errors raised by the engine."""

    default_message = "ETA benchmark error occurred"

    def __init__(
        self, message: Optional[str] = None, *, context: Optional[Mapping[str, Any]] = None
    ):
        self.message = message or self.default_message
        self.context: Mapping[str, Any] = dict(context or {})
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class InvalidBatchError(EtaBenchError, TypeError):
    """The batch handed to a stage is not an iterable of row mappings."""

    default_message = "Batch must be an iterable of mappings"


class UnknownProviderError(EtaBenchError, ValueError):
    """Provider identifier outside the known set."""

    default_message = "Unknown provider"


class SourceError(EtaBenchError):
    """A CSV export or document store could not be read."""

    default_message = "Failed to read source"
