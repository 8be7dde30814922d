"""Error taxonomy shared by the store, the adapters and the service facade.

Components raise these exceptions; ``TextSearchService`` converts them into
``OperationError`` values so callers always receive a structured result.
"""

from __future__ import annotations

from typing import Any


class TextSearchError(Exception):
    """Base class for every error surfaced to callers."""

    code = "text_search_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class EmptyTextError(TextSearchError):
    code = "empty_text"

    def __init__(self, message: str = "Text cannot be empty") -> None:
        super().__init__(message)


class InvalidArgumentError(TextSearchError):
    code = "invalid_argument"


class DimensionMismatch(TextSearchError):
    """Vector length disagrees with the store dimension or with its peer."""

    code = "dimension_mismatch"

    def __init__(
        self,
        message: str,
        *,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        super().__init__(message, details={"expected": expected, "actual": actual})
        self.expected = expected
        self.actual = actual


class StorageIOError(TextSearchError):
    code = "storage_io"


class ModelUnavailable(TextSearchError):
    """The embedding model failed to load. The next call retries the load."""

    code = "model_unavailable"


class EmbeddingError(TextSearchError):
    code = "embedding_failed"


class SourceReadError(TextSearchError):
    code = "source_unavailable"


class InternalError(TextSearchError):
    """Unexpected failure outside the taxonomy; the message names the cause."""

    code = "internal_error"


class BulkInsertError(TextSearchError):
    """A bulk insert stopped part way; ``committed`` items are durable."""

    code = "bulk_insert_failed"

    def __init__(
        self,
        message: str,
        *,
        committed: int,
        skipped: int = 0,
        cause: TextSearchError | None = None,
    ) -> None:
        super().__init__(
            message,
            details={
                "committed": committed,
                "skipped": skipped,
                "cause": cause.code if cause else None,
            },
        )
        self.committed = committed
        self.skipped = skipped
        self.cause = cause
