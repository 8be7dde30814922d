"""Shared data structures for the text search service.

Design Note:
    ``TextChunk`` is the stored record and is frozen; the store never updates
    a chunk in place. ``OperationResult`` is what the service facade hands to
    its caller: either ``ok`` with a value or a structured ``OperationError``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

from core.errors import TextSearchError
from vector_store.embedding import EmbeddingVector

T = TypeVar("T")


@dataclass(frozen=True)
class TextChunk:
    """One stored text fragment and its embedding."""

    id: int
    text: str
    embedding: Optional[EmbeddingVector] = None


@dataclass(frozen=True)
class SearchHit:
    """A ranked search result as returned to callers."""

    text: str
    score: float


@dataclass(frozen=True)
class BulkInsertResult:
    inserted: int
    skipped: int


@dataclass(frozen=True)
class OperationError:
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: TextSearchError) -> "OperationError":
        return cls(code=exc.code, message=exc.message, details=dict(exc.details))


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Success payload or structured error for one service operation."""

    ok: bool
    value: Optional[T] = None
    error: Optional[OperationError] = None

    def __post_init__(self) -> None:
        if self.ok == (self.error is not None):
            raise ValueError("A result carries an error exactly when it is not ok")

    @classmethod
    def success(cls, value: T) -> "OperationResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, exc: TextSearchError) -> "OperationResult[T]":
        return cls(ok=False, error=OperationError.from_exception(exc))

    def unwrap(self) -> T:
        """Return the value, raising ``RuntimeError`` for failed results."""
        if self.error is not None:
            raise RuntimeError(f"{self.error.code}: {self.error.message}")
        return self.value  # type: ignore[return-value]
