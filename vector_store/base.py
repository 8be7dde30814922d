"""Abstractions for chunk storage backends.

Design Note:
    ``ChunkStore`` is implemented by the SQLite backend in
    ``vector_store/chunk_store.py``. A store owns deduplication and id
    assignment; ranking code only ever reads ``snapshot()`` and never touches
    the storage handle.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Sequence

from core.state import BulkInsertResult, TextChunk


@dataclass
class ScoredChunk:
    chunk: TextChunk
    score: float


class ChunkStore(ABC):
    """Abstract interface for persistent text chunk stores."""

    @abstractmethod
    def insert(self, text: str) -> int:  # pragma: no cover - interface
        """Store ``text`` (trimmed) and return its id.

        Inserting text that is already stored returns the existing id without
        embedding it again.
        """
        raise NotImplementedError

    @abstractmethod
    def bulk_insert(
        self, texts: Sequence[str], clear_existing: bool
    ) -> BulkInsertResult:  # pragma: no cover - interface
        """Insert many texts in order, skipping ones already stored.

        Args:
            texts: Candidate texts, each non-empty after trimming.
            clear_existing: Remove every stored chunk first.

        Returns:
            Counts of inserted and skipped texts.
        """
        raise NotImplementedError

    @abstractmethod
    def snapshot(self) -> List[TextChunk]:  # pragma: no cover - interface
        """Return every chunk that has an embedding, in insertion order."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError
