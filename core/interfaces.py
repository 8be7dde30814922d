"""Abstractions for the two external collaborators of the store.

The service depends on these interfaces, not on concrete models or file
parsers, so tests can drive it with simple fakes.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Iterable, Iterator, List

from vector_store.embedding import EmbeddingVector


class EmbedderState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"


class Embedder(ABC):
    """Converts text into vectors of one fixed dimension.

    The first call to ``embed`` may block while the model loads; later calls
    are fast. A failed load leaves the embedder ``UNLOADED`` so the next call
    retries.
    """

    model_name: str = "unknown"

    @property
    @abstractmethod
    def state(self) -> EmbedderState:  # pragma: no cover - interface
        raise NotImplementedError

    @property
    @abstractmethod
    def dimension(self) -> int:  # pragma: no cover - interface
        """Output dimension D. Loads the model if needed."""
        raise NotImplementedError

    @abstractmethod
    def load(self) -> None:  # pragma: no cover - interface
        """Block until the model is ready; raises ModelUnavailable on failure."""
        raise NotImplementedError

    @abstractmethod
    def embed(self, text: str) -> EmbeddingVector:  # pragma: no cover - interface
        raise NotImplementedError


class SourceReader(ABC):
    """Reads a document and yields its raw cell values in reading order."""

    @abstractmethod
    def read(self, path: str) -> Iterator[Any]:  # pragma: no cover - interface
        raise NotImplementedError


def extract_texts(cells: Iterable[Any]) -> List[str]:
    """Keep only cells that are non-empty strings after trimming.

    Numbers, blanks, NaN and any other cell type are dropped, so the store
    only ever sees validated text.
    """
    texts: List[str] = []
    for cell in cells:
        if not isinstance(cell, str):
            continue
        text = cell.strip()
        if text:
            texts.append(text)
    return texts
