"""Shared pytest fixtures for Text Search tests.

This module provides deterministic fake embedders and source readers so
the store and service can be exercised without loading a real model.
"""

from typing import Any, Dict, Iterator, List, Optional, Sequence

import pytest

from core.errors import EmbeddingError, ModelUnavailable
from core.interfaces import Embedder, EmbedderState, SourceReader
from core.service import TextSearchService
from vector_store.chunk_store import SQLiteChunkStore
from vector_store.embedding import EmbeddingVector


# =============================================================================
# PYTEST MARKERS REGISTRATION
# =============================================================================


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")


# =============================================================================
# FAKE EMBEDDERS
# =============================================================================


class FakeEmbedder(Embedder):
    """Deterministic embedder that records every text it embeds.

    Texts found in ``vectors`` get that exact vector; any other text gets a
    character histogram folded into ``dims`` buckets, which is never zero for
    non-empty text.
    """

    model_name = "fake-embedder"

    def __init__(
        self, dims: int = 4, vectors: Optional[Dict[str, Sequence[float]]] = None
    ):
        self.dims = dims
        self.vectors = dict(vectors or {})
        self.calls: List[str] = []
        self.load_count = 0
        self._state = EmbedderState.UNLOADED

    @property
    def state(self) -> EmbedderState:
        return self._state

    @property
    def dimension(self) -> int:
        self.load()
        return self.dims

    def load(self) -> None:
        if self._state is not EmbedderState.READY:
            self.load_count += 1
            self._state = EmbedderState.READY

    def embed(self, text: str) -> EmbeddingVector:
        self.load()
        self.calls.append(text)
        if text in self.vectors:
            return EmbeddingVector(self.vectors[text])
        values = [0.0] * self.dims
        for char in text:
            values[ord(char) % self.dims] += 1.0
        return EmbeddingVector(values)


class FailingEmbedder(FakeEmbedder):
    """Raises ``EmbeddingError`` for the texts listed in ``fail_on``."""

    def __init__(self, fail_on: Sequence[str], dims: int = 4):
        super().__init__(dims=dims)
        self.fail_on = set(fail_on)

    def embed(self, text: str) -> EmbeddingVector:
        if text in self.fail_on:
            raise EmbeddingError(f"cannot embed {text!r}")
        return super().embed(text)


class CrashingEmbedder(FakeEmbedder):
    """Raises a bare ``RuntimeError``, as a buggy backend would."""

    def __init__(self, crash_on: str, dims: int = 4):
        super().__init__(dims=dims)
        self.crash_on = crash_on

    def embed(self, text: str) -> EmbeddingVector:
        if text == self.crash_on:
            raise RuntimeError("backend crashed")
        return super().embed(text)


class UnloadableEmbedder(FakeEmbedder):
    """Embedder whose model never loads."""

    def load(self) -> None:
        self.load_count += 1
        raise ModelUnavailable("model weights missing")


class FakeSourceReader(SourceReader):
    """Source reader returning a fixed list of raw cells for any path."""

    def __init__(self, cells: Optional[List[Any]] = None):
        self.cells = list(cells or [])
        self.paths: List[str] = []

    def read(self, path: str) -> Iterator[Any]:
        self.paths.append(path)
        return iter(self.cells)


# =============================================================================
# PYTEST FIXTURES
# =============================================================================


@pytest.fixture
def fake_embedder():
    """Fixture providing a FakeEmbedder instance."""
    return FakeEmbedder()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "text_search.db"


@pytest.fixture
def chunk_store(db_path, fake_embedder):
    """Fixture providing an empty SQLite store backed by the fake embedder."""
    return SQLiteChunkStore(db_path, embedder=fake_embedder)


@pytest.fixture
def source_reader():
    return FakeSourceReader()


@pytest.fixture
def service(chunk_store, fake_embedder, source_reader):
    """Fixture wiring the fake embedder, tmp store and fake reader together."""
    return TextSearchService(
        store=chunk_store, embedder=fake_embedder, reader=source_reader
    )
