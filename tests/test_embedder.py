"""Tests for the sentence-transformers embedder state machine.

A fake model stands in for sentence-transformers so no weights are loaded.
"""

import threading

import numpy as np
import pytest

from adapters.embedder import SentenceTransformerEmbedder
from core.errors import EmbeddingError, ModelUnavailable
from core.interfaces import EmbedderState


class _FakeModel:
    def __init__(self, dims: int = 3, report_dimension: bool = True):
        self.dims = dims
        self.report_dimension = report_dimension
        self.encode_calls = []

    def get_sentence_embedding_dimension(self):
        return self.dims if self.report_dimension else None

    def encode(
        self,
        texts,
        convert_to_numpy=True,
        normalize_embeddings=False,
        show_progress_bar=False,
    ):
        self.encode_calls.append((list(texts), normalize_embeddings))
        arr = np.array(
            [[float(len(t) + i) for i in range(self.dims)] for t in texts],
            dtype="float32",
        )
        if normalize_embeddings:
            arr = arr / np.linalg.norm(arr, axis=1, keepdims=True)
        return arr


class _Loader:
    def __init__(self, model=None, failures: int = 0):
        self.model = model or _FakeModel()
        self.failures = failures
        self.calls = []

    def __call__(self, model_name, device):
        self.calls.append((model_name, device))
        if self.failures:
            self.failures -= 1
            raise OSError("download interrupted")
        return self.model


@pytest.mark.unit
def test_starts_unloaded_and_loads_on_first_embed():
    loader = _Loader()
    embedder = SentenceTransformerEmbedder(model_name="fake", loader=loader)
    assert embedder.state is EmbedderState.UNLOADED
    assert loader.calls == []

    vector = embedder.embed("hello")

    assert embedder.state is EmbedderState.READY
    assert loader.calls == [("fake", "cpu")]
    assert len(vector) == 3


@pytest.mark.unit
def test_model_loaded_once():
    loader = _Loader()
    embedder = SentenceTransformerEmbedder(model_name="fake", loader=loader)
    embedder.embed("a")
    embedder.embed("b")
    assert embedder.dimension == 3
    assert len(loader.calls) == 1


@pytest.mark.unit
def test_concurrent_first_use_loads_once():
    loader = _Loader()
    embedder = SentenceTransformerEmbedder(model_name="fake", loader=loader)
    threads = [threading.Thread(target=embedder.embed, args=("t",)) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(loader.calls) == 1


@pytest.mark.unit
def test_failed_load_returns_to_unloaded_and_retries():
    loader = _Loader(failures=1)
    embedder = SentenceTransformerEmbedder(model_name="fake", loader=loader)

    with pytest.raises(ModelUnavailable):
        embedder.embed("first")
    assert embedder.state is EmbedderState.UNLOADED

    vector = embedder.embed("second")
    assert embedder.state is EmbedderState.READY
    assert len(vector) == 3
    assert len(loader.calls) == 2


@pytest.mark.unit
def test_embeddings_are_normalized_by_default():
    embedder = SentenceTransformerEmbedder(model_name="fake", loader=_Loader())
    vector = embedder.embed("normalize me")
    assert np.linalg.norm(vector.as_array()) == pytest.approx(1.0, abs=1e-6)


@pytest.mark.unit
def test_dimension_detected_when_model_does_not_report_it():
    model = _FakeModel(dims=5, report_dimension=False)
    embedder = SentenceTransformerEmbedder(model_name="fake", loader=_Loader(model))
    assert embedder.dimension == 5


@pytest.mark.unit
def test_encode_failure_raises_embedding_error():
    model = _FakeModel()
    embedder = SentenceTransformerEmbedder(model_name="fake", loader=_Loader(model))
    embedder.load()

    def broken(*args, **kwargs):
        raise RuntimeError("CUDA out of memory")

    model.encode = broken
    with pytest.raises(EmbeddingError):
        embedder.embed("boom")
    assert embedder.state is EmbedderState.READY


@pytest.mark.unit
def test_default_loader_is_used(monkeypatch):
    loader = _Loader()
    monkeypatch.setattr("adapters.embedder.load_embedding_model", loader)
    embedder = SentenceTransformerEmbedder(model_name="patched")
    embedder.embed("x")
    assert loader.calls == [("patched", "cpu")]
