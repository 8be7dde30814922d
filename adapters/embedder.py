"""Sentence-transformers embedder with an explicit load state machine."""

import threading
from functools import lru_cache
from time import perf_counter
from typing import Any, Callable, Optional

from sentence_transformers import SentenceTransformer

from core.config import DEFAULT_EMBED_MODEL, EMBED_DEVICE, NORMALIZE_EMBEDDINGS
from core.errors import EmbeddingError, ModelUnavailable
from core.interfaces import Embedder, EmbedderState
from core.logging_setup import get_logger
from vector_store.embedding import EmbeddingVector


@lru_cache(maxsize=2)
def load_embedding_model(
    model_name: str = DEFAULT_EMBED_MODEL, device: str = "cpu"
) -> SentenceTransformer:
    """Load a sentence-transformers embedding model."""
    logger = get_logger(__name__)
    logger.info(
        "load_embedding_model_start", extra={"model_name": model_name, "device": device}
    )
    start = perf_counter()
    model = SentenceTransformer(model_name, device=device)
    duration_ms = (perf_counter() - start) * 1000
    logger.info(
        "load_embedding_model_complete",
        extra={"model_name": model_name, "device": device, "duration_ms": duration_ms},
    )
    return model


class SentenceTransformerEmbedder(Embedder):
    """Lazily loads a sentence-transformers model on first use.

    States move ``UNLOADED -> LOADING -> READY``. Concurrent first callers
    wait on the same load. When loading raises, the state returns to
    ``UNLOADED`` and ``ModelUnavailable`` is raised.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_EMBED_MODEL,
        device: str = EMBED_DEVICE,
        normalize: bool = NORMALIZE_EMBEDDINGS,
        loader: Optional[Callable[[str, str], Any]] = None,
    ) -> None:
        self.model_name = model_name
        self.device = device
        self.normalize = normalize
        self._loader = loader
        self._model: Optional[Any] = None
        self._dimension: Optional[int] = None
        self._state = EmbedderState.UNLOADED
        self._lock = threading.Lock()
        self.logger = get_logger(__name__)

    @property
    def state(self) -> EmbedderState:
        return self._state

    @property
    def dimension(self) -> int:
        self.load()
        if self._dimension is None:
            raise ModelUnavailable(
                f"Embedding model '{self.model_name}' reported no dimension",
                details={"model_name": self.model_name},
            )
        return self._dimension

    def load(self) -> None:
        """Block until the model is ready."""
        if self._state is EmbedderState.READY:
            return
        with self._lock:
            if self._state is EmbedderState.READY:
                return
            self._state = EmbedderState.LOADING
            self.logger.info(
                "embedder_loading",
                extra={"model_name": self.model_name, "device": self.device},
            )
            try:
                loader = self._loader or load_embedding_model
                model = loader(self.model_name, self.device)
                dimension = self._detect_dimension(model)
            except Exception as exc:
                self._state = EmbedderState.UNLOADED
                self.logger.exception(
                    "embedder_load_failed", extra={"model_name": self.model_name}
                )
                raise ModelUnavailable(
                    f"Embedding model '{self.model_name}' could not be loaded: {exc}",
                    details={"model_name": self.model_name},
                ) from exc
            self._model = model
            self._dimension = dimension
            self._state = EmbedderState.READY
            self.logger.info(
                "embedder_ready",
                extra={"model_name": self.model_name, "dimension": dimension},
            )

    def _detect_dimension(self, model: Any) -> int:
        dimension = None
        getter = getattr(model, "get_sentence_embedding_dimension", None)
        if callable(getter):
            dimension = getter()
        if not dimension:
            dimension = len(self._encode(model, "sample"))
        return int(dimension)

    def _encode(self, model: Any, text: str) -> EmbeddingVector:
        output = model.encode(
            [text],
            convert_to_numpy=True,
            normalize_embeddings=self.normalize,
            show_progress_bar=False,
        )
        return EmbeddingVector(output[0])

    def embed(self, text: str) -> EmbeddingVector:
        self.load()
        try:
            return self._encode(self._model, text)
        except Exception as exc:
            self.logger.exception(
                "embedder_encode_failed",
                extra={"model_name": self.model_name, "text_length": len(text)},
            )
            raise EmbeddingError(
                f"Embedding failed: {exc}", details={"model_name": self.model_name}
            ) from exc
