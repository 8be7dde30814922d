"""Service facade exposing the three text search operations.

``TextSearchService`` owns no state of its own. It validates arguments,
delegates to the embedder, the chunk store and the ranking functions, and
turns every ``TextSearchError`` into an ``OperationResult`` so callers get a
structured payload instead of an exception.
"""

from pathlib import Path
from typing import Callable, List, Optional, TypeVar
from uuid import uuid4

from adapters.embedder import SentenceTransformerEmbedder
from adapters.spreadsheet import SpreadsheetReader
from core.config import (
    DB_PATH,
    DEFAULT_CLEAR_EXISTING,
    DEFAULT_EMBED_MODEL,
    DEFAULT_TOP_N,
)
from core.errors import InternalError, InvalidArgumentError, TextSearchError
from core.interfaces import Embedder, SourceReader, extract_texts
from core.logging_setup import get_logger
from core.state import BulkInsertResult, OperationResult, SearchHit
from vector_store.base import ChunkStore
from vector_store.chunk_store import SQLiteChunkStore, clean_text
from vector_store.similarity import rank_top_k

T = TypeVar("T")

__all__ = ["TextSearchService", "build_service"]


def _new_op_id() -> str:
    return uuid4().hex[:12]


class TextSearchService:
    def __init__(
        self, store: ChunkStore, embedder: Embedder, reader: SourceReader
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.reader = reader

    def _run(
        self, operation: str, op_id: str, action: Callable[[], T]
    ) -> OperationResult[T]:
        logger = get_logger(__name__, op_id=op_id)
        try:
            value = action()
        except TextSearchError as exc:
            logger.warning(
                f"{operation}_failed",
                extra={"code": exc.code, "error": exc.message},
            )
            return OperationResult.failure(exc)
        except Exception as exc:
            logger.exception(f"{operation}_unexpected_error")
            return OperationResult.failure(
                InternalError(f"{type(exc).__name__}: {exc}")
            )
        return OperationResult.success(value)

    def add_text(self, text: str) -> OperationResult[int]:
        """Store one text and return its id (existing id for a duplicate)."""
        op_id = _new_op_id()
        logger = get_logger(__name__, op_id=op_id)

        def action() -> int:
            cleaned = clean_text(text)
            chunk_id = self.store.insert(cleaned)
            logger.info("add_text_complete", extra={"chunk_id": chunk_id})
            return chunk_id

        return self._run("add_text", op_id, action)

    def load_bulk(
        self, source_path: str, clear_existing: bool = DEFAULT_CLEAR_EXISTING
    ) -> OperationResult[BulkInsertResult]:
        """Load every text cell of a spreadsheet into the store.

        With ``clear_existing`` the store is emptied first and ids restart at
        1; otherwise texts already stored are skipped and counted. A failure
        part way reports how many chunks were committed before it.
        """
        op_id = _new_op_id()
        logger = get_logger(__name__, op_id=op_id)

        def action() -> BulkInsertResult:
            if not isinstance(source_path, (str, Path)) or not str(source_path):
                raise InvalidArgumentError("A source document path is required")
            if not isinstance(clear_existing, bool):
                raise InvalidArgumentError("clear_existing must be a boolean")
            logger.info(
                "load_bulk_start",
                extra={"source_path": str(source_path), "clear_existing": clear_existing},
            )
            texts = extract_texts(self.reader.read(str(source_path)))
            result = self.store.bulk_insert(texts, clear_existing=clear_existing)
            logger.info(
                "load_bulk_complete",
                extra={"inserted": result.inserted, "skipped": result.skipped},
            )
            return result

        return self._run("load_bulk", op_id, action)

    def search(
        self, query: str, top_n: int = DEFAULT_TOP_N
    ) -> OperationResult[List[SearchHit]]:
        """Return up to ``top_n`` stored texts ranked by cosine similarity."""
        op_id = _new_op_id()
        logger = get_logger(__name__, op_id=op_id)

        def action() -> List[SearchHit]:
            cleaned = clean_text(query)
            if isinstance(top_n, bool) or not isinstance(top_n, int):
                raise InvalidArgumentError(
                    f"top_n must be an integer, got {type(top_n).__name__}"
                )
            if top_n <= 0:
                return []
            query_vector = self.embedder.embed(cleaned)
            candidates = self.store.snapshot()
            ranked = rank_top_k(query_vector, candidates, top_n)
            hits = [SearchHit(text=r.chunk.text, score=r.score) for r in ranked]
            logger.info(
                "search_complete",
                extra={
                    "candidates": len(candidates),
                    "results": len(hits),
                    "top_score": hits[0].score if hits else 0,
                },
            )
            return hits

        return self._run("search", op_id, action)


def build_service(
    db_path: Optional[Path] = None,
    model_name: str = DEFAULT_EMBED_MODEL,
    sheet: Optional[int | str] = None,
) -> TextSearchService:
    """Wire the sentence-transformers embedder, SQLite store and spreadsheet reader.

    The model itself is not loaded until the first operation needs it.
    Raises ``StorageIOError`` when the database cannot be initialised.
    """
    logger = get_logger(__name__)
    path = Path(db_path) if db_path is not None else DB_PATH
    logger.info(
        "build_service", extra={"db_path": str(path), "model_name": model_name}
    )
    embedder = SentenceTransformerEmbedder(model_name=model_name)
    store = SQLiteChunkStore(path, embedder=embedder)
    reader = SpreadsheetReader() if sheet is None else SpreadsheetReader(sheet=sheet)
    return TextSearchService(store=store, embedder=embedder, reader=reader)
