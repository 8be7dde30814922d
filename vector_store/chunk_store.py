"""SQLite-backed persistent chunk store."""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from core.config import BULK_PROGRESS_EVERY
from core.errors import (
    BulkInsertError,
    DimensionMismatch,
    EmbeddingError,
    EmptyTextError,
    InvalidArgumentError,
    StorageIOError,
    TextSearchError,
)
from core.interfaces import Embedder
from core.logging_setup import get_logger
from core.state import BulkInsertResult, TextChunk
from vector_store.base import ChunkStore
from vector_store.embedding import BYTES_PER_COMPONENT, EmbeddingVector

SCHEMA = """
CREATE TABLE IF NOT EXISTS text_chunks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    text TEXT NOT NULL,
    embedding BLOB
);

CREATE INDEX IF NOT EXISTS idx_text ON text_chunks(text);

CREATE TABLE IF NOT EXISTS store_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def clean_text(text: str) -> str:
    """Return the dedup key for ``text``: the text with edge whitespace removed."""
    if not isinstance(text, str):
        raise InvalidArgumentError(
            f"Text must be a string, got {type(text).__name__}"
        )
    cleaned = text.strip()
    if not cleaned:
        raise EmptyTextError()
    return cleaned


class SQLiteChunkStore(ChunkStore):
    """Chunk store persisted in a single SQLite file.

    Every mutation and snapshot runs under one lock, so callers never observe
    interleaved operations. The embedding dimension is recorded in
    ``store_meta`` with the first vector; vectors of any other length are
    rejected until the store is cleared.
    """

    def __init__(
        self,
        db_path: Path,
        embedder: Embedder,
        progress_every: int = BULK_PROGRESS_EVERY,
    ) -> None:
        self.db_path = Path(db_path)
        self.embedder = embedder
        self.progress_every = progress_every
        self.logger = get_logger(__name__)
        self._lock = threading.Lock()
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(
                f"Cannot create directory for {self.db_path}: {exc}",
                details={"db_path": str(self.db_path)},
            ) from exc
        with self._connect() as conn:
            conn.executescript(SCHEMA)
            self._dimension = self._load_dimension(conn)
        self.logger.info(
            "chunk_store_init",
            extra={"db_path": str(self.db_path), "dimension": self._dimension},
        )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise StorageIOError(
                f"Cannot open chunk database {self.db_path}: {exc}",
                details={"db_path": str(self.db_path)},
            ) from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            self.logger.exception(
                "chunk_store_io_failed", extra={"db_path": str(self.db_path)}
            )
            raise StorageIOError(
                f"Chunk database error: {exc}", details={"db_path": str(self.db_path)}
            ) from exc
        finally:
            conn.close()

    def _load_dimension(self, conn: sqlite3.Connection) -> Optional[int]:
        row = conn.execute(
            "SELECT value FROM store_meta WHERE key = 'dimension'"
        ).fetchone()
        if row:
            return int(row[0])
        # Databases written before store_meta existed: trust the first blob.
        row = conn.execute(
            "SELECT length(embedding) FROM text_chunks "
            "WHERE embedding IS NOT NULL ORDER BY id LIMIT 1"
        ).fetchone()
        if row and row[0] and row[0] % BYTES_PER_COMPONENT == 0:
            dimension = row[0] // BYTES_PER_COMPONENT
            conn.execute(
                "INSERT OR REPLACE INTO store_meta (key, value) VALUES ('dimension', ?)",
                (str(dimension),),
            )
            return dimension
        return None

    @property
    def dimension(self) -> Optional[int]:
        """Dimension of stored embeddings, or None while the store is empty."""
        return self._dimension

    @staticmethod
    def _find_id(conn: sqlite3.Connection, text: str) -> Optional[int]:
        row = conn.execute(
            "SELECT id FROM text_chunks WHERE text = ? ORDER BY id LIMIT 1", (text,)
        ).fetchone()
        return int(row[0]) if row else None

    def _insert_row(self, conn: sqlite3.Connection, text: str) -> int:
        vector = self.embedder.embed(text)
        if self._dimension is not None and len(vector) != self._dimension:
            raise DimensionMismatch(
                f"Embedding has {len(vector)} components but the store holds "
                f"{self._dimension}-dimensional vectors",
                expected=self._dimension,
                actual=len(vector),
            )
        if self._dimension is None:
            conn.executemany(
                "INSERT OR REPLACE INTO store_meta (key, value) VALUES (?, ?)",
                [
                    ("dimension", str(len(vector))),
                    ("model_name", self.embedder.model_name),
                ],
            )
        cursor = conn.execute(
            "INSERT INTO text_chunks (text, embedding) VALUES (?, ?)",
            (text, vector.to_bytes()),
        )
        conn.commit()
        self._dimension = len(vector)
        return int(cursor.lastrowid)

    def _clear(self, conn: sqlite3.Connection) -> int:
        removed = conn.execute("DELETE FROM text_chunks").rowcount
        conn.execute("DELETE FROM sqlite_sequence WHERE name = 'text_chunks'")
        conn.execute("DELETE FROM store_meta")
        conn.commit()
        self._dimension = None
        return removed

    def insert(self, text: str) -> int:
        cleaned = clean_text(text)
        with self._lock, self._connect() as conn:
            existing = self._find_id(conn, cleaned)
            if existing is not None:
                self.logger.debug("chunk_exists", extra={"chunk_id": existing})
                return existing
            chunk_id = self._insert_row(conn, cleaned)
        self.logger.info(
            "chunk_insert_complete",
            extra={"chunk_id": chunk_id, "text_length": len(cleaned)},
        )
        return chunk_id

    def bulk_insert(
        self, texts: Sequence[str], clear_existing: bool
    ) -> BulkInsertResult:
        # Validate everything before the first side effect.
        cleaned = [clean_text(text) for text in texts]
        self.logger.info(
            "bulk_insert_start",
            extra={"candidates": len(cleaned), "clear_existing": clear_existing},
        )
        inserted = 0
        skipped = 0
        with self._lock, self._connect() as conn:
            if cleaned:
                # Load the model before anything is cleared.
                try:
                    self.embedder.load()
                except TextSearchError as exc:
                    raise BulkInsertError(
                        f"Bulk insert aborted before the first item: {exc.message}",
                        committed=0,
                        cause=exc,
                    ) from exc
                # An append must produce vectors the store already holds.
                model_dimension = self.embedder.dimension
                if (
                    not clear_existing
                    and self._dimension is not None
                    and model_dimension != self._dimension
                ):
                    cause = DimensionMismatch(
                        f"Model '{self.embedder.model_name}' produces "
                        f"{model_dimension}-dimensional vectors but the store holds "
                        f"{self._dimension}-dimensional vectors",
                        expected=self._dimension,
                        actual=model_dimension,
                    )
                    raise self._bulk_failure(0, 0, 0, cause)
            if clear_existing:
                removed = self._clear(conn)
                self.logger.info("bulk_insert_cleared", extra={"removed": removed})
            for position, text in enumerate(cleaned):
                try:
                    if self._find_id(conn, text) is not None:
                        skipped += 1
                        continue
                    self._insert_row(conn, text)
                except TextSearchError as exc:
                    raise self._bulk_failure(position, inserted, skipped, exc) from exc
                except sqlite3.Error as exc:
                    cause = StorageIOError(f"Chunk database error: {exc}")
                    raise self._bulk_failure(position, inserted, skipped, cause) from exc
                except Exception as exc:
                    cause = EmbeddingError(
                        f"Embedding failed: {type(exc).__name__}: {exc}",
                        details={"model_name": self.embedder.model_name},
                    )
                    raise self._bulk_failure(position, inserted, skipped, cause) from exc
                inserted += 1
                if self.progress_every and inserted % self.progress_every == 0:
                    self.logger.info("bulk_insert_progress", extra={"inserted": inserted})
        self.logger.info(
            "bulk_insert_complete", extra={"inserted": inserted, "skipped": skipped}
        )
        return BulkInsertResult(inserted=inserted, skipped=skipped)

    def _bulk_failure(
        self, position: int, inserted: int, skipped: int, cause: TextSearchError
    ) -> BulkInsertError:
        self.logger.error(
            "bulk_insert_failed",
            extra={"position": position, "committed": inserted, "cause": cause.code},
        )
        return BulkInsertError(
            f"Bulk insert failed at item {position + 1} after committing "
            f"{inserted} chunk(s): {cause.message}",
            committed=inserted,
            skipped=skipped,
            cause=cause,
        )

    def snapshot(self) -> List[TextChunk]:
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                "SELECT id, text, embedding FROM text_chunks "
                "WHERE embedding IS NOT NULL ORDER BY id"
            ).fetchall()
            dimension = self._dimension
        chunks: List[TextChunk] = []
        for chunk_id, text, blob in rows:
            try:
                vector = EmbeddingVector.from_bytes(
                    bytes(blob), dimension or len(blob) // BYTES_PER_COMPONENT
                )
            except DimensionMismatch as exc:
                self.logger.error(
                    "chunk_embedding_corrupt",
                    extra={"chunk_id": chunk_id, "error": exc.message},
                )
                continue
            chunks.append(TextChunk(id=int(chunk_id), text=text, embedding=vector))
        self.logger.debug("chunk_snapshot", extra={"chunks": len(chunks)})
        return chunks

    def get(self, chunk_id: int) -> Optional[TextChunk]:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT id, text, embedding FROM text_chunks WHERE id = ?", (chunk_id,)
            ).fetchone()
            dimension = self._dimension
        if not row:
            return None
        embedding = None
        if row[2] is not None:
            embedding = EmbeddingVector.from_bytes(
                bytes(row[2]), dimension or len(row[2]) // BYTES_PER_COMPONENT
            )
        return TextChunk(id=int(row[0]), text=row[1], embedding=embedding)

    def count(self) -> int:
        """Return current number of stored chunks."""
        with self._lock, self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM text_chunks").fetchone()[0]

    def clear(self) -> None:
        with self._lock, self._connect() as conn:
            removed = self._clear(conn)
        self.logger.info("chunk_store_cleared", extra={"removed": removed})
