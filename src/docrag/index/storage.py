"""SQLite vector store for document chunks."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Sequence

import numpy as np

from docrag.models import ChunkRecord

LOGGER = logging.getLogger(__name__)


class SQLiteVectorStore:
    """Persistence layer for chunk text, metadata and embeddings."""

    def __init__(self, db_path: Path, *, dimension: int | None = None) -> None:
        self.db_path = Path(db_path)
        self.dimension = dimension
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._closed = False
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if not self._closed:
            self._conn.close()
            self._closed = True

    def __enter__(self) -> "SQLiteVectorStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS chunks (
                    id TEXT PRIMARY KEY,
                    text TEXT NOT NULL,
                    embedding BLOB NOT NULL,
                    file_name TEXT,
                    file_path TEXT,
                    file_type TEXT,
                    chunk_index INTEGER,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    file_hash TEXT
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_file_hash ON chunks(file_hash)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_file_name ON chunks(file_name)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_file_path ON chunks(file_path)")

    def count_chunks(self, file_path: Path | str, file_hash: str | None = None) -> int:
        """Count chunks stored for a path, optionally restricted to one content hash."""
        if file_hash is None:
            row = self._conn.execute(
                "SELECT COUNT(*) AS count FROM chunks WHERE file_path = ?",
                (str(file_path),),
            ).fetchone()
        else:
            row = self._conn.execute(
                "SELECT COUNT(*) AS count FROM chunks WHERE file_path = ? AND file_hash = ?",
                (str(file_path), file_hash),
            ).fetchone()
        return int(row["count"])

    def chunk_ids(self, file_path: Path | str) -> List[str]:
        rows = self._conn.execute(
            "SELECT id FROM chunks WHERE file_path = ? ORDER BY chunk_index",
            (str(file_path),),
        ).fetchall()
        return [row["id"] for row in rows]

    def file_hashes(self) -> Dict[str, str]:
        """Return the stored content hash for every indexed path."""
        rows = self._conn.execute(
            "SELECT file_path, MAX(file_hash) AS file_hash FROM chunks GROUP BY file_path"
        ).fetchall()
        return {row["file_path"]: row["file_hash"] for row in rows}

    def delete_file(self, file_path: Path | str) -> int:
        """Delete every chunk of a path. Call within a transaction."""
        cursor = self._conn.execute("DELETE FROM chunks WHERE file_path = ?", (str(file_path),))
        return cursor.rowcount

    def insert_chunks(self, chunks: Sequence[ChunkRecord]) -> None:
        """Insert embedded chunks. Call within a transaction."""
        for chunk in chunks:
            if chunk.embedding is None:
                raise ValueError(f"Chunk {chunk.id} has no embedding")
            vector = np.asarray(chunk.embedding, dtype="float32")
            if self.dimension is not None and vector.shape[-1] != self.dimension:
                raise ValueError(
                    f"Embedding dimension {vector.shape[-1]} does not match store "
                    f"dimension {self.dimension}"
                )
            self._conn.execute(
                """
                INSERT OR REPLACE INTO chunks(
                    id, text, embedding, file_name, file_path, file_type, chunk_index, file_hash
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    chunk.id,
                    chunk.text,
                    sqlite3.Binary(vector.tobytes()),
                    chunk.file_name,
                    str(chunk.file_path),
                    chunk.file_type,
                    chunk.chunk_index,
                    chunk.file_hash,
                ),
            )

    def replace_file(self, file_path: Path | str, chunks: Sequence[ChunkRecord]) -> None:
        """Atomically swap every chunk of a path for a new set."""
        with self.transaction():
            removed = self.delete_file(file_path)
            self.insert_chunks(chunks)
        LOGGER.debug("Replaced %d chunks with %d for %s", removed, len(chunks), file_path)

    def remove_files(self, file_paths: Sequence[Path | str]) -> int:
        with self.transaction():
            return sum(self.delete_file(path) for path in file_paths)

    def recent_chunks(self, limit: int = 500) -> List[sqlite3.Row]:
        """Load the most recently indexed chunks, newest first."""
        return self._conn.execute(
            """
            SELECT id, text, embedding, file_name, file_path, file_type, chunk_index, file_hash
            FROM chunks
            ORDER BY created_at DESC, rowid DESC
            LIMIT ?
            """,
            (limit,),
        ).fetchall()

    def clear(self) -> int:
        with self.transaction() as conn:
            return conn.execute("DELETE FROM chunks").rowcount

    def get_stats(self) -> Dict[str, int]:
        row = self._conn.execute(
            "SELECT COUNT(*) AS chunk_count, COUNT(DISTINCT file_path) AS file_count FROM chunks"
        ).fetchone()
        return {"chunk_count": int(row["chunk_count"]), "file_count": int(row["file_count"])}

    def remove_missing_files(self) -> int:
        """Remove chunks whose source files no longer exist."""
        missing = [path for path in self.file_hashes() if not Path(path).exists()]
        if missing:
            self.remove_files(missing)
        return len(missing)


def decode_embedding(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype="float32")
