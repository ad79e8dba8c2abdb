"""Document indexing pipeline."""

from __future__ import annotations

import gc
import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

import numpy as np

from docrag.embedding.encoder import EmbeddingProvider
from docrag.index.changes import ChangeDetector
from docrag.index.storage import SQLiteVectorStore
from docrag.models import ChunkRecord, SourceDocument
from docrag.utils.files import DEFAULT_EXTENSIONS, iter_document_paths, read_document
from docrag.utils.hashing import ContentHasher, Sha256Hasher
from docrag.utils.text import chunk_text

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class IndexStats:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    removed: int = 0
    processed_files: list[Path] = field(default_factory=list)

    def increment(self, status: str, path: Path) -> None:
        if status == "inserted":
            self.inserted += 1
        elif status == "updated":
            self.updated += 1
        elif status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1
        self.processed_files.append(path)


class Indexer:
    """Coordinates chunking, embedding and persistence of documents.

    The indexer is the only writer to the store and only writes from the thread
    that calls it. Embedding calls are gated by a bounded semaphore so that at
    most ``embed_concurrency`` batches are in flight at once.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: SQLiteVectorStore,
        *,
        hasher: ContentHasher | None = None,
        chunk_chars: int = 600,
        overlap: int = 50,
        batch_size: int = 3,
        embed_concurrency: int = 1,
        rebuild_workers: int = 2,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.hasher = hasher or Sha256Hasher()
        self.chunk_chars = chunk_chars
        self.overlap = overlap
        self.batch_size = max(batch_size, 1)
        self.rebuild_workers = max(rebuild_workers, 1)
        self.extensions = tuple(extensions)
        self._embed_slots = threading.BoundedSemaphore(max(embed_concurrency, 1))

    def index_document(self, path: Path, content: str) -> str:
        """Index one document unless the same (path, content) pair is already indexed.

        Returns:
            "inserted" for a first index, "updated" when older chunks were
            replaced, "skipped" when the document is already current or empty,
            "failed" when none of its chunks could be embedded.
        """
        document = SourceDocument(path=Path(path), content=content, file_hash=self.hasher.hash(content))

        if self.store.count_chunks(document.path, document.file_hash) > 0:
            LOGGER.info("%s is already indexed (no changes)", document.file_name)
            return "skipped"

        existed = self.store.count_chunks(document.path) > 0
        records = self.embed_document(document)
        if not records and not document.content.strip():
            LOGGER.warning("No text found in %s", document.path)
            if existed:
                self.store.remove_files([document.path])
            return "skipped"
        if not records:
            LOGGER.warning("Keeping previous chunks of %s, nothing could be embedded", document.path)
            return "failed"

        self.store.replace_file(document.path, records)
        LOGGER.info("%s indexed: %d chunks", document.file_name, len(records))
        return "updated" if existed else "inserted"

    def embed_document(self, document: SourceDocument) -> List[ChunkRecord]:
        """Chunk a document and embed its chunks batch by batch."""
        chunks = chunk_text(document.content, chunk_chars=self.chunk_chars, overlap=self.overlap)
        LOGGER.info("Indexing %s: %d chunks", document.file_name, len(chunks))

        records: List[ChunkRecord] = []
        total_batches = math.ceil(len(chunks) / self.batch_size)
        for number, start in enumerate(range(0, len(chunks), self.batch_size), start=1):
            batch = chunks[start : start + self.batch_size]
            LOGGER.debug("Processing batch %d/%d of %s", number, total_batches, document.file_name)

            vectors = self._embed_batch(batch, document, start)
            for offset, (text, vector) in enumerate(zip(batch, vectors)):
                if vector is None:
                    continue
                records.append(
                    ChunkRecord(
                        file_path=document.path,
                        chunk_index=start + offset,
                        text=text,
                        file_hash=document.file_hash,
                        embedding=vector,
                    )
                )
            # Release batch buffers before embedding the next one
            gc.collect()

        if chunks and not records:
            LOGGER.warning("No chunk of %s could be embedded", document.path)
        return records

    def _embed_batch(
        self, batch: Sequence[str], document: SourceDocument, start: int
    ) -> List[np.ndarray | None]:
        try:
            with self._embed_slots:
                vectors = self.embedder.embed(batch)
            if len(vectors) != len(batch):
                raise ValueError(f"Expected {len(batch)} embeddings, got {len(vectors)}")
            return list(vectors)
        except Exception as exc:
            LOGGER.warning(
                "Batch embedding failed for %s (%s), retrying chunk by chunk", document.path, exc
            )

        vectors: List[np.ndarray | None] = []
        for offset, text in enumerate(batch):
            try:
                with self._embed_slots:
                    vectors.append(self.embedder.embed_query(text))
            except Exception as exc:
                LOGGER.error("Failed to embed chunk %d of %s: %s", start + offset, document.path, exc)
                vectors.append(None)
        return vectors

    def index(self, paths: Sequence[Path]) -> IndexStats:
        """Index every document found under the given paths, one at a time."""
        files = list(iter_document_paths(paths, self.extensions))
        if not files:
            LOGGER.warning("No document files found")
            return IndexStats()

        stats = IndexStats()
        for path in files:
            self._index_path(path, stats)
        return stats

    def refresh(self, directory: Path) -> IndexStats:
        """Index only the documents that are new or changed since the last pass."""
        scan = ChangeDetector(self.store, hasher=self.hasher, extensions=self.extensions).scan(directory)
        stats = IndexStats()

        if scan.removed_files:
            self.store.remove_files(scan.removed_files)
            stats.removed = len(scan.removed_files)
            LOGGER.info("Removed %d documents no longer on disk", stats.removed)

        pending = scan.pending
        stats.skipped = len(scan.all_files) - len(pending)
        for path in pending:
            self._index_path(path, stats)
        return stats

    def rebuild(self, directory: Path) -> IndexStats:
        """Clear the index and re-index every document unconditionally.

        Documents are read, chunked and embedded by a bounded thread pool; the
        results are written to the store from the calling thread.
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise FileNotFoundError(f"Documents directory not found: {directory}")

        files = list(iter_document_paths([directory], self.extensions))
        removed = self.store.clear()
        LOGGER.info("Cleared %d chunks, rebuilding index from %d files", removed, len(files))

        stats = IndexStats()
        with ThreadPoolExecutor(max_workers=self.rebuild_workers) as pool:
            futures = {pool.submit(self._prepare, path): path for path in files}
            for future in as_completed(futures):
                path = futures[future]
                try:
                    document, records = future.result()
                    if records:
                        self.store.replace_file(document.path, records)
                        stats.increment("inserted", path)
                    elif document.content.strip():
                        stats.increment("failed", path)
                    else:
                        stats.increment("skipped", path)
                except Exception as e:
                    LOGGER.error(f"Failed to process {path}: {e}")
                    stats.increment("failed", path)
        return stats

    def _prepare(self, path: Path) -> tuple[SourceDocument, List[ChunkRecord]]:
        content = read_document(path)
        document = SourceDocument(path=path, content=content, file_hash=self.hasher.hash(content))
        return document, self.embed_document(document)

    def _index_path(self, path: Path, stats: IndexStats) -> None:
        try:
            LOGGER.info(f"Processing: {path}")
            status = self.index_document(path, read_document(path))
            stats.increment(status, path)
        except Exception as e:
            LOGGER.error(f"Failed to process {path}: {e}")
            stats.increment("failed", path)
