"""Retrieval entry points used by an agent's tool layer."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Dict, List

from docrag.config import AppConfig
from docrag.embedding.encoder import EmbeddingConfig, EmbeddingModel, EmbeddingProvider
from docrag.index.answer import assemble_answer
from docrag.index.fallback import KeywordSearcher
from docrag.index.indexer import Indexer, IndexStats
from docrag.index.search import Searcher, SearchResult
from docrag.index.storage import SQLiteVectorStore
from docrag.utils.hashing import get_hasher

LOGGER = logging.getLogger(__name__)

EMPTY_QUERY_MESSAGE = "Please provide a question to search the documentation for."


def default_embedder_factory(config: AppConfig) -> EmbeddingProvider:
    return EmbeddingModel(EmbeddingConfig(model_name=config.model_name))


class RetrievalService:
    """Owns the embedding model and the store, and answers retrieval calls.

    Both resources are created on first use and shared afterwards. Call
    :meth:`close` (or use the service as a context manager) to release the
    store.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        embedder: EmbeddingProvider | None = None,
        store: SQLiteVectorStore | None = None,
        embedder_factory: Callable[[AppConfig], EmbeddingProvider] = default_embedder_factory,
        index_checked: bool = False,
    ) -> None:
        self.config = config or AppConfig()
        self._embedder = embedder
        self._store = store
        self._embedder_factory = embedder_factory
        self._index_checked = index_checked
        self.fallback = KeywordSearcher(
            self.config.docs_dir,
            self.config.fallback_keywords,
            max_lines=self.config.fallback_max_lines,
            extensions=self.config.extensions,
        )

    def __enter__(self) -> "RetrievalService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def embedder(self) -> EmbeddingProvider:
        if self._embedder is None:
            self._embedder = self._embedder_factory(self.config)
        return self._embedder

    @property
    def store(self) -> SQLiteVectorStore:
        if self._store is None or self._store.closed:
            db_path = self.config.resolve_db_path(Path.cwd())
            db_path.parent.mkdir(parents=True, exist_ok=True)
            self._store = SQLiteVectorStore(db_path)
            stats = self._store.get_stats()
            LOGGER.info(
                "Opened %s: %d chunks from %d files",
                db_path,
                stats["chunk_count"],
                stats["file_count"],
            )
        return self._store

    @property
    def index_checked(self) -> bool:
        """Whether the documents directory was already refreshed into the store."""
        return self._index_checked

    def close(self) -> None:
        if self._store is not None and not self._store.closed:
            LOGGER.info("Closing SQLite database")
            self._store.close()
        self._store = None

    def make_indexer(self) -> Indexer:
        store = self.store
        if store.dimension is None:
            store.dimension = self.embedder.dimension
        return Indexer(
            self.embedder,
            store,
            hasher=get_hasher(self.config.hash_algorithm),
            chunk_chars=self.config.chunk_chars,
            overlap=self.config.overlap,
            batch_size=self.config.batch_size,
            embed_concurrency=self.config.embed_concurrency,
            rebuild_workers=self.config.rebuild_workers,
            extensions=self.config.extensions,
        )

    def make_searcher(self) -> Searcher:
        return Searcher(
            self.embedder,
            self.store,
            candidate_limit=self.config.candidate_limit,
            min_score=self.config.min_score,
        )

    def vector_search_available(self) -> bool:
        """Whether the embedding model and the store can be acquired."""
        try:
            self.embedder
            self.store
        except Exception as exc:
            LOGGER.error("Vector search unavailable: %s", exc)
            return False
        return True

    def ensure_index(self) -> IndexStats:
        """Index whatever changed in the documents directory since the last run."""
        stats = self.make_indexer().refresh(self.config.docs_dir)
        self._index_checked = True
        return stats

    def search(self, query: str, *, top_k: int | None = None) -> List[SearchResult]:
        if not self._index_checked:
            self.ensure_index()
        if top_k is None:
            top_k = self.config.top_k
        return self.make_searcher().search(query, top_k=top_k)

    def retrieve(self, query: str) -> str:
        """Answer a free-text query with the most relevant documentation excerpts."""
        query = query.strip()
        if not query:
            return EMPTY_QUERY_MESSAGE

        start = time.perf_counter()
        if not self.vector_search_available():
            LOGGER.warning("Using keyword fallback search")
            return self.fallback.search(query)

        try:
            results = self.search(query)
        except Exception:
            LOGGER.exception("Vector search failed, using keyword fallback search")
            return self.fallback.search(query)

        answer = assemble_answer(results, threshold=self.config.answer_threshold)
        LOGGER.info(
            "Found %d results (%d chars) in %.0fms",
            len(results),
            len(answer),
            (time.perf_counter() - start) * 1000,
        )
        if results:
            LOGGER.debug("Scores: %s", ", ".join(f"{r.score:.3f}" for r in results))
        return answer

    def refresh_index(self, directory: Path | None = None) -> bool:
        """Rebuild the whole index from ``directory`` (default: the docs directory)."""
        target = Path(directory) if directory is not None else self.config.docs_dir
        try:
            stats = self.make_indexer().rebuild(target)
        except Exception:
            LOGGER.exception("Index rebuild of %s failed", target)
            return False
        self._index_checked = True
        LOGGER.info("Rebuilt index: %d indexed, %d failed", stats.inserted, stats.failed)
        return True

    def stats(self) -> Dict[str, int]:
        return self.store.get_stats()
