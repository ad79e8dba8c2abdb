"""Semantic search interface."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import numpy as np

from docrag.embedding.encoder import EmbeddingProvider
from docrag.index.storage import SQLiteVectorStore, decode_embedding

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SearchResult:
    path: Path
    file_name: str
    chunk_index: int
    score: float
    text: str
    file_type: str = "markdown"

    @property
    def metadata(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "file_path": str(self.path),
            "file_type": self.file_type,
            "chunk_index": self.chunk_index,
        }


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity of two vectors, 0.0 when it is undefined."""
    a = np.asarray(a, dtype="float64").ravel()
    b = np.asarray(b, dtype="float64").ravel()
    if a.shape != b.shape or a.size == 0:
        return 0.0

    magnitude = float(np.linalg.norm(a) * np.linalg.norm(b))
    if magnitude == 0.0 or not math.isfinite(magnitude):
        return 0.0

    score = float(np.dot(a, b) / magnitude)
    return score if math.isfinite(score) else 0.0


class Searcher:
    """High-level API to query the vector store."""

    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: SQLiteVectorStore,
        *,
        candidate_limit: int = 500,
        min_score: float = 0.1,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.candidate_limit = candidate_limit
        self.min_score = min_score

    def search(self, query: str, *, top_k: int = 3) -> List[SearchResult]:
        LOGGER.info('Searching for "%s"', query)
        embedding = self.embedder.embed_query(query)
        rows = self.store.recent_chunks(self.candidate_limit)
        LOGGER.debug("Scoring %d candidate chunks", len(rows))

        results: List[SearchResult] = []
        for row in rows:
            try:
                score = cosine_similarity(embedding, decode_embedding(row["embedding"]))
            except Exception as exc:
                LOGGER.error("Failed to score chunk %s: %s", row["id"], exc)
                score = 0.0

            if score <= self.min_score:
                continue
            results.append(
                SearchResult(
                    path=Path(row["file_path"]),
                    file_name=row["file_name"],
                    chunk_index=row["chunk_index"],
                    score=min(max(score, 0.0), 1.0),
                    text=row["text"],
                    file_type=row["file_type"] or "markdown",
                )
            )

        results.sort(key=lambda result: result.score, reverse=True)
        return results[: max(top_k, 0)]
