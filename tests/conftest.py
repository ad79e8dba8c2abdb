"""Shared fixtures."""

from __future__ import annotations

import re
import zlib
from pathlib import Path
from typing import Iterable, List, Sequence

import numpy as np
import pytest

from docrag.index.storage import SQLiteVectorStore

_TOKEN = re.compile(r"[a-z0-9]+")


class BagOfWordsEmbedder:
    """Deterministic stand-in for a sentence-transformer model.

    Each lowercase token is hashed into one of ``dimension`` buckets.
    """

    def __init__(self, dimension: int = 256) -> None:
        self._dimension = dimension
        self.embedded: List[str] = []
        self.queries: List[str] = []
        self.fail_texts: set[str] = set()
        self.fail_queries = False

    @property
    def dimension(self) -> int:
        return self._dimension

    def vector(self, text: str) -> np.ndarray:
        vector = np.zeros(self._dimension, dtype="float32")
        for token in _TOKEN.findall(text.lower()):
            vector[zlib.crc32(token.encode("utf-8")) % self._dimension] += 1.0
        return vector

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        texts = list(texts)
        for text in texts:
            if text in self.fail_texts:
                raise RuntimeError(f"cannot embed {text[:20]!r}")
        self.embedded.extend(texts)
        return np.vstack([self.vector(text) for text in texts])

    def embed_query(self, text: str) -> np.ndarray:
        if self.fail_queries:
            raise ConnectionError("embedding provider unreachable")
        self.queries.append(text)
        return self.embed([text])[0]


@pytest.fixture
def embedder() -> BagOfWordsEmbedder:
    return BagOfWordsEmbedder()


@pytest.fixture
def store(tmp_path: Path):
    store = SQLiteVectorStore(tmp_path / "rag_cache.db")
    yield store
    store.close()


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    docs = tmp_path / "docs"
    docs.mkdir()
    return docs
