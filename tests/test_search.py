"""Tests for semantic search interface."""

from __future__ import annotations

import math
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest

from docrag.index.indexer import Indexer
from docrag.index.search import SearchResult, Searcher, cosine_similarity
from docrag.index.storage import SQLiteVectorStore
from docrag.models import ChunkRecord


class TestCosineSimilarity:
    def test_identical_vectors(self) -> None:
        v = np.array([0.3, -1.2, 4.0])
        assert cosine_similarity(v, v) == pytest.approx(1.0)

    def test_orthogonal_vectors(self) -> None:
        assert cosine_similarity(np.array([1.0, 0.0]), np.array([0.0, 1.0])) == 0.0

    def test_opposite_vectors(self) -> None:
        assert cosine_similarity(np.array([1.0, 2.0]), np.array([-1.0, -2.0])) == pytest.approx(-1.0)

    def test_zero_vector(self) -> None:
        score = cosine_similarity(np.zeros(3), np.array([1.0, 2.0, 3.0]))
        assert score == 0.0
        assert not math.isnan(score)

    def test_dimension_mismatch(self) -> None:
        assert cosine_similarity(np.ones(3), np.ones(4)) == 0.0

    def test_empty_vectors(self) -> None:
        assert cosine_similarity(np.array([]), np.array([])) == 0.0

    def test_non_finite_values(self) -> None:
        assert cosine_similarity(np.array([np.inf, 1.0]), np.array([1.0, 1.0])) == 0.0


class TestSearchResult:
    def test_metadata(self) -> None:
        result = SearchResult(
            path=Path("docs/setup.md"),
            file_name="setup.md",
            chunk_index=5,
            score=0.85,
            text="This is the chunk text",
        )

        assert result.metadata == {
            "file_name": "setup.md",
            "file_path": "docs/setup.md",
            "file_type": "markdown",
            "chunk_index": 5,
        }


def _store_vectors(store: SQLiteVectorStore, vectors: dict[str, np.ndarray]) -> None:
    for i, (path, vector) in enumerate(vectors.items()):
        store.replace_file(
            path,
            [
                ChunkRecord(
                    file_path=Path(path),
                    chunk_index=0,
                    text=f"text of {path}",
                    file_hash=f"h{i}",
                    embedding=np.asarray(vector, dtype="float32"),
                )
            ],
        )


class TestSearcher:
    """Test Searcher class."""

    def test_results_are_ranked_and_filtered(self, store: SQLiteVectorStore) -> None:
        _store_vectors(
            store,
            {
                "docs/best.md": [1.0, 0.0, 0.0],
                "docs/good.md": [1.0, 1.0, 0.0],
                "docs/noise.md": [0.05, 0.0, 1.0],
                "docs/opposite.md": [-1.0, 0.0, 0.0],
            },
        )
        embedder = MagicMock()
        embedder.embed_query.return_value = np.array([1.0, 0.0, 0.0], dtype="float32")

        results = Searcher(embedder, store).search("query", top_k=10)

        assert [r.file_name for r in results] == ["best.md", "good.md"]
        assert results[0].score == pytest.approx(1.0)
        assert all(r.score > 0.1 for r in results)
        embedder.embed_query.assert_called_once_with("query")

    def test_top_k_limits_results(self, store: SQLiteVectorStore) -> None:
        _store_vectors(
            store, {f"docs/{i}.md": [1.0, float(i) / 10, 0.0] for i in range(5)}
        )
        embedder = MagicMock()
        embedder.embed_query.return_value = np.array([1.0, 0.0, 0.0])

        results = Searcher(embedder, store).search("query", top_k=2)

        assert len(results) == 2
        assert results[0].score >= results[1].score
        assert results[0].file_name == "0.md"

    def test_scores_are_clamped(self, store: SQLiteVectorStore) -> None:
        _store_vectors(store, {"docs/a.md": [3.0, 4.0]})
        embedder = MagicMock()
        embedder.embed_query.return_value = np.array([3.0, 4.0])

        results = Searcher(embedder, store).search("query")

        assert 0.0 <= results[0].score <= 1.0

    def test_mismatched_vector_scores_zero(self, store: SQLiteVectorStore) -> None:
        _store_vectors(store, {"docs/short.md": [1.0, 0.0], "docs/ok.md": [1.0, 0.0, 0.0]})
        embedder = MagicMock()
        embedder.embed_query.return_value = np.array([1.0, 0.0, 0.0])

        results = Searcher(embedder, store).search("query")

        assert [r.file_name for r in results] == ["ok.md"]

    def test_malformed_blob_scores_zero(self, store: SQLiteVectorStore) -> None:
        _store_vectors(store, {"docs/ok.md": [1.0, 0.0]})
        with store.transaction() as conn:
            conn.execute(
                "INSERT INTO chunks(id, text, embedding, file_name, file_path, file_type, "
                "chunk_index, file_hash) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                ("bad", "bad", b"\x00\x01\x02", "bad.md", "docs/bad.md", "markdown", 0, "x"),
            )
        embedder = MagicMock()
        embedder.embed_query.return_value = np.array([1.0, 0.0])

        results = Searcher(embedder, store).search("query")

        assert [r.file_name for r in results] == ["ok.md"]

    def test_candidate_limit(self, store: SQLiteVectorStore) -> None:
        _store_vectors(store, {"docs/old.md": [1.0, 0.0], "docs/new.md": [1.0, 0.1]})
        embedder = MagicMock()
        embedder.embed_query.return_value = np.array([1.0, 0.0])

        results = Searcher(embedder, store, candidate_limit=1).search("query")

        assert [r.file_name for r in results] == ["new.md"]

    def test_empty_store(self, store: SQLiteVectorStore) -> None:
        embedder = MagicMock()
        embedder.embed_query.return_value = np.array([1.0, 0.0])

        assert Searcher(embedder, store).search("query") == []

    def test_query_embedding_failure_propagates(self, store: SQLiteVectorStore) -> None:
        embedder = MagicMock()
        embedder.embed_query.side_effect = ConnectionError("provider down")

        with pytest.raises(ConnectionError):
            Searcher(embedder, store).search("query")

    def test_install_rust_scenario(self, embedder, store: SQLiteVectorStore) -> None:
        Indexer(embedder, store).index_document(
            Path("docs/setup.md"), "Install Node.js. Then install Rust."
        )

        results = Searcher(embedder, store).search("How to install Rust", top_k=3)

        assert results
        assert results[0].file_name == "setup.md"
        assert results[0].metadata["file_path"] == "docs/setup.md"
        assert results[0].score > 0.1
