"""Tests for the keyword fallback searcher."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from docrag.index.fallback import DEGRADED_MESSAGE, FAILED_MESSAGE, KeywordSearcher


class TestKeywordSearcher:
    def test_matches_domain_keywords(self, docs_dir: Path) -> None:
        (docs_dir / "setup.md").write_text(
            "# Setup\n\nInstall Node.js 20.\nUnrelated line.\nThen add wasm-pack.\n"
        )
        searcher = KeywordSearcher(docs_dir, ["install", "wasm-pack"])

        assert searcher.search("anything") == "Install Node.js 20.\nThen add wasm-pack."

    def test_matches_query_terms_case_insensitively(self, docs_dir: Path) -> None:
        (docs_dir / "deploy.md").write_text("Deploy to CLOUDFLARE pages.\nOther text.\n")

        result = KeywordSearcher(docs_dir).search("How do I use cloudflare?")

        assert result == "Deploy to CLOUDFLARE pages."

    def test_short_query_words_are_ignored(self, docs_dir: Path) -> None:
        (docs_dir / "a.md").write_text("to be or not to be\n")

        assert KeywordSearcher(docs_dir).search("to be") == DEGRADED_MESSAGE

    def test_line_limit(self, docs_dir: Path) -> None:
        (docs_dir / "a.md").write_text("\n".join(f"install step {i}" for i in range(30)))

        result = KeywordSearcher(docs_dir, ["install"], max_lines=10).search("q")

        assert len(result.splitlines()) == 10

    def test_no_match(self, docs_dir: Path) -> None:
        (docs_dir / "a.md").write_text("Nothing relevant here.\n")

        assert KeywordSearcher(docs_dir, ["install"]).search("zzz") == DEGRADED_MESSAGE

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert KeywordSearcher(tmp_path / "missing", ["install"]).search("q") == DEGRADED_MESSAGE

    def test_never_raises(self, docs_dir: Path) -> None:
        (docs_dir / "a.md").write_text("install\n")

        with patch("docrag.index.fallback.read_document", side_effect=OSError("disk gone")):
            assert KeywordSearcher(docs_dir, ["install"]).search("q") == FAILED_MESSAGE
