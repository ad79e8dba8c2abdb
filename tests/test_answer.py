"""Tests for result assembly."""

from __future__ import annotations

from pathlib import Path

from docrag.index.answer import LOW_RELEVANCE_MESSAGE, NO_RESULTS_MESSAGE, assemble_answer
from docrag.index.search import SearchResult


def make_result(score: float, text: str) -> SearchResult:
    return SearchResult(
        path=Path("docs/setup.md"), file_name="setup.md", chunk_index=0, score=score, text=text
    )


class TestAssembleAnswer:
    def test_no_results(self) -> None:
        assert assemble_answer([]) == NO_RESULTS_MESSAGE

    def test_formats_with_ordinal_and_percentage(self) -> None:
        answer = assemble_answer(
            [make_result(0.876, "Install Rust."), make_result(0.4, "Install Node.js.")]
        )

        assert answer == "[1] (88% relevance) Install Rust.\n\n[2] (40% relevance) Install Node.js."

    def test_secondary_threshold(self) -> None:
        answer = assemble_answer([make_result(0.5, "kept"), make_result(0.15, "dropped")])

        assert answer == "[1] (50% relevance) kept"

    def test_all_below_threshold(self) -> None:
        answer = assemble_answer([make_result(0.15, "weak"), make_result(0.2, "borderline")])

        assert answer == LOW_RELEVANCE_MESSAGE

    def test_custom_threshold(self) -> None:
        answer = assemble_answer([make_result(0.15, "weak")], threshold=0.1)

        assert answer == "[1] (15% relevance) weak"
