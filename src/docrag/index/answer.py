"""Turn ranked search results into a single text payload."""

from __future__ import annotations

from typing import Sequence

from docrag.index.search import SearchResult

NO_RESULTS_MESSAGE = "No relevant information found in the documentation for this query."
LOW_RELEVANCE_MESSAGE = "No sufficiently relevant information found in the documentation."


def format_result(position: int, result: SearchResult) -> str:
    return f"[{position}] ({round(result.score * 100)}% relevance) {result.text}"


def assemble_answer(results: Sequence[SearchResult], *, threshold: float = 0.2) -> str:
    """Join the results above ``threshold`` into one numbered payload."""
    if not results:
        return NO_RESULTS_MESSAGE

    relevant = [result for result in results if result.score > threshold]
    payload = "\n\n".join(format_result(i, result) for i, result in enumerate(relevant, start=1))
    return payload or LOW_RELEVANCE_MESSAGE
