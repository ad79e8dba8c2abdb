"""Keyword search over the raw documents, used when vector search is unavailable."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Sequence

from docrag.utils.files import DEFAULT_EXTENSIONS, iter_document_paths, read_document

LOGGER = logging.getLogger(__name__)

DEGRADED_MESSAGE = (
    "Semantic search is unavailable and no matching lines were found. "
    "Please restart the service for full functionality."
)
FAILED_MESSAGE = "An error occurred while searching the documentation."

_WORD = re.compile(r"[\w.\-]{4,}")


class KeywordSearcher:
    """Case-insensitive substring scan of the raw document lines."""

    def __init__(
        self,
        docs_dir: Path,
        keywords: Iterable[str] = (),
        *,
        max_lines: int = 10,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        self.docs_dir = Path(docs_dir)
        self.keywords = tuple(keyword.lower() for keyword in keywords if keyword)
        self.max_lines = max_lines
        self.extensions = tuple(extensions)

    def terms_for(self, query: str) -> List[str]:
        """Domain keywords plus the query's own words of four characters or more."""
        terms = list(self.keywords)
        for word in _WORD.findall(query.lower()):
            if word not in terms:
                terms.append(word)
        return terms

    def search(self, query: str) -> str:
        try:
            terms = self.terms_for(query)
            matches: List[str] = []
            for path in iter_document_paths([self.docs_dir], self.extensions):
                for line in read_document(path).splitlines():
                    lowered = line.lower()
                    if line.strip() and any(term in lowered for term in terms):
                        matches.append(line.strip())
                        if len(matches) >= self.max_lines:
                            return "\n".join(matches)
            if matches:
                return "\n".join(matches)
            LOGGER.info("Fallback search found no matching lines")
            return DEGRADED_MESSAGE
        except Exception:
            LOGGER.exception("Fallback search failed")
            return FAILED_MESSAGE
