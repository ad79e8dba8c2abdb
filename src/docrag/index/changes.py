"""Detect which documents need (re-)indexing."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from docrag.index.storage import SQLiteVectorStore
from docrag.models import ScanResult
from docrag.utils.files import DEFAULT_EXTENSIONS, iter_document_paths, read_document
from docrag.utils.hashing import ContentHasher, Sha256Hasher

LOGGER = logging.getLogger(__name__)


class ChangeDetector:
    """Compares documents on disk against the hashes stored in the index."""

    def __init__(
        self,
        store: SQLiteVectorStore,
        *,
        hasher: ContentHasher | None = None,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        self.store = store
        self.hasher = hasher or Sha256Hasher()
        self.extensions = tuple(extensions)

    def scan(self, directory: Path) -> ScanResult:
        directory = Path(directory).resolve()
        if not directory.is_dir():
            LOGGER.warning("Documents directory %s does not exist", directory)
            return ScanResult()

        indexed = self.store.file_hashes()
        result = ScanResult(all_files=list(iter_document_paths([directory], self.extensions)))

        for path in result.all_files:
            stored_hash = indexed.get(str(path))
            if stored_hash is None:
                result.new_files.append(path)
                continue
            try:
                current_hash = self.hasher.hash(read_document(path))
            except OSError as exc:
                LOGGER.error("Failed to read %s: %s", path, exc)
                continue
            if current_hash != stored_hash:
                result.changed_files.append(path)

        # Only prune entries that belong to the scanned tree
        result.removed_files = sorted(
            path
            for path in indexed
            if Path(path).is_relative_to(directory) and not Path(path).exists()
        )

        LOGGER.info(
            "Scanned %s: %d files, %d new, %d changed, %d removed",
            directory,
            len(result.all_files),
            len(result.new_files),
            len(result.changed_files),
            len(result.removed_files),
        )
        return result
