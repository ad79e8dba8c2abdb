"""Core docrag data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import numpy as np

FILE_TYPE_MARKDOWN = "markdown"


@dataclass(slots=True)
class SourceDocument:
    """A document read from disk together with its content fingerprint."""

    path: Path
    content: str
    file_hash: str

    @property
    def file_name(self) -> str:
        return self.path.name


@dataclass(slots=True)
class ChunkRecord:
    """Chunk of document text paired with its embedding and source metadata."""

    file_path: Path
    chunk_index: int
    text: str
    file_hash: str
    embedding: np.ndarray | None = None
    file_type: str = FILE_TYPE_MARKDOWN

    @property
    def id(self) -> str:
        return make_chunk_id(self.file_path, self.chunk_index)

    @property
    def file_name(self) -> str:
        return Path(self.file_path).name

    @property
    def metadata(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "file_path": str(self.file_path),
            "file_type": self.file_type,
            "chunk_index": self.chunk_index,
        }


@dataclass(slots=True)
class ScanResult:
    """Difference between the documents on disk and the indexed ones."""

    new_files: List[Path] = field(default_factory=list)
    changed_files: List[Path] = field(default_factory=list)
    all_files: List[Path] = field(default_factory=list)
    removed_files: List[str] = field(default_factory=list)

    @property
    def pending(self) -> List[Path]:
        """Files that need (re-)indexing."""
        return [*self.new_files, *self.changed_files]


def make_chunk_id(file_path: Path | str, chunk_index: int) -> str:
    return f"{file_path}_chunk_{chunk_index}"
