"""Application configuration defaults."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from docrag.embedding.encoder import DEFAULT_MODEL

DEFAULT_FALLBACK_KEYWORDS: Tuple[str, ...] = (
    "install",
    "prerequisite",
    "setup",
    "wasm-pack",
    "node.js",
    "rust",
)


def _get_default_db_path() -> Path:
    """Get the default database path based on execution context."""
    user_db = Path.home() / ".docrag" / "rag_cache.db"

    # When running as a frozen app (PyInstaller bundle)
    if getattr(sys, "frozen", False):
        return user_db

    # When running from source, prefer local data/ if it exists
    local_dir = Path("data")
    if local_dir.is_dir():
        return local_dir / "rag_cache.db"

    return user_db


@dataclass(slots=True)
class AppConfig:
    db_path: Path | None = None
    docs_dir: Path = Path("docs")
    model_name: str = DEFAULT_MODEL
    chunk_chars: int = 600
    overlap: int = 50
    batch_size: int = 3
    embed_concurrency: int = 1
    rebuild_workers: int = 2
    top_k: int = 3
    candidate_limit: int = 500
    min_score: float = 0.1
    answer_threshold: float = 0.2
    hash_algorithm: str = "sha256"
    extensions: Tuple[str, ...] = (".md",)
    fallback_keywords: Tuple[str, ...] = field(default=DEFAULT_FALLBACK_KEYWORDS)
    fallback_max_lines: int = 10

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = _get_default_db_path()
        self.docs_dir = Path(self.docs_dir)

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = _get_default_db_path()
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path
