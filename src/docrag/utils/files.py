"""Utility helpers for working with files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, Sequence

DEFAULT_EXTENSIONS = (".md",)


def iter_document_paths(
    inputs: Iterable[Path], extensions: Sequence[str] = DEFAULT_EXTENSIONS
) -> Iterator[Path]:
    """Yield resolved document paths from input paths, descending into directories."""
    suffixes = {ext.lower() for ext in extensions}
    for item in inputs:
        item = Path(item)
        if item.is_dir():
            yield from iter_document_paths(
                sorted(child for child in item.rglob("*") if child.is_file()), extensions
            )
        elif item.is_file() and item.suffix.lower() in suffixes:
            yield item.resolve()


def read_document(path: Path) -> str:
    """Read a document as UTF-8 text, replacing undecodable bytes."""
    return Path(path).read_text(encoding="utf-8", errors="replace")
