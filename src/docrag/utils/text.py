"""Text chunking helpers.

Documents are split on paragraph boundaries first; long paragraphs (or text
without paragraphs) fall back to overlapping character windows.
"""

from __future__ import annotations

from typing import Iterator, List

MAX_INPUT_CHARS = 100_000
TRUNCATED_INPUT_CHARS = 50_000
MIN_PARAGRAPH_CHARS = 20
MIN_CHUNK_CHARS = 10
MAX_CHUNK_CHARS = 2000
MAX_CHUNKS = 500


def window_text(text: str, *, max_chars: int = 600, overlap: int = 50) -> Iterator[str]:
    """Split text into overlapping character windows.

    The last window always ends at the end of the text.
    """
    if not text:
        return

    step = max(max_chars - overlap, 1)
    start = 0
    while start < len(text):
        end = min(start + max_chars, len(text))
        yield text[start:end]
        if end >= len(text):
            break
        start += step


def _split_paragraphs(text: str) -> List[str]:
    return [part for part in text.split("\n\n") if len(part.strip()) > MIN_PARAGRAPH_CHARS]


def chunk_text(text: str, *, chunk_chars: int = 600, overlap: int = 50) -> List[str]:
    """Split a document into bounded chunks suitable for embedding."""
    if not text or not text.strip():
        return []

    if len(text) > MAX_INPUT_CHARS:
        text = text[:TRUNCATED_INPUT_CHARS]

    paragraphs = _split_paragraphs(text)
    if paragraphs:
        pieces: List[str] = []
        for paragraph in paragraphs:
            if len(paragraph) <= chunk_chars:
                pieces.append(paragraph)
            else:
                pieces.extend(window_text(paragraph, max_chars=chunk_chars, overlap=overlap))
    else:
        pieces = list(window_text(text, max_chars=chunk_chars, overlap=overlap))

    chunks: List[str] = []
    for piece in pieces:
        piece = piece.strip()
        if len(piece) < MIN_CHUNK_CHARS:
            continue
        chunks.append(piece[:MAX_CHUNK_CHARS])
        if len(chunks) >= MAX_CHUNKS:
            break

    if not chunks:
        fallback = text[:chunk_chars].strip()[:MAX_CHUNK_CHARS]
        return [fallback] if fallback else []
    return chunks
