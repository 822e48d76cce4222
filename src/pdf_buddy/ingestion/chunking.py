"""
Fixed-size sliding-window chunking.

Windows of `chunk_size` characters start every `chunk_size - overlap`
characters. Chunking stops after the window that reaches the end of the
text, or once `max_chunks` windows have been emitted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..core.pages import parse_page_ref


@dataclass(frozen=True)
class Chunk:
    index: int
    start: int
    text: str

    @property
    def page_ref(self) -> Optional[int]:
        return parse_page_ref(self.text)


def chunk_text(
    text: str,
    chunk_size: int = 1000,
    overlap: int = 200,
    max_chunks: int = 50,
) -> List[Chunk]:
    """
    Split text into overlapping windows.

    Text no longer than `chunk_size` yields a single chunk holding the whole
    (trimmed) text. Blank windows are dropped. Blank input yields no chunks.
    """
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError("overlap must be >= 0 and smaller than chunk_size")
    if max_chunks < 1:
        raise ValueError("max_chunks must be positive")

    if not text.strip():
        return []

    if len(text) <= chunk_size:
        return [Chunk(index=0, start=0, text=text.strip())]

    step = chunk_size - overlap
    chunks: List[Chunk] = []

    for start in range(0, len(text), step):
        window = text[start : start + chunk_size]
        if window.strip():
            chunks.append(Chunk(index=len(chunks), start=start, text=window))
        if len(chunks) >= max_chunks or start + chunk_size >= len(text):
            break

    return chunks
