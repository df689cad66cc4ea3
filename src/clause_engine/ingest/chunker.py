"""Fixed-size sliding-window chunking."""

from __future__ import annotations

from collections.abc import Iterator

from clause_engine.config import ChunkingConfig
from clause_engine.errors import ConfigurationError
from clause_engine.types import Document, DocumentChunk


def chunk_text(text: str, size: int = 1000, overlap: int = 100) -> list[str]:
    """Split `text` into windows of `size` characters sharing `overlap`.

    Windows start at 0 and advance by `size - overlap` until a window
    reaches the end of the text, so the last window may be shorter than
    `size`. Empty text yields no windows.
    """

    _check_window(size, overlap)
    return [text[start:end] for start, end in _windows(len(text), size, overlap)]


class WindowChunker:
    """Chunks documents into overlapping character windows.

    Every window remembers the document it came from and its character
    offsets, so the prompt can cite `[Source: <name>]` and callers can map
    a chunk back to the text it covers.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()
        _check_window(self.config.size, self.config.overlap)

    def chunk_document(self, document: Document) -> list[DocumentChunk]:
        windows = _windows(len(document.text), self.config.size, self.config.overlap)
        return [
            DocumentChunk(
                chunk_id=f"{document.name}-chunk-{index:04d}",
                doc_name=document.name,
                text=document.text[start:end],
                start=start,
                end=end,
            )
            for index, (start, end) in enumerate(windows)
        ]

    def chunk_documents(self, documents: list[Document]) -> list[DocumentChunk]:
        """Chunk many documents, keeping document order then window order."""

        chunks: list[DocumentChunk] = []
        for document in documents:
            chunks.extend(self.chunk_document(document))
        return chunks


def _check_window(size: int, overlap: int) -> None:
    if size <= 0:
        raise ConfigurationError(f"chunk size must be positive, got {size}")
    if overlap < 0:
        raise ConfigurationError(f"chunk overlap must not be negative, got {overlap}")
    if overlap >= size:
        raise ConfigurationError(
            f"chunk overlap ({overlap}) must be less than chunk size ({size})"
        )


def _windows(length: int, size: int, overlap: int) -> Iterator[tuple[int, int]]:
    stride = size - overlap
    start = 0
    while start < length:
        end = min(start + size, length)
        yield start, end
        # A further window would lie entirely inside this one.
        if end == length:
            break
        start += stride
