"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar, Union


@dataclass(frozen=True, slots=True)
class Document:
    """A source document already linearized to plain text."""

    name: str
    text: str


@dataclass(frozen=True, slots=True)
class DocumentChunk:
    """A contiguous window of one document's text."""

    chunk_id: str
    doc_name: str
    text: str
    start: int
    end: int

    def tagged(self) -> str:
        """Render the chunk with its source tag, as shown to the model."""
        return f"[Source: {self.doc_name}]\n{self.text}"


@dataclass(slots=True)
class ScoredChunk:
    """A retrieval candidate with its score and original position."""

    chunk: Chunk
    score: float
    position: int


# Bare strings are accepted wherever chunks are, for callers that chunk
# text themselves with `chunk_text`.
Chunk = Union[DocumentChunk, str]
ChunkT = TypeVar("ChunkT", DocumentChunk, str)


def chunk_body(chunk: Chunk) -> str:
    return chunk.text if isinstance(chunk, DocumentChunk) else chunk


def render_chunk(chunk: Chunk) -> str:
    return chunk.tagged() if isinstance(chunk, DocumentChunk) else chunk
