"""Data models for the answering pipeline."""

from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np

DEDUP_KEY_LENGTH = 100
SOURCE_TEXT_LENGTH = 200

Role = Literal["user", "assistant"]


@dataclass
class DocumentChunk:
    """Represents a stored passage of knowledge-base text."""

    content: str
    metadata: dict[str, Any]
    embedding: np.ndarray | None = None


@dataclass(frozen=True)
class ConversationTurn:
    """A single message of the caller-supplied conversation."""

    role: str
    content: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationTurn":
        """Build a turn from its wire form ``{"role": ..., "content": ...}``.

        Returns:
            ConversationTurn with string role and content.
        """
        return cls(role=str(data.get("role", "")), content=str(data.get("content", "")))


@dataclass
class RetrievedChunk:
    """A chunk returned by the vector index together with its similarity."""

    text: str
    metadata: dict[str, Any]
    score: float

    @classmethod
    def from_document(cls, chunk: DocumentChunk, score: float) -> "RetrievedChunk":
        """Wrap a stored chunk and its similarity score.

        Returns:
            RetrievedChunk carrying the chunk text and metadata.
        """
        return cls(text=chunk.content, metadata=dict(chunk.metadata), score=score)

    @property
    def dedup_key(self) -> str:
        return self.text[:DEDUP_KEY_LENGTH]

    @property
    def source_tag(self) -> str | None:
        return self.metadata.get("sheet") or self.metadata.get("source")

    @property
    def position(self) -> int | None:
        row = self.metadata.get("row")
        return int(row) if row is not None else None


@dataclass
class Source:
    """Provenance entry attached to an answer."""

    source: str
    text: str
    row: int | None = None

    @classmethod
    def from_chunk(cls, chunk: RetrievedChunk) -> "Source":
        """Build a source entry, truncating long passages with an ellipsis.

        Returns:
            Source describing where the chunk came from.
        """
        text = chunk.text[:SOURCE_TEXT_LENGTH]
        if len(chunk.text) > SOURCE_TEXT_LENGTH:
            text += "..."
        return cls(source=chunk.source_tag or "Unknown", text=text, row=chunk.position)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"source": self.source}
        if self.row is not None:
            data["row"] = self.row
        data["text"] = self.text
        return data


@dataclass
class RAGResult:
    """Answer returned to the caller, with optional provenance."""

    answer: str
    sources: list[Source] | None = field(default=None)

    def to_dict(self, *, include_sources: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {"answer": self.answer}
        if include_sources and self.sources is not None:
            data["sources"] = [source.to_dict() for source in self.sources]
        return data
