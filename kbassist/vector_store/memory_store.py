"""In-process vector index using NumPy cosine similarity."""

from __future__ import annotations

import numpy as np

from kbassist.config import config
from kbassist.models import DocumentChunk  # noqa: TC001

logger = config.get_logger(__name__)


class InMemoryVectorStore:
    """Brute-force cosine search over chunks held in memory.

    Suited to small knowledge bases and tests; nothing is persisted.
    """

    backend = "memory"
    persistent = False

    def __init__(self) -> None:
        self.chunks: list[DocumentChunk] = []
        self.embeddings: np.ndarray | None = None

    def count(self) -> int:
        return len(self.chunks)

    def add_chunks(self, chunks: list[DocumentChunk]) -> None:
        """Add chunks that carry embeddings."""
        embedded = [chunk for chunk in chunks if chunk.embedding is not None]
        skipped = len(chunks) - len(embedded)
        if skipped:
            logger.warning("Skipping %d chunks without embeddings", skipped)
        if not embedded:
            return

        for offset, chunk in enumerate(embedded, start=len(self.chunks)):
            chunk.metadata.setdefault("vector_id", offset)

        new_rows = np.vstack([np.asarray(chunk.embedding) for chunk in embedded])
        if self.embeddings is None:
            self.embeddings = new_rows
        else:
            self.embeddings = np.vstack([self.embeddings, new_rows])
        self.chunks.extend(embedded)
        logger.info("Added %d chunks to in-memory vector store", len(embedded))

    @staticmethod
    def cosine_similarity(
        query_embedding: np.ndarray,
        embeddings: np.ndarray,
    ) -> np.ndarray:
        """Calculate cosine similarity between query and document embeddings.

        Returns:
            np.ndarray: Similarity of the query to each row of ``embeddings``.
        """
        query_norm = np.linalg.norm(query_embedding)
        doc_norms = np.linalg.norm(embeddings, axis=1)
        denominator = np.where(doc_norms * query_norm == 0, 1.0, doc_norms * query_norm)
        return np.dot(embeddings, query_embedding) / denominator

    def search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 5,
    ) -> list[tuple[DocumentChunk, float]]:
        """Search for the chunks most similar to ``query_embedding``.

        Returns:
            A list of (DocumentChunk, score) tuples, best first.
        """
        if self.embeddings is None or top_k <= 0:
            return []

        similarities = self.cosine_similarity(
            np.asarray(query_embedding), self.embeddings
        )
        top_indices = np.argsort(-similarities, kind="stable")[:top_k]
        return [(self.chunks[idx], float(similarities[idx])) for idx in top_indices]

    def save(self) -> None:  # noqa: PLR6301
        """Nothing to persist for the in-memory backend."""
        logger.debug("In-memory vector store is not persisted")

    def load(self) -> None:  # noqa: PLR6301
        """Nothing to load for the in-memory backend."""
        logger.debug("In-memory vector store starts empty")
