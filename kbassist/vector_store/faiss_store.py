"""FAISS-backed vector storage with SQLite metadata."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import faiss
import numpy as np

from kbassist.config import config
from kbassist.vector_store.base import ChunkCatalog

if TYPE_CHECKING:
    from kbassist.models import DocumentChunk

logger = config.get_logger(__name__)


class FaissVectorStore:
    """Cosine-similarity index using FAISS inner product on normalized vectors."""

    backend = "faiss"
    persistent = True

    def __init__(
        self,
        db_path: Path = Path("data/vector_store.db"),
        index_path: Path = Path("data/faiss/index.faiss"),
    ) -> None:
        """Configure FAISS-backed vector store."""
        self.index_path = Path(index_path)
        self.index_path.parent.mkdir(exist_ok=True, parents=True)

        self.index: faiss.IndexIDMap | None = None
        self.catalog = ChunkCatalog(db_path)

    @property
    def db_path(self) -> Path:
        return self.catalog.db_path

    @staticmethod
    def _normalize_embedding(embedding: np.ndarray) -> np.ndarray:
        """Normalize embedding for cosine similarity using inner product search.

        Returns:
            Normalized embedding vector.
        """
        vector = np.ascontiguousarray(embedding, dtype="float32").reshape(1, -1)
        if np.linalg.norm(vector) == 0:
            return vector[0]
        faiss.normalize_L2(vector)
        return vector[0]

    def _init_index(self, dimension: int) -> None:
        """Initialize FAISS index if missing."""
        self.index = faiss.IndexIDMap(faiss.IndexFlatIP(dimension))
        logger.info("Initialized FAISS IndexIDMap with dimension %d", dimension)

    def count(self) -> int:
        return 0 if self.index is None else int(self.index.ntotal)

    def add_chunks(self, chunks: list[DocumentChunk]) -> None:
        """Add chunks and embeddings to the FAISS index and the catalog.

        Raises:
            ValueError: If embedding dimension mismatches the index.
        """
        if not chunks:
            return

        embeddings_batch: list[np.ndarray] = []
        vector_ids: list[int] = []

        with self.catalog.connect() as conn:
            cursor = conn.cursor()

            for chunk in chunks:
                if chunk.embedding is None:
                    logger.warning(
                        "Skipping chunk from %s without embedding",
                        chunk.metadata.get("source"),
                    )
                    continue

                embedding = self._normalize_embedding(chunk.embedding)
                if self.index is None:
                    self._init_index(embedding.shape[0])
                elif embedding.shape[0] != self.index.d:
                    msg = (
                        f"Embedding dimension {embedding.shape[0]} does not match "
                        f"FAISS index dimension {self.index.d}"
                    )
                    raise ValueError(msg)

                vector_id = self.catalog.insert_chunk(cursor, chunk)
                chunk.metadata.setdefault("vector_id", vector_id)

                embeddings_batch.append(embedding)
                vector_ids.append(vector_id)

            conn.commit()

        if embeddings_batch and self.index is not None:
            vectors = np.vstack(embeddings_batch).astype("float32")
            ids_array = np.asarray(vector_ids, dtype="int64")
            self.index.add_with_ids(vectors, ids_array)  # pyright: ignore[reportCallIssue]
            logger.info("Added %d vectors to FAISS index", len(vector_ids))
        else:
            logger.warning("No embeddings added to FAISS index")

    def search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 5,
    ) -> list[tuple[DocumentChunk, float]]:
        """Search similar chunks using FAISS index.

        Returns:
            Ranked list of (DocumentChunk, score) tuples.
        """
        if self.index is None and self.index_path.exists():
            self.load()
        index = self.index
        if index is None or index.ntotal == 0 or top_k <= 0:
            return []

        normalized_query = self._normalize_embedding(query_embedding)
        scores, vector_ids = index.search(
            normalized_query.reshape(1, -1),
            min(top_k, index.ntotal),
        )  # pyright: ignore[reportCallIssue]

        # faiss pads missing neighbours with -1
        hits = [
            (int(vector_id), float(score))
            for score, vector_id in zip(scores[0], vector_ids[0], strict=True)
            if int(vector_id) != -1
        ]
        chunks = self.catalog.fetch([vector_id for vector_id, _ in hits])
        return [
            (chunks[vector_id], score)
            for vector_id, score in hits
            if vector_id in chunks
        ]

    def save(self) -> None:
        """Persist FAISS index to disk."""
        if self.index is None:
            logger.warning("No FAISS index to save")
            return

        self.index_path.parent.mkdir(exist_ok=True, parents=True)
        faiss.write_index(self.index, str(self.index_path))
        logger.info("Saved FAISS index to %s", self.index_path)

    def load(self) -> None:
        """Load the FAISS index from disk, if present."""
        if not self.index_path.exists():
            logger.warning(
                "FAISS index not found at %s. Start with an empty index.",
                self.index_path,
            )
            self.index = None
            return

        loaded_index = faiss.read_index(str(self.index_path))
        if not isinstance(loaded_index, (faiss.IndexIDMap, faiss.IndexIDMap2)):
            logger.warning(
                "Loaded FAISS index is %s; wrapping with IndexIDMap to enable IDs",
                type(loaded_index).__name__,
            )
            loaded_index = faiss.IndexIDMap(loaded_index)
        self.index = loaded_index
        logger.info(
            "Loaded FAISS index from %s with %d vectors",
            self.index_path,
            loaded_index.ntotal,
        )
