"""Vector store protocol and the SQLite chunk catalog shared by backends."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from kbassist.config import config
from kbassist.models import DocumentChunk

if TYPE_CHECKING:
    import numpy as np

logger = config.get_logger(__name__)

# Metadata keys stored in dedicated columns; everything else goes to JSON.
_COLUMN_KEYS = {"source", "row", "chunk_type", "vector_id"}


@runtime_checkable
class VectorStore(Protocol):
    """Nearest-neighbour index over knowledge-base chunks."""

    def add_chunks(self, chunks: list[DocumentChunk]) -> None: ...

    def search(
        self, query_embedding: np.ndarray, top_k: int = 5
    ) -> list[tuple[DocumentChunk, float]]: ...

    def save(self) -> None: ...

    def load(self) -> None: ...

    def count(self) -> int: ...


class ChunkCatalog:
    """Chunk text and provenance kept in SQLite, addressed by vector id."""

    def __init__(self, db_path: Path) -> None:
        """Open the catalog database and ensure the schema exists."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(exist_ok=True, parents=True)
        self._create_tables()

    def connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _create_tables(self) -> None:
        with self.connect() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS chunks (
                    vector_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    content TEXT NOT NULL,
                    source TEXT,
                    position INTEGER,
                    chunk_type TEXT,
                    extra TEXT,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_chunks_source ON chunks(source)"
            )
            conn.commit()

    @staticmethod
    def insert_chunk(cursor: sqlite3.Cursor, chunk: DocumentChunk) -> int:
        """Persist a chunk row.

        Raises:
            RuntimeError: If the row id cannot be read back.

        Returns:
            Vector id assigned to the chunk.
        """
        metadata = chunk.metadata
        extra = {k: v for k, v in metadata.items() if k not in _COLUMN_KEYS}
        row = metadata.get("row")
        cursor.execute(
            """
            INSERT INTO chunks (content, source, position, chunk_type, extra)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                chunk.content,
                metadata.get("source", "unknown"),
                int(row) if row is not None else None,
                metadata.get("chunk_type"),
                json.dumps(extra, default=str) if extra else None,
            ),
        )
        vector_id = cursor.lastrowid
        if vector_id is None:
            msg = "Failed to insert chunk row"
            raise RuntimeError(msg)
        return int(vector_id)

    @staticmethod
    def _build_chunk(row: tuple) -> DocumentChunk:
        vector_id, content, source, position, chunk_type, extra = row
        metadata: dict[str, Any] = json.loads(extra) if extra else {}
        metadata["vector_id"] = vector_id
        metadata["source"] = source
        if position is not None:
            metadata["row"] = position
        if chunk_type:
            metadata["chunk_type"] = chunk_type
        return DocumentChunk(content=content, metadata=metadata)

    def fetch(self, vector_ids: list[int]) -> dict[int, DocumentChunk]:
        """Fetch chunks by vector id.

        Returns:
            Mapping of vector id to chunk for the ids that exist.
        """
        if not vector_ids:
            return {}
        placeholders = ", ".join("?" for _ in vector_ids)
        with self.connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT vector_id, content, source, position, chunk_type, extra "
                f"FROM chunks WHERE vector_id IN ({placeholders})",  # noqa: S608
                [int(vector_id) for vector_id in vector_ids],
            )
            return {int(row[0]): self._build_chunk(row) for row in cursor.fetchall()}

    def load_all(self) -> list[DocumentChunk]:
        """Load every catalogued chunk in insertion order.

        Raises:
            sqlite3.Error: If the catalog cannot be read.

        Returns:
            List of chunks without embeddings.
        """
        try:
            with self.connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT vector_id, content, source, position, chunk_type, extra "
                    "FROM chunks ORDER BY vector_id"
                )
                return [self._build_chunk(row) for row in cursor.fetchall()]
        except sqlite3.Error:
            logger.exception("Error loading chunk catalog from %s", self.db_path)
            raise
