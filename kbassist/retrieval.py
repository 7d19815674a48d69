"""Multi-strategy vector retrieval with de-duplication across strategies."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np

from .config import config
from .embeddings import EmbeddingService
from .errors import EmbeddingError, ProviderError, VectorIndexError
from .models import RetrievedChunk
from .vector_store import VectorStore

logger = config.get_logger(__name__)

MAX_TOP_K = 20
EXPANDED_QUERY_LIMIT = 3
EXPANDED_QUERY_TOP_K = 10
HISTORY_PASS_MIN_CHUNKS = 5
LAST_RESORT_TOP_K = 15
LAST_RESORT_THRESHOLD = 0.2
LAST_RESORT_LIMIT = 5


@dataclass(frozen=True)
class RetrievalAttempt:
    """One embed+search request issued on behalf of a retrieval strategy."""

    label: str
    text: str
    top_k: int = EXPANDED_QUERY_TOP_K


@dataclass
class AttemptOutcome:
    """Result of a retrieval attempt: its chunks, or the error that stopped it."""

    attempt: RetrievalAttempt
    chunks: list[RetrievedChunk] = field(default_factory=list)
    error: ProviderError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ChunkAccumulator:
    """Collects unique chunks keyed by their text prefix; first occurrence wins."""

    def __init__(self) -> None:
        self._chunks: dict[str, RetrievedChunk] = {}

    def merge(self, chunks: list[RetrievedChunk]) -> int:
        """Add chunks not seen before.

        Returns:
            int: Number of chunks that were new.
        """
        added = 0
        for chunk in chunks:
            key = chunk.dedup_key
            if key not in self._chunks:
                self._chunks[key] = chunk
                added += 1
        return added

    @property
    def chunks(self) -> list[RetrievedChunk]:
        return list(self._chunks.values())

    def __len__(self) -> int:
        return len(self._chunks)


class Retriever:
    """Embeds queries and fetches nearest-neighbour chunks from the index."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        max_workers: int | None = None,
    ) -> None:
        """Initialize the retriever.

        Args:
            embedding_service: Provider used to embed query text.
            vector_store: Index queried for nearest neighbours.
            max_workers: Parallel embed+search requests for expanded queries.
                If None, uses config.RETRIEVAL_MAX_WORKERS; 1 runs them in order.
        """
        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.max_workers = (
            max_workers if max_workers is not None else config.RETRIEVAL_MAX_WORKERS
        )

    def embed(self, text: str) -> np.ndarray:
        """Embed ``text`` with the configured provider.

        Returns:
            np.ndarray: The query vector.

        Raises:
            EmbeddingError: If the provider call fails.
        """
        try:
            return self.embedding_service.get_embedding(text)
        except EmbeddingError:
            raise
        except Exception as exc:
            msg = f"Embedding request failed: {exc}"
            raise EmbeddingError(msg) from exc

    def search(self, vector: np.ndarray, top_k: int) -> list[RetrievedChunk]:
        """Query the vector index, capping ``top_k`` at ``MAX_TOP_K``.

        Returns:
            list[RetrievedChunk]: Neighbours in index order.

        Raises:
            VectorIndexError: If the index query fails.
        """
        top_k = min(top_k, MAX_TOP_K)
        try:
            results = self.vector_store.search(vector, top_k=top_k)
        except Exception as exc:
            msg = f"Vector index query failed: {exc}"
            raise VectorIndexError(msg) from exc
        return [RetrievedChunk.from_document(chunk, score) for chunk, score in results]

    def search_text(self, text: str, top_k: int) -> list[RetrievedChunk]:
        return self.search(self.embed(text), top_k)

    def attempt(self, attempt: RetrievalAttempt) -> AttemptOutcome:
        """Run one attempt, converting provider failures into the outcome."""  # noqa: DOC201
        try:
            chunks = self.search_text(attempt.text, attempt.top_k)
        except ProviderError as exc:
            logger.exception("Retrieval error for %s query", attempt.label)
            return AttemptOutcome(attempt=attempt, error=exc)
        return AttemptOutcome(attempt=attempt, chunks=chunks)

    def run_attempts(self, attempts: list[RetrievalAttempt]) -> list[AttemptOutcome]:
        """Run attempts, possibly in parallel, returning outcomes in input order."""  # noqa: DOC201
        if self.max_workers <= 1 or len(attempts) <= 1:
            return [self.attempt(attempt) for attempt in attempts]

        with ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(attempts))
        ) as executor:
            return list(executor.map(self.attempt, attempts))

    def retrieve(
        self,
        expanded_queries: list[str],
        query: str,
        history_context: str,
        *,
        follow_up: bool,
    ) -> ChunkAccumulator:
        """Collect unique candidate chunks for a request.

        Stage one searches with the first three expanded queries. Stage two,
        a history-enhanced search, only runs for follow-up questions with
        history when stage one found fewer than five unique chunks.

        Returns:
            ChunkAccumulator: Unique chunks in first-seen order.
        """
        accumulator = ChunkAccumulator()

        expanded_attempts = [
            RetrievalAttempt("expanded", text, EXPANDED_QUERY_TOP_K)
            for text in expanded_queries[:EXPANDED_QUERY_LIMIT]
        ]
        self._merge(accumulator, self.run_attempts(expanded_attempts))

        if (
            follow_up
            and history_context
            and len(accumulator) < HISTORY_PASS_MIN_CHUNKS
        ):
            history_attempt = RetrievalAttempt(
                "history-enhanced",
                f"{history_context} {query}",
                EXPANDED_QUERY_TOP_K,
            )
            self._merge(accumulator, [self.attempt(history_attempt)])

        logger.info("Accumulated %d unique chunks", len(accumulator))
        return accumulator

    @staticmethod
    def _merge(accumulator: ChunkAccumulator, outcomes: list[AttemptOutcome]) -> None:
        for outcome in outcomes:
            if outcome.ok:
                added = accumulator.merge(outcome.chunks)
                logger.debug(
                    "%s query added %d new chunks", outcome.attempt.label, added
                )

    def last_resort(self, query: str) -> list[RetrievedChunk]:
        """Search once more with the raw query and a very low score bar.

        Provider errors propagate: this is the final chance to find context.

        Returns:
            list[RetrievedChunk]: At most five chunks, best score first.
        """
        chunks = self.search_text(query, LAST_RESORT_TOP_K)
        relevant = [chunk for chunk in chunks if chunk.score > LAST_RESORT_THRESHOLD]
        relevant.sort(key=lambda chunk: chunk.score, reverse=True)
        logger.info("Last-resort retrieval found %d chunks", len(relevant))
        return relevant[:LAST_RESORT_LIMIT]
