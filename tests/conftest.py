"""Test configuration and fixtures for KB Assist tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Mock services and API responses
- Vector index doubles
- Chat model doubles
- Pipeline factories
"""

import hashlib
from collections.abc import Callable
from unittest.mock import Mock, create_autospec, patch

import numpy as np
import pytest

from kbassist import (
    ChatService,
    DocumentChunk,
    EmbeddingService,
    FaissVectorStore,
    InMemoryVectorStore,
    RAGPipeline,
    RetrievedChunk,
)
from kbassist.prompts import EXPANSION_SYSTEM_PROMPT, RERANK_SYSTEM_PROMPT


class TestConstants:
    """Centralized test constants to avoid repetition across test files."""

    # API Configuration
    TEST_API_KEY = "test-key"
    TEST_EMBEDDING_MODEL = "text-embedding-3-large"
    TEST_EMBEDDING_DIMENSIONS = 1024
    TEST_CHAT_MODEL = "gpt-4o"
    DEFAULT_EMBEDDING_DIMENSION = 64

    # Chat Replies
    DEFAULT_EXPANSION = "Widget A price\nCost of Widget A\nWidget A pricing details"
    DEFAULT_ANSWER = "Widget A costs $19.99."


class MockEmbeddingService:
    """Mock embedding service for testing without API calls.

    Generates deterministic embeddings based on text content hash,
    ensuring consistent test results across runs.
    """

    def __init__(
        self, dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION
    ) -> None:
        self.dimension = dimension
        self.texts_by_vector: dict[bytes, str] = {}

    def get_embedding(self, text: str) -> np.ndarray:
        """Generate deterministic mock embedding based on text hash."""
        seed = int.from_bytes(
            hashlib.sha256(text.lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        vector = (embedding / np.linalg.norm(embedding)).astype(np.float32)
        self.texts_by_vector[vector.tobytes()] = text
        return vector

    def get_embeddings_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate batch of mock embeddings."""
        return [self.get_embedding(text) for text in texts]


class FakeVectorIndex:
    """Vector index double returning canned hits for known query texts.

    Query vectors are matched back to the text that produced them, so tests
    can script what each retrieval attempt sees. Every search is recorded
    in ``calls`` as ``(text, top_k)``.
    """

    backend = "fake"

    def __init__(
        self,
        embedding_service: MockEmbeddingService,
        results: dict[str, list[tuple[DocumentChunk, float]]] | None = None,
        default: list[tuple[DocumentChunk, float]] | None = None,
    ) -> None:
        self.embedding_service = embedding_service
        self.default = default or []
        self.calls: list[tuple[str | None, int]] = []
        self._results: dict[bytes, list[tuple[DocumentChunk, float]]] = {}
        for text, hits in (results or {}).items():
            self.set_results(text, hits)

    def set_results(self, text: str, hits: list[tuple[DocumentChunk, float]]) -> None:
        self._results[self.embedding_service.get_embedding(text).tobytes()] = hits

    def search(
        self, query_embedding: np.ndarray, top_k: int = 5
    ) -> list[tuple[DocumentChunk, float]]:
        key = np.asarray(query_embedding, dtype=np.float32).tobytes()
        text = self.embedding_service.texts_by_vector.get(key)
        self.calls.append((text, top_k))
        return self._results.get(key, self.default)[:top_k]

    def searched_texts(self) -> list[str | None]:
        return [text for text, _ in self.calls]

    def add_chunks(self, chunks: list[DocumentChunk]) -> None:
        raise NotImplementedError

    def save(self) -> None:
        pass

    def load(self) -> None:
        pass

    def count(self) -> int:
        return len(self._results)


@pytest.fixture
def make_hit():
    """Factory for index hits; ``source`` defaults to ``Products``."""

    def _make_hit(
        content: str, score: float, **metadata: object
    ) -> tuple[DocumentChunk, float]:
        metadata.setdefault("source", "Products")
        return DocumentChunk(content=content, metadata=dict(metadata)), score

    return _make_hit


@pytest.fixture
def make_chunk():
    """Factory for retrieved chunks; ``source`` defaults to ``Products``."""

    def _make_chunk(text: str, score: float, **metadata: object) -> RetrievedChunk:
        metadata.setdefault("source", "Products")
        return RetrievedChunk(text=text, metadata=dict(metadata), score=score)

    return _make_chunk


def create_mock_openai_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock OpenAI embeddings API response.

    Args:
        embeddings: List of embedding vectors to return.

    Returns:
        Mock object representing OpenAI embeddings API response.
    """
    mock_response = Mock()
    mock_response.data = [Mock(embedding=emb) for emb in embeddings]
    return mock_response


def _reply(value: str | Exception) -> str:
    if isinstance(value, Exception):
        raise value
    return value


@pytest.fixture
def chat_service_factory() -> Callable[..., Mock]:
    """Factory for ChatService doubles that answer by pipeline stage.

    The stage is recognised from the system prompt. A reply given as an
    exception instance is raised instead of returned.
    """

    def _create_chat(
        *,
        expansion: str | Exception = TestConstants.DEFAULT_EXPANSION,
        rerank: str | Exception = "",
        answer: str | Exception = TestConstants.DEFAULT_ANSWER,
    ) -> Mock:
        chat = create_autospec(ChatService, instance=True)

        def _complete(messages, *, temperature, max_tokens):  # noqa: ARG001
            system_prompt = messages[0]["content"]
            if system_prompt == EXPANSION_SYSTEM_PROMPT:
                return _reply(expansion)
            if system_prompt == RERANK_SYSTEM_PROMPT:
                return _reply(rerank)
            return _reply(answer)

        chat.complete.side_effect = _complete
        return chat

    return _create_chat


@pytest.fixture
def chat_service(chat_service_factory) -> Mock:
    """Default chat double: three expansions and a fixed answer."""
    return chat_service_factory()


@pytest.fixture
def stage_calls():
    """Return the ``complete`` calls a chat double received for one stage."""

    def _stage_calls(chat: Mock, system_prompt: str) -> list:
        return [
            call
            for call in chat.complete.call_args_list
            if call.args[0][0]["content"] == system_prompt
        ]

    return _stage_calls


@pytest.fixture(scope="session")
def mock_embedding_service():
    """Pre-configured MockEmbeddingService for consistent test embeddings."""
    return MockEmbeddingService()


@pytest.fixture
def mock_embeddings(mock_embedding_service):
    """Factory function to create mock embeddings using the service."""

    def _create_mock_embedding(text: str) -> np.ndarray:
        return mock_embedding_service.get_embedding(text)

    return _create_mock_embedding


@pytest.fixture
def fake_index_factory(mock_embedding_service):
    """Factory for FakeVectorIndex instances sharing the mock embedder."""

    def _create_index(
        results: dict[str, list[tuple[DocumentChunk, float]]] | None = None,
        default: list[tuple[DocumentChunk, float]] | None = None,
    ) -> FakeVectorIndex:
        return FakeVectorIndex(mock_embedding_service, results, default)

    return _create_index


@pytest.fixture
def rag_pipeline_factory(mock_embedding_service, chat_service):
    """Factory for RAGPipeline instances wired to test doubles."""

    def _create_pipeline(
        vector_store,
        chat=None,
        *,
        max_workers: int = 1,
        embedding_service=None,
    ) -> RAGPipeline:
        return RAGPipeline(
            embedding_service or mock_embedding_service,
            vector_store,
            chat or chat_service,
            assistant_name="Nick",
            max_workers=max_workers,
        )

    return _create_pipeline


@pytest.fixture
def embedding_service_factory():
    """Factory for creating EmbeddingService instances with a test API key."""

    def _create_service(api_key=None, model=None, dimensions=None):  # noqa: ANN202
        return EmbeddingService(
            api_key=api_key or TestConstants.TEST_API_KEY,
            model=model,
            dimensions=dimensions,
        )

    return _create_service


@pytest.fixture
def embedding_service(embedding_service_factory):
    """Default EmbeddingService with test API key for most tests."""
    return embedding_service_factory()


@pytest.fixture
def temp_faiss_store(tmp_path) -> FaissVectorStore:
    """Create temporary FAISS vector store for testing."""
    return FaissVectorStore(
        db_path=tmp_path / "vector_store.db",
        index_path=tmp_path / "faiss" / "index.faiss",
    )


@pytest.fixture
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def sample_embedded_chunks(mock_embeddings):
    """Product rows with embeddings, as produced by spreadsheet ingestion."""
    rows = [
        "Product: Widget A | Category: Gadgets | Price: $19.99",
        "Product: Widget B | Category: Gadgets | Price: $24.50",
        "Product: Aurora Lamp | Category: Lighting | Price: $45.00",
        "Product: Desk Fan | Category: Cooling | Price: $32.00",
        "Product: Cable Kit | Category: Accessories | Price: $9.99",
    ]
    return [
        DocumentChunk(
            content=text,
            metadata={"source": "Products", "row": i + 2, "chunk_type": "row"},
            embedding=mock_embeddings(text),
        )
        for i, text in enumerate(rows)
    ]


@pytest.fixture
def openai_embeddings_api_mock():
    """Patch the OpenAI embeddings.create method."""
    with patch("openai.resources.embeddings.Embeddings.create") as mock_create:
        yield mock_create


@pytest.fixture
def openai_embeddings_factory(openai_embeddings_api_mock):
    """Factory configuring the embeddings API mock for a scenario."""

    def _create_mock(  # noqa: ANN202
        scenario="success",
        embeddings=None,
        error_message="API Error",
    ):
        openai_embeddings_api_mock.reset_mock()
        openai_embeddings_api_mock.side_effect = None

        if scenario == "success":
            openai_embeddings_api_mock.return_value = create_mock_openai_response(
                embeddings or [[0.1, 0.2, 0.3, 0.4]]
            )
        elif scenario == "multiple_batches":
            openai_embeddings_api_mock.side_effect = [
                create_mock_openai_response([[0.1, 0.2], [0.3, 0.4]]),
                create_mock_openai_response([[0.5, 0.6]]),
            ]
        elif scenario == "error":
            openai_embeddings_api_mock.side_effect = Exception(error_message)

        return openai_embeddings_api_mock

    return _create_mock
