"""KB Assist - retrieval-augmented answers over a product knowledge base."""

from .chat import ChatService
from .embeddings import EmbeddingService
from .errors import (
    ConfigurationError,
    EmbeddingError,
    GenerationError,
    ProviderError,
    RAGPipelineError,
    VectorIndexError,
)
from .ingestion import IngestionPipeline, SpreadsheetLoader, TextChunker
from .models import (
    ConversationTurn,
    DocumentChunk,
    RAGResult,
    RetrievedChunk,
    Source,
)
from .pipeline import RAGPipeline, run_rag
from .vector_store import FaissVectorStore, InMemoryVectorStore, get_vector_store

__all__ = [
    "ChatService",
    "ConfigurationError",
    "ConversationTurn",
    "DocumentChunk",
    "EmbeddingError",
    "EmbeddingService",
    "FaissVectorStore",
    "GenerationError",
    "InMemoryVectorStore",
    "IngestionPipeline",
    "ProviderError",
    "RAGPipeline",
    "RAGPipelineError",
    "RAGResult",
    "RetrievedChunk",
    "Source",
    "SpreadsheetLoader",
    "TextChunker",
    "VectorIndexError",
    "get_vector_store",
    "run_rag",
]
