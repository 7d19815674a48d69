"""Question-answering pipeline orchestrating retrieval and generation."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .chat import ChatService
from .config import config
from .embeddings import EmbeddingService
from .errors import RAGPipelineError
from .generation import AnswerGenerator
from .history import extract_history_context, normalize_history
from .intent import (
    DEFAULT_VOCABULARY,
    IntentVocabulary,
    conversational_reply,
    is_conversational,
    is_follow_up,
)
from .models import ConversationTurn, RAGResult, RetrievedChunk, Source
from .prompts import build_rag_prompt
from .query_expansion import QueryExpander
from .ranking import Reranker, filter_relevant, rank_chunks, select_threshold
from .retrieval import Retriever
from .vector_store import VectorStore, get_vector_store

logger = config.get_logger(__name__)

NO_CONTEXT_ANSWER = (
    "I couldn't find specific information about that in my knowledge base. "
    "Could you please provide more details or rephrase your question? I'm here "
    "to help with questions about our products and services."
)

HistoryInput = Iterable[ConversationTurn | Mapping[str, Any]] | None


class RAGPipeline:
    """Answers questions: Intent -> Expand -> Retrieve -> Rank -> Generate."""

    def __init__(  # noqa: PLR0913
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        chat_service: ChatService,
        *,
        vocabulary: IntentVocabulary = DEFAULT_VOCABULARY,
        assistant_name: str | None = None,
        max_workers: int | None = None,
    ) -> None:
        """Wire the pipeline from its providers.

        Args:
            embedding_service: Embedding provider.
            vector_store: Vector index holding the knowledge base.
            chat_service: Text-generation provider, shared by query
                expansion, re-ranking and answer generation.
            vocabulary: Term tables for intent and follow-up detection.
            assistant_name: Persona name. If None, uses config.ASSISTANT_NAME.
            max_workers: Parallel retrieval requests. If None, uses
                config.RETRIEVAL_MAX_WORKERS.
        """
        self.vocabulary = vocabulary
        self.assistant_name = assistant_name or config.ASSISTANT_NAME
        self.expander = QueryExpander(chat_service)
        self.retriever = Retriever(
            embedding_service, vector_store, max_workers=max_workers
        )
        self.reranker = Reranker(chat_service)
        self.generator = AnswerGenerator(
            chat_service, assistant_name=self.assistant_name
        )

    @classmethod
    def from_config(
        cls,
        *,
        openai_api_key: str | None = None,
        vector_backend: str | None = None,
    ) -> RAGPipeline:
        """Build the production pipeline from application configuration.

        Raises:
            ConfigurationError: If required settings are missing.

        Returns:
            RAGPipeline: Pipeline with OpenAI providers and a loaded index.
        """
        if openai_api_key is None:
            config.validate()

        vector_store = get_vector_store(vector_backend or config.VECTOR_BACKEND)
        vector_store.load()
        logger.info(
            "Using %s vector storage with %d vectors",
            getattr(vector_store, "backend", "custom"),
            vector_store.count(),
        )
        if not getattr(vector_store, "persistent", True):
            logger.warning(
                "Vector backend %s keeps nothing between runs; answers will only "
                "use chunks added in this process",
                getattr(vector_store, "backend", "custom"),
            )
        return cls(
            EmbeddingService(api_key=openai_api_key),
            vector_store,
            ChatService(api_key=openai_api_key),
        )

    def run_rag(
        self, query: str, conversation_history: HistoryInput = None
    ) -> RAGResult:
        """Answer ``query`` in the context of the caller's conversation.

        Degradable failures (expansion, a single retrieval attempt,
        re-ranking) are absorbed along the way; anything else aborts the
        request.

        Returns:
            RAGResult: Answer text and, for knowledge answers, its sources.

        Raises:
            ValueError: If the query is empty.
            RAGPipelineError: If retrieval or generation fails.
        """
        query = query.strip() if isinstance(query, str) else ""
        if not query:
            msg = "Query must be a non-empty string"
            raise ValueError(msg)

        history = normalize_history(conversation_history)

        if not history and is_conversational(query, self.vocabulary):
            logger.info("Answering conversational query without retrieval")
            return RAGResult(
                answer=conversational_reply(
                    query, self.vocabulary, assistant_name=self.assistant_name
                )
            )

        try:
            return self._answer_from_knowledge_base(query, history)
        except Exception as exc:
            logger.exception("RAG error")
            msg = f"RAG processing failed: {exc}"
            raise RAGPipelineError(msg) from exc

    def _answer_from_knowledge_base(
        self, query: str, history: list[ConversationTurn]
    ) -> RAGResult:
        expanded_queries = self.expander.expand(query, history)
        history_context = extract_history_context(history)
        follow_up = is_follow_up(query, self.vocabulary)

        candidates = self.retriever.retrieve(
            expanded_queries, query, history_context, follow_up=follow_up
        )

        threshold = select_threshold(follow_up=follow_up)
        relevant = filter_relevant(candidates.chunks, threshold)
        final_chunks = rank_chunks(query, relevant, self.reranker)
        logger.info(
            "Selected %d context chunks (threshold %.2f, follow-up=%s)",
            len(final_chunks),
            threshold,
            follow_up,
        )

        if not final_chunks:
            final_chunks = self.retriever.last_resort(query)
            if not final_chunks:
                logger.info("No context found for query")
                return RAGResult(answer=NO_CONTEXT_ANSWER)

        return self._generate(query, final_chunks, history)

    def _generate(
        self,
        query: str,
        chunks: list[RetrievedChunk],
        history: list[ConversationTurn],
    ) -> RAGResult:
        prompt = build_rag_prompt(
            query, chunks, history, assistant_name=self.assistant_name
        )
        answer = self.generator.generate(prompt, history)

        for i, chunk in enumerate(chunks):
            logger.debug(
                "  Context %d: %s (score: %.4f)", i + 1, chunk.source_tag, chunk.score
            )

        return RAGResult(
            answer=answer, sources=[Source.from_chunk(chunk) for chunk in chunks]
        )


def run_rag(
    query: str,
    conversation_history: HistoryInput = None,
    *,
    pipeline: RAGPipeline | None = None,
) -> RAGResult:
    """Answer a question with ``pipeline`` or a pipeline built from config.

    Returns:
        RAGResult: The answer and its sources.
    """
    pipeline = pipeline or RAGPipeline.from_config()
    return pipeline.run_rag(query, conversation_history)
