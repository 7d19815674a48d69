"""Relevance filtering and LLM re-ranking of retrieved chunks."""

from .chat import ChatService
from .config import config
from .errors import ProviderError
from .models import RetrievedChunk
from .prompts import RERANK_SYSTEM_PROMPT, build_rerank_prompt

logger = config.get_logger(__name__)

FOLLOW_UP_THRESHOLD = 0.25
DEFAULT_THRESHOLD = 0.4
MIN_RELEVANT_CHUNKS = 3
RECALL_FALLBACK_LIMIT = 10
RERANK_MIN_CHUNKS = 3
MAX_CONTEXT_CHUNKS = 8


def select_threshold(*, follow_up: bool) -> float:
    return FOLLOW_UP_THRESHOLD if follow_up else DEFAULT_THRESHOLD


def sort_by_score(chunks: list[RetrievedChunk]) -> list[RetrievedChunk]:
    """Order chunks by similarity, best first; ties keep their current order."""  # noqa: DOC201
    return sorted(chunks, key=lambda chunk: chunk.score, reverse=True)


def filter_relevant(
    chunks: list[RetrievedChunk], threshold: float
) -> list[RetrievedChunk]:
    """Keep chunks scoring above ``threshold``.

    When fewer than three pass, recall wins: the threshold is dropped and
    the ten best chunks by score are returned instead.

    Returns:
        list[RetrievedChunk]: Surviving chunks.
    """
    relevant = [chunk for chunk in chunks if chunk.score > threshold]
    if len(relevant) < MIN_RELEVANT_CHUNKS and chunks:
        logger.info(
            "Only %d chunks above %.2f; taking the top %d by score",
            len(relevant),
            threshold,
            RECALL_FALLBACK_LIMIT,
        )
        return sort_by_score(chunks)[:RECALL_FALLBACK_LIMIT]
    return relevant


def parse_rerank_indices(response_text: str, count: int) -> list[int] | None:
    """Parse a comma-separated index list returned by the ranking model.

    Non-numeric, out-of-range and repeated tokens are ignored.

    Returns:
        list[int] | None: Valid indices in the model's order, or None when
            none could be read.
    """
    indices: list[int] = []
    for token in response_text.split(","):
        cleaned = token.strip().strip("[]\"'. ")
        if not cleaned.isdecimal():
            continue
        try:
            index = int(cleaned)
        except ValueError:
            continue
        if index < count and index not in indices:
            indices.append(index)
    return indices or None


class Reranker:
    """Reorders chunks by asking the chat model for a relevance ranking."""

    def __init__(
        self,
        chat_service: ChatService,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self.chat_service = chat_service
        self.temperature = (
            temperature if temperature is not None else config.RERANK_TEMPERATURE
        )
        self.max_tokens = max_tokens or config.RERANK_MAX_TOKENS

    def rerank(self, query: str, chunks: list[RetrievedChunk]) -> list[RetrievedChunk]:
        """Rank ``chunks`` for ``query``.

        Chunks the model leaves out of its ranking are dropped. When the
        model fails or its reply cannot be parsed, chunks are sorted by score.

        Returns:
            list[RetrievedChunk]: Chunks in relevance order.
        """
        messages = [
            {"role": "system", "content": RERANK_SYSTEM_PROMPT},
            {"role": "user", "content": build_rerank_prompt(query, chunks)},
        ]
        try:
            response_text = self.chat_service.complete(
                messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except ProviderError:
            logger.exception("Re-ranking failed; falling back to score order")
            return sort_by_score(chunks)

        indices = parse_rerank_indices(response_text or "", len(chunks))
        if indices is None:
            logger.warning(
                "Unusable re-rank response %r; using score order", response_text
            )
            return sort_by_score(chunks)

        if len(indices) < len(chunks):
            logger.info("Re-ranking kept %d of %d chunks", len(indices), len(chunks))
        return [chunks[index] for index in indices]


def rank_chunks(
    query: str, chunks: list[RetrievedChunk], reranker: Reranker
) -> list[RetrievedChunk]:
    """Order filtered chunks and cut them to the generation context budget.

    Returns:
        list[RetrievedChunk]: At most eight chunks, most relevant first.
    """
    if len(chunks) > RERANK_MIN_CHUNKS:
        ranked = reranker.rerank(query, chunks)
    else:
        ranked = sort_by_score(chunks)
    return ranked[:MAX_CONTEXT_CHUNKS]
