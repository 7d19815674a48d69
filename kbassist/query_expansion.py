"""LLM-driven query expansion for wider retrieval recall."""

from .chat import ChatService
from .config import config
from .errors import ProviderError
from .models import ConversationTurn
from .prompts import EXPANSION_SYSTEM_PROMPT, build_expansion_prompt

logger = config.get_logger(__name__)

MAX_EXPANDED_QUERIES = 5


def parse_expansions(query: str, response_text: str) -> list[str]:
    """Turn the model's line-per-query reply into the final query list.

    Returns:
        The original query followed by unique alternatives, at most five.
    """
    lines = [line.strip() for line in response_text.splitlines()]
    alternatives = [line for line in lines if line][:MAX_EXPANDED_QUERIES]
    return list(dict.fromkeys([query, *alternatives]))[:MAX_EXPANDED_QUERIES]


class QueryExpander:
    """Asks the chat model for alternative phrasings of a question."""

    def __init__(
        self,
        chat_service: ChatService,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self.chat_service = chat_service
        self.temperature = (
            temperature if temperature is not None else config.EXPANSION_TEMPERATURE
        )
        self.max_tokens = max_tokens or config.EXPANSION_MAX_TOKENS

    def expand(self, query: str, history: list[ConversationTurn]) -> list[str]:
        """Expand ``query`` into up to five search queries.

        Provider failures only cost recall, so they are logged and the
        original query is returned on its own.

        Returns:
            list[str]: Search queries, the original query first.
        """
        messages = [
            {"role": "system", "content": EXPANSION_SYSTEM_PROMPT},
            {"role": "user", "content": build_expansion_prompt(query, history)},
        ]
        try:
            response_text = self.chat_service.complete(
                messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except ProviderError:
            logger.exception("Query expansion failed; using the original query")
            return [query]

        expanded = parse_expansions(query, response_text or query)
        logger.info("Expanded query into %d variants", len(expanded))
        return expanded
