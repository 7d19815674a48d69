"""OpenAI chat completions service."""

from openai import OpenAI

from .config import config
from .errors import GenerationError

ChatMessage = dict[str, str]


class ChatService:
    """Sends role-tagged messages to the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        """Initialize the ChatService with OpenAI API key and model.

        Args:
            api_key: OpenAI API key. If None,
                reads from OPENAI_API_KEY environment variable.
            model: Chat model name. If None, uses config.CHAT_MODEL.
        """
        default_headers = config.get_api_headers()
        self.client = OpenAI(
            api_key=api_key or config.get_openai_api_key(),
            base_url=config.OPENAI_BASE_URL,
            default_headers=default_headers or None,
        )
        self.model = model or config.CHAT_MODEL

    def complete(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Request a single completion for ``messages``.

        Returns:
            str: The stripped completion text, or an empty string when the
                model returned no content.

        Raises:
            GenerationError: If the chat completions API call fails.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as exc:
            msg = f"Chat completion request failed: {exc}"
            raise GenerationError(msg) from exc

        if not response.choices:
            return ""
        content = response.choices[0].message.content
        return content.strip() if content else ""
