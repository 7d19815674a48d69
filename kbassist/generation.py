"""Final answer generation from the built prompt and recent history."""

from .chat import ChatMessage, ChatService
from .config import config
from .models import ConversationTurn
from .prompts import ANSWER_SYSTEM_PROMPT

logger = config.get_logger(__name__)

MESSAGE_HISTORY_TURNS = 8
EMPTY_ANSWER = "Unable to generate answer."


class AnswerGenerator:
    """Produces the answer text with the assistant persona."""

    def __init__(
        self,
        chat_service: ChatService,
        temperature: float | None = None,
        max_tokens: int | None = None,
        assistant_name: str | None = None,
    ) -> None:
        self.chat_service = chat_service
        self.temperature = (
            temperature if temperature is not None else config.ANSWER_TEMPERATURE
        )
        self.max_tokens = max_tokens or config.ANSWER_MAX_TOKENS
        self.assistant_name = assistant_name or config.ASSISTANT_NAME

    def build_messages(
        self, prompt: str, history: list[ConversationTurn]
    ) -> list[ChatMessage]:
        """Assemble system persona, recent user/assistant turns and the prompt.

        Returns:
            list[ChatMessage]: Role-tagged messages for the chat model.
        """
        messages: list[ChatMessage] = [
            {
                "role": "system",
                "content": ANSWER_SYSTEM_PROMPT.format(name=self.assistant_name),
            }
        ]
        messages.extend(
            {"role": turn.role, "content": turn.content}
            for turn in history[-MESSAGE_HISTORY_TURNS:]
            if turn.role in {"user", "assistant"}
        )
        messages.append({"role": "user", "content": prompt})
        return messages

    def generate(self, prompt: str, history: list[ConversationTurn]) -> str:
        """Generate the answer. Provider errors are not caught here.

        Returns:
            str: The completion, or a placeholder when the model returned nothing.
        """
        answer = self.chat_service.complete(
            self.build_messages(prompt, history),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        if not answer:
            logger.warning("Chat model returned an empty answer")
            return EMPTY_ANSWER
        return answer
