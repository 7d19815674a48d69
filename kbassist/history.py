"""Helpers for the caller-supplied conversation history."""

from collections.abc import Iterable, Mapping
from typing import Any

from .models import ConversationTurn

HISTORY_CONTEXT_TURNS = 6


def normalize_history(
    history: Iterable[ConversationTurn | Mapping[str, Any]] | None,
) -> list[ConversationTurn]:
    """Convert wire-form turns to ``ConversationTurn`` without touching the input.

    Returns:
        A new list of turns, oldest first.
    """
    if not history:
        return []
    return [
        turn if isinstance(turn, ConversationTurn) else ConversationTurn.from_dict(turn)
        for turn in history
    ]


def recent_turns(history: list[ConversationTurn], limit: int) -> list[ConversationTurn]:
    return history[-limit:] if limit > 0 else []


def extract_history_context(history: list[ConversationTurn]) -> str:
    """Summarize recent turns into one string used to widen retrieval.

    User messages come first, then assistant messages, each group joined
    with spaces.

    Returns:
        The combined text, or an empty string when there is no history.
    """
    if not history:
        return ""

    window = recent_turns(history, HISTORY_CONTEXT_TURNS)
    user_text = " ".join(turn.content for turn in window if turn.role == "user")
    assistant_text = " ".join(
        turn.content for turn in window if turn.role == "assistant"
    )
    return " ".join(part for part in (user_text, assistant_text) if part)
