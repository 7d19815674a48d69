"""Keyword heuristics for chit-chat and follow-up questions.

Both checks are plain substring matches over lower-cased text. The term
tables live on :class:`IntentVocabulary` so they can be extended without
touching the matching logic.
"""

import re
from dataclasses import dataclass, field

SHORT_QUERY_LENGTH = 10
_LETTERS_ONLY = re.compile(r"^[a-z\s]+$")

GREETING_REPLY = (
    "Hello! I'm {name}, your AI assistant. I'm here to help you with questions "
    "about our products and services. What would you like to know?"
)
THANKS_REPLY = "You're welcome! Is there anything else I can help you with?"
FAREWELL_REPLY = (
    "Goodbye! Feel free to come back if you have any questions. Have a great day!"
)
STATUS_REPLY = (
    "I'm doing great, thank you for asking! I'm here and ready to help you with "
    "any questions about our products. What can I assist you with today?"
)
CAPABILITY_REPLY = (
    "I can help you find information about our products and services. Just ask "
    "me questions like 'What products do you have?', 'Tell me about product X', "
    "or any other questions about our offerings. What would you like to know?"
)
IDENTITY_REPLY = (
    "I'm {name}, your AI assistant powered by advanced AI technology. I can help "
    "you find information about our products and answer questions using our "
    "knowledge base. How can I assist you today?"
)
DEFAULT_REPLY = (
    "I'm here to help! Feel free to ask me any questions about our products or "
    "services. What would you like to know?"
)


@dataclass(frozen=True)
class IntentVocabulary:
    """Term tables driving the intent and follow-up heuristics."""

    greeting_terms: tuple[str, ...] = (
        "hello",
        "hi",
        "hey",
        "greetings",
        "good morning",
        "good afternoon",
        "good evening",
        "good night",
        "howdy",
        "what's up",
        "sup",
        "yo",
        "how are you",
        "how do you do",
        "nice to meet you",
    )
    conversational_terms: tuple[str, ...] = (
        "thank you",
        "thanks",
        "bye",
        "goodbye",
        "see you",
        "talk to you",
        "what can you do",
        "help",
        "who are you",
        "what are you",
    )
    follow_up_markers: tuple[str, ...] = (
        "tell me",
        "what about",
        "what is",
        "what are",
        "how much",
        "how many",
        "what's the",
        "what are the",
        "give me",
        "show me",
        "can you tell",
        "category",
        "price",
        "cost",
        "description",
        "details",
        "specification",
        "features",
        "benefits",
        "about it",
        "about that",
        "more about",
        "the same",
        "that product",
        "this product",
        "it",
        "they",
        "them",
    )
    # First matching trigger set wins.
    canned_replies: tuple[tuple[tuple[str, ...], str], ...] = field(
        default=(
            (("hello", "hi", "hey"), GREETING_REPLY),
            (("thank",), THANKS_REPLY),
            (("bye", "goodbye"), FAREWELL_REPLY),
            (("how are you",), STATUS_REPLY),
            (("what can you do", "help"), CAPABILITY_REPLY),
            (("who are you", "what are you"), IDENTITY_REPLY),
        )
    )
    default_reply: str = DEFAULT_REPLY


DEFAULT_VOCABULARY = IntentVocabulary()


def _contains_any(text: str, terms: tuple[str, ...]) -> bool:
    return any(term in text for term in terms)


def is_conversational(
    query: str, vocabulary: IntentVocabulary = DEFAULT_VOCABULARY
) -> bool:
    """Decide whether ``query`` is small talk rather than a knowledge question.

    Returns:
        True for greetings, thanks, farewells, help or identity questions,
        and for very short letters-only messages.
    """
    text = query.lower().strip()
    if _contains_any(text, vocabulary.greeting_terms):
        return True
    if _contains_any(text, vocabulary.conversational_terms):
        return True
    return len(text) < SHORT_QUERY_LENGTH and bool(_LETTERS_ONLY.match(text))


def conversational_reply(
    query: str,
    vocabulary: IntentVocabulary = DEFAULT_VOCABULARY,
    assistant_name: str = "Nick",
) -> str:
    """Pick the canned reply for a conversational query.

    Returns:
        The reply keyed by the first matching trigger, or the generic
        invitation to ask a question.
    """
    text = query.lower().strip()
    for triggers, reply in vocabulary.canned_replies:
        if _contains_any(text, triggers):
            return reply.format(name=assistant_name)
    return vocabulary.default_reply.format(name=assistant_name)


def is_follow_up(query: str, vocabulary: IntentVocabulary = DEFAULT_VOCABULARY) -> bool:
    """Detect questions that lean on earlier turns ("what about the price").

    Returns:
        True when the query contains any follow-up marker.
    """
    return _contains_any(query.lower(), vocabulary.follow_up_markers)
