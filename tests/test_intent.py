"""Tests for conversational intent and follow-up detection."""

import dataclasses

import pytest

from kbassist.intent import (
    CAPABILITY_REPLY,
    DEFAULT_REPLY,
    DEFAULT_VOCABULARY,
    FAREWELL_REPLY,
    GREETING_REPLY,
    IDENTITY_REPLY,
    STATUS_REPLY,
    THANKS_REPLY,
    conversational_reply,
    is_conversational,
    is_follow_up,
)


@pytest.mark.parametrize(
    "query",
    [
        "Hello",
        "  HEY there ",
        "Good morning!",
        "thanks a lot",
        "Goodbye for now",
        "Who are you?",
        "what can you do for me",
        "ok",
        "cool",
    ],
)
def test_conversational_queries(query):
    assert is_conversational(query)


@pytest.mark.parametrize(
    "query",
    [
        "What is the price of Widget A?",
        "Warranty terms for Widget Z",
        "12345",
        "sku 42",
        "Aurora lamp dimensions",
    ],
)
def test_knowledge_queries(query):
    assert not is_conversational(query)


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("hello", GREETING_REPLY.format(name="Nick")),
        ("thank you", THANKS_REPLY),
        ("bye", FAREWELL_REPLY),
        ("how are you", STATUS_REPLY),
        ("what can you do", CAPABILITY_REPLY),
        ("who are you", IDENTITY_REPLY.format(name="Nick")),
        ("ok", DEFAULT_REPLY),
    ],
)
def test_conversational_reply(query, expected):
    assert conversational_reply(query) == expected


def test_conversational_reply_uses_first_matching_trigger():
    # "hi" in "thanks, hi" matches the greeting set before thanks
    assert conversational_reply("thanks, hi") == GREETING_REPLY.format(name="Nick")


def test_conversational_reply_uses_assistant_name():
    assert "I'm Ava" in conversational_reply("hello", assistant_name="Ava")


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("what about the price", True),
        ("Tell me the category", True),
        ("Is it waterproof?", True),
        ("How much does shipping cost", True),
        ("Warranty terms for Widget Z", False),
        ("Aurora lamp dimensions", False),
    ],
)
def test_is_follow_up(query, expected):
    assert is_follow_up(query) is expected


def test_vocabulary_can_be_extended():
    vocabulary = dataclasses.replace(
        DEFAULT_VOCABULARY,
        greeting_terms=(*DEFAULT_VOCABULARY.greeting_terms, "bonjour"),
        follow_up_markers=(*DEFAULT_VOCABULARY.follow_up_markers, "dimensions"),
    )

    assert is_conversational("Bonjour, Nick!", vocabulary)
    assert not is_conversational("Bonjour, Nick!")
    assert is_follow_up("Aurora lamp dimensions", vocabulary)
