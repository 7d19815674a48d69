"""Tests for the OpenAI-backed EmbeddingService and ChatService."""

import os
from unittest.mock import Mock, patch

import numpy as np
import pytest

from kbassist import ChatService, EmbeddingError, EmbeddingService, GenerationError
from kbassist.config import config


def test_init_with_api_key(embedding_service_factory) -> None:
    service = embedding_service_factory(model="text-embedding-3-small", dimensions=256)
    assert service.model == "text-embedding-3-small"
    assert service.dimensions == 256
    assert service.client.api_key == "test-key"


def test_init_with_env_api_key() -> None:
    with patch.dict(os.environ, {"OPENAI_API_KEY": "env-key"}):
        service = EmbeddingService()
        assert service.client.api_key == "env-key"


def test_init_defaults(embedding_service) -> None:
    assert embedding_service.model == config.EMBEDDING_MODEL
    assert embedding_service.dimensions == config.EMBEDDING_DIMENSIONS


def test_client_sends_user_agent(embedding_service) -> None:
    assert embedding_service.client.default_headers["User-Agent"] == (
        config.API_USER_AGENT
    )


def test_get_embedding_success(openai_embeddings_factory, embedding_service) -> None:
    mock_api = openai_embeddings_factory("success")

    result = embedding_service.get_embedding("Widget A price")

    mock_api.assert_called_once_with(
        model=config.EMBEDDING_MODEL,
        input="Widget A price",
        dimensions=config.EMBEDDING_DIMENSIONS,
    )
    assert isinstance(result, np.ndarray)
    np.testing.assert_array_equal(result, np.array([0.1, 0.2, 0.3, 0.4]))


def test_get_embedding_api_error(openai_embeddings_factory, embedding_service) -> None:
    openai_embeddings_factory("error", error_message="API Error")

    with pytest.raises(EmbeddingError, match="API Error") as exc_info:
        embedding_service.get_embedding("Widget A price")

    assert str(exc_info.value.__cause__) == "API Error"


def test_get_embeddings_batch_with_batching(
    openai_embeddings_factory, embedding_service
) -> None:
    mock_api = openai_embeddings_factory("multiple_batches")
    texts = ["row 1", "row 2", "row 3"]

    results = embedding_service.get_embeddings_batch(texts, batch_size=2)

    assert mock_api.call_count == 2
    mock_api.assert_any_call(
        model=config.EMBEDDING_MODEL,
        input=["row 1", "row 2"],
        dimensions=config.EMBEDDING_DIMENSIONS,
    )
    mock_api.assert_any_call(
        model=config.EMBEDDING_MODEL,
        input=["row 3"],
        dimensions=config.EMBEDDING_DIMENSIONS,
    )
    expected = [[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]]
    for result, embedding in zip(results, expected, strict=True):
        np.testing.assert_array_equal(result, np.array(embedding))


def test_get_embeddings_batch_api_error(
    openai_embeddings_factory, embedding_service
) -> None:
    openai_embeddings_factory("error", error_message="Batch API Error")

    with pytest.raises(EmbeddingError, match="Batch API Error"):
        embedding_service.get_embeddings_batch(["row 1", "row 2"])


def test_get_embeddings_batch_empty_list(
    openai_embeddings_api_mock, embedding_service
) -> None:
    assert embedding_service.get_embeddings_batch([]) == []
    openai_embeddings_api_mock.assert_not_called()


def create_mock_chat_response(content: str | None) -> Mock:
    """Create a mock OpenAI chat completion response."""
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    return mock_response


@pytest.fixture
def chat_client():
    service = ChatService(api_key="test-key", model="gpt-4o")
    with patch.object(service.client.chat.completions, "create") as mock_create:
        yield service, mock_create


def test_chat_complete_returns_stripped_content(chat_client) -> None:
    service, mock_create = chat_client
    mock_create.return_value = create_mock_chat_response("  Widget A costs $19.99.\n")
    messages = [{"role": "user", "content": "price?"}]

    answer = service.complete(messages, temperature=0.3, max_tokens=500)

    assert answer == "Widget A costs $19.99."
    mock_create.assert_called_once_with(
        model="gpt-4o",
        messages=messages,
        temperature=0.3,
        max_tokens=500,
    )


@pytest.mark.parametrize("content", [None, "", "   "])
def test_chat_complete_empty_content(chat_client, content) -> None:
    service, mock_create = chat_client
    mock_create.return_value = create_mock_chat_response(content)

    assert service.complete([], temperature=0.3, max_tokens=500) == ""


def test_chat_complete_without_choices(chat_client) -> None:
    service, mock_create = chat_client
    mock_create.return_value = Mock(choices=[])

    assert service.complete([], temperature=0.3, max_tokens=500) == ""


def test_chat_complete_wraps_api_errors(chat_client) -> None:
    service, mock_create = chat_client
    mock_create.side_effect = Exception("Rate limit exceeded")

    with pytest.raises(GenerationError, match="Rate limit exceeded"):
        service.complete([], temperature=0.3, max_tokens=500)


def test_chat_service_default_model() -> None:
    assert ChatService(api_key="test-key").model == config.CHAT_MODEL
