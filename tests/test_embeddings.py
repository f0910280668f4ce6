"""
Unit tests for the embedding and generation clients.

The OpenAI SDK client is replaced with a mock; no network access is needed.
"""

import pytest
import openai
from unittest.mock import MagicMock
from codeask.embeddings import EmbeddingClient, EmbeddingModel, OpenAIEmbeddingClient
from codeask.errors import ConfigError, ProviderError
from codeask.generation import GenerationClient, OpenAIChatClient


def test_openai_embedding_requires_key():
    with pytest.raises(ConfigError) as exc_info:
        OpenAIEmbeddingClient(api_key=None)
    assert "OPENAI_API_KEY is not set" in exc_info.value.problems


def test_openai_embedding_unknown_model_needs_dimension():
    with pytest.raises(ConfigError, match="embeddings.dimension"):
        OpenAIEmbeddingClient(api_key="test", model="custom-embedder")

    client = OpenAIEmbeddingClient(api_key="test", model="custom-embedder", dimension=256)
    assert client.dimension == 256


def test_openai_embedding_known_dimension():
    client = OpenAIEmbeddingClient(api_key="test")
    assert client.dimension == 1536
    assert isinstance(client, EmbeddingClient)


def test_openai_embed_returns_vector():
    client = OpenAIEmbeddingClient(api_key="test")
    client.client = MagicMock()
    client.client.embeddings.create.return_value.data = [MagicMock(embedding=[0.1, 0.2])]

    assert client.embed("hello") == [0.1, 0.2]
    client.client.embeddings.create.assert_called_once_with(model="text-embedding-3-small", input="hello")


def test_openai_embed_failure_is_provider_error():
    client = OpenAIEmbeddingClient(api_key="test")
    client.client = MagicMock()
    client.client.embeddings.create.side_effect = openai.OpenAIError("invalid key")

    with pytest.raises(ProviderError, match="invalid key"):
        client.embed("hello")
    assert client.client.embeddings.create.call_count == 1


def test_local_model_is_lazy():
    model = EmbeddingModel(model_name="all-MiniLM-L6-v2")
    assert "not loaded" in repr(model)


def test_chat_client_requires_key():
    with pytest.raises(ConfigError):
        OpenAIChatClient(api_key="")


def test_chat_client_returns_content():
    client = OpenAIChatClient(api_key="test", model="gpt-4-turbo", temperature=0.2, max_tokens=200)
    client.client = MagicMock()
    client.client.chat.completions.create.return_value.choices = [MagicMock(message=MagicMock(content="It serves HTTP."))]
    messages = [{"role": "user", "content": "what?"}]

    assert client.complete(messages) == "It serves HTTP."
    client.client.chat.completions.create.assert_called_once_with(
        model="gpt-4-turbo", messages=messages, temperature=0.2, max_tokens=200,
    )
    assert isinstance(client, GenerationClient)


def test_chat_client_empty_reply():
    client = OpenAIChatClient(api_key="test")
    client.client = MagicMock()
    client.client.chat.completions.create.return_value.choices = []

    with pytest.raises(ProviderError):
        client.complete([{"role": "user", "content": "what?"}])


def test_chat_client_failure_is_provider_error():
    client = OpenAIChatClient(api_key="test")
    client.client = MagicMock()
    client.client.chat.completions.create.side_effect = openai.OpenAIError("quota exceeded")

    with pytest.raises(ProviderError, match="quota exceeded"):
        client.complete([{"role": "user", "content": "what?"}])
