"""Unit tests for the LLM provider layer."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from mathfluent.llm import (
    AnthropicProvider,
    ChatMessage,
    GeminiProvider,
    LLMProvider,
    LLMResponse,
    OpenAIProvider,
    create_llm_provider,
)


class TestModels:
    """Tests for LLM message and response models."""

    def test_message_constructors(self):
        """Test the role shortcuts."""
        assert ChatMessage.system("s").role == "system"
        assert ChatMessage.user("u").role == "user"

    def test_invalid_role(self):
        """Test that unknown roles are rejected."""
        with pytest.raises(ValueError):
            ChatMessage(role="tool", content="x")  # type: ignore[arg-type]

    def test_empty_response(self):
        """Test the is_empty flag."""
        assert LLMResponse(content=" \n", model="m").is_empty
        assert not LLMResponse(content="x", model="m").is_empty


class TestFactory:
    """Tests for create_llm_provider."""

    def test_provider_is_abstract(self):
        """Test that LLMProvider cannot be instantiated directly."""
        with pytest.raises(TypeError):
            LLMProvider()  # type: ignore

    @pytest.mark.parametrize("name, cls", [
        ("gemini", GeminiProvider),
        ("openai", OpenAIProvider),
        ("anthropic", AnthropicProvider),
        ("claude", AnthropicProvider),
        ("Gemini", GeminiProvider),
    ])
    def test_creates_provider(self, name, cls):
        """Test that each supported name builds its provider."""
        assert isinstance(create_llm_provider(name, api_key="test-key"), cls)

    def test_model_override(self):
        """Test that the default model can be set."""
        provider = create_llm_provider("gemini", api_key="k", model="gemini-2.5-pro")

        assert provider.model == "gemini-2.5-pro"

    def test_api_key_required(self):
        """Test that a missing API key is a configuration error."""
        with pytest.raises(TypeError):
            create_llm_provider("openai")

    def test_unsupported_provider(self):
        """Test that unknown providers are rejected."""
        with pytest.raises(ValueError, match="Unsupported provider"):
            create_llm_provider("deepseek", api_key="k")


class TestGeminiProvider:
    """Tests for Gemini request and response conversion."""

    def test_system_message_becomes_instruction(self):
        """Test that the system prompt is split from the contents."""
        provider = GeminiProvider(api_key="k")

        system, contents = provider._convert_messages([
            ChatMessage.system("be precise"),
            ChatMessage.user("solve x"),
        ])

        assert system == "be precise"
        assert len(contents) == 1
        assert contents[0].role == "user"
        assert contents[0].parts[0].text == "solve x"

    def test_extract_content_joins_parts(self):
        """Test that text parts of the first candidate are concatenated."""
        provider = GeminiProvider(api_key="k")
        parts = [SimpleNamespace(text="Step 1: "), SimpleNamespace(text="x = 2")]
        response = SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])

        assert provider._extract_content(response) == "Step 1: x = 2"

    def test_blocked_response_is_empty(self):
        """Test that a response without candidates yields empty text."""
        provider = GeminiProvider(api_key="k")
        response = SimpleNamespace(candidates=[], text=None)

        assert provider._extract_content(response) == ""


class TestOpenAIProvider:
    """Tests for the OpenAI request and response mapping."""

    @pytest.mark.asyncio
    async def test_chat_completion(self):
        """Test that turns are sent as chat messages and usage is reported."""
        provider = OpenAIProvider(api_key="k")
        provider._client = MagicMock()
        provider._client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            model="gpt-4o-mini",
            choices=[SimpleNamespace(message=SimpleNamespace(content="Step 1: x = 2"))],
            usage=SimpleNamespace(prompt_tokens=12, completion_tokens=5, total_tokens=17),
        ))

        response = await provider.chat_completion(
            [ChatMessage.system("be precise"), ChatMessage.user("solve 2x = 4")],
            max_tokens=256,
        )

        kwargs = provider._client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["max_tokens"] == 256
        assert kwargs["messages"] == [
            {"role": "system", "content": "be precise"},
            {"role": "user", "content": "solve 2x = 4"},
        ]
        assert response.content == "Step 1: x = 2"
        assert response.usage == {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17}

    @pytest.mark.asyncio
    async def test_missing_content_is_empty(self):
        """Test that a completion without choices yields an empty response."""
        provider = OpenAIProvider(api_key="k")
        provider._client = MagicMock()
        provider._client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(model="gpt-4o-mini", choices=[], usage=None)
        )
        provider._client.close = AsyncMock()

        async with provider:
            response = await provider.chat_completion([ChatMessage.user("hi")])

        assert response.is_empty
        assert "max_tokens" not in provider._client.chat.completions.create.call_args.kwargs
        provider._client.close.assert_awaited_once()


class TestAnthropicProvider:
    """Tests for the Anthropic request and response mapping."""

    @pytest.mark.asyncio
    async def test_chat_completion(self):
        """Test that the system prompt is sent separately and text blocks are joined."""
        provider = AnthropicProvider(api_key="k", model="claude-test")
        provider._client = MagicMock()
        provider._client.messages.create = AsyncMock(return_value=SimpleNamespace(
            model="claude-test",
            content=[SimpleNamespace(text="Step 1: "), SimpleNamespace(type="tool_use"), SimpleNamespace(text="x = 2")],
            usage=SimpleNamespace(input_tokens=10, output_tokens=4),
        ))

        response = await provider.chat_completion(
            [ChatMessage.system("be precise"), ChatMessage.user("solve 2x = 4")]
        )

        kwargs = provider._client.messages.create.call_args.kwargs
        assert kwargs["system"] == "be precise"
        assert kwargs["messages"] == [{"role": "user", "content": "solve 2x = 4"}]
        assert kwargs["max_tokens"] == 4096
        assert kwargs["model"] == "claude-test"
        assert response.content == "Step 1: x = 2"
        assert response.usage == {"prompt_tokens": 10, "completion_tokens": 4, "total_tokens": 14}
