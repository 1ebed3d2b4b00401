"""Tests for the LLM client module."""

import json
from types import SimpleNamespace

import pytest

from config.settings import Settings
from core.errors import MalformedResponseError
from llm.client import (
    AnthropicClient,
    GeminiClient,
    LLMProvider,
    OllamaClient,
    OpenAIClient,
    _extract_json,
    _to_chat_roles,
    _with_schema_instruction,
    detect_provider,
    get_llm_client,
)


class TestExtractJson:
    """Tests for JSON extraction from LLM responses."""

    def test_plain_json(self):
        result = _extract_json('{"analysisTitle": "Q1", "chartType": "bar"}')
        assert result["analysisTitle"] == "Q1"
        assert result["chartType"] == "bar"

    def test_json_in_markdown_code_block(self):
        result = _extract_json('```json\n{"steps": []}\n```')
        assert result == {"steps": []}

    def test_json_with_surrounding_text(self):
        result = _extract_json('Here is the plan: {"identifiedColumns": ["a"]} hope it helps.')
        assert result["identifiedColumns"] == ["a"]

    def test_invalid_json_raises(self):
        with pytest.raises(MalformedResponseError) as exc:
            _extract_json("This is not JSON at all.")
        assert exc.value.cause == "malformed_response"

    def test_empty_string_raises(self):
        with pytest.raises(MalformedResponseError):
            _extract_json("")

    def test_json_array_is_not_an_object(self):
        with pytest.raises(MalformedResponseError):
            _extract_json("[1, 2, 3]")


class TestMessageShaping:
    def test_model_role_becomes_assistant(self):
        shaped = _to_chat_roles([
            {"role": "user", "content": "ctx"},
            {"role": "model", "content": "ack"},
        ])
        assert [m["role"] for m in shaped] == ["user", "assistant"]

    def test_gemini_keeps_model_role(self):
        contents = GeminiClient._contents([
            {"role": "user", "content": "ctx"},
            {"role": "model", "content": "ack"},
        ])
        assert contents[1] == {"role": "model", "parts": [{"text": "ack"}]}

    def test_schema_instruction_appended(self):
        system = _with_schema_instruction("Be brief.", {"type": "OBJECT"})
        assert system.startswith("Be brief.")
        assert json.dumps({"type": "OBJECT"}) in system

    def test_no_schema_leaves_system_alone(self):
        assert _with_schema_instruction("Be brief.", None) == "Be brief."
        assert _with_schema_instruction(None, None) is None


class _AsyncChunks:
    def __init__(self, items):
        self._items = list(items)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._items:
            raise StopAsyncIteration
        return self._items.pop(0)


class TestProviderClients:
    """Provider calls against stand-in SDK objects; no network."""

    @pytest.mark.asyncio
    async def test_openai_complete_requests_json_object(self):
        client = OpenAIClient(api_key="sk-test-key-long-enough-123", model="gpt-4o-mini")
        seen = {}

        async def create(**kwargs):
            seen.update(kwargs)
            message = SimpleNamespace(content='{"ok": true}')
            return SimpleNamespace(choices=[SimpleNamespace(message=message)])

        client._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
        result = await client.complete_json(
            [{"role": "user", "content": "plan"}], response_schema={"type": "OBJECT"}
        )
        assert result == {"ok": True}
        assert seen["response_format"] == {"type": "json_object"}
        assert seen["messages"][0]["role"] == "system"

    @pytest.mark.asyncio
    async def test_openai_stream_yields_deltas(self):
        client = OpenAIClient(api_key="sk-test-key-long-enough-123")

        def chunk(text):
            return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])

        async def create(**kwargs):
            assert kwargs["stream"] is True
            return _AsyncChunks([chunk("Hel"), chunk(None), chunk("lo")])

        client._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
        parts = [p async for p in client.stream([{"role": "user", "content": "hi"}])]
        assert parts == ["Hel", "lo"]

    @pytest.mark.asyncio
    async def test_anthropic_complete_translates_roles(self):
        client = AnthropicClient(api_key="sk-ant-REDACTED")
        seen = {}

        async def create(**kwargs):
            seen.update(kwargs)
            return SimpleNamespace(content=[SimpleNamespace(text="answer")])

        client._client = SimpleNamespace(messages=SimpleNamespace(create=create))
        text = await client.complete([
            {"role": "user", "content": "q"},
            {"role": "model", "content": "a"},
            {"role": "user", "content": "q2"},
        ])
        assert text == "answer"
        assert [m["role"] for m in seen["messages"]] == ["user", "assistant", "user"]


class TestDetectProvider:
    def test_nothing_configured(self):
        assert detect_provider(Settings(_env_file=None)) is None

    def test_explicit_provider_wins(self):
        settings = Settings(_env_file=None, LLM_PROVIDER="OpenAI", GEMINI_API_KEY="g" * 30)
        assert detect_provider(settings) == "openai"

    def test_gemini_key_detected(self):
        assert detect_provider(Settings(_env_file=None, GEMINI_API_KEY="g" * 30)) == "gemini"

    def test_google_api_key_alias(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "g" * 30)
        assert detect_provider(Settings(_env_file=None)) == "gemini"

    def test_ollama_model_detected(self):
        assert detect_provider(Settings(_env_file=None, OLLAMA_MODEL="llama3.1")) == "ollama"

    def test_returns_provider_member(self):
        provider = detect_provider(Settings(_env_file=None, ANTHROPIC_API_KEY="sk-ant-" + "k" * 30))
        assert provider is LLMProvider.ANTHROPIC

    def test_unknown_explicit_provider(self):
        assert detect_provider(Settings(_env_file=None, LLM_PROVIDER="watsonx", GEMINI_API_KEY="g" * 30)) is None


class TestGetLLMClient:
    """Tests for the client factory function."""

    def test_no_configuration_returns_none(self):
        assert get_llm_client(settings=Settings(_env_file=None)) is None

    def test_unknown_provider_returns_none(self):
        assert get_llm_client(provider="nonexistent", settings=Settings(_env_file=None)) is None

    def test_gemini_from_settings(self):
        client = get_llm_client(settings=Settings(_env_file=None, GEMINI_API_KEY="g" * 30))
        assert isinstance(client, GeminiClient)
        assert client.api_key == "g" * 30
        assert client.model == "gemini-2.5-flash"

    def test_accepts_provider_member(self):
        client = get_llm_client(provider=LLMProvider.OPENAI, api_key="sk-" + "o" * 30,
                                settings=Settings(_env_file=None))
        assert isinstance(client, OpenAIClient)
        assert client.provider is LLMProvider.OPENAI
        assert client.model == "gpt-4o-mini"

    def test_explicit_provider_and_model(self):
        client = get_llm_client(provider="anthropic", api_key="sk-ant-x", model="claude-x",
                                settings=Settings(_env_file=None))
        assert isinstance(client, AnthropicClient)
        assert client.model == "claude-x"

    def test_ollama_uses_base_url(self):
        settings = Settings(_env_file=None, OLLAMA_MODEL="mistral", OLLAMA_BASE_URL="http://gpu:11434/")
        client = get_llm_client(settings=settings)
        assert isinstance(client, OllamaClient)
        assert client.model == "mistral"
        assert client.base_url == "http://gpu:11434"
