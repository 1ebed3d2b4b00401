"""
LLM Client - Provider-agnostic interface for Gemini, OpenAI, Anthropic, and Ollama
"""

import asyncio
import json
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from core.errors import MalformedResponseError

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


DEFAULT_MODELS = {
    LLMProvider.GEMINI: "gemini-2.5-flash",
    LLMProvider.OPENAI: "gpt-4o-mini",
    LLMProvider.ANTHROPIC: "claude-3-5-sonnet-20240620",
    LLMProvider.OLLAMA: "llama3.1",
}


class LLMClient(ABC):
    """Abstract LLM client interface.

    Messages are dicts with ``role`` ("user" or "model") and ``content``.
    Providers that call the model turn "assistant" translate on the way out.
    """

    model: str = ""

    @abstractmethod
    async def complete(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        response_schema: Optional[Dict[str, Any]] = None,
        model: Optional[str] = None,
    ) -> str:
        """Send messages and return the model's full text response."""
        pass

    @abstractmethod
    def stream(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        model: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """Send messages and yield text increments as they arrive."""
        pass

    async def complete_json(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 2048,
        response_schema: Optional[Dict[str, Any]] = None,
        model: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send messages and parse the response as a JSON object."""
        text = await self.complete(
            messages,
            system=system,
            temperature=temperature,
            max_tokens=max_tokens,
            response_schema=response_schema,
            model=model,
        )
        return _extract_json(text)


class ValidationStatus(str, Enum):
    """Provider status reported by ``/llm/status``."""

    SUCCESS = "SUCCESS"
    AUTH_FAILED = "AUTH_FAILED"
    RATE_LIMITED = "RATE_LIMITED"
    MISCONFIGURED = "MISCONFIGURED"
    UNAVAILABLE = "UNAVAILABLE"
    INVALID_RESPONSE = "INVALID_RESPONSE"

    @classmethod
    def from_state(cls, state: str) -> "ValidationStatus":
        return _STATUS_BY_STATE.get(state, cls.MISCONFIGURED)


# Lower-case states double as AnalysisServiceError causes.
_STATUS_BY_STATE = {
    "connected": ValidationStatus.SUCCESS,
    "auth_failed": ValidationStatus.AUTH_FAILED,
    "rate_limited": ValidationStatus.RATE_LIMITED,
    "misconfigured": ValidationStatus.MISCONFIGURED,
    "unavailable": ValidationStatus.UNAVAILABLE,
    "invalid_response": ValidationStatus.INVALID_RESPONSE,
}


@dataclass
class LLMValidationResult:
    state: str
    message: str
    provider: str = "none"
    model: str = "none"
    latency_ms: Optional[float] = None

    @property
    def status(self) -> ValidationStatus:
        return ValidationStatus.from_state(self.state)

    @property
    def is_ready(self) -> bool:
        """Only a passed ping counts; a configured key alone does not."""
        return self.state == "connected"

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["status"] = self.status.value
        d["is_ready"] = self.is_ready
        return d


def _with_schema_instruction(system: Optional[str], response_schema: Optional[Dict[str, Any]]) -> Optional[str]:
    """Providers without native schema support get the schema in the system prompt."""
    if not response_schema:
        return system
    instruction = (
        "Respond ONLY with a JSON object that matches this schema "
        "(no markdown, no commentary):\n" + json.dumps(response_schema)
    )
    return f"{system}\n\n{instruction}" if system else instruction


def _to_chat_roles(messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
    return [
        {"role": "assistant" if m["role"] == "model" else m["role"], "content": m["content"]}
        for m in messages
    ]


class GeminiClient(LLMClient):
    """Google Gemini client (google-genai SDK)."""

    provider = LLMProvider.GEMINI

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODELS[LLMProvider.GEMINI]):
        self.api_key = api_key or os.getenv("GEMINI_API_KEY", "") or os.getenv("GOOGLE_API_KEY", "")
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _config(
        self,
        system: Optional[str],
        temperature: float,
        max_tokens: int,
        response_schema: Optional[Dict[str, Any]] = None,
    ):
        from google.genai import types

        kwargs: Dict[str, Any] = {"temperature": temperature, "max_output_tokens": max_tokens}
        if system:
            kwargs["system_instruction"] = system
        if response_schema:
            kwargs["response_mime_type"] = "application/json"
            kwargs["response_schema"] = response_schema
        return types.GenerateContentConfig(**kwargs)

    @staticmethod
    def _contents(messages: List[Dict[str, str]]) -> List[Dict[str, Any]]:
        return [
            {"role": "model" if m["role"] == "model" else "user", "parts": [{"text": m["content"]}]}
            for m in messages
        ]

    async def complete(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        response_schema: Optional[Dict[str, Any]] = None,
        model: Optional[str] = None,
    ) -> str:
        client = self._get_client()
        response = await client.aio.models.generate_content(
            model=model or self.model,
            contents=self._contents(messages),
            config=self._config(system, temperature, max_tokens, response_schema),
        )
        return (response.text or "").strip()

    async def stream(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        model: Optional[str] = None,
    ) -> AsyncIterator[str]:
        client = self._get_client()
        response = await client.aio.models.generate_content_stream(
            model=model or self.model,
            contents=self._contents(messages),
            config=self._config(system, temperature, max_tokens),
        )
        async for chunk in response:
            if chunk.text:
                yield chunk.text


class OpenAIClient(LLMClient):
    """OpenAI API client."""

    provider = LLMProvider.OPENAI

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODELS[LLMProvider.OPENAI]):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY", "")
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    @staticmethod
    def _messages(messages: List[Dict[str, str]], system: Optional[str]) -> List[Dict[str, str]]:
        full_messages = []
        if system:
            full_messages.append({"role": "system", "content": system})
        full_messages.extend(_to_chat_roles(messages))
        return full_messages

    async def complete(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        response_schema: Optional[Dict[str, Any]] = None,
        model: Optional[str] = None,
    ) -> str:
        client = self._get_client()
        kwargs: Dict[str, Any] = {}
        if response_schema:
            kwargs["response_format"] = {"type": "json_object"}

        response = await client.chat.completions.create(
            model=model or self.model,
            messages=self._messages(messages, _with_schema_instruction(system, response_schema)),
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )
        return response.choices[0].message.content or ""

    async def stream(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        model: Optional[str] = None,
    ) -> AsyncIterator[str]:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=model or self.model,
            messages=self._messages(messages, system),
            temperature=temperature,
            max_tokens=max_tokens,
            stream=True,
        )
        async for chunk in response:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content


class AnthropicClient(LLMClient):
    """Anthropic API client."""

    provider = LLMProvider.ANTHROPIC

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODELS[LLMProvider.ANTHROPIC]):
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY", "")
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            from anthropic import AsyncAnthropic
            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def complete(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        response_schema: Optional[Dict[str, Any]] = None,
        model: Optional[str] = None,
    ) -> str:
        client = self._get_client()
        response = await client.messages.create(
            model=model or self.model,
            system=_with_schema_instruction(system, response_schema) or "",
            messages=_to_chat_roles(messages),
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.content[0].text if response.content else ""

    async def stream(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        model: Optional[str] = None,
    ) -> AsyncIterator[str]:
        client = self._get_client()
        async with client.messages.stream(
            model=model or self.model,
            system=system or "",
            messages=_to_chat_roles(messages),
            temperature=temperature,
            max_tokens=max_tokens,
        ) as response:
            async for text in response.text_stream:
                if text:
                    yield text


class OllamaClient(LLMClient):
    """Ollama local model client."""

    provider = LLMProvider.OLLAMA

    def __init__(self, model: str = DEFAULT_MODELS[LLMProvider.OLLAMA], base_url: str = "http://localhost:11434"):
        self.model = model
        self.base_url = base_url.rstrip("/")

    def _payload(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str],
        temperature: float,
        max_tokens: int,
        model: Optional[str],
        stream: bool,
    ) -> Dict[str, Any]:
        full_messages = []
        if system:
            full_messages.append({"role": "system", "content": system})
        full_messages.extend(_to_chat_roles(messages))
        return {
            "model": model or self.model,
            "messages": full_messages,
            "stream": stream,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }

    async def complete(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        response_schema: Optional[Dict[str, Any]] = None,
        model: Optional[str] = None,
    ) -> str:
        import aiohttp

        payload = self._payload(
            messages,
            _with_schema_instruction(system, response_schema),
            temperature,
            max_tokens,
            model,
            stream=False,
        )
        if response_schema:
            payload["format"] = "json"

        async with aiohttp.ClientSession() as session:
            async with session.post(f"{self.base_url}/api/chat", json=payload) as resp:
                resp.raise_for_status()
                data = await resp.json()
                return data.get("message", {}).get("content", "")

    async def stream(
        self,
        messages: List[Dict[str, str]],
        system: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        model: Optional[str] = None,
    ) -> AsyncIterator[str]:
        import aiohttp

        payload = self._payload(messages, system, temperature, max_tokens, model, stream=True)
        async with aiohttp.ClientSession() as session:
            async with session.post(f"{self.base_url}/api/chat", json=payload) as resp:
                resp.raise_for_status()
                # Ollama streams one JSON document per line
                async for raw in resp.content:
                    line = raw.decode("utf-8").strip()
                    if not line:
                        continue
                    data = json.loads(line)
                    text = data.get("message", {}).get("content", "")
                    if text:
                        yield text
                    if data.get("done"):
                        break


def _extract_json(text: str) -> Dict[str, Any]:
    """Extract a JSON object from LLM text, handling markdown code blocks.

    Raises:
        MalformedResponseError: When no JSON object can be recovered.
    """
    text = (text or "").strip()
    if text.startswith("```"):
        lines = text.split("\n")
        # Remove first and last ``` lines
        json_lines = []
        in_block = False
        for line in lines:
            if line.strip().startswith("```") and not in_block:
                in_block = True
                continue
            elif line.strip() == "```" and in_block:
                break
            elif in_block:
                json_lines.append(line)
        text = "\n".join(json_lines)

    parsed: Any = None
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        # Try to find JSON object in the text
        start = text.find("{")
        end = text.rfind("}") + 1
        if start != -1 and end > start:
            try:
                parsed = json.loads(text[start:end])
            except json.JSONDecodeError:
                parsed = None

    if not isinstance(parsed, dict):
        preview = text[:120] + ("..." if len(text) > 120 else "")
        raise MalformedResponseError(f"The AI service did not return a JSON object (got: {preview!r}).")
    return parsed


def detect_provider(settings=None) -> Optional[LLMProvider]:
    """Pick a provider from settings, then from whichever credential is present."""
    if settings is None:
        from config.settings import get_settings
        settings = get_settings()

    if settings.LLM_PROVIDER:
        try:
            return LLMProvider(settings.LLM_PROVIDER.lower())
        except ValueError:
            logger.warning("Unknown LLM_PROVIDER '%s', AI features are disabled.", settings.LLM_PROVIDER)
            return None
    if settings.GEMINI_API_KEY:
        return LLMProvider.GEMINI
    if settings.OPENAI_API_KEY:
        return LLMProvider.OPENAI
    if settings.ANTHROPIC_API_KEY:
        return LLMProvider.ANTHROPIC
    if settings.OLLAMA_MODEL:
        return LLMProvider.OLLAMA
    return None


def get_llm_client(
    provider: Optional[str] = None,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    settings=None,
) -> Optional[LLMClient]:
    """Factory function to create the appropriate LLM client.

    Auto-detects the provider from settings / environment when not given.
    Returns None when no provider is configured; analysis is never faked.
    """
    if settings is None:
        from config.settings import get_settings
        settings = get_settings()

    if provider is None:
        provider = detect_provider(settings)
        if provider is None:
            logger.info("No LLM credential found. AI features are disabled.")
            return None
    try:
        provider = LLMProvider(provider)
    except ValueError:
        logger.warning("Unknown provider '%s', AI features are disabled.", provider)
        return None

    if provider == LLMProvider.OLLAMA:
        return OllamaClient(
            model=model or settings.OLLAMA_MODEL or DEFAULT_MODELS[provider],
            base_url=settings.OLLAMA_BASE_URL,
        )
    model = model or DEFAULT_MODELS[provider]
    if provider == LLMProvider.GEMINI:
        return GeminiClient(api_key=api_key or settings.GEMINI_API_KEY, model=model)
    if provider == LLMProvider.OPENAI:
        return OpenAIClient(api_key=api_key or settings.OPENAI_API_KEY, model=model)
    return AnthropicClient(api_key=api_key or settings.ANTHROPIC_API_KEY, model=model)


PING_PROMPT = "Respond with token: OK"
MIN_KEY_LENGTH = 20

# Expected key prefix and where to get a key, per cloud provider.
KEY_FORMATS = {
    LLMProvider.GEMINI: ("", "https://aistudio.google.com/app/apikey"),
    LLMProvider.OPENAI: ("sk-", "https://platform.openai.com/api-keys"),
    LLMProvider.ANTHROPIC: ("sk-ant-", "https://console.anthropic.com/settings/keys"),
}


def check_key_format(provider: LLMProvider, api_key: Optional[str]) -> Optional[str]:
    """Return why ``api_key`` cannot belong to ``provider``, or None when it looks usable."""
    if provider not in KEY_FORMATS:
        return None
    prefix, help_url = KEY_FORMATS[provider]
    key = (api_key or "").strip()
    if not key:
        return f"No API key is set for {provider.value}. Get one at {help_url}"
    if prefix and not key.startswith(prefix):
        return f"The {provider.value} API key should start with '{prefix}'. Get one at {help_url}"
    if len(key) < MIN_KEY_LENGTH:
        return f"The {provider.value} API key is too short to be valid. Get one at {help_url}"
    return None


async def validate_llm_client(client: Optional[LLMClient]) -> LLMValidationResult:
    """Check the configured provider with a one-token ping.

    A malformed key is reported without calling the provider. Otherwise the
    ping must come back containing "OK" for the client to count as ready.
    """
    if client is None:
        return LLMValidationResult(
            state="misconfigured",
            message="No AI provider is configured. Set GEMINI_API_KEY or another provider's key.",
        )

    provider = getattr(client, "provider", None)
    name = provider.value if provider is not None else "unknown"
    model = getattr(client, "model", "") or "unknown"

    api_key = getattr(client, "api_key", None)
    problem = check_key_format(provider, api_key)
    if problem:
        state = "auth_failed" if api_key else "misconfigured"
        return LLMValidationResult(state=state, message=problem, provider=name, model=model)

    start = time.monotonic()
    try:
        reply = await client.complete(
            messages=[{"role": "user", "content": PING_PROMPT}],
            temperature=0.0,
            max_tokens=5,
        )
    except Exception as exc:
        state, message = classify_llm_error(exc)
        logger.warning("Provider ping failed for %s/%s: %s", name, model, exc)
        return LLMValidationResult(state, message, name, model, _elapsed_ms(start))

    latency_ms = _elapsed_ms(start)
    if not reply or "ok" not in reply.lower():
        return LLMValidationResult(
            state="invalid_response",
            message=f"{name} answered the ping without the expected token; check the model name.",
            provider=name,
            model=model,
            latency_ms=latency_ms,
        )
    return LLMValidationResult("connected", f"{name} is ready.", name, model, latency_ms)


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000


# (state, lower-case markers, message); first match wins.
_ERROR_RULES = (
    ("rate_limited", ("rate limit", "rate_limit", "429", "too many requests", "resource_exhausted"),
     "The AI provider is throttling requests. Wait a moment and try again."),
    ("auth_failed", ("insufficient_quota", "quota", "billing", "credit"),
     "The AI provider account has run out of quota or credits."),
    ("auth_failed", ("unauthorized", "invalid api key", "incorrect api key", "api_key_invalid",
                     "invalid x-api-key", "authentication", "permission denied", "401", "403"),
     "The AI provider rejected the API key. Check the key in your environment."),
    ("misconfigured", ("model not found", "model_not_found", "no such model", "invalid model", "does not exist"),
     "The configured model is not available to this API key. Check the model settings."),
    ("unavailable", ("connection", "timeout", "timed out", "dns", "unreachable", "refused", "network", "ssl"),
     "Could not reach the AI provider. Check your network connection."),
    ("unavailable", ("500", "502", "503", "504", "server error", "internal error", "overloaded"),
     "The AI provider returned a server error. Try again shortly."),
)

_NETWORK_ERRORS = (ConnectionError, TimeoutError, asyncio.TimeoutError)


def classify_llm_error(exc: Exception) -> Tuple[str, str]:
    """Map a provider exception to ``(state, message)``.

    ``state`` is one of the lower-case validation states and is used as the
    ``cause`` of the resulting AnalysisServiceError.
    """
    lowered = str(exc).lower()
    for state, markers, message in _ERROR_RULES:
        if any(marker in lowered for marker in markers):
            return state, message
    if isinstance(exc, _NETWORK_ERRORS):
        return "unavailable", "Could not reach the AI provider. Check your network connection."
    return "unavailable", f"The AI provider failed ({type(exc).__name__}: {str(exc)[:200]})."
