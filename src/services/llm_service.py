import asyncio
import json
import structlog
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import openai
import anthropic
import google.generativeai as genai

from ..config import Settings, get_settings
from ..core.exceptions import ProviderError

logger = structlog.get_logger(__name__)


class LLMProvider(str, Enum):
    GROQ = "groq"
    GOOGLE = "google"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


@dataclass
class ProviderResult:
    """Outcome of one provider attempt. ``value`` is set only on success."""
    provider: str
    value: Any = None
    error: Optional[str] = None
    raw_text: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Return the first balanced ``{...}`` block of ``text`` that decodes to a dict.

    Tolerates surrounding prose and markdown code fences. Braces inside JSON
    strings are ignored while balancing.
    """
    if not text:
        return None

    try:
        parsed = json.loads(text.strip())
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    start = text.find('{')
    while start != -1:
        end = _balanced_end(text, start)
        if end is None:
            # Stray brace in prose; a later block may still balance
            start = text.find('{', start + 1)
            continue
        try:
            parsed = json.loads(text[start:end + 1])
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass
        start = text.find('{', start + 1)

    return None


def _balanced_end(text: str, start: int) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                return i
    return None


class BaseLLMProvider(ABC):
    """One text-generation backend. Subclasses implement ``_complete``."""

    name: LLMProvider

    def __init__(self, api_key: Optional[str], model_name: str, settings: Optional[Settings] = None):
        self.api_key = api_key
        self.model_name = model_name
        self.settings = settings or get_settings()
        self._client = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    async def _complete(self, prompt: str) -> Optional[str]:
        """Send ``prompt`` and return the generated text."""

    async def attempt(self, prompt: str, parse: Callable[[str], Any]) -> ProviderResult:
        """
        Run one generation and validate it with ``parse``.

        Any failure (SDK error, timeout, empty payload, rejected output)
        is returned as an unsuccessful ProviderResult instead of raised.
        """
        provider = self.name.value
        if not self.is_configured:
            return ProviderResult(provider=provider, error="not configured")

        try:
            text = await asyncio.wait_for(self._complete(prompt), timeout=self.settings.llm_timeout_seconds)
            if not text or not text.strip():
                raise ProviderError(provider, "empty response")

            value = parse(text)
            if value is None:
                raise ProviderError(provider, "response did not contain a usable JSON object")

            logger.info("Provider generation completed", provider=provider, model=self.model_name, response_length=len(text))
            return ProviderResult(provider=provider, value=value, raw_text=text)

        except ProviderError as e:
            logger.warning("Provider output rejected", provider=provider, error=e.message)
            return ProviderResult(provider=provider, error=e.message)
        except asyncio.TimeoutError:
            logger.warning("Provider timed out", provider=provider, timeout=self.settings.llm_timeout_seconds)
            return ProviderResult(provider=provider, error="timed out")
        except Exception as e:
            logger.warning("Provider call failed", provider=provider, error=str(e))
            return ProviderResult(provider=provider, error=str(e) or e.__class__.__name__)


class GroqProvider(BaseLLMProvider):
    """Groq through its OpenAI-compatible endpoint."""

    name = LLMProvider.GROQ

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.settings.groq_base_url,
                timeout=self.settings.llm_timeout_seconds,
            )
        return self._client

    async def _complete(self, prompt: str) -> Optional[str]:
        response = await self._get_client().chat.completions.create(
            model=self.model_name,
            temperature=self.settings.llm_temperature,
            max_tokens=self.settings.llm_max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        if not response.choices:
            return None
        return response.choices[0].message.content


class OpenAIProvider(GroqProvider):
    name = LLMProvider.OPENAI

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self.api_key, timeout=self.settings.llm_timeout_seconds)
        return self._client


class GeminiProvider(BaseLLMProvider):
    name = LLMProvider.GOOGLE

    def _get_client(self) -> "genai.GenerativeModel":
        if self._client is None:
            genai.configure(api_key=self.api_key)
            self._client = genai.GenerativeModel(self.model_name)
        return self._client

    async def _complete(self, prompt: str) -> Optional[str]:
        generation_config = genai.types.GenerationConfig(
            temperature=self.settings.llm_temperature,
            max_output_tokens=self.settings.llm_max_tokens,
        )
        response = await self._get_client().generate_content_async(
            prompt,
            generation_config=generation_config,
            request_options={"timeout": self.settings.llm_timeout_seconds},
        )
        # .text raises when the candidate was blocked or carries no parts
        try:
            return response.text
        except ValueError as e:
            raise ProviderError(self.name.value, f"no text in response: {e}")


class AnthropicProvider(BaseLLMProvider):
    name = LLMProvider.ANTHROPIC

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key, timeout=self.settings.llm_timeout_seconds)
        return self._client

    async def _complete(self, prompt: str) -> Optional[str]:
        response = await self._get_client().messages.create(
            model=self.model_name,
            max_tokens=self.settings.llm_max_tokens,
            temperature=self.settings.llm_temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        texts = [block.text for block in response.content if getattr(block, "type", None) == "text"]
        return "".join(texts) or None


def build_providers(settings: Optional[Settings] = None) -> List[BaseLLMProvider]:
    """All providers in fallback order, fastest and cheapest first."""
    settings = settings or get_settings()
    return [
        GroqProvider(settings.groq_api_key, settings.groq_model_name, settings),
        GeminiProvider(settings.google_api_key, settings.google_model_name, settings),
        OpenAIProvider(settings.openai_api_key, settings.openai_model_name, settings),
        AnthropicProvider(settings.anthropic_api_key, settings.anthropic_model_name, settings),
    ]


def get_available_providers(providers: List[BaseLLMProvider]) -> List[str]:
    return [provider.name.value for provider in providers if provider.is_configured]
