"""
LLM client abstraction for OpenAI, Anthropic, and Google Gemini.
Provides a unified completion interface with retry logic, timeouts and cost estimation.
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

import anthropic
import google.generativeai as genai
import openai
import structlog
from anthropic import AsyncAnthropic
from google.api_core import exceptions as google_exceptions
from openai import AsyncOpenAI
from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ghostwriter.core.config import Settings
from ghostwriter.core.exceptions import UpstreamServiceError

logger = structlog.get_logger(__name__)

# Worth another attempt; anything else fails the call immediately
TRANSIENT_ERRORS = (
    TimeoutError,
    ConnectionError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
    google_exceptions.DeadlineExceeded,
    google_exceptions.ServiceUnavailable,
    google_exceptions.ResourceExhausted,
)


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


class LLMMessage(BaseModel):
    """Message format for LLM conversations."""
    role: str  # "system", "user", "assistant"
    content: str


class LLMResponse(BaseModel):
    """Standardized LLM response."""
    content: str
    model: str
    provider: LLMProvider
    tokens_used: int
    prompt_tokens: int
    completion_tokens: int
    estimated_cost: float


class BaseLLMClient(ABC):
    """Abstract base class for provider clients."""

    PROVIDER: LLMProvider
    PRICING: dict[str, dict[str, float]] = {}
    DEFAULT_PRICING_MODEL = ""
    RETRY_WAIT = wait_exponential(multiplier=1, min=2, max=10)

    def __init__(self, settings: Settings):
        self.settings = settings

    def _estimate_cost(self, model: str, prompt_tokens: int, completion_tokens: int) -> float:
        """Estimate cost based on token usage."""
        pricing = self.PRICING.get(model, self.PRICING[self.DEFAULT_PRICING_MODEL])
        input_cost = (prompt_tokens / 1000) * pricing["input"]
        output_cost = (completion_tokens / 1000) * pricing["output"]
        return round(input_cost + output_cost, 6)

    async def generate(
        self,
        messages: list[LLMMessage],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """
        Generate a completion with timeout and retry on transient errors.

        Raises:
            UpstreamServiceError: The provider call failed, after retries for transient errors
        """
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(TRANSIENT_ERRORS),
                stop=stop_after_attempt(self.settings.llm_max_retries),
                wait=self.RETRY_WAIT,
                reraise=True,
            ):
                with attempt:
                    return await asyncio.wait_for(
                        self._generate(
                            messages,
                            model=model,
                            temperature=temperature if temperature is not None else self.settings.llm_temperature,
                            max_tokens=max_tokens or self.settings.llm_max_tokens,
                            json_mode=json_mode,
                        ),
                        timeout=self.settings.llm_timeout,
                    )
        except Exception as e:
            logger.error("LLM call failed", provider=self.PROVIDER.value, error_type=type(e).__name__, error=str(e))
            raise UpstreamServiceError(self.PROVIDER.value, f"{type(e).__name__}: {e}") from e
        raise RuntimeError("unreachable")

    @abstractmethod
    async def _generate(
        self,
        messages: list[LLMMessage],
        model: Optional[str],
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ) -> LLMResponse:
        """Single provider call without retry."""


class OpenAIClient(BaseLLMClient):
    """OpenAI API client."""

    PROVIDER = LLMProvider.OPENAI

    # Pricing per 1K tokens
    PRICING = {
        "gpt-4o": {"input": 0.0025, "output": 0.01},
        "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
        "gpt-4-turbo": {"input": 0.01, "output": 0.03},
    }
    DEFAULT_PRICING_MODEL = "gpt-4o"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.client = AsyncOpenAI(api_key=settings.openai_api_key)
        self.default_model = settings.openai_model_primary

    async def _generate(self, messages, model, temperature, max_tokens, json_mode) -> LLMResponse:
        model = model or self.default_model
        request_params = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if json_mode:
            request_params["response_format"] = {"type": "json_object"}

        logger.debug("OpenAI request", model=model, message_count=len(messages))

        response = await self.client.chat.completions.create(**request_params)

        prompt_tokens = response.usage.prompt_tokens if response.usage else 0
        completion_tokens = response.usage.completion_tokens if response.usage else 0

        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=model,
            provider=LLMProvider.OPENAI,
            tokens_used=prompt_tokens + completion_tokens,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            estimated_cost=self._estimate_cost(model, prompt_tokens, completion_tokens),
        )


class AnthropicClient(BaseLLMClient):
    """Anthropic API client."""

    PROVIDER = LLMProvider.ANTHROPIC

    # Pricing per 1K tokens
    PRICING = {
        "claude-3-5-sonnet-20241022": {"input": 0.003, "output": 0.015},
        "claude-3-opus-20240229": {"input": 0.015, "output": 0.075},
        "claude-3-haiku-20240307": {"input": 0.00025, "output": 0.00125},
    }
    DEFAULT_PRICING_MODEL = "claude-3-5-sonnet-20241022"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.client = AsyncAnthropic(api_key=settings.anthropic_api_key)
        self.default_model = settings.anthropic_model_primary

    async def _generate(self, messages, model, temperature, max_tokens, json_mode) -> LLMResponse:
        model = model or self.default_model

        # Separate system message from conversation
        system_message = ""
        conversation_messages = []

        for msg in messages:
            if msg.role == "system":
                system_message = msg.content
            else:
                conversation_messages.append({
                    "role": msg.role,
                    "content": msg.content,
                })

        # No native JSON mode; the prompt already demands a bare JSON object
        if json_mode:
            system_message = f"{system_message}\nRespond with a single JSON object only.".strip()

        logger.debug("Anthropic request", model=model, message_count=len(messages))

        request_params = {
            "model": model,
            "messages": conversation_messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        if system_message:
            request_params["system"] = system_message

        response = await self.client.messages.create(**request_params)

        prompt_tokens = response.usage.input_tokens
        completion_tokens = response.usage.output_tokens

        return LLMResponse(
            content=response.content[0].text if response.content else "",
            model=model,
            provider=LLMProvider.ANTHROPIC,
            tokens_used=prompt_tokens + completion_tokens,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            estimated_cost=self._estimate_cost(model, prompt_tokens, completion_tokens),
        )


class GeminiClient(BaseLLMClient):
    """Google Gemini API client."""

    PROVIDER = LLMProvider.GOOGLE

    # Pricing per 1K tokens
    PRICING = {
        "gemini-1.5-pro-latest": {"input": 0.00125, "output": 0.005},
        "gemini-1.5-pro": {"input": 0.00125, "output": 0.005},
        "gemini-1.5-flash-latest": {"input": 0.000075, "output": 0.0003},
        "gemini-1.5-flash": {"input": 0.000075, "output": 0.0003},
    }
    DEFAULT_PRICING_MODEL = "gemini-1.5-pro"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        genai.configure(api_key=settings.google_api_key)
        self.default_model = settings.google_model_primary

    def _convert_messages(self, messages: list[LLMMessage]) -> tuple[str, list[dict]]:
        """Convert messages to Gemini format, extracting system instruction."""
        system_instruction = ""
        gemini_messages = []

        for msg in messages:
            if msg.role == "system":
                system_instruction = msg.content
            elif msg.role == "user":
                gemini_messages.append({"role": "user", "parts": [msg.content]})
            elif msg.role == "assistant":
                gemini_messages.append({"role": "model", "parts": [msg.content]})

        return system_instruction, gemini_messages

    async def _generate(self, messages, model, temperature, max_tokens, json_mode) -> LLMResponse:
        model_name = model or self.default_model
        system_instruction, gemini_messages = self._convert_messages(messages)

        logger.debug("Gemini request", model=model_name, message_count=len(messages))

        generation_config = genai.GenerationConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
            response_mime_type="application/json" if json_mode else None,
        )

        model_instance = genai.GenerativeModel(
            model_name=model_name,
            system_instruction=system_instruction or None,
            generation_config=generation_config,
        )

        def _generate_sync():
            chat = model_instance.start_chat(history=gemini_messages[:-1] if len(gemini_messages) > 1 else [])
            last_message = gemini_messages[-1]["parts"][0] if gemini_messages else ""
            return chat.send_message(last_message)

        # genai is sync
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(None, _generate_sync)

        prompt_tokens = getattr(response.usage_metadata, "prompt_token_count", 0)
        completion_tokens = getattr(response.usage_metadata, "candidates_token_count", 0)

        return LLMResponse(
            content=response.text,
            model=model_name,
            provider=LLMProvider.GOOGLE,
            tokens_used=prompt_tokens + completion_tokens,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            estimated_cost=self._estimate_cost(model_name, prompt_tokens, completion_tokens),
        )


class LLMClient:
    """
    Unified LLM client that routes to the configured provider.

    `complete` is the single entry point the rest of the application uses:
    prompt in, text out, with an optional "force valid JSON" mode.
    """

    def __init__(self, settings: Settings, default_provider: Optional[LLMProvider] = None):
        self.settings = settings
        # Lazy initialization - only build clients that are actually used
        self._openai: Optional[OpenAIClient] = None
        self._anthropic: Optional[AnthropicClient] = None
        self._gemini: Optional[GeminiClient] = None

        if default_provider:
            self.default_provider = default_provider
        else:
            provider_map = {
                "google": LLMProvider.GOOGLE,
                "openai": LLMProvider.OPENAI,
                "anthropic": LLMProvider.ANTHROPIC,
            }
            self.default_provider = provider_map.get(
                settings.default_llm_provider.lower(),
                LLMProvider.OPENAI,
            )

    @property
    def openai(self) -> OpenAIClient:
        if self._openai is None:
            self._openai = OpenAIClient(self.settings)
        return self._openai

    @property
    def anthropic(self) -> AnthropicClient:
        if self._anthropic is None:
            self._anthropic = AnthropicClient(self.settings)
        return self._anthropic

    @property
    def gemini(self) -> GeminiClient:
        if self._gemini is None:
            self._gemini = GeminiClient(self.settings)
        return self._gemini

    def _get_client(self, provider: Optional[LLMProvider] = None) -> BaseLLMClient:
        """Get client for specified provider."""
        provider = provider or self.default_provider
        if provider == LLMProvider.ANTHROPIC:
            return self.anthropic
        elif provider == LLMProvider.GOOGLE:
            return self.gemini
        return self.openai

    async def generate(
        self,
        messages: list[LLMMessage],
        provider: Optional[LLMProvider] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate completion using specified provider."""
        client = self._get_client(provider)
        response = await client.generate(
            messages=messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=json_mode,
        )
        logger.debug(
            "LLM completion",
            provider=response.provider.value,
            model=response.model,
            tokens=response.tokens_used,
            estimated_cost=response.estimated_cost,
        )
        return response

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False,
    ) -> str:
        """Generate text for a single prompt using the primary model."""
        messages = []
        if system_prompt:
            messages.append(LLMMessage(role="system", content=system_prompt))
        messages.append(LLMMessage(role="user", content=prompt))

        response = await self.generate(
            messages=messages,
            temperature=temperature,
            json_mode=json_mode,
        )
        return response.content
