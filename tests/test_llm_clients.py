"""
LLM client retry and error-wrapping tests.
"""

from typing import Optional

import httpx
import openai
import pytest
from tenacity import wait_none

from ghostwriter.core.exceptions import UpstreamServiceError
from ghostwriter.core.llm_clients import BaseLLMClient, LLMMessage, LLMProvider, LLMResponse


class ScriptedClient(BaseLLMClient):
    """Provider client whose calls raise or answer from a script."""

    PROVIDER = LLMProvider.OPENAI
    PRICING = {"scripted": {"input": 0.0, "output": 0.0}}
    DEFAULT_PRICING_MODEL = "scripted"
    RETRY_WAIT = wait_none()

    def __init__(self, settings, script: list):
        super().__init__(settings)
        self.script = list(script)
        self.calls = 0

    async def _generate(self, messages, model: Optional[str], temperature, max_tokens, json_mode) -> LLMResponse:
        self.calls += 1
        outcome = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(outcome, Exception):
            raise outcome
        return LLMResponse(
            content=outcome,
            model="scripted",
            provider=self.PROVIDER,
            tokens_used=0,
            prompt_tokens=0,
            completion_tokens=0,
            estimated_cost=0.0,
        )


def _timeout() -> openai.APITimeoutError:
    return openai.APITimeoutError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))


MESSAGES = [LLMMessage(role="user", content="hello")]


@pytest.mark.asyncio
async def test_sdk_timeout_is_retried(settings):
    client = ScriptedClient(settings, [_timeout(), "recovered"])

    response = await client.generate(MESSAGES)

    assert response.content == "recovered"
    assert client.calls == 2


@pytest.mark.asyncio
async def test_exhausted_retries_raise_upstream_error(settings):
    client = ScriptedClient(settings, [_timeout()])

    with pytest.raises(UpstreamServiceError) as exc_info:
        await client.generate(MESSAGES)

    assert exc_info.value.service == "openai"
    assert isinstance(exc_info.value.__cause__, openai.APITimeoutError)
    assert client.calls == settings.llm_max_retries


@pytest.mark.asyncio
async def test_non_transient_error_fails_without_retry(settings):
    client = ScriptedClient(settings, [ValueError("bad request body")])

    with pytest.raises(UpstreamServiceError, match="ValueError: bad request body"):
        await client.generate(MESSAGES)

    assert client.calls == 1
