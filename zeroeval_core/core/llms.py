"""
Provider calls for the proxy and the gateway, made through litellm so one
code path serves every provider with an OpenAI-shaped response.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

from litellm import acompletion

from zeroeval_core.core.model_resolver import get_provider_api_key
from zeroeval_core.utils import calculate_llm_usage_cost, safe_int

logger = logging.getLogger(__name__)


class ProviderCallError(Exception):
    """Raised when the upstream provider call fails."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


# litellm connection, credential and test hooks; never taken from a caller
RESERVED_PARAMS = frozenset(
    {
        "api_key",
        "api_base",
        "base_url",
        "api_version",
        "organization",
        "custom_llm_provider",
        "headers",
        "extra_headers",
        "extra_query",
        "extra_body",
        "mock_response",
        "timeout",
        "max_retries",
        "deployment_id",
        "aws_access_key_id",
        "aws_secret_access_key",
        "aws_region_name",
        "vertex_credentials",
        "vertex_project",
        "vertex_location",
        "metadata",
        "callbacks",
        "model",
        "messages",
        "stream",
    }
)


def _completion_kwargs(
    provider: str, model_name: str, messages: list[dict[str, Any]], params: dict
) -> dict:
    dropped = sorted(key for key in params if key in RESERVED_PARAMS)
    if dropped:
        logger.warning(f"Ignoring reserved provider parameters: {dropped}")
    return {
        **{key: value for key, value in params.items() if key not in RESERVED_PARAMS},
        "model": f"{provider}/{model_name}",
        "messages": messages,
        "api_key": get_provider_api_key(provider),
    }


def extract_usage(response: dict) -> dict:
    """Token usage and cost from an OpenAI-shaped response dict."""
    usage = response.get("usage") or {}
    prompt_tokens = safe_int(usage.get("prompt_tokens"))
    completion_tokens = safe_int(usage.get("completion_tokens"))
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "cost": calculate_llm_usage_cost(
            response.get("model") or "", prompt_tokens, completion_tokens
        ),
    }


async def call_chat_completion(
    provider: str,
    model_name: str,
    messages: list[dict[str, Any]],
    params: dict | None = None,
) -> dict:
    """Call the provider and return the response as a plain dict."""
    try:
        response = await acompletion(
            **_completion_kwargs(provider, model_name, messages, params or {})
        )
    except Exception as e:
        logger.error(f"Provider call failed for {provider}/{model_name}: {e}")
        raise ProviderCallError(provider, str(e)) from e

    return response.model_dump()


async def open_chat_completion_stream(
    provider: str,
    model_name: str,
    messages: list[dict[str, Any]],
    params: dict | None = None,
) -> AsyncIterator[dict]:
    """Open a streaming call; connection errors surface here, before streaming."""
    try:
        stream = await acompletion(
            stream=True,
            **_completion_kwargs(provider, model_name, messages, params or {}),
        )
    except Exception as e:
        logger.error(f"Provider stream failed for {provider}/{model_name}: {e}")
        raise ProviderCallError(provider, str(e)) from e

    async def _chunks() -> AsyncIterator[dict]:
        async for chunk in stream:
            yield chunk.model_dump()

    return _chunks()
