"""
Client helpers for the A/B proxy (``/proxy``) and the OpenAI-compatible
gateway (``/v1``). Both speak the Chat Completions API, so the stock
``openai`` client works against them once pointed at the right base URL.
"""

from typing import Any, Literal

from openai import AsyncOpenAI, OpenAI

from zeroeval.client import get_client
from zeroeval.config import get_settings
from zeroeval.exceptions import ConfigurationError

TEST_MODEL_PREFIX = "zeroeval"

Surface = Literal["proxy", "v1"]


def ab_test_model(test_id: str) -> str:
    """Model string that routes a proxy request through an A/B test."""
    if not test_id:
        raise ValueError("test_id must be a non-empty string")
    return f"{TEST_MODEL_PREFIX}/{test_id}"


def parse_model(model: str) -> tuple[str, str]:
    """``("test", TEST_ID)`` for ``zeroeval/<TEST_ID>``, else ``("direct", model)``."""
    provider, sep, name = model.partition("/")
    if not sep or not provider or not name:
        raise ValueError(
            f"Model '{model}' must look like 'provider/model' or 'zeroeval/<TEST_ID>'"
        )
    if provider == TEST_MODEL_PREFIX:
        return "test", name
    return "direct", model


def _check_surface(surface: str) -> None:
    if surface not in ("proxy", "v1"):
        raise ValueError(f"Unknown surface '{surface}', expected 'proxy' or 'v1'")


def get_openai_client(
    surface: Surface = "proxy",
    async_client: bool = False,
    **client_kwargs: Any,
) -> OpenAI | AsyncOpenAI:
    _check_surface(surface)
    settings = get_settings()
    if not settings.api_key:
        raise ConfigurationError(
            "No API key configured. Set ZEROEVAL_API_KEY or run `zeroeval setup`."
        )
    client_cls = AsyncOpenAI if async_client else OpenAI
    return client_cls(
        api_key=settings.api_key,
        base_url=f"{settings.api_url}/{surface}",
        **client_kwargs,
    )


def list_models(surface: Surface = "proxy") -> list[dict[str, Any]]:
    _check_surface(surface)
    response = get_client().request("GET", f"/{surface}/models")
    return response.get("data", [])
