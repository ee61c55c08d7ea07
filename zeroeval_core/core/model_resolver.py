"""Model catalogue and ``provider/model`` resolution for the proxy and gateway.

Callers address models as ``provider/model`` (``openai/gpt-4o``) or, on the
proxy only, as ``zeroeval/<TEST_ID>`` to have the request routed across the
variants of an A/B test. A provider is only usable when its API key is
configured.
"""

import logging
from typing import Dict, List, Set, Tuple

from zeroeval_core.config import settings

logger = logging.getLogger(__name__)

TEST_MODEL_PREFIX = "zeroeval"

PROVIDER_KEY_SETTINGS: Dict[str, str] = {
    "openai": "openai_api_key",
    "anthropic": "anthropic_api_key",
    "gemini": "gemini_api_key",
}

# Models advertised by /proxy/models and /v1/models, grouped by provider.
MODELS_BY_PROVIDER: Dict[str, List[str]] = {
    "openai": ["gpt-4o", "gpt-4o-mini", "gpt-4.1", "gpt-4.1-mini", "gpt-5", "gpt-5-mini"],
    "anthropic": ["claude-sonnet-4-5", "claude-haiku-4-5", "claude-opus-4-1"],
    "gemini": ["gemini-2.5-pro", "gemini-2.5-flash", "gemini-2.5-flash-lite"],
}


class ModelResolutionError(ValueError):
    """Raised when a model string cannot be served."""


def get_available_providers() -> Set[str]:
    """Return providers that have a non-empty API key configured."""
    available: Set[str] = set()
    for provider, attr in PROVIDER_KEY_SETTINGS.items():
        if getattr(settings, attr):
            available.add(provider)
    return available


def get_provider_api_key(provider: str) -> str:
    return getattr(settings, PROVIDER_KEY_SETTINGS[provider])


def parse_model(model: str) -> Tuple[str, str]:
    """Split a request model string into ``(kind, target)``.

    ``kind`` is ``"test"`` for ``zeroeval/<TEST_ID>`` (target is the test id)
    and ``"direct"`` for ``provider/model`` (target is the full string).
    """
    prefix, sep, rest = model.partition("/")
    if not sep or not prefix or not rest:
        raise ModelResolutionError(
            f"Model '{model}' must be of the form provider/model or zeroeval/<TEST_ID>"
        )
    if prefix == TEST_MODEL_PREFIX:
        return "test", rest
    return "direct", model


def resolve_provider_model(model: str) -> Tuple[str, str]:
    """Return ``(provider, model_name)`` for a ``provider/model`` string.

    Raises ``ModelResolutionError`` for unknown or unconfigured providers.
    """
    provider, _, model_name = model.partition("/")
    if not model_name:
        raise ModelResolutionError(f"Model '{model}' must be of the form provider/model")
    if provider not in PROVIDER_KEY_SETTINGS:
        raise ModelResolutionError(f"Unknown provider '{provider}'")
    if provider not in get_available_providers():
        raise ModelResolutionError(f"Provider '{provider}' is not configured")

    logger.debug("Resolved model %s (provider=%s)", model_name, provider)
    return provider, model_name


def list_available_models() -> List[dict]:
    """OpenAI-style model entries for every configured provider."""
    available = get_available_providers()
    models: List[dict] = []
    for provider, provider_models in MODELS_BY_PROVIDER.items():
        if provider not in available:
            continue
        for model_name in provider_models:
            models.append(
                {
                    "id": f"{provider}/{model_name}",
                    "object": "model",
                    "owned_by": provider,
                }
            )
    return models
