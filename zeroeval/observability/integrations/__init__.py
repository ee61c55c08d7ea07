from zeroeval.observability.integrations.base import Integration, LLMIntegration
from zeroeval.observability.integrations.litellm_integration import LiteLLMIntegration
from zeroeval.observability.integrations.openai_integration import OpenAIIntegration

ALL_INTEGRATIONS = (OpenAIIntegration, LiteLLMIntegration)

__all__ = [
    "ALL_INTEGRATIONS",
    "Integration",
    "LLMIntegration",
    "LiteLLMIntegration",
    "OpenAIIntegration",
]
