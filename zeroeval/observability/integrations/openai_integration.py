from zeroeval.observability.integrations.base import LLMIntegration


class OpenAIIntegration(LLMIntegration):
    """Traces ``client.chat.completions.create`` on sync and async OpenAI clients."""

    name = "openai"
    package = "openai"
    provider = "openai"
    span_name = "openai.chat.completions.create"
    _bound = True

    def setup(self) -> None:
        from openai.resources.chat.completions import AsyncCompletions, Completions

        self._patch_method(Completions, "create", self._wrap_sync)
        self._patch_method(AsyncCompletions, "create", self._wrap_async)
