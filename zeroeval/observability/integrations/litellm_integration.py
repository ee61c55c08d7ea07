from zeroeval.observability.integrations.base import LLMIntegration


class LiteLLMIntegration(LLMIntegration):
    """Traces ``litellm.completion`` and ``litellm.acompletion``."""

    name = "litellm"
    package = "litellm"
    provider = "litellm"
    span_name = "litellm.completion"

    def setup(self) -> None:
        import litellm

        self._patch_method(litellm, "completion", self._wrap_sync)
        self._patch_method(litellm, "acompletion", self._wrap_async)

    def _start(self, args: tuple, kwargs: dict):
        span = super()._start(args, kwargs)
        model = span.attributes.get("model")
        if isinstance(model, str) and "/" in model:
            span.set_attributes({"provider": model.split("/", 1)[0]})
        return span
