import functools
import importlib.util
import inspect
import logging
import traceback
from typing import Any, Callable

logger = logging.getLogger(__name__)


class Integration:
    """
    Patches a third-party library so its calls show up as spans.

    Subclasses set ``name`` and ``package`` and implement ``setup``;
    ``_patch_method`` keeps every original so ``teardown`` can restore it.
    """

    name: str = ""
    package: str = ""

    def __init__(self, tracer):
        self.tracer = tracer
        self._originals: list[tuple[Any, str, Any]] = []

    @classmethod
    def is_available(cls) -> bool:
        return importlib.util.find_spec(cls.package) is not None

    def setup(self) -> None:
        raise NotImplementedError

    def teardown(self) -> None:
        for owner, attr, original in reversed(self._originals):
            setattr(owner, attr, original)
        self._originals.clear()

    def _patch_method(self, owner: Any, attr: str, wrapper: Callable[[Any], Any]) -> None:
        original = getattr(owner, attr)
        self._originals.append((owner, attr, original))
        setattr(owner, attr, wrapper(original))


def _first(obj: Any, *names: str) -> Any:
    for name in names:
        if obj is None:
            return None
        obj = obj.get(name) if isinstance(obj, dict) else getattr(obj, name, None)
    return obj


class TracedStream:
    """Iterates a provider stream, ending the span once it is exhausted or closed."""

    def __init__(self, stream: Any, span, integration: "LLMIntegration"):
        self._stream = stream
        self._span = span
        self._integration = integration
        self._parts: list[str] = []

    def __iter__(self):
        return self

    def __next__(self):
        try:
            chunk = next(self._stream)
        except StopIteration:
            self._integration._finish_stream(self._span, self._parts)
            raise
        except Exception as exc:
            self._integration._fail(self._span, exc)
            raise
        self._parts.append(self._integration._chunk_text(chunk))
        return chunk

    def close(self) -> None:
        self._integration._finish_stream(self._span, self._parts)
        close = getattr(self._stream, "close", None)
        if close is not None:
            close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        # abandoned without being exhausted or closed
        if "_parts" in self.__dict__:
            self._integration._finish_stream(self._span, self._parts)

    def __getattr__(self, attr: str) -> Any:
        return getattr(self._stream, attr)


class AsyncTracedStream:
    def __init__(self, stream: Any, span, integration: "LLMIntegration"):
        self._stream = stream
        self._span = span
        self._integration = integration
        self._parts: list[str] = []

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            chunk = await self._stream.__anext__()
        except StopAsyncIteration:
            self._integration._finish_stream(self._span, self._parts)
            raise
        except Exception as exc:
            self._integration._fail(self._span, exc)
            raise
        self._parts.append(self._integration._chunk_text(chunk))
        return chunk

    async def aclose(self) -> None:
        self._integration._finish_stream(self._span, self._parts)
        close = getattr(self._stream, "aclose", None) or getattr(self._stream, "close", None)
        if close is not None:
            result = close()
            if inspect.isawaitable(result):
                await result

    async def close(self) -> None:
        await self.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def __del__(self):
        if "_parts" in self.__dict__:
            self._integration._finish_stream(self._span, self._parts)

    def __getattr__(self, attr: str) -> Any:
        return getattr(self._stream, attr)


class LLMIntegration(Integration):
    """Shared span handling for chat-completion style APIs."""

    provider: str = ""
    span_name: str = ""
    # patched callables are methods receiving ``self`` first
    _bound: bool = False

    def _start(self, args: tuple, kwargs: dict):
        model = kwargs.get("model")
        messages = kwargs.get("messages")
        if model is None and args and isinstance(args[0], str):
            model = args[0]
            if messages is None and len(args) > 1:
                messages = args[1]
        return self.tracer.start_span(
            self.span_name,
            kind="llm",
            attributes={
                "service.name": self.name,
                "provider": self.provider,
                "model": model,
                "streaming": bool(kwargs.get("stream")),
            },
            input_data=messages,
        )

    def _finish(self, span, response: Any) -> None:
        span.set_io(output_data=self._response_text(response))
        usage = _first(response, "usage")
        if usage is not None:
            span.set_attributes(
                {
                    "inputTokens": _first(usage, "prompt_tokens"),
                    "outputTokens": _first(usage, "completion_tokens"),
                }
            )
        self.tracer.end_span(span)

    def _finish_stream(self, span, parts: list[str]) -> None:
        if span.ended:
            return
        span.set_io(output_data="".join(parts))
        self.tracer.end_span(span)

    def _fail(self, span, exc: BaseException) -> None:
        if span.ended:
            return
        span.set_error(
            code=type(exc).__name__,
            message=str(exc),
            stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )
        self.tracer.end_span(span)

    @staticmethod
    def _response_text(response: Any) -> str | None:
        choices = _first(response, "choices")
        if not choices:
            return None
        return _first(choices[0], "message", "content")

    @staticmethod
    def _chunk_text(chunk: Any) -> str:
        choices = _first(chunk, "choices")
        if not choices:
            return ""
        return _first(choices[0], "delta", "content") or ""

    def _wrap_sync(self, original: Callable) -> Callable:
        integration = self

        @functools.wraps(original)
        def wrapped(*args, **kwargs):
            span = integration._start(args[1:] if integration._bound else args, kwargs)
            try:
                response = original(*args, **kwargs)
            except Exception as exc:
                integration._fail(span, exc)
                raise
            if kwargs.get("stream"):
                integration.tracer.detach(span)
                return TracedStream(response, span, integration)
            integration._finish(span, response)
            return response

        return wrapped

    def _wrap_async(self, original: Callable) -> Callable:
        integration = self

        @functools.wraps(original)
        async def wrapped(*args, **kwargs):
            span = integration._start(args[1:] if integration._bound else args, kwargs)
            try:
                response = await original(*args, **kwargs)
            except Exception as exc:
                integration._fail(span, exc)
                raise
            if kwargs.get("stream"):
                integration.tracer.detach(span)
                return AsyncTracedStream(response, span, integration)
            integration._finish(span, response)
            return response

        return wrapped
