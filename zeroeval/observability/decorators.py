"""
``span``: decorator and context manager that records a Span.

    @span(name="retrieve")
    def retrieve(query): ...

    with span(name="pipeline", session_name="chat") as current:
        current.set_attributes({"step": 1})

Works on sync and async functions as well as sync and async generators.
Exceptions are recorded on the span and re-raised unchanged.
"""

import functools
import inspect
import json
import logging
import sys
import traceback
from contextvars import ContextVar
from typing import Any, Callable, TypeVar

from zeroeval.observability.span import Span, check_signals
from zeroeval.observability.tracer import tracer

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# (id of the span object, span) for every context manager entered in this context
_entered: ContextVar[tuple[tuple[int, Span], ...]] = ContextVar("zeroeval_entered_spans", default=())


def _capture_args(fn: Callable, args: tuple, kwargs: dict) -> str | None:
    try:
        bound = inspect.signature(fn).bind_partial(*args, **kwargs)
    except (TypeError, ValueError):
        return None
    arguments = {
        key: value for key, value in bound.arguments.items() if key not in ("self", "cls")
    }
    if not arguments:
        return None
    return json.dumps(arguments, default=repr)


def _record_error(current: Span, exc: BaseException) -> None:
    current.set_error(
        code=type(exc).__name__,
        message=str(exc),
        stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )


def _joined(items: list[Any]) -> Any:
    if items and all(isinstance(item, str) for item in items):
        return "".join(items)
    return items


class span:
    def __init__(
        self,
        name: str | None = None,
        session_id: str | None = None,
        session_name: str | None = None,
        attributes: dict[str, Any] | None = None,
        input_data: Any = None,
        output_data: Any = None,
        tags: dict[str, Any] | None = None,
        kind: str = "generic",
    ):
        self.name = name
        self.session_id = session_id
        self.session_name = session_name
        self.attributes = attributes
        self.input_data = input_data
        self.output_data = output_data
        self.tags = tags
        self.kind = kind

    def _start(
        self,
        name: str,
        input_data: Any,
        code_filepath: str | None,
        code_lineno: int | None,
    ) -> Span:
        current = tracer.start_span(
            name,
            kind=self.kind,
            session_id=self.session_id,
            session_name=self.session_name,
            attributes=self.attributes,
            tags=self.tags,
            input_data=input_data,
            code_filepath=code_filepath,
            code_lineno=code_lineno,
        )
        if self.output_data is not None:
            current.set_io(output_data=self.output_data)
        return current

    # -- context manager --

    def __enter__(self) -> Span:
        frame = sys._getframe(1)
        current = self._start(
            self.name or "span",
            self.input_data,
            frame.f_code.co_filename,
            frame.f_lineno,
        )
        _entered.set(_entered.get() + ((id(self), current),))
        return current

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        entered = _entered.get()
        index = max(i for i, (owner, _) in enumerate(entered) if owner == id(self))
        current = entered[index][1]
        _entered.set(entered[:index] + entered[index + 1 :])
        if exc_val is not None:
            _record_error(current, exc_val)
        tracer.end_span(current)

    async def __aenter__(self) -> Span:
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)

    # -- decorator --

    def __call__(self, fn: F) -> F:
        label = self.name or fn.__name__
        code = getattr(fn, "__code__", None)
        filepath = code.co_filename if code else None
        lineno = code.co_firstlineno if code else None

        def start(args: tuple, kwargs: dict) -> Span:
            input_data = self.input_data
            if input_data is None:
                input_data = _capture_args(fn, args, kwargs)
            return self._start(label, input_data, filepath, lineno)

        def finish(current: Span, output: Any) -> None:
            if self.output_data is None and output is not None:
                current.set_io(output_data=output)
            tracer.end_span(current)

        if inspect.isasyncgenfunction(fn):

            @functools.wraps(fn)
            async def async_gen_wrapper(*args: Any, **kwargs: Any):
                current = start(args, kwargs)
                tracer.detach(current)
                items: list[Any] = []
                agen = fn(*args, **kwargs)
                try:
                    while True:
                        tracer.push(current)
                        try:
                            item = await agen.__anext__()
                        except StopAsyncIteration:
                            break
                        finally:
                            tracer.detach(current)
                        items.append(item)
                        yield item
                except BaseException as exc:
                    if not isinstance(exc, GeneratorExit):
                        _record_error(current, exc)
                    raise
                finally:
                    await agen.aclose()
                    finish(current, _joined(items))

            return async_gen_wrapper  # type: ignore[return-value]

        if inspect.isgeneratorfunction(fn):

            @functools.wraps(fn)
            def gen_wrapper(*args: Any, **kwargs: Any):
                current = start(args, kwargs)
                tracer.detach(current)
                items: list[Any] = []
                gen = fn(*args, **kwargs)
                try:
                    while True:
                        tracer.push(current)
                        try:
                            item = next(gen)
                        except StopIteration:
                            break
                        finally:
                            tracer.detach(current)
                        items.append(item)
                        yield item
                except BaseException as exc:
                    if not isinstance(exc, GeneratorExit):
                        _record_error(current, exc)
                    raise
                finally:
                    gen.close()
                    finish(current, _joined(items))

            return gen_wrapper  # type: ignore[return-value]

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                current = start(args, kwargs)
                try:
                    result = await fn(*args, **kwargs)
                except BaseException as exc:
                    _record_error(current, exc)
                    tracer.end_span(current)
                    raise
                finish(current, result)
                return result

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(fn)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            current = start(args, kwargs)
            try:
                result = fn(*args, **kwargs)
            except BaseException as exc:
                _record_error(current, exc)
                tracer.end_span(current)
                raise
            finish(current, result)
            return result

        return sync_wrapper  # type: ignore[return-value]


def get_current_span() -> Span | None:
    return tracer.current_span()


def get_current_trace() -> str | None:
    current = tracer.current_span()
    return current.trace_id if current else None


def get_current_session() -> str | None:
    current = tracer.current_span()
    return current.session_id if current else None


def set_tag(target: Span | str, tags: dict[str, Any]) -> None:
    """
    Attach tags to a span, or to every span of a trace or session.

    A string target is a session id when this process has started a span in
    that session; otherwise it is taken to be a trace id.
    """
    if isinstance(target, Span):
        target.set_tags(tags)
        return
    if tracer.knows_session(target):
        tracer.add_session_tags(target, tags)
    else:
        tracer.add_trace_tags(target, tags)


def set_session_tag(session_id: str, tags: dict[str, Any]) -> None:
    tracer.add_session_tags(session_id, tags)


def set_signal(target: Span | str, signals: dict[str, Any]) -> None:
    """
    Attach signals to a span, a trace or a session; they are sent with the
    span payload when the trace is flushed.
    """
    check_signals(signals)
    if isinstance(target, Span):
        target.set_signals(signals)
        return
    if tracer.knows_session(target):
        tracer.add_session_signals(target, signals)
    else:
        tracer.add_trace_signals(target, signals)
