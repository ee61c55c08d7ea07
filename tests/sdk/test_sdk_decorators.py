"""The span decorator and context manager."""

import asyncio
import json

import pytest

from zeroeval.observability import (
    get_current_session,
    get_current_span,
    get_current_trace,
    span,
    tracer,
)


def test_sync_function(writer):
    @span(name="add")
    def add(a, b=2):
        return a + b

    assert add(1, b=5) == 6
    tracer.flush()

    payload = writer.by_name("add")
    assert json.loads(payload["input_data"]) == {"a": 1, "b": 5}
    assert payload["output_data"] == "6"
    assert payload["status"] == "ok"
    assert payload["code_filepath"].endswith("test_sdk_decorators.py")
    assert payload["duration_ms"] >= 0


def test_name_defaults_to_function_name(writer):
    @span()
    def fetch_docs():
        return "docs"

    fetch_docs()
    tracer.flush()
    assert writer.by_name("fetch_docs")["output_data"] == "docs"


def test_methods_skip_self(writer):
    class Agent:
        @span(name="answer")
        def answer(self, question):
            return question.upper()

    Agent().answer("hi")
    tracer.flush()
    assert json.loads(writer.by_name("answer")["input_data"]) == {"question": "hi"}


def test_explicit_io_wins(writer):
    @span(name="fixed", input_data="in", output_data="out")
    def fixed(x):
        return x

    fixed(1)
    tracer.flush()
    payload = writer.by_name("fixed")
    assert (payload["input_data"], payload["output_data"]) == ("in", "out")


def test_exception_is_recorded_and_reraised(writer):
    @span(name="explode")
    def explode():
        raise ValueError("bad input")

    with pytest.raises(ValueError, match="bad input"):
        explode()
    tracer.flush()

    payload = writer.by_name("explode")
    assert payload["status"] == "error"
    assert payload["error_code"] == "ValueError"
    assert payload["error_message"] == "bad input"
    assert "Traceback" in payload["error_stack"]


async def test_async_function(writer):
    @span(name="fetch")
    async def fetch(url):
        return {"url": url}

    assert await fetch("http://x") == {"url": "http://x"}
    tracer.flush()
    assert json.loads(writer.by_name("fetch")["output_data"]) == {"url": "http://x"}


async def test_async_exception(writer):
    @span(name="fail")
    async def fail():
        raise KeyError("k")

    with pytest.raises(KeyError):
        await fail()
    tracer.flush()
    assert writer.by_name("fail")["error_code"] == "KeyError"


def test_generator_output_is_joined(writer):
    @span(name="tokens")
    def tokens():
        assert get_current_span().name == "tokens"
        yield "Hel"
        yield "lo"

    outside = []
    for _ in tokens():
        outside.append(get_current_span())
    tracer.flush()

    assert outside == [None, None]
    assert writer.by_name("tokens")["output_data"] == "Hello"


def test_generator_error(writer):
    @span(name="broken")
    def broken():
        yield 1
        raise RuntimeError("mid-stream")

    with pytest.raises(RuntimeError):
        list(broken())
    tracer.flush()
    assert writer.by_name("broken")["error_code"] == "RuntimeError"


def test_abandoned_generator_still_ends(writer):
    @span(name="partial")
    def numbers():
        yield from range(10)

    gen = numbers()
    next(gen)
    gen.close()
    tracer.flush()

    payload = writer.by_name("partial")
    assert payload["status"] == "ok"
    assert json.loads(payload["output_data"]) == [0]


async def test_async_generator(writer):
    @span(name="stream")
    async def stream():
        yield "a"
        yield "b"

    assert [item async for item in stream()] == ["a", "b"]
    tracer.flush()
    assert writer.by_name("stream")["output_data"] == "ab"


def test_context_manager_nests_decorated_calls(writer):
    @span(name="inner")
    def inner():
        return get_current_span()

    with span(name="outer", attributes={"step": 1}) as outer:
        assert get_current_span() is outer
        child = inner()
    tracer.flush()

    assert child.parent_id == outer.span_id
    payload = writer.by_name("outer")
    assert payload["attributes"] == {"step": 1}
    assert payload["code_filepath"].endswith("test_sdk_decorators.py")


def test_context_manager_records_errors(writer):
    with pytest.raises(ZeroDivisionError):
        with span(name="math"):
            1 / 0
    tracer.flush()
    assert writer.by_name("math")["error_code"] == "ZeroDivisionError"


async def test_async_context_manager(writer):
    async with span(name="async-block") as current:
        assert get_current_span() is current
    tracer.flush()
    assert writer.by_name("async-block")["status"] == "ok"


def test_session_ids(writer):
    with span(name="given", session_id="sess-1", session_name="Support chat") as given:
        assert get_current_session() == "sess-1"
        assert get_current_trace() == given.trace_id
    with span(name="generated") as generated:
        pass

    assert given.session_id == "sess-1"
    assert generated.session_id
    assert generated.session_id != "sess-1"
    assert get_current_span() is None
    assert get_current_trace() is None
    assert get_current_session() is None


def test_decorator_instance_is_reusable(writer):
    traced = span(name="twice")

    @traced
    def work():
        return 1

    work()
    work()
    tracer.flush()
    assert len([s for s in writer.spans if s["name"] == "twice"]) == 2


async def test_shared_context_manager_across_tasks(writer):
    shared = span(name="shared")
    a_entered, b_entered, a_exited = asyncio.Event(), asyncio.Event(), asyncio.Event()
    seen = {}

    async def first():
        async with shared as current:
            seen["a"] = current
            a_entered.set()
            await b_entered.wait()
        a_exited.set()

    async def second():
        await a_entered.wait()
        async with shared as current:
            seen["b"] = current
            b_entered.set()
            await a_exited.wait()
            assert not current.ended
            assert get_current_span() is current

    await asyncio.gather(first(), second())
    tracer.flush()

    assert seen["a"].ended and seen["b"].ended
    assert seen["a"].trace_id != seen["b"].trace_id
    assert len([s for s in writer.spans if s["name"] == "shared"]) == 2
