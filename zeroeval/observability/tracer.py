"""
Process-wide tracer.

Open spans live on a per-context stack (``contextvars``), so nesting follows
threads and asyncio tasks. Ended spans wait until every span of their trace
has ended; the completed trace then moves to the ready buffer, which is
flushed by a background thread, when it reaches ``max_spans``, and at exit.
Trace and session signals with no span left to carry them are sent on their
own through the bulk signals endpoint at the next flush.
"""

import atexit
import logging
import threading
from contextvars import ContextVar
from typing import Any, Callable

from cachetools import LRUCache

from zeroeval.observability.span import Span, new_id
from zeroeval.observability.writer import SpanWriter

logger = logging.getLogger(__name__)

# sessions remembered for string targets and session tags
MAX_SESSIONS = 10_000

_span_stack: ContextVar[tuple[Span, ...]] = ContextVar("zeroeval_span_stack", default=())


class Tracer:
    def __init__(self):
        self._lock = threading.RLock()
        self.writer = SpanWriter()
        self.flush_interval = 10.0
        self.max_spans = 100
        self.disabled_integrations: set[str] = set()

        # trace_id -> number of spans started but not yet ended
        self._open_counts: dict[str, int] = {}
        # trace_id -> session_id of a trace that is still running
        self._trace_sessions: dict[str, str] = {}
        # trace_id -> ended spans of a trace that is still running
        self._pending: dict[str, list[Span]] = {}
        self._ready: list[Span] = []

        self._trace_tags: dict[str, dict[str, Any]] = {}
        self._session_tags: LRUCache = LRUCache(maxsize=MAX_SESSIONS)
        self._trace_signals: dict[str, dict[str, Any]] = {}
        self._session_signals: dict[str, dict[str, Any]] = {}
        self._sessions: LRUCache = LRUCache(maxsize=MAX_SESSIONS)
        self._trace_end_hooks: list[Callable[[str], None]] = []

        self._integrations: dict[str, Any] = {}
        self._flusher: threading.Thread | None = None
        self._stop = threading.Event()
        self._atexit_registered = False

    # -- configuration --

    def configure(
        self,
        writer: SpanWriter | None = None,
        flush_interval: float | None = None,
        max_spans: int | None = None,
        disabled_integrations: set[str] | None = None,
        start_flusher: bool = True,
    ) -> None:
        if writer is not None:
            self.writer = writer
        if flush_interval is not None:
            self.flush_interval = flush_interval
        if max_spans is not None:
            self.max_spans = max_spans
        if disabled_integrations is not None:
            self.disabled_integrations = {name.lower() for name in disabled_integrations}

        if start_flusher:
            self._start_flusher()
        if not self._atexit_registered:
            atexit.register(self.shutdown)
            self._atexit_registered = True

    def is_integration_disabled(self, name: str) -> bool:
        return name.lower() in self.disabled_integrations

    def setup_integrations(self, integration_classes) -> list[str]:
        """Instantiate and set up every available, non-disabled integration."""
        enabled = []
        for integration_cls in integration_classes:
            name = integration_cls.name
            if name in self._integrations:
                continue
            if self.is_integration_disabled(name):
                logger.debug("Integration %s disabled by configuration", name)
                continue
            if not integration_cls.is_available():
                logger.debug("Integration %s not available", name)
                continue
            integration = integration_cls(self)
            try:
                integration.setup()
            except Exception as e:
                logger.warning(f"Failed to set up integration {name}: {e}")
                continue
            self._integrations[name] = integration
            enabled.append(name)
        if enabled:
            logger.info("Enabled integrations: %s", ", ".join(enabled))
        return enabled

    def teardown_integrations(self) -> None:
        for integration in self._integrations.values():
            integration.teardown()
        self._integrations.clear()

    # -- span lifecycle --

    def current_span(self) -> Span | None:
        stack = _span_stack.get()
        return stack[-1] if stack else None

    def start_span(
        self,
        name: str,
        kind: str = "generic",
        session_id: str | None = None,
        session_name: str | None = None,
        attributes: dict[str, Any] | None = None,
        tags: dict[str, Any] | None = None,
        input_data: Any = None,
        code_filepath: str | None = None,
        code_lineno: int | None = None,
    ) -> Span:
        parent = self.current_span()
        if parent is not None:
            span = Span(
                name,
                trace_id=parent.trace_id,
                parent_id=parent.span_id,
                session_id=parent.session_id,
                session_name=parent.session_name,
                kind=kind,
                attributes=attributes,
                tags=tags,
                input_data=input_data,
                code_filepath=code_filepath,
                code_lineno=code_lineno,
            )
        else:
            span = Span(
                name,
                session_id=session_id,
                session_name=session_name,
                kind=kind,
                attributes=attributes,
                tags=tags,
                input_data=input_data,
                code_filepath=code_filepath,
                code_lineno=code_lineno,
            )
            if span.session_id is None:
                span.session_id = new_id()

        with self._lock:
            self._open_counts[span.trace_id] = self._open_counts.get(span.trace_id, 0) + 1
            self._sessions[span.session_id] = True
            self._trace_sessions.setdefault(span.trace_id, span.session_id)

        self.push(span)
        return span

    def push(self, span: Span) -> None:
        _span_stack.set(_span_stack.get() + (span,))

    def detach(self, span: Span) -> None:
        """Remove a still-open span from the current context's stack."""
        stack = _span_stack.get()
        if span in stack:
            _span_stack.set(tuple(s for s in stack if s is not span))

    def end_span(self, span: Span) -> None:
        self.detach(span)
        if span.ended:
            return
        span.end()

        should_flush = False
        completed = False
        with self._lock:
            self._pending.setdefault(span.trace_id, []).append(span)
            remaining = self._open_counts.get(span.trace_id, 1) - 1
            if remaining > 0:
                self._open_counts[span.trace_id] = remaining
            else:
                self._open_counts.pop(span.trace_id, None)
                self._trace_sessions.pop(span.trace_id, None)
                spans = self._pending.pop(span.trace_id)
                completed = True
                # parents before children
                spans.sort(key=lambda s: (not s.is_root, s.start_time))
                self._ready.extend(spans)
                should_flush = len(self._ready) >= self.max_spans

        if completed:
            for hook in self._trace_end_hooks:
                hook(span.trace_id)
        if should_flush:
            self.flush()

    def on_trace_end(self, hook: Callable[[str], None]) -> None:
        """Call ``hook(trace_id)`` whenever every span of a trace has ended."""
        self._trace_end_hooks.append(hook)

    # -- tags & signals --

    def knows_session(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.get(session_id, False)

    def add_trace_tags(self, trace_id: str, tags: dict[str, Any]) -> None:
        with self._lock:
            self._trace_tags.setdefault(trace_id, {}).update(tags)

    def add_session_tags(self, session_id: str, tags: dict[str, Any]) -> None:
        with self._lock:
            self._session_tags[session_id] = {**self._session_tags.get(session_id, {}), **tags}

    def add_trace_signals(self, trace_id: str, signals: dict[str, Any]) -> None:
        with self._lock:
            self._trace_signals.setdefault(trace_id, {}).update(signals)

    def add_session_signals(self, session_id: str, signals: dict[str, Any]) -> None:
        with self._lock:
            self._session_signals.setdefault(session_id, {}).update(signals)

    def _payloads(self, spans: list[Span]) -> list[dict[str, Any]]:
        payloads = []
        flushed_traces = set()
        for span in spans:
            span.trace_tags.update(self._trace_tags.get(span.trace_id, {}))
            if span.session_id:
                span.session_tags.update(self._session_tags.get(span.session_id, {}))

            payload = span.to_dict()
            if span.is_root:
                payload["trace_signals"] = self._trace_signals.pop(span.trace_id, {})
            if span.session_id and span.session_id in self._session_signals:
                payload["session_signals"] = self._session_signals.pop(span.session_id)
            payloads.append(payload)
            flushed_traces.add(span.trace_id)

        for trace_id in flushed_traces:
            self._trace_tags.pop(trace_id, None)
        return payloads

    def _leftover_signals(self) -> list[dict[str, Any]]:
        """
        Trace and session signals that no buffered or running span will carry.

        Called with the lock held, after the ready spans took their share.
        """
        open_sessions = {self._trace_sessions.get(trace_id) for trace_id in self._open_counts}
        bodies = []
        for trace_id in [t for t in self._trace_signals if t not in self._open_counts]:
            for name, value in self._trace_signals.pop(trace_id).items():
                bodies.append({"trace_id": trace_id, "name": name, "value": value})
        for session_id in [s for s in self._session_signals if s not in open_sessions]:
            for name, value in self._session_signals.pop(session_id).items():
                bodies.append({"session_id": session_id, "name": name, "value": value})
        # tags for a trace that has already been sent have nothing left to ride on
        for trace_id in [t for t in self._trace_tags if t not in self._open_counts]:
            del self._trace_tags[trace_id]
        return bodies

    # -- flushing --

    def pending_count(self) -> int:
        with self._lock:
            return len(self._ready)

    def flush(self) -> None:
        with self._lock:
            batch, self._ready = self._ready, []
            payloads = self._payloads(batch) if batch else []
            signals = self._leftover_signals()

        if payloads:
            try:
                self.writer.write(payloads)
            except Exception as e:
                logger.error(f"Failed to flush {len(payloads)} spans, dropping them: {e}")
            else:
                logger.debug("Flushed %d spans", len(payloads))

        if signals:
            try:
                self.writer.write_signals(signals)
            except Exception as e:
                logger.error(f"Failed to send {len(signals)} signals, dropping them: {e}")
            else:
                logger.debug("Sent %d signals without a span", len(signals))

    def _start_flusher(self) -> None:
        if self._flusher is not None and self._flusher.is_alive():
            return
        self._stop.clear()
        self._flusher = threading.Thread(
            target=self._run_flusher, name="zeroeval-flusher", daemon=True
        )
        self._flusher.start()

    def _run_flusher(self) -> None:
        while not self._stop.wait(self.flush_interval):
            self.flush()

    def shutdown(self) -> None:
        self._stop.set()
        if self._flusher is not None:
            self._flusher.join(timeout=5)
            self._flusher = None
        self.teardown_integrations()
        self.flush()

    def reset(self) -> None:
        """Drop all buffered state. Used between test cases."""
        with self._lock:
            self._open_counts.clear()
            self._trace_sessions.clear()
            self._pending.clear()
            self._ready.clear()
            self._trace_tags.clear()
            self._session_tags.clear()
            self._trace_signals.clear()
            self._session_signals.clear()
            self._sessions.clear()
        _span_stack.set(())


tracer = Tracer()
