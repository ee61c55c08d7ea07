from zeroeval.observability.choose import choose
from zeroeval.observability.decorators import (
    get_current_session,
    get_current_span,
    get_current_trace,
    set_session_tag,
    set_signal,
    set_tag,
    span,
)
from zeroeval.observability.signals import (
    send_signal,
    send_signals,
    send_test_signal,
    signal_type_for,
)
from zeroeval.observability.span import Span
from zeroeval.observability.tracer import Tracer, tracer
from zeroeval.observability.writer import SpanWriter

__all__ = [
    "Span",
    "SpanWriter",
    "Tracer",
    "choose",
    "get_current_session",
    "get_current_span",
    "get_current_trace",
    "send_signal",
    "send_signals",
    "send_test_signal",
    "set_session_tag",
    "set_signal",
    "set_tag",
    "signal_type_for",
    "span",
    "tracer",
]
