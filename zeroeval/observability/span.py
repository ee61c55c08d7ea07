import json
import time
import uuid
from datetime import datetime, timezone
from typing import Any

from zeroeval.exceptions import SignalValidationError


def new_id() -> str:
    return str(uuid.uuid4())


def utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_text(value: Any) -> str | None:
    """Span input/output travel as strings; anything else is JSON-encoded."""
    if value is None or isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return repr(value)


def check_signal(name: str, value: Any) -> None:
    """Raise SignalValidationError unless name and value can be stored."""
    if not name or not isinstance(name, str):
        raise SignalValidationError("Signal name must be a non-empty string")
    if not isinstance(value, (str, bool, int, float)):
        raise SignalValidationError(
            f"Signal value must be str, bool, int or float, got {type(value).__name__}",
            {"name": name},
        )


def check_signals(signals: dict[str, Any]) -> None:
    for name, value in signals.items():
        check_signal(name, value)


class Span:
    """A single traced unit of work."""

    def __init__(
        self,
        name: str,
        trace_id: str | None = None,
        parent_id: str | None = None,
        session_id: str | None = None,
        session_name: str | None = None,
        kind: str = "generic",
        attributes: dict[str, Any] | None = None,
        tags: dict[str, Any] | None = None,
        input_data: Any = None,
        code_filepath: str | None = None,
        code_lineno: int | None = None,
    ):
        self.span_id = new_id()
        self.trace_id = trace_id or new_id()
        self.parent_id = parent_id
        self.session_id = session_id
        self.session_name = session_name
        self.name = name
        self.kind = kind

        self.start_time = utc_iso()
        self.end_time: str | None = None
        self.duration_ms: float | None = None
        self._start_ns = time.perf_counter_ns()

        self.attributes: dict[str, Any] = dict(attributes or {})
        self.input_data = to_text(input_data)
        self.output_data: str | None = None

        self.tags: dict[str, Any] = dict(tags or {})
        self.trace_tags: dict[str, Any] = {}
        self.session_tags: dict[str, Any] = {}
        self.signals: dict[str, Any] = {}

        self.status = "ok"
        self.error_code: str | None = None
        self.error_message: str | None = None
        self.error_stack: str | None = None

        self.code_filepath = code_filepath
        self.code_lineno = code_lineno

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def ended(self) -> bool:
        return self.end_time is not None

    def set_io(self, input_data: Any = None, output_data: Any = None) -> None:
        if input_data is not None:
            self.input_data = to_text(input_data)
        if output_data is not None:
            self.output_data = to_text(output_data)

    def set_attributes(self, attributes: dict[str, Any]) -> None:
        self.attributes.update(attributes)

    def set_tags(self, tags: dict[str, Any]) -> None:
        self.tags.update(tags)

    def set_signals(self, signals: dict[str, Any]) -> None:
        check_signals(signals)
        self.signals.update(signals)

    def set_error(
        self, code: str, message: str, stack: str | None = None
    ) -> None:
        self.status = "error"
        self.error_code = code
        self.error_message = message
        self.error_stack = stack

    def end(self) -> None:
        if self.ended:
            return
        self.end_time = utc_iso()
        self.duration_ms = (time.perf_counter_ns() - self._start_ns) / 1_000_000

    def to_dict(self) -> dict[str, Any]:
        return {
            "span_id": self.span_id,
            "trace_id": self.trace_id,
            "parent_id": self.parent_id,
            "session_id": self.session_id,
            "session_name": self.session_name,
            "name": self.name,
            "kind": self.kind,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_ms": self.duration_ms,
            "attributes": self.attributes,
            "input_data": self.input_data,
            "output_data": self.output_data,
            "tags": self.tags,
            "trace_tags": self.trace_tags,
            "session_tags": self.session_tags,
            "signals": self.signals,
            "status": self.status,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "error_stack": self.error_stack,
            "code_filepath": self.code_filepath,
            "code_lineno": self.code_lineno,
        }

    def __repr__(self) -> str:
        return f"Span(name={self.name!r}, span_id={self.span_id!r}, trace_id={self.trace_id!r})"
