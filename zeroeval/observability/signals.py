"""
Direct signals API.

Signals are named feedback values (bool, int, float or str) attached to a
completion, span, trace or session.
"""

import logging
from typing import Any

from zeroeval.client import get_client
from zeroeval.exceptions import SignalValidationError
from zeroeval.observability.span import check_signal

logger = logging.getLogger(__name__)

ENTITY_ID_FIELDS = ("completion_id", "span_id", "trace_id", "session_id")


def signal_type_for(value: Any) -> str:
    # bool is a subclass of int
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "numerical"
    return "categorical"


def build_signal(
    name: str,
    value: Any,
    completion_id: str | None = None,
    span_id: str | None = None,
    trace_id: str | None = None,
    session_id: str | None = None,
) -> dict[str, Any]:
    """Validate a signal and return its request body."""
    check_signal(name, value)
    ids = {
        "completion_id": completion_id,
        "span_id": span_id,
        "trace_id": trace_id,
        "session_id": session_id,
    }
    if not any(ids.values()):
        raise SignalValidationError(
            "At least one of completion_id, span_id, trace_id or session_id is required",
            {"name": name},
        )
    return {
        **{key: entity_id for key, entity_id in ids.items() if entity_id},
        "name": name,
        "value": value,
    }


def send_signal(
    name: str,
    value: Any,
    *,
    completion_id: str | None = None,
    span_id: str | None = None,
    trace_id: str | None = None,
    session_id: str | None = None,
    workspace_id: str | None = None,
) -> list[dict[str, Any]]:
    body = build_signal(name, value, completion_id, span_id, trace_id, session_id)
    client = get_client()
    result = client.request(
        "POST", client.workspace_path("signals", workspace_id), json=body
    )
    logger.debug("Sent signal %s=%r", name, value)
    return result


def send_signals(
    signals: list[dict[str, Any]], *, workspace_id: str | None = None
) -> list[dict[str, Any]]:
    """Send several signals in one request. Each item takes ``send_signal``'s fields."""
    if not signals:
        raise SignalValidationError("No signals to send")
    bodies = [
        build_signal(
            item.get("name"),
            item.get("value"),
            item.get("completion_id"),
            item.get("span_id"),
            item.get("trace_id"),
            item.get("session_id"),
        )
        for item in signals
    ]
    client = get_client()
    return client.request(
        "POST",
        client.workspace_path("signals/bulk", workspace_id),
        json={"signals": bodies},
    )


def send_test_signal(
    completion_id: str,
    name: str,
    value: Any,
    *,
    workspace_id: str | None = None,
) -> dict[str, Any]:
    """Record feedback for an A/B test completion; repeating a name overwrites it."""
    if not completion_id:
        raise SignalValidationError("completion_id is required for test signals")
    body = build_signal(name, value, completion_id=completion_id)
    client = get_client()
    return client.request(
        "POST", client.workspace_path("tests/signals", workspace_id), json=body
    )
