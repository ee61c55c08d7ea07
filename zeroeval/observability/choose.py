"""
Client-side variant choice.

``choose`` picks one of several named alternatives by weight and keeps the
pick stable for the rest of the trace (or the process, outside any span).
"""

import logging
import random
import threading
from typing import Any

from zeroeval.observability.tracer import tracer

logger = logging.getLogger(__name__)

_PROCESS_SCOPE = "__process__"

_lock = threading.Lock()
_choices: dict[tuple[str, str], str] = {}


def _validate_weights(variants: dict[str, Any], weights: dict[str, float] | None) -> dict[str, float]:
    if not variants:
        raise ValueError("choose() needs at least one variant")
    if weights is None:
        return {key: 1.0 for key in variants}

    unknown = set(weights) - set(variants)
    if unknown:
        raise ValueError(f"Weights reference unknown variants: {sorted(unknown)}")
    resolved = {key: float(weights.get(key, 0.0)) for key in variants}
    if any(weight < 0 for weight in resolved.values()):
        raise ValueError("Weights must be non-negative")
    if sum(resolved.values()) <= 0:
        raise ValueError("Weights must have a positive total")
    return resolved


def choose(
    name: str,
    variants: dict[str, Any],
    weights: dict[str, float] | None = None,
    rng: random.Random | None = None,
) -> Any:
    resolved = _validate_weights(variants, weights)

    current = tracer.current_span()
    scope = current.trace_id if current else _PROCESS_SCOPE

    with _lock:
        key = _choices.get((scope, name))
        if key is None or key not in variants:
            keys = [k for k, weight in resolved.items() if weight > 0]
            key = (rng or random).choices(keys, weights=[resolved[k] for k in keys])[0]
            _choices[(scope, name)] = key
            logger.debug("choose(%s) picked %s for %s", name, key, scope)

    if current is not None:
        current.set_attributes({f"choice.{name}": key})
    return variants[key]


def _forget_trace(trace_id: str) -> None:
    with _lock:
        for key in [key for key in _choices if key[0] == trace_id]:
            del _choices[key]


tracer.on_trace_end(_forget_trace)


def reset_choices() -> None:
    with _lock:
        _choices.clear()
