"""
Aggregation helpers for A/B test results and experiment score summaries.
"""

from collections import Counter, defaultdict
from collections.abc import Iterable
from typing import Any

from zeroeval_core.utils import decode_signal_value


def summarize_signal_values(values: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """Summarize stored ``(value, signal_type)`` pairs for one signal name.

    Mixed types are summarized under the type of the first value; values of
    any other type are ignored.
    """
    values = list(values)
    if not values:
        return {"signal_type": "categorical", "count": 0}

    signal_type = values[0][1]
    decoded = [
        decode_signal_value(value, value_type)
        for value, value_type in values
        if value_type == signal_type
    ]
    summary: dict[str, Any] = {"signal_type": signal_type, "count": len(decoded)}
    if signal_type == "boolean":
        summary["true_rate"] = sum(1 for value in decoded if value) / len(decoded)
    elif signal_type == "numerical":
        summary["mean"] = sum(decoded) / len(decoded)
    else:
        summary["counts"] = dict(Counter(str(value) for value in decoded))
    return summary


def summarize_scores(score_dicts: Iterable[dict[str, Any]]) -> dict[str, float]:
    """Mean of each numeric or boolean score across experiment rows."""
    totals: dict[str, list[float]] = defaultdict(list)
    for scores in score_dicts:
        for name, value in (scores or {}).items():
            if isinstance(value, bool):
                totals[name].append(1.0 if value else 0.0)
            elif isinstance(value, (int, float)):
                totals[name].append(float(value))
    return {name: sum(vals) / len(vals) for name, vals in totals.items() if vals}
