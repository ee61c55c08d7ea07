"""Tests for A/B signal and experiment score summaries."""

import pytest

from zeroeval_core.core.results import summarize_scores, summarize_signal_values


def test_boolean_summary():
    summary = summarize_signal_values([("true", "boolean"), ("false", "boolean"), ("true", "boolean")])
    assert summary["signal_type"] == "boolean"
    assert summary["count"] == 3
    assert summary["true_rate"] == pytest.approx(2 / 3)


def test_numerical_summary():
    summary = summarize_signal_values([("1", "numerical"), ("2.5", "numerical")])
    assert summary["mean"] == pytest.approx(1.75)


def test_categorical_summary():
    summary = summarize_signal_values([("good", "categorical"), ("bad", "categorical"), ("good", "categorical")])
    assert summary["counts"] == {"good": 2, "bad": 1}


def test_mixed_types_use_first_type():
    summary = summarize_signal_values([("4", "numerical"), ("yes", "categorical"), ("2", "numerical")])
    assert summary["signal_type"] == "numerical"
    assert summary["count"] == 2
    assert summary["mean"] == pytest.approx(3.0)


def test_empty_summary():
    assert summarize_signal_values([]) == {"signal_type": "categorical", "count": 0}


def test_summarize_scores_ignores_non_numeric():
    summary = summarize_scores(
        [{"exact": True, "label": "x"}, {"exact": False, "bleu": 0.5}, {}, None]
    )
    assert summary == {"exact": pytest.approx(0.5), "bleu": pytest.approx(0.5)}
