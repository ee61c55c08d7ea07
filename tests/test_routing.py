"""Tests for weighted and sticky variant selection."""

import random
from collections import Counter
from types import SimpleNamespace

import pytest

from zeroeval_core.core.routing import select_variant, sticky_fraction


def _variants(**weights):
    return [SimpleNamespace(name=name, weight=weight) for name, weight in weights.items()]


def test_single_variant_always_selected():
    variants = _variants(only=1)
    assert select_variant(variants, "t").name == "only"


def test_weights_are_respected():
    variants = _variants(heavy=3, light=1)
    rng = random.Random(1234)
    counts = Counter(select_variant(variants, "t", rng=rng).name for _ in range(4000))
    assert counts["heavy"] / 4000 == pytest.approx(0.75, abs=0.05)


def test_zero_weight_never_selected():
    variants = _variants(off=0, on=1)
    rng = random.Random(7)
    assert {select_variant(variants, "t", rng=rng).name for _ in range(200)} == {"on"}


def test_no_positive_weight_raises():
    with pytest.raises(ValueError):
        select_variant(_variants(a=0, b=0), "t")


def test_sticky_key_is_deterministic():
    variants = _variants(a=1, b=1, c=1)
    picks = {select_variant(variants, "t", sticky_key="user-1").name for _ in range(20)}
    assert len(picks) == 1


def test_sticky_keys_spread_across_variants():
    variants = _variants(a=1, b=1)
    picks = Counter(
        select_variant(variants, "t", sticky_key=f"user-{i}").name for i in range(400)
    )
    assert set(picks) == {"a", "b"}
    assert picks["a"] / 400 == pytest.approx(0.5, abs=0.1)


def test_sticky_fraction_depends_on_test():
    assert 0 <= sticky_fraction("t1", "user") < 1
    assert sticky_fraction("t1", "user") != sticky_fraction("t2", "user")
