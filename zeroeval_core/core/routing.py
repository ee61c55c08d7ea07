"""Traffic-split routing for ``zeroeval/<TEST_ID>`` proxy requests.

A test holds weighted variants. Without a sticky key each request draws a
variant at random in proportion to the weights. With a sticky key (the
OpenAI ``user`` field) the draw is a sha256 bucket of ``test_id:key``, so a
given user always lands on the same variant while the weights are
unchanged.
"""

import hashlib
import random
from collections.abc import Sequence
from typing import Protocol


class WeightedVariant(Protocol):
    name: str
    weight: float


_BUCKET_DIGITS = 15
_BUCKET_SPACE = 16**_BUCKET_DIGITS


def sticky_fraction(test_id: str, sticky_key: str) -> float:
    """Deterministic point in [0, 1) for ``test_id:sticky_key``."""
    digest = hashlib.sha256(f"{test_id}:{sticky_key}".encode("utf-8")).hexdigest()
    return int(digest[:_BUCKET_DIGITS], 16) / _BUCKET_SPACE


def select_variant(
    variants: Sequence[WeightedVariant],
    test_id: str,
    sticky_key: str | None = None,
    rng: random.Random | None = None,
) -> WeightedVariant:
    """Pick one variant in proportion to its weight."""
    eligible = [variant for variant in variants if variant.weight > 0]
    if not eligible:
        raise ValueError(f"Test '{test_id}' has no variant with a positive weight")

    total = sum(variant.weight for variant in eligible)
    if sticky_key:
        point = sticky_fraction(test_id, sticky_key) * total
    else:
        point = (rng or random).random() * total

    cumulative = 0.0
    for variant in eligible:
        cumulative += variant.weight
        if point < cumulative:
            return variant
    # float rounding can leave point == total
    return eligible[-1]
