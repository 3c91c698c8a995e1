from __future__ import annotations

import random
from collections.abc import Callable
from typing import TypeVar

RandomFn = Callable[[], float]

T = TypeVar("T")

_LCG_MULTIPLIER = 1664525
_LCG_INCREMENT = 1013904223
_LCG_MODULUS = 2**32


def create_seeded_rng(seed: int) -> RandomFn:
    """32-bit linear congruential generator returning floats in [0, 1)."""
    state = seed % _LCG_MODULUS

    def _next() -> float:
        nonlocal state
        state = (state * _LCG_MULTIPLIER + _LCG_INCREMENT) % _LCG_MODULUS
        return state / _LCG_MODULUS

    return _next


def resolve_rng(rng: RandomFn | None, seed: int | None) -> RandomFn:
    if rng is not None:
        return rng
    if seed is not None:
        return create_seeded_rng(seed)
    return random.Random().random


def shuffle(values: list[T], rng: RandomFn) -> list[T]:
    """Fisher-Yates shuffle into a new list."""
    out = list(values)
    for i in range(len(out) - 1, 0, -1):
        j = int(rng() * (i + 1))
        out[i], out[j] = out[j], out[i]
    return out
