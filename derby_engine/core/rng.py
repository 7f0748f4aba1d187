"""Random sources for the derby simulation engine.

Two kinds of randomness are used:

* :class:`SeededRng` -- a Lehmer (MINSTD) generator.  Given the same seed it
  yields the same stream on every platform, so pool and schedule generation
  are fully reproducible.
* :func:`create_live_rng` -- a ``numpy.random.Generator`` wrapped as a
  zero-argument callable, used for non-reproducible live play.

Every consumer only needs a :data:`RandomSource`: a callable returning a
uniform float in ``[0, 1)``.  Integer ranges, shuffles and samples are
built on top of it.
"""

from __future__ import annotations

import math
import time
from typing import Callable, Sequence, TypeVar

import numpy as np

T = TypeVar("T")

RandomSource = Callable[[], float]

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

RNG_MODULUS: int = 2_147_483_647  # 2**31 - 1
RNG_MULTIPLIER: int = 48_271
_MINIMUM_NON_ZERO_STATE: int = 1

# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------


class SeededRng:
    """Reproducible Lehmer generator producing floats in ``[0, 1)``.

    The seed is normalised with ``floor(abs(seed)) % RNG_MODULUS``; a zero
    state is replaced by 1 because zero is a fixed point of the recurrence.

    Attributes:
        seed: The seed originally supplied.
        state: Current internal state (``1 <= state < RNG_MODULUS``).
    """

    __slots__ = ("seed", "state")

    def __init__(self, seed: int | float) -> None:
        self.seed: int | float = seed
        state = math.floor(abs(seed)) % RNG_MODULUS
        if state == 0:
            state = _MINIMUM_NON_ZERO_STATE
        self.state: int = state

    def __call__(self) -> float:
        self.state = (self.state * RNG_MULTIPLIER) % RNG_MODULUS
        return (self.state - 1) / (RNG_MODULUS - 1)

    def __repr__(self) -> str:
        return f"SeededRng(seed={self.seed!r}, state={self.state})"


def create_seeded_rng(seed: int | float | None = None) -> SeededRng:
    """Return a :class:`SeededRng`, seeded from the wall clock if *seed* is ``None``."""
    if seed is None:
        seed = time.time_ns() // 1_000_000
    return SeededRng(seed)


def create_live_rng(seed: int | None = None) -> RandomSource:
    """Return a numpy-backed uniform source for live (non-replayed) play.

    Args:
        seed: Optional seed passed to ``numpy.random.default_rng``.  ``None``
            draws entropy from the OS.
    """
    generator: np.random.Generator = np.random.default_rng(seed)

    def _draw() -> float:
        return float(generator.random())

    return _draw


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def random_int(low: int, high: int, rng: RandomSource) -> int:
    """Uniform integer in the inclusive range ``[low, high]``."""
    return math.floor(rng() * (high - low + 1)) + low


def shuffle(items: Sequence[T], rng: RandomSource) -> list[T]:
    """Return a uniformly permuted copy of *items* (Fisher-Yates, swap-down)."""
    copy = list(items)
    for index in range(len(copy) - 1, 0, -1):
        swap_index = math.floor(rng() * (index + 1))
        copy[index], copy[swap_index] = copy[swap_index], copy[index]
    return copy


def sample(items: Sequence[T], count: int, rng: RandomSource) -> list[T]:
    """Draw *count* distinct elements of *items* without replacement.

    Raises:
        ValueError: If *count* is negative or larger than ``len(items)``.
    """
    if count < 0:
        raise ValueError(f"Cannot sample a negative count ({count}).")
    if count > len(items):
        raise ValueError(f"Cannot sample {count} items from {len(items)}.")
    return shuffle(items, rng)[:count]
