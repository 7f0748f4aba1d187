"""Horse pool generation for the derby simulation engine.

A pool is drawn from the curated roster: names and colours are sampled
without replacement, and each horse receives a random condition score and
a base pace derived from it::

    base_pace = BASE_PACE_MIN
                + condition * BASE_PACE_CONDITION_SCALE
                + U[0, 1) * BASE_PACE_RANDOM_SPREAD
"""

from __future__ import annotations

from typing import Iterable

from derby_engine.config import Roster, default_roster
from derby_engine.core.horse import CONDITION_MAX, CONDITION_MIN, Horse
from derby_engine.core.rng import RandomSource, create_seeded_rng, random_int, sample

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_HORSE_COUNT: int = 20

BASE_PACE_MIN: float = 12.0  # m/s
BASE_PACE_CONDITION_SCALE: float = 0.07
BASE_PACE_RANDOM_SPREAD: float = 2.2
_PACE_DECIMALS: int = 2


def create_horse_pool(
    count: int = DEFAULT_HORSE_COUNT,
    rng: RandomSource | None = None,
    roster: Roster | None = None,
) -> list[Horse]:
    """Generate *count* horses with unique names and colours.

    Draw order is fixed so that a seeded *rng* reproduces the pool exactly:
    all names, then all colours, then per horse its condition followed by
    its pace jitter.

    Args:
        count: Number of horses (> 0).
        rng: Uniform random source.  ``None`` seeds a fresh generator from
            the wall clock.
        roster: Curated names and colours.  Defaults to the packaged roster.

    Returns:
        Horses in sampled-name order with ids ``horse-1 .. horse-<count>``.

    Raises:
        ValueError: If *count* is not positive or exceeds the number of
            available names or colours.
    """
    if count <= 0:
        raise ValueError("Horse count must be greater than zero.")

    roster = roster or default_roster()
    if count > len(roster.names):
        raise ValueError(
            f"Horse count {count} exceeds available unique names ({len(roster.names)})."
        )
    if count > len(roster.colors):
        raise ValueError(
            f"Horse count {count} exceeds available predefined colors ({len(roster.colors)})."
        )

    rng = rng or create_seeded_rng()
    names = sample(roster.names, count, rng)
    colors = sample(roster.colors, count, rng)

    horses: list[Horse] = []
    for index, name in enumerate(names):
        condition = random_int(CONDITION_MIN, CONDITION_MAX, rng)
        base_pace = round(
            BASE_PACE_MIN
            + condition * BASE_PACE_CONDITION_SCALE
            + rng() * BASE_PACE_RANDOM_SPREAD,
            _PACE_DECIMALS,
        )
        horses.append(
            Horse(
                id=f"horse-{index + 1}",
                name=name,
                color=colors[index],
                condition=condition,
                base_pace=base_pace,
            )
        )
    return horses


def create_horse_map(horses: Iterable[Horse]) -> dict[str, Horse]:
    """Index *horses* by id."""
    return {horse.id: horse for horse in horses}
