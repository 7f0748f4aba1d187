"""Horse model for the derby simulation engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from derby_engine.core.errors import MissingHorseError

CONDITION_MIN: int = 1
CONDITION_MAX: int = 100


@dataclass(frozen=True)
class Horse:
    """Immutable representation of a competitor.

    Attributes:
        id: Stable identifier (``horse-<n>``), unique within a pool.
        name: Display name, unique within a pool.
        color: Display colour (``#rrggbb``), unique within a pool.
        condition: Static skill score in ``[CONDITION_MIN, CONDITION_MAX]``.
            Higher condition strictly increases speed.
        base_pace: Baseline speed in metres per second (> 0.0).
    """

    id: str
    name: str
    color: str
    condition: int
    base_pace: float

    def __post_init__(self) -> None:
        """Validate horse parameters."""
        if not self.id:
            raise ValueError("id must not be empty.")
        if not self.name:
            raise ValueError("name must not be empty.")
        if not self.color:
            raise ValueError("color must not be empty.")
        if not CONDITION_MIN <= self.condition <= CONDITION_MAX:
            raise ValueError(
                f"condition must be between {CONDITION_MIN} and {CONDITION_MAX}."
            )
        if self.base_pace <= 0.0:
            raise ValueError("base_pace must be > 0.0.")


def lookup_horse(horse_map: Mapping[str, Horse], horse_id: str) -> Horse:
    """Return the horse for *horse_id* or raise :class:`MissingHorseError`."""
    horse = horse_map.get(horse_id)
    if horse is None:
        raise MissingHorseError(horse_id)
    return horse
