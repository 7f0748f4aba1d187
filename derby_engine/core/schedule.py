"""Race schedule construction for the derby simulation engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from derby_engine.core.horse import Horse
from derby_engine.core.rng import RandomSource, create_seeded_rng, sample

ROUND_DISTANCES: tuple[int, ...] = (1200, 1400, 1600, 1800, 2000, 2200)  # metres
HORSES_PER_ROUND: int = 10


class RoundStatus(str, Enum):
    """Lifecycle of a scheduled round."""

    PENDING = "pending"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass
class RaceRound:
    """One scheduled round of a program.

    Only ``status`` changes after construction; the orchestration layer
    advances it as rounds are run.

    Attributes:
        id: 1-based round ordinal.
        distance: Race distance in metres (> 0).
        horse_ids: Ids of the horses entered, in lane order.
        status: Lifecycle status.
    """

    id: int
    distance: float
    horse_ids: tuple[str, ...]
    status: RoundStatus = RoundStatus.PENDING

    def __post_init__(self) -> None:
        """Validate round parameters."""
        self.horse_ids = tuple(self.horse_ids)
        if self.distance <= 0:
            raise ValueError("distance must be > 0.")
        if len(set(self.horse_ids)) != len(self.horse_ids):
            raise ValueError(f"Round {self.id} lists a horse more than once.")


def build_race_schedule(
    horses: Sequence[Horse],
    rng: RandomSource | None = None,
    distances: Sequence[float] = ROUND_DISTANCES,
    horses_per_round: int = HORSES_PER_ROUND,
) -> list[RaceRound]:
    """Build one round per distance, each with an independent random field.

    Fields are sampled without replacement within a round but independently
    across rounds, so a horse may be entered in several rounds.

    Args:
        horses: The generated pool.
        rng: Uniform random source.  ``None`` seeds from the wall clock.
        distances: Round distances in running order.
        horses_per_round: Field size of every round.

    Returns:
        Rounds with ids ``1 .. len(distances)``, all ``PENDING``.

    Raises:
        ValueError: If the pool is smaller than *horses_per_round*.
    """
    if len(horses) < horses_per_round:
        raise ValueError(
            f"At least {horses_per_round} horses are required, got {len(horses)}."
        )

    rng = rng or create_seeded_rng()
    horse_ids = [horse.id for horse in horses]

    return [
        RaceRound(
            id=round_index + 1,
            distance=distance,
            horse_ids=tuple(sample(horse_ids, horses_per_round, rng)),
        )
        for round_index, distance in enumerate(distances)
    ]
