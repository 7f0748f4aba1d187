"""Round ranking and result construction for the derby simulation engine."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping

from derby_engine.core.horse import Horse, lookup_horse

if TYPE_CHECKING:
    from derby_engine.core.round import RoundEntry, RoundState

_TIME_DECIMALS: int = 2
_SPEED_DECIMALS: int = 2

# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RoundResultItem:
    """One placing in a round result.

    Attributes:
        position: 1-based finishing position.
        horse_id: Id of the horse.
        horse_name: Display name at the time of the round.
        lane: Lane the horse ran in.
        time_ms: Finish time, or the round's elapsed time if the horse had
            not finished when the result was built.
        best_speed: Best tick speed in m/s.
        condition: Condition score snapshot.
    """

    position: int
    horse_id: str
    horse_name: str
    lane: int
    time_ms: float
    best_speed: float
    condition: int


@dataclass(frozen=True)
class RoundResult:
    """Ranked outcome of one round.  Never mutated after construction."""

    round_id: int
    distance: float
    finished_at_ms: float
    order: tuple[RoundResultItem, ...] = field(default_factory=tuple)

    @property
    def winner(self) -> RoundResultItem | None:
        return self.order[0] if self.order else None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _ranking_key(entry: RoundEntry) -> tuple[float, float, int]:
    finish_time = math.inf if entry.finish_time_ms is None else entry.finish_time_ms
    return (finish_time, -entry.distance_covered, entry.lane)


def get_round_ranking(state: RoundState) -> list[RoundEntry]:
    """Order the entries of *state* from first to last.

    Ties are broken in turn by:
        1. Finish time ascending; unfinished entries count as ``+inf``.
        2. Distance covered descending.
        3. Lane ascending.

    Lanes are unique within a round, so no two entries compare equal.
    The entries themselves are not reordered.
    """
    return sorted(state.entries, key=_ranking_key)


def build_round_result(state: RoundState, horse_map: Mapping[str, Horse]) -> RoundResult:
    """Snapshot *state* into an immutable :class:`RoundResult`.

    Works on complete and in-progress rounds alike; unfinished entries take
    the round's elapsed time as their time.

    Raises:
        MissingHorseError: If a ranked horse is not in *horse_map*.
    """
    order: list[RoundResultItem] = []
    for index, entry in enumerate(get_round_ranking(state)):
        horse = lookup_horse(horse_map, entry.horse_id)
        time_ms = (
            entry.finish_time_ms if entry.finish_time_ms is not None else state.elapsed_ms
        )
        order.append(
            RoundResultItem(
                position=index + 1,
                horse_id=entry.horse_id,
                horse_name=horse.name,
                lane=entry.lane,
                time_ms=round(time_ms, _TIME_DECIMALS),
                best_speed=round(entry.best_speed, _SPEED_DECIMALS),
                condition=horse.condition,
            )
        )

    return RoundResult(
        round_id=state.round_id,
        distance=state.distance,
        finished_at_ms=state.elapsed_ms,
        order=tuple(order),
    )
