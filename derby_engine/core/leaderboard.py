"""Cumulative standings for the derby simulation engine.

The leaderboard is a pure fold over the immutable result history and is
recomputed from scratch on every call; there is no running ledger to drift
out of sync with the results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from derby_engine.core.horse import Horse
from derby_engine.core.ranking import RoundResult

POINTS_BY_POSITION: dict[int, int] = {1: 5, 2: 3, 3: 2}
PARTICIPATION_POINTS: int = 1
PODIUM_MAX_POSITION: int = 3

_AVERAGE_DECIMALS: int = 2


@dataclass(frozen=True)
class LeaderboardRow:
    """Standings of one horse across every round run so far.

    Attributes:
        horse_id: Id of the horse.
        name: Display name.
        color: Display colour.
        condition: Static condition score (final tie-break).
        rounds: Rounds the horse was entered in.
        podiums: Finishes in positions 1-3.
        wins: Finishes in position 1.
        points: Championship points.
        total_time_ms: Sum of the horse's round times.
        avg_time_ms: ``total_time_ms / rounds`` (2 decimals), 0 with no rounds.
    """

    horse_id: str
    name: str
    color: str
    condition: int
    rounds: int
    podiums: int
    wins: int
    points: int
    total_time_ms: float
    avg_time_ms: float


def points_for_position(position: int) -> int:
    """Championship points for a finishing *position* (1-based)."""
    return POINTS_BY_POSITION.get(position, PARTICIPATION_POINTS)


def build_leaderboard(
    horses: Sequence[Horse],
    results: Iterable[RoundResult],
) -> list[LeaderboardRow]:
    """Fold *results* into one row per horse in *horses*.

    Placings of horses not in *horses* are ignored.  Rows are sorted by
    points (descending), then average time (ascending), then condition
    (descending); any remaining tie keeps pool order.
    """
    totals: dict[str, dict[str, float]] = {
        horse.id: {
            "rounds": 0,
            "podiums": 0,
            "wins": 0,
            "points": 0,
            "total_time_ms": 0.0,
        }
        for horse in horses
    }

    for result in results:
        for item in result.order:
            row = totals.get(item.horse_id)
            if row is None:
                continue

            row["rounds"] += 1
            row["total_time_ms"] += item.time_ms
            if item.position == 1:
                row["wins"] += 1
            if item.position <= PODIUM_MAX_POSITION:
                row["podiums"] += 1
            row["points"] += points_for_position(item.position)

    rows: list[LeaderboardRow] = []
    for horse in horses:
        row = totals[horse.id]
        rounds = int(row["rounds"])
        avg_time = round(row["total_time_ms"] / rounds, _AVERAGE_DECIMALS) if rounds else 0.0
        rows.append(
            LeaderboardRow(
                horse_id=horse.id,
                name=horse.name,
                color=horse.color,
                condition=horse.condition,
                rounds=rounds,
                podiums=int(row["podiums"]),
                wins=int(row["wins"]),
                points=int(row["points"]),
                total_time_ms=row["total_time_ms"],
                avg_time_ms=avg_time,
            )
        )

    rows.sort(key=lambda r: (-r.points, r.avg_time_ms, -r.condition))
    return rows
