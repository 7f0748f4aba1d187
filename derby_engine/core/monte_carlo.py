"""Monte Carlo round analytics for the derby simulation engine.

Runs many seeded replications of ``simulate_round`` for a single scheduled
round and aggregates the outcomes into probability distributions over
winner, podium, finishing position and championship points.
"""

from __future__ import annotations

from typing import Any, Mapping

import numpy as np

from derby_engine.core.horse import Horse
from derby_engine.core.leaderboard import PODIUM_MAX_POSITION, points_for_position
from derby_engine.core.rng import SeededRng
from derby_engine.core.round import DEFAULT_STEP_MS, simulate_round
from derby_engine.core.schedule import RaceRound


def simulate_round_monte_carlo(
    round_def: RaceRound,
    horse_map: Mapping[str, Horse],
    simulations: int,
    base_seed: int = 42,
    step_ms: float = DEFAULT_STEP_MS,
) -> dict[str, Any]:
    """Run a Monte Carlo ensemble of one round.

    Replication *i* draws from ``SeededRng(base_seed + i)``, so the ensemble
    is reproducible for a given ``base_seed`` and never touches global
    random state.

    Collected statistics per horse id:
      - **Winner probability** -- fraction of replications won.
      - **Podium probability** -- fraction finishing in the top 3.
      - **Expected finishing position** -- mean position.
      - **Expected points** -- mean leaderboard points (5/3/2, else 1).
      - **Finish distribution** -- probability of each finishing position.

    Args:
        round_def: Round to replay.
        horse_map: Lookup for every horse in the round.
        simulations: Number of replications (>= 1).
        base_seed: Starting seed value.
        step_ms: Tick length passed to ``simulate_round``.

    Returns:
        Dictionary with keys:
            winner_probabilities  -- ``{horse_id: float}``
            podium_probabilities  -- ``{horse_id: float}``
            expected_position     -- ``{horse_id: float}``
            expected_points       -- ``{horse_id: float}``
            finish_distribution   -- ``{horse_id: {position: float}}``

    Raises:
        ValueError: If simulations < 1.
    """
    if simulations < 1:
        raise ValueError("simulations must be >= 1.")

    horse_ids: list[str] = list(round_def.horse_ids)
    column: dict[str, int] = {horse_id: idx for idx, horse_id in enumerate(horse_ids)}

    # positions[i, j] is the finishing position of horse j in replication i
    positions = np.zeros((simulations, len(horse_ids)), dtype=np.int64)

    for i in range(simulations):
        result = simulate_round(
            round_def, horse_map, rng=SeededRng(base_seed + i), step_ms=step_ms
        )
        for item in result.order:
            positions[i, column[item.horse_id]] = item.position

    points = np.vectorize(points_for_position, otypes=[np.int64])(positions)

    winner_probabilities: dict[str, float] = {}
    podium_probabilities: dict[str, float] = {}
    expected_position: dict[str, float] = {}
    expected_points: dict[str, float] = {}
    finish_distribution: dict[str, dict[int, float]] = {}

    for horse_id, idx in column.items():
        horse_positions = positions[:, idx]
        winner_probabilities[horse_id] = float(np.mean(horse_positions == 1))
        podium_probabilities[horse_id] = float(
            np.mean(horse_positions <= PODIUM_MAX_POSITION)
        )
        expected_position[horse_id] = float(np.mean(horse_positions))
        expected_points[horse_id] = float(np.mean(points[:, idx]))

        values, counts = np.unique(horse_positions, return_counts=True)
        finish_distribution[horse_id] = {
            int(pos): float(count) / simulations for pos, count in zip(values, counts)
        }

    return {
        "winner_probabilities": winner_probabilities,
        "podium_probabilities": podium_probabilities,
        "expected_position": expected_position,
        "expected_points": expected_points,
        "finish_distribution": finish_distribution,
    }
