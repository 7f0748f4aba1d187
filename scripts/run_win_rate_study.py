#!/usr/bin/env python
"""Monte Carlo win-rate study over a generated derby program.

This script:

1. Generates the horse pool and schedule for a fixed program seed.
2. Replays every scheduled round ``SIMULATIONS`` times with seeded
   per-replication random streams.
3. Saves the per-round probabilities to ``results/win_rate_study.json``.
4. Prints each round's favourites.

Usage
-----
::

    python scripts/run_win_rate_study.py
"""

from __future__ import annotations

import json
import logging
import os
import sys

# Ensure the project root is on the import path.
_project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from derby_engine.core.monte_carlo import simulate_round_monte_carlo  # noqa: E402
from derby_engine.core.pool import create_horse_map, create_horse_pool  # noqa: E402
from derby_engine.core.rng import SeededRng  # noqa: E402
from derby_engine.core.schedule import build_race_schedule  # noqa: E402

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

PROGRAM_SEED: int = 42
SIMULATIONS: int = 200
BASE_SEED: int = 1000
RESULTS_DIR: str = os.path.join(_project_root, "results")
OUTPUT_PATH: str = os.path.join(RESULTS_DIR, "win_rate_study.json")

_FAVOURITES_SHOWN: int = 3


def main() -> None:
    """Run the study for every round of the seeded program."""
    logging.basicConfig(level=logging.WARNING)

    print("=" * 60)
    print("DERBY WIN-RATE STUDY")
    print("=" * 60)
    print()

    rng = SeededRng(PROGRAM_SEED)
    horses = create_horse_pool(rng=rng)
    schedule = build_race_schedule(horses, rng)
    horse_map = create_horse_map(horses)
    print(f"Program seed {PROGRAM_SEED}: {len(horses)} horses, {len(schedule)} rounds")
    print(f"Replications per round: {SIMULATIONS}")
    print()

    rounds_output: list[dict[str, object]] = []
    for round_def in schedule:
        result = simulate_round_monte_carlo(
            round_def, horse_map, simulations=SIMULATIONS, base_seed=BASE_SEED
        )
        rounds_output.append(
            {
                "round_id": round_def.id,
                "distance": round_def.distance,
                "horse_ids": list(round_def.horse_ids),
                **result,
            }
        )

        print(f"Round {round_def.id} ({round_def.distance}m)")
        favourites = sorted(
            result["winner_probabilities"].items(), key=lambda x: x[1], reverse=True
        )
        for horse_id, prob in favourites[:_FAVOURITES_SHOWN]:
            horse = horse_map[horse_id]
            exp_pos = result["expected_position"][horse_id]
            print(
                f"  {horse.name:<16s} cond {horse.condition:3d}  "
                f"P(win): {prob:.3f}  E[pos]: {exp_pos:.2f}"
            )
        print()

    output: dict[str, object] = {
        "metadata": {
            "program_seed": PROGRAM_SEED,
            "simulations": SIMULATIONS,
            "base_seed": BASE_SEED,
        },
        "rounds": rounds_output,
    }

    os.makedirs(RESULTS_DIR, exist_ok=True)
    with open(OUTPUT_PATH, "w", encoding="utf-8") as fh:
        json.dump(output, fh, indent=2, sort_keys=True)
    print(f"Results saved to {OUTPUT_PATH}")


if __name__ == "__main__":
    main()
