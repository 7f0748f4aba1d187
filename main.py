"""CLI entrypoint for the Derby Race Simulation Engine."""

from __future__ import annotations

import argparse
import logging
import sys

from derby_engine import __version__
from derby_engine.core.program import RaceProgram
from derby_engine.core.rng import SeededRng

DEFAULT_SEED: int = 42


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a full derby program headlessly.")
    parser.add_argument(
        "seed",
        nargs="?",
        type=int,
        default=DEFAULT_SEED,
        help=f"program seed (default: {DEFAULT_SEED})",
    )
    parser.add_argument(
        "--live",
        action="store_true",
        help="use non-reproducible randomness for the races themselves",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log engine events")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Generate a seeded program, run every round and print the standings."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print(f"Derby Race Simulation Engine v{__version__}")
    print("=" * 56)

    # -- Generate program -----------------------------------------------------
    program = RaceProgram(rng=None if args.live else SeededRng(args.seed + 1))
    program.generate(args.seed)
    print(f"\nSeed {program.seed}: {len(program.horses)} horses, "
          f"{len(program.schedule)} rounds")
    for round_def in program.schedule:
        print(f"  R{round_def.id}: {round_def.distance}m, {len(round_def.horse_ids)} runners")

    # -- Run rounds -----------------------------------------------------------
    results = program.run_to_completion()
    for result in results:
        print(f"\nRound {result.round_id} ({result.distance}m)")
        for item in result.order[:3]:
            print(f"  {item.position}. {item.horse_name:<16} lane {item.lane:>2}  "
                  f"{item.time_ms / 1000:8.2f}s  best {item.best_speed:5.2f} m/s")

    # -- Standings ------------------------------------------------------------
    print("\nLeaderboard")
    print(f"  {'#':>2}  {'Horse':<16} {'Pts':>3} {'W':>2} {'Pod':>3} {'Avg (s)':>8}")
    for rank, row in enumerate(program.leaderboard, start=1):
        if row.rounds == 0:
            continue
        print(f"  {rank:2d}  {row.name:<16} {row.points:3d} {row.wins:2d} "
              f"{row.podiums:3d} {row.avg_time_ms / 1000:8.2f}")

    print("\nChampionship complete.")


if __name__ == "__main__":
    sys.exit(main() or 0)
