"""Core simulation modules for the derby engine."""

from derby_engine.core.errors import (
    DerbyEngineError,
    MissingHorseError,
    SimulationTimeoutError,
)
from derby_engine.core.horse import CONDITION_MAX, CONDITION_MIN, Horse, lookup_horse
from derby_engine.core.leaderboard import (
    PARTICIPATION_POINTS,
    POINTS_BY_POSITION,
    LeaderboardRow,
    build_leaderboard,
    points_for_position,
)
from derby_engine.core.monte_carlo import simulate_round_monte_carlo
from derby_engine.core.pool import DEFAULT_HORSE_COUNT, create_horse_map, create_horse_pool
from derby_engine.core.program import RaceProgram, SnapshotMode
from derby_engine.core.ranking import (
    RoundResult,
    RoundResultItem,
    build_round_result,
    get_round_ranking,
)
from derby_engine.core.rng import (
    RandomSource,
    SeededRng,
    create_live_rng,
    create_seeded_rng,
    random_int,
    sample,
    shuffle,
)
from derby_engine.core.round import (
    MAX_SIMULATION_DURATION_MS,
    MINIMUM_SPEED_MPS,
    RoundEntry,
    RoundState,
    calculate_speed,
    create_round_state,
    is_round_complete,
    simulate_round,
    step_round,
)
from derby_engine.core.schedule import (
    HORSES_PER_ROUND,
    ROUND_DISTANCES,
    RaceRound,
    RoundStatus,
    build_race_schedule,
)

__all__ = [
    "CONDITION_MAX",
    "CONDITION_MIN",
    "DEFAULT_HORSE_COUNT",
    "DerbyEngineError",
    "HORSES_PER_ROUND",
    "Horse",
    "LeaderboardRow",
    "MAX_SIMULATION_DURATION_MS",
    "MINIMUM_SPEED_MPS",
    "MissingHorseError",
    "PARTICIPATION_POINTS",
    "POINTS_BY_POSITION",
    "ROUND_DISTANCES",
    "RaceProgram",
    "RaceRound",
    "RandomSource",
    "RoundEntry",
    "RoundResult",
    "RoundResultItem",
    "RoundState",
    "RoundStatus",
    "SeededRng",
    "SimulationTimeoutError",
    "SnapshotMode",
    "build_leaderboard",
    "build_race_schedule",
    "build_round_result",
    "calculate_speed",
    "create_horse_map",
    "create_horse_pool",
    "create_live_rng",
    "create_round_state",
    "create_seeded_rng",
    "get_round_ranking",
    "is_round_complete",
    "lookup_horse",
    "points_for_position",
    "random_int",
    "sample",
    "shuffle",
    "simulate_round",
    "simulate_round_monte_carlo",
    "step_round",
]
