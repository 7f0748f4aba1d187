"""Tick-based round simulator for the derby simulation engine.

A round moves through ``not started -> running -> complete``.  Each call to
:func:`step_round` advances every unfinished entry by one tick using the
pace model::

    speed = base_pace
            * (CONDITION_MULTIPLIER_BASE + condition / CONDITION_MULTIPLIER_SCALE)
            * (RANDOM_PULSE_BASE + U * RANDOM_PULSE_RANGE)
            * (1 - progress_ratio * FATIGUE_MAX_PENALTY)
            * late_boost

where ``late_boost = LATE_BOOST_BASE + U * LATE_BOOST_RANGE`` once the
progress ratio exceeds ``LATE_BOOST_TRIGGER_PROGRESS`` and 1 before that.
The result is floored at ``MINIMUM_SPEED_MPS``.

Finish times are interpolated inside the tick in which the entry crosses
the line, so two entries finishing in the same tick are still separated by
how far each overshot the distance.
"""

from __future__ import annotations

import logging
from typing import Mapping

from derby_engine.core.errors import SimulationTimeoutError
from derby_engine.core.horse import Horse, lookup_horse
from derby_engine.core.ranking import RoundResult, build_round_result
from derby_engine.core.rng import RandomSource, create_live_rng
from derby_engine.core.schedule import RaceRound

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MILLISECONDS_IN_SECOND: float = 1000.0

CONDITION_MULTIPLIER_BASE: float = 0.78
CONDITION_MULTIPLIER_SCALE: float = 100.0
RANDOM_PULSE_BASE: float = 0.9
RANDOM_PULSE_RANGE: float = 0.25
FATIGUE_MAX_PENALTY: float = 0.2
LATE_BOOST_TRIGGER_PROGRESS: float = 0.82
LATE_BOOST_BASE: float = 1.05
LATE_BOOST_RANGE: float = 0.08
MINIMUM_SPEED_MPS: float = 4.2

MAX_SIMULATION_DURATION_MS: float = 600_000.0
DEFAULT_STEP_MS: float = 80.0

_SPEED_DECIMALS: int = 2
_TIME_DECIMALS: int = 2

# ---------------------------------------------------------------------------
# State containers
# ---------------------------------------------------------------------------


class RoundEntry:
    """Mutable per-horse bookkeeping during a round.

    ``distance_covered`` and ``progress`` never decrease and never exceed
    the round distance and 1.0 respectively.  ``finish_time_ms`` stays
    ``None`` until the horse crosses the line; after that the entry is
    frozen.
    """

    __slots__ = (
        "horse_id",
        "lane",
        "distance_covered",
        "progress",
        "last_speed",
        "best_speed",
        "finish_time_ms",
    )

    def __init__(self, horse_id: str, lane: int) -> None:
        self.horse_id: str = horse_id
        self.lane: int = lane
        self.distance_covered: float = 0.0
        self.progress: float = 0.0
        self.last_speed: float = 0.0
        self.best_speed: float = 0.0
        self.finish_time_ms: float | None = None

    @property
    def finished(self) -> bool:
        return self.finish_time_ms is not None

    def __repr__(self) -> str:
        return (
            f"RoundEntry(horse_id={self.horse_id!r}, lane={self.lane}, "
            f"distance_covered={self.distance_covered:.2f}, "
            f"finish_time_ms={self.finish_time_ms})"
        )


class RoundState:
    """Simulation state of the single active round.

    Attributes:
        round_id: Id of the scheduled round being run.
        distance: Round distance in metres.
        elapsed_ms: Simulated time since the start.
        entries: One :class:`RoundEntry` per horse, in lane order.
        complete: ``True`` once every entry has a finish time.
    """

    __slots__ = ("round_id", "distance", "elapsed_ms", "entries", "complete")

    def __init__(self, round_id: int, distance: float, entries: list[RoundEntry]) -> None:
        self.round_id: int = round_id
        self.distance: float = distance
        self.elapsed_ms: float = 0.0
        self.entries: list[RoundEntry] = entries
        self.complete: bool = False

    def __repr__(self) -> str:
        return (
            f"RoundState(round_id={self.round_id}, distance={self.distance}, "
            f"elapsed_ms={self.elapsed_ms}, complete={self.complete})"
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def create_round_state(round_def: RaceRound, horse_map: Mapping[str, Horse]) -> RoundState:
    """Create a fresh state for *round_def*, assigning lanes 1..N in entry order.

    Raises:
        MissingHorseError: If an entered horse is not in *horse_map*.
    """
    entries: list[RoundEntry] = []
    for index, horse_id in enumerate(round_def.horse_ids):
        lookup_horse(horse_map, horse_id)
        entries.append(RoundEntry(horse_id=horse_id, lane=index + 1))

    logger.debug(
        "Created state for round %s (%sm, %d entries)",
        round_def.id,
        round_def.distance,
        len(entries),
    )
    return RoundState(round_id=round_def.id, distance=round_def.distance, entries=entries)


def calculate_speed(
    horse: Horse,
    entry: RoundEntry,
    round_distance: float,
    rng: RandomSource,
) -> float:
    """Instantaneous speed in m/s for *entry* at its current position.

    Draws one uniform value for the random pulse and, past the late-boost
    threshold, a second one for the boost.
    """
    progress_ratio = entry.distance_covered / round_distance
    condition_multiplier = (
        CONDITION_MULTIPLIER_BASE + horse.condition / CONDITION_MULTIPLIER_SCALE
    )
    random_pulse = RANDOM_PULSE_BASE + rng() * RANDOM_PULSE_RANGE
    fatigue = 1.0 - progress_ratio * FATIGUE_MAX_PENALTY
    if progress_ratio > LATE_BOOST_TRIGGER_PROGRESS:
        late_boost = LATE_BOOST_BASE + rng() * LATE_BOOST_RANGE
    else:
        late_boost = 1.0

    pace = horse.base_pace * condition_multiplier * random_pulse * fatigue * late_boost
    return max(MINIMUM_SPEED_MPS, pace)


def step_round(
    state: RoundState,
    delta_ms: float,
    horse_map: Mapping[str, Horse],
    rng: RandomSource,
) -> RoundState:
    """Advance *state* by one tick of *delta_ms* milliseconds.

    For every unfinished entry, in lane order:
        1. Compute the tick speed with :func:`calculate_speed`.
        2. Advance the distance by ``speed * delta_ms / 1000`` and clamp it
           to the round distance; progress is the clamped ratio.
        3. Record the rounded speed and the best speed so far.
        4. On crossing the line, interpolate the finish instant by turning
           the overshoot back into time at the tick speed.

    Elapsed time then advances by the full *delta_ms* and ``complete`` is
    set once every entry has finished.  A complete round or a non-positive
    *delta_ms* leaves the state untouched.

    Args:
        state: Round state, mutated in place.
        delta_ms: Tick length in milliseconds.
        horse_map: Lookup for every horse in the round.
        rng: Uniform random source for the per-tick variation.

    Returns:
        The same *state* object.

    Raises:
        MissingHorseError: If an unfinished entry's horse is not in
            *horse_map*.
    """
    if state.complete or delta_ms <= 0:
        return state

    delta_seconds = delta_ms / MILLISECONDS_IN_SECOND

    for entry in state.entries:
        if entry.finish_time_ms is not None:
            continue

        horse = lookup_horse(horse_map, entry.horse_id)
        speed = calculate_speed(horse, entry, state.distance, rng)

        tentative_distance = entry.distance_covered + speed * delta_seconds
        clamped_distance = min(state.distance, tentative_distance)

        entry.distance_covered = clamped_distance
        entry.progress = min(1.0, clamped_distance / state.distance)
        entry.last_speed = round(speed, _SPEED_DECIMALS)
        entry.best_speed = max(entry.best_speed, entry.last_speed)

        if clamped_distance >= state.distance:
            overshoot_distance = max(0.0, tentative_distance - state.distance)
            # speed is floored at MINIMUM_SPEED_MPS, keep that floor positive
            overshoot_ms = (
                overshoot_distance / speed * MILLISECONDS_IN_SECOND if speed > 0 else 0.0
            )
            entry.finish_time_ms = round(
                state.elapsed_ms + delta_ms - overshoot_ms, _TIME_DECIMALS
            )

    state.elapsed_ms = round(state.elapsed_ms + delta_ms, _TIME_DECIMALS)
    state.complete = is_round_complete(state)
    return state


def is_round_complete(state: RoundState) -> bool:
    """``True`` iff every entry has a finish time."""
    return all(entry.finish_time_ms is not None for entry in state.entries)


def simulate_round(
    round_def: RaceRound,
    horse_map: Mapping[str, Horse],
    rng: RandomSource | None = None,
    step_ms: float = DEFAULT_STEP_MS,
) -> RoundResult:
    """Run *round_def* to completion with a fixed tick and rank the field.

    Args:
        round_def: The scheduled round.
        horse_map: Lookup for every horse in the round.
        rng: Uniform random source.  ``None`` uses a live numpy source.
        step_ms: Tick length in milliseconds (> 0).

    Returns:
        The :class:`RoundResult` of the finished round.

    Raises:
        ValueError: If *step_ms* is not positive.
        MissingHorseError: If an entered horse is not in *horse_map*.
        SimulationTimeoutError: If the round has not finished after
            ``MAX_SIMULATION_DURATION_MS`` of simulated time.
    """
    if step_ms <= 0:
        raise ValueError("step_ms must be > 0.")

    rng = rng or create_live_rng()
    state = create_round_state(round_def, horse_map)

    while not state.complete and state.elapsed_ms < MAX_SIMULATION_DURATION_MS:
        step_round(state, step_ms, horse_map, rng)

    if not state.complete:
        logger.debug("Round %s did not finish within %.0f ms", state.round_id, state.elapsed_ms)
        raise SimulationTimeoutError(state.round_id, state.elapsed_ms)

    logger.debug("Round %s finished at %.2f ms", state.round_id, state.elapsed_ms)
    return build_round_result(state, horse_map)
