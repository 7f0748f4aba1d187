"""Headless program driver for the derby simulation engine.

``RaceProgram`` runs a generated program round by round.  The caller feeds
it frame time through :meth:`RaceProgram.advance_by`; the driver converts
that into a bounded number of fixed simulation ticks, records each finished
round, and waits out a short intermission before starting the next one.
All time is supplied by the caller, there are no timers or callbacks.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any

from derby_engine.core.errors import SimulationTimeoutError
from derby_engine.core.horse import Horse
from derby_engine.core.leaderboard import LeaderboardRow, build_leaderboard
from derby_engine.core.pool import DEFAULT_HORSE_COUNT, create_horse_map, create_horse_pool
from derby_engine.core.ranking import RoundResult, build_round_result
from derby_engine.core.rng import RandomSource, create_live_rng, create_seeded_rng
from derby_engine.core.round import (
    MAX_SIMULATION_DURATION_MS,
    MILLISECONDS_IN_SECOND,
    RoundState,
    create_round_state,
    step_round,
)
from derby_engine.core.schedule import (
    ROUND_DISTANCES,
    RaceRound,
    RoundStatus,
    build_race_schedule,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

INTERMISSION_MS: float = 900.0
SIMULATION_SPEED: float = 12.0  # simulated ms per frame ms
SIMULATION_STEP_MS: float = 48.0
MAX_FRAME_DELTA_MS: float = 120.0
MAX_STEPS_PER_FRAME: int = 8
MAX_ACCUMULATED_SIMULATION_MS: float = SIMULATION_STEP_MS * MAX_STEPS_PER_FRAME

EVENT_LOG_LIMIT: int = 16
SNAPSHOT_COORDINATE_SYSTEM: str = (
    "x: 0->100 progress left-to-right, y: lane 1->10 top-to-bottom"
)

_ROUND_TIME_DECIMALS: int = 2
_SNAPSHOT_ELAPSED_DECIMALS: int = 2
_SNAPSHOT_PROGRESS_DECIMALS: int = 3
_SNAPSHOT_SPEED_DECIMALS: int = 2


class SnapshotMode(str, Enum):
    IDLE = "idle"
    PAUSED = "paused"
    RACING = "racing"
    FINISHED = "finished"
    READY = "ready"


class RaceProgram:
    """Drives a generated program of rounds from start to championship end.

    Attributes:
        horses: The generated pool.
        schedule: Scheduled rounds; their ``status`` is updated as they run.
        results: Results of finished rounds, in running order.
        active_round: State of the round being run, if any.
        is_running: ``True`` while a round is active.
        is_paused: ``True`` while the active round is paused.
        seed: Seed the current program was generated from.
        event_log: Newest-first log lines, at most ``EVENT_LOG_LIMIT``.
    """

    def __init__(
        self,
        rng: RandomSource | None = None,
        horse_count: int = DEFAULT_HORSE_COUNT,
    ) -> None:
        self._rng: RandomSource = rng or create_live_rng()
        self._horse_count: int = horse_count
        self._horse_map: dict[str, Horse] = {}
        self._accumulator_ms: float = 0.0
        self._intermission_remaining_ms: float | None = None
        self.horses: list[Horse] = []
        self.schedule: list[RaceRound] = []
        self.results: list[RoundResult] = []
        self.active_round: RoundState | None = None
        self.is_running: bool = False
        self.is_paused: bool = False
        self.seed: int | float = 0
        self.event_log: list[str] = []

    # -- Derived state ------------------------------------------------------

    @property
    def has_program(self) -> bool:
        return (
            len(self.horses) == self._horse_count
            and len(self.schedule) == len(ROUND_DISTANCES)
        )

    @property
    def is_completed(self) -> bool:
        return (
            self.has_program
            and len(self.results) == len(self.schedule)
            and self.active_round is None
        )

    @property
    def can_start(self) -> bool:
        return self.has_program and not self.is_completed and not self.is_running

    @property
    def can_pause(self) -> bool:
        return self.active_round is not None and self.is_running

    @property
    def can_reset(self) -> bool:
        return bool(
            self.horses
            or self.schedule
            or self.results
            or self.active_round is not None
            or self.is_running
            or self.is_paused
            or self.event_log
        )

    @property
    def in_intermission(self) -> bool:
        return self._intermission_remaining_ms is not None

    @property
    def leaderboard(self) -> list[LeaderboardRow]:
        return build_leaderboard(self.horses, self.results)

    # -- Commands -----------------------------------------------------------

    def generate(self, seed: int | float | None = None) -> None:
        """Generate a fresh pool and schedule from *seed*, discarding any progress."""
        program_rng = create_seeded_rng(seed)
        horses = create_horse_pool(self._horse_count, program_rng)
        schedule = build_race_schedule(horses, program_rng)

        self.seed = program_rng.seed
        self.horses = horses
        self.schedule = schedule
        self._horse_map = create_horse_map(horses)
        self.results = []
        self._intermission_remaining_ms = None
        self._clear_round_state()
        self.event_log = []

        self._append_log(
            f"Generated {len(self.horses)} horses and a {len(self.schedule)}-round schedule."
        )

    def start(self) -> None:
        """Start the next pending round.  No-op unless :attr:`can_start`."""
        if not self.can_start:
            return

        round_index = len(self.results)
        next_round = self.schedule[round_index]

        self._intermission_remaining_ms = None
        next_round.status = RoundStatus.RUNNING
        self.active_round = create_round_state(next_round, self._horse_map)
        self._accumulator_ms = 0.0
        self.is_paused = False
        self.is_running = True

        self._append_log(f"Round {next_round.id} started ({next_round.distance}m).")

    def toggle_pause(self) -> None:
        """Pause or resume the active round.  No-op unless :attr:`can_pause`."""
        if not self.can_pause:
            return

        self.is_paused = not self.is_paused
        verb = "paused" if self.is_paused else "resumed"
        self._append_log(f"Round {self.active_round.round_id} {verb}.")

    def advance_by(self, delta_ms: float) -> None:
        """Feed *delta_ms* of frame time into the driver.

        During an intermission the time counts down the intermission and the
        next round starts when it runs out.  While a round is running, the
        frame time is clamped to ``MAX_FRAME_DELTA_MS``, scaled by
        ``SIMULATION_SPEED`` into an accumulator capped at
        ``MAX_ACCUMULATED_SIMULATION_MS``, and drained in fixed
        ``SIMULATION_STEP_MS`` ticks, at most ``MAX_STEPS_PER_FRAME`` per
        call.  Paused or idle programs ignore the call.
        """
        if delta_ms <= 0:
            return

        if self._intermission_remaining_ms is not None:
            self._intermission_remaining_ms -= delta_ms
            if self._intermission_remaining_ms <= 0:
                self._intermission_remaining_ms = None
                self.start()
            return

        state = self.active_round
        if state is None or not self.is_running or self.is_paused:
            return

        clamped_delta = min(MAX_FRAME_DELTA_MS, delta_ms)
        self._accumulator_ms = min(
            MAX_ACCUMULATED_SIMULATION_MS,
            self._accumulator_ms + clamped_delta * SIMULATION_SPEED,
        )

        steps = 0
        while (
            self._accumulator_ms >= SIMULATION_STEP_MS
            and not state.complete
            and steps < MAX_STEPS_PER_FRAME
        ):
            step_round(state, SIMULATION_STEP_MS, self._horse_map, self._rng)
            self._accumulator_ms -= SIMULATION_STEP_MS
            steps += 1

        if steps >= MAX_STEPS_PER_FRAME and self._accumulator_ms >= SIMULATION_STEP_MS:
            # frame budget exhausted, drop the backlog rather than spiral
            self._accumulator_ms = 0.0

        if state.complete:
            self._accumulator_ms = 0.0
            self._finish_round()

    def run_to_completion(self, frame_ms: float = 16.0) -> list[RoundResult]:
        """Drive every remaining round with fixed frames of *frame_ms*.

        A paused round is resumed first.

        Raises:
            ValueError: If no program has been generated or *frame_ms* is
                not positive.
            SimulationTimeoutError: If a round exceeds the simulation
                safety ceiling.
        """
        if not self.has_program:
            raise ValueError("Generate a program before running it.")
        if frame_ms <= 0:
            raise ValueError("frame_ms must be > 0.")

        if self.is_paused:
            self.toggle_pause()

        while not self.is_completed:
            if self.active_round is None and not self.in_intermission:
                self.start()
            self.advance_by(frame_ms)

            state = self.active_round
            if state is not None and state.elapsed_ms >= MAX_SIMULATION_DURATION_MS:
                raise SimulationTimeoutError(state.round_id, state.elapsed_ms)

        return list(self.results)

    def reset(self) -> None:
        """Discard the program and every result."""
        self.horses = []
        self.schedule = []
        self.results = []
        self._horse_map = {}
        self._intermission_remaining_ms = None
        self._clear_round_state()
        self.event_log = []
        self.seed = 0

    # -- Snapshots ----------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Plain-data view of the program for external renderers."""
        latest = self.results[-1] if self.results else None
        state = self.active_round

        active: dict[str, Any] | None = None
        if state is not None:
            active = {
                "id": state.round_id,
                "distance": state.distance,
                "elapsedMs": round(state.elapsed_ms, _SNAPSHOT_ELAPSED_DECIMALS),
                "entries": [
                    {
                        "horseId": entry.horse_id,
                        "horseName": self._horse_name(entry.horse_id),
                        "lane": entry.lane,
                        "progress": round(entry.progress, _SNAPSHOT_PROGRESS_DECIMALS),
                        "speedMps": round(entry.last_speed, _SNAPSHOT_SPEED_DECIMALS),
                        "finished": entry.finish_time_ms is not None,
                    }
                    for entry in state.entries
                ],
            }

        return {
            "mode": self._snapshot_mode().value,
            "coordinateSystem": SNAPSHOT_COORDINATE_SYSTEM,
            "rounds": {"total": len(self.schedule), "completed": len(self.results)},
            "activeRound": active,
            "latestResult": (
                {
                    "roundId": latest.round_id,
                    "winner": latest.winner.horse_name if latest.winner else None,
                }
                if latest is not None
                else None
            ),
        }

    def render_snapshot(self) -> str:
        """:meth:`snapshot` serialised as JSON."""
        return json.dumps(self.snapshot())

    # -- Internals ----------------------------------------------------------

    def _finish_round(self) -> None:
        state = self.active_round
        if state is None:
            return

        round_index = len(self.results)
        result = build_round_result(state, self._horse_map)
        self.results.append(result)
        self.schedule[round_index].status = RoundStatus.FINISHED

        winner = result.winner
        if winner is not None:
            seconds = winner.time_ms / MILLISECONDS_IN_SECOND
            self._append_log(
                f"Round {result.round_id} finished. Winner: {winner.horse_name} "
                f"({seconds:.{_ROUND_TIME_DECIMALS}f}s)."
            )

        self._clear_round_state()

        if len(self.results) < len(self.schedule):
            self._intermission_remaining_ms = INTERMISSION_MS
        else:
            self._append_log(
                f"Championship complete. All {len(self.schedule)} rounds finished."
            )

    def _clear_round_state(self) -> None:
        self.active_round = None
        self.is_running = False
        self.is_paused = False
        self._accumulator_ms = 0.0

    def _snapshot_mode(self) -> SnapshotMode:
        if not self.has_program:
            return SnapshotMode.IDLE
        if self.active_round is not None and self.is_paused:
            return SnapshotMode.PAUSED
        if self.active_round is not None:
            return SnapshotMode.RACING
        if self.is_completed:
            return SnapshotMode.FINISHED
        return SnapshotMode.READY

    def _horse_name(self, horse_id: str) -> str:
        horse = self._horse_map.get(horse_id)
        return horse.name if horse is not None else horse_id

    def _append_log(self, message: str) -> None:
        logger.info(message)
        timestamp = datetime.now().strftime("%H:%M:%S")
        self.event_log = [f"{timestamp} {message}", *self.event_log][:EVENT_LOG_LIMIT]
