"""Tests for the tick-based round simulator."""

import logging

import pytest

from derby_engine.core.errors import MissingHorseError, SimulationTimeoutError
from derby_engine.core.horse import Horse
from derby_engine.core.pool import create_horse_map, create_horse_pool
from derby_engine.core.rng import SeededRng
from derby_engine.core.round import (
    CONDITION_MULTIPLIER_BASE,
    CONDITION_MULTIPLIER_SCALE,
    MAX_SIMULATION_DURATION_MS,
    MINIMUM_SPEED_MPS,
    RANDOM_PULSE_BASE,
    RANDOM_PULSE_RANGE,
    RoundEntry,
    calculate_speed,
    create_round_state,
    is_round_complete,
    simulate_round,
    step_round,
)
from derby_engine.core.schedule import RaceRound, build_race_schedule

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _make_horse(horse_id: str, condition: int = 50, base_pace: float = 15.0) -> Horse:
    return Horse(
        id=horse_id,
        name=f"Name {horse_id}",
        color="#000000",
        condition=condition,
        base_pace=base_pace,
    )


def _field(n: int = 4) -> tuple[RaceRound, dict[str, Horse]]:
    horses = [_make_horse(f"horse-{i}", condition=20 + i * 10) for i in range(1, n + 1)]
    round_def = RaceRound(id=1, distance=400, horse_ids=tuple(h.id for h in horses))
    return round_def, create_horse_map(horses)


class _CountingRng:
    """Constant random source that counts how often it is drawn."""

    def __init__(self, value: float = 0.5) -> None:
        self.value = value
        self.calls = 0

    def __call__(self) -> float:
        self.calls += 1
        return self.value


# ---------------------------------------------------------------------------
# State construction
# ---------------------------------------------------------------------------


def test_create_round_state_assigns_lanes_in_order() -> None:
    round_def, horse_map = _field(4)
    state = create_round_state(round_def, horse_map)
    assert state.round_id == 1
    assert state.distance == 400
    assert state.elapsed_ms == 0.0
    assert not state.complete
    assert [e.horse_id for e in state.entries] == list(round_def.horse_ids)
    assert [e.lane for e in state.entries] == [1, 2, 3, 4]
    for entry in state.entries:
        assert entry.distance_covered == 0.0
        assert entry.progress == 0.0
        assert entry.best_speed == 0.0
        assert entry.finish_time_ms is None


def test_create_round_state_missing_horse() -> None:
    round_def, horse_map = _field(3)
    del horse_map["horse-2"]
    with pytest.raises(MissingHorseError, match="horse-2 was not found") as excinfo:
        create_round_state(round_def, horse_map)
    assert excinfo.value.horse_id == "horse-2"
    assert isinstance(excinfo.value, KeyError)


# ---------------------------------------------------------------------------
# Speed model
# ---------------------------------------------------------------------------


def test_speed_formula_at_start() -> None:
    horse = _make_horse("h", condition=60, base_pace=14.0)
    entry = RoundEntry("h", lane=1)
    speed = calculate_speed(horse, entry, 1000, lambda: 0.5)
    expected = (
        14.0
        * (CONDITION_MULTIPLIER_BASE + 60 / CONDITION_MULTIPLIER_SCALE)
        * (RANDOM_PULSE_BASE + 0.5 * RANDOM_PULSE_RANGE)
    )
    assert speed == pytest.approx(expected)


def test_higher_condition_is_faster() -> None:
    entry = RoundEntry("h", lane=1)
    slow = calculate_speed(_make_horse("a", condition=20), entry, 1000, lambda: 0.3)
    fast = calculate_speed(_make_horse("b", condition=95), entry, 1000, lambda: 0.3)
    assert fast > slow


def test_fatigue_reduces_speed_with_progress() -> None:
    horse = _make_horse("h")
    fresh = RoundEntry("h", lane=1)
    tired = RoundEntry("h", lane=1)
    tired.distance_covered = 800.0
    assert calculate_speed(horse, tired, 1000, lambda: 0.5) < calculate_speed(
        horse, fresh, 1000, lambda: 0.5
    )


def test_late_boost_draws_extra_random_value() -> None:
    """Past the boost threshold a second uniform value is drawn."""
    horse = _make_horse("h")
    early = RoundEntry("h", lane=1)
    early.distance_covered = 500.0
    late = RoundEntry("h", lane=1)
    late.distance_covered = 900.0

    rng = _CountingRng()
    calculate_speed(horse, early, 1000, rng)
    assert rng.calls == 1
    calculate_speed(horse, late, 1000, rng)
    assert rng.calls == 3


def test_speed_floor() -> None:
    horse = _make_horse("h", condition=1, base_pace=0.1)
    assert calculate_speed(horse, RoundEntry("h", lane=1), 1000, lambda: 0.0) == MINIMUM_SPEED_MPS


# ---------------------------------------------------------------------------
# Stepping
# ---------------------------------------------------------------------------


def test_non_positive_delta_is_noop() -> None:
    round_def, horse_map = _field(3)
    state = create_round_state(round_def, horse_map)
    rng = _CountingRng()
    assert step_round(state, 0, horse_map, rng) is state
    step_round(state, -10, horse_map, rng)
    assert state.elapsed_ms == 0.0
    assert rng.calls == 0
    assert all(e.distance_covered == 0.0 for e in state.entries)


def test_single_step_advances_every_entry() -> None:
    round_def, horse_map = _field(3)
    state = create_round_state(round_def, horse_map)
    step_round(state, 100, horse_map, SeededRng(1))
    assert state.elapsed_ms == 100.0
    for entry in state.entries:
        assert entry.distance_covered > 0.0
        assert entry.progress == pytest.approx(entry.distance_covered / 400)
        assert entry.last_speed >= MINIMUM_SPEED_MPS
        assert entry.best_speed == entry.last_speed


def test_invariants_hold_until_completion() -> None:
    """Progress and distance stay bounded and never decrease; complete iff all finished."""
    round_def, horse_map = _field(6)
    state = create_round_state(round_def, horse_map)
    rng = SeededRng(2024)
    previous = {e.horse_id: (e.distance_covered, e.progress, e.best_speed) for e in state.entries}

    for _ in range(10_000):
        step_round(state, 80, horse_map, rng)
        for entry in state.entries:
            prev_distance, prev_progress, prev_best = previous[entry.horse_id]
            assert prev_distance <= entry.distance_covered <= state.distance
            assert prev_progress <= entry.progress <= 1.0
            assert entry.best_speed >= prev_best
            previous[entry.horse_id] = (
                entry.distance_covered,
                entry.progress,
                entry.best_speed,
            )
        assert state.complete == all(e.finish_time_ms is not None for e in state.entries)
        assert state.complete == is_round_complete(state)
        if state.complete:
            break

    assert state.complete


def test_finished_entries_are_frozen() -> None:
    round_def, horse_map = _field(4)
    state = create_round_state(round_def, horse_map)
    rng = SeededRng(3)
    frozen: dict[str, tuple] = {}

    while not state.complete:
        step_round(state, 80, horse_map, rng)
        for entry in state.entries:
            snapshot = (
                entry.distance_covered,
                entry.progress,
                entry.last_speed,
                entry.best_speed,
                entry.finish_time_ms,
            )
            if entry.horse_id in frozen:
                assert frozen[entry.horse_id] == snapshot
            elif entry.finish_time_ms is not None:
                frozen[entry.horse_id] = snapshot
                assert entry.distance_covered == state.distance
                assert entry.progress == 1.0


def test_complete_round_is_noop() -> None:
    round_def, horse_map = _field(2)
    state = create_round_state(round_def, horse_map)
    rng = SeededRng(9)
    while not state.complete:
        step_round(state, 80, horse_map, rng)
    elapsed = state.elapsed_ms
    step_round(state, 80, horse_map, rng)
    assert state.elapsed_ms == elapsed


def test_finish_time_inside_crossing_tick() -> None:
    """Each finish time falls within the tick in which the line was crossed."""
    round_def, horse_map = _field(5)
    state = create_round_state(round_def, horse_map)
    rng = SeededRng(77)
    step_ms = 80

    while not state.complete:
        unfinished = {e.horse_id for e in state.entries if e.finish_time_ms is None}
        tick_start = state.elapsed_ms
        step_round(state, step_ms, horse_map, rng)
        for entry in state.entries:
            if entry.horse_id in unfinished and entry.finish_time_ms is not None:
                assert tick_start - 0.01 <= entry.finish_time_ms <= tick_start + step_ms + 0.01


def test_finish_time_matches_analytic_crossing() -> None:
    """At the constant floor speed the crossing instant is distance / speed."""
    horse = _make_horse("slow", condition=1, base_pace=0.1)
    round_def = RaceRound(id=1, distance=42, horse_ids=("slow",))
    horse_map = {"slow": horse}
    state = create_round_state(round_def, horse_map)
    rng = SeededRng(1)

    while not state.complete:
        step_round(state, 70, horse_map, rng)

    analytic_ms = 42 / MINIMUM_SPEED_MPS * 1000
    finish = state.entries[0].finish_time_ms
    assert abs(finish - analytic_ms) <= 70
    assert finish == pytest.approx(analytic_ms, abs=0.05)


def test_step_missing_horse() -> None:
    round_def, horse_map = _field(2)
    state = create_round_state(round_def, horse_map)
    with pytest.raises(MissingHorseError):
        step_round(state, 80, {}, SeededRng(1))


# ---------------------------------------------------------------------------
# Run to completion
# ---------------------------------------------------------------------------


def test_simulate_round_completes_full_program() -> None:
    """Realistic fields finish well before the safety ceiling."""
    rng = SeededRng(42)
    horses = create_horse_pool(20, rng)
    horse_map = create_horse_map(horses)
    for round_def in build_race_schedule(horses, rng):
        result = simulate_round(round_def, horse_map, SeededRng(round_def.id))
        assert len(result.order) == len(round_def.horse_ids)
        assert result.finished_at_ms < MAX_SIMULATION_DURATION_MS


def test_simulate_round_deterministic() -> None:
    round_def, horse_map = _field(5)
    r1 = simulate_round(round_def, horse_map, SeededRng(5))
    r2 = simulate_round(round_def, horse_map, SeededRng(5))
    assert r1 == r2


def test_simulate_round_times_out() -> None:
    """At the floor speed 3000 m cannot be covered within the ceiling."""
    horse = _make_horse("slow", condition=1, base_pace=0.1)
    round_def = RaceRound(id=7, distance=3000, horse_ids=("slow",))
    with pytest.raises(SimulationTimeoutError, match="Round 7") as excinfo:
        simulate_round(round_def, {"slow": horse}, SeededRng(1))
    assert excinfo.value.round_id == 7
    assert excinfo.value.elapsed_ms >= MAX_SIMULATION_DURATION_MS


def test_simulate_round_rejects_bad_step() -> None:
    round_def, horse_map = _field(2)
    with pytest.raises(ValueError, match="step_ms"):
        simulate_round(round_def, horse_map, SeededRng(1), step_ms=0)


def test_condition_dominance_over_trials() -> None:
    """Condition 95 beats condition 20 at equal base pace in most trials."""
    strong = _make_horse("strong", condition=95, base_pace=15.0)
    weak = _make_horse("weak", condition=20, base_pace=15.0)
    horse_map = create_horse_map([strong, weak])
    round_def = RaceRound(id=1, distance=1200, horse_ids=("weak", "strong"))

    trials = 60
    strong_wins = sum(
        simulate_round(round_def, horse_map, SeededRng(seed)).order[0].horse_id == "strong"
        for seed in range(trials)
    )
    assert strong_wins >= 0.8 * trials


def test_simulate_round_timeout_logs_below_error(caplog: pytest.LogCaptureFixture) -> None:
    """The timeout is reported by the exception, not by error-level logging."""
    horse = _make_horse("slow", condition=1, base_pace=0.1)
    round_def = RaceRound(id=8, distance=3000, horse_ids=("slow",))
    with caplog.at_level(logging.DEBUG, logger="derby_engine.core.round"):
        with pytest.raises(SimulationTimeoutError):
            simulate_round(round_def, {"slow": horse}, SeededRng(1))
    assert caplog.records
    assert all(record.levelno <= logging.DEBUG for record in caplog.records)
