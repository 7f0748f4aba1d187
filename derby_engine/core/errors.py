"""Exception types raised by the derby simulation engine.

Invalid arguments (sample sizes, pool sizes, bad parameters) raise the
built-in :class:`ValueError`, as the rest of the engine does.  The types
below cover the two fatal precondition failures that have no built-in
counterpart.
"""

from __future__ import annotations


class DerbyEngineError(Exception):
    """Base class for engine-specific failures."""


class MissingHorseError(DerbyEngineError, KeyError):
    """A horse id referenced by a round is absent from the horse map."""

    def __init__(self, horse_id: str) -> None:
        super().__init__(horse_id)
        self.horse_id: str = horse_id

    def __str__(self) -> str:
        return f"Horse {self.horse_id} was not found in the horse map"


class SimulationTimeoutError(DerbyEngineError, RuntimeError):
    """A round failed to complete within the safety time ceiling."""

    def __init__(self, round_id: int, elapsed_ms: float) -> None:
        super().__init__(
            f"Round {round_id} simulation timed out after {elapsed_ms:.0f} ms"
        )
        self.round_id: int = round_id
        self.elapsed_ms: float = elapsed_ms
