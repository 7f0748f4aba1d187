"""Configuration loader for the derby simulation engine."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml

DATA_DIR: Path = Path(__file__).resolve().parent / "data"
ROSTER_PATH: Path = DATA_DIR / "roster.yaml"

_REQUIRED_FIELDS: tuple[str, ...] = ("names", "colors")

_COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")


@dataclass(frozen=True)
class Roster:
    """Curated names and colours a horse pool is drawn from.

    Attributes:
        names: Unique display names.
        colors: Unique ``#rrggbb`` display colours.
    """

    names: tuple[str, ...]
    colors: tuple[str, ...]

    @property
    def capacity(self) -> int:
        """Largest pool that can be drawn with unique names and colours."""
        return min(len(self.names), len(self.colors))


def load_roster(path: Path | None = None) -> Roster:
    """Load the curated horse roster from a YAML file.

    Args:
        path: Optional override for the roster file path.

    Returns:
        A validated :class:`Roster`.

    Raises:
        FileNotFoundError: If the roster file does not exist.
        ValueError: If a list is missing or empty, contains blank or
            duplicated entries, or a colour is not a ``#rrggbb`` string.
    """
    roster_path = path or ROSTER_PATH
    if not roster_path.exists():
        raise FileNotFoundError(f"Roster file not found: {roster_path}")

    with open(roster_path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    for field in _REQUIRED_FIELDS:
        if field not in data:
            raise ValueError(f"Roster {roster_path.name} is missing field '{field}'")
        values = data[field]
        if not isinstance(values, list) or not values:
            raise ValueError(f"Roster field '{field}' must be a non-empty list")

        seen: set[str] = set()
        for idx, value in enumerate(values):
            if not isinstance(value, str) or not value.strip():
                raise ValueError(
                    f"Roster field '{field}' entry {idx} must be a non-empty string"
                )
            if value in seen:
                raise ValueError(f"Roster field '{field}' has duplicate entry {value!r}")
            seen.add(value)

    for color in data["colors"]:
        if not _COLOR_PATTERN.match(color):
            raise ValueError(f"Roster colour {color!r} is not a #rrggbb value")

    return Roster(names=tuple(data["names"]), colors=tuple(data["colors"]))


@lru_cache(maxsize=1)
def default_roster() -> Roster:
    """Return the packaged roster, loaded once per process."""
    return load_roster()
