"""
Combat Results Table (CRT).

A fixed reference table mapping (combat ratio, die roll) to the damage both
combatants take in one round. The table is data, not a formula: it is loaded
once from YAML and validated on load so that

1. every (ratio, die) pair in the domain has a cell,
2. every damage value is a non-negative integer or the kill marker "K",
3. no cell is a 0/0 non-kill outcome (such a cell could stall combat forever).
"""

import functools
import logging
import os
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict

from .game_state import KILL, Damage

logger = logging.getLogger(__name__)

DEFAULT_CRT_PATH = os.path.join(os.path.dirname(__file__), "tables", "crt.yaml")


class CRTValidationError(ValueError):
    """Raised when a Combat Results Table is incomplete or unusable."""

    pass


class CRTCell(BaseModel):
    """Simultaneous damage outcome for one round."""

    model_config = ConfigDict(frozen=True)

    enemy: Damage
    lone_wolf: Damage

    @property
    def enemy_killed(self) -> bool:
        return self.enemy == KILL

    @property
    def lone_wolf_killed(self) -> bool:
        return self.lone_wolf == KILL


# Returned when a lookup misses; unreachable for a validated table
NEUTRAL_CELL = CRTCell(enemy=0, lone_wolf=0)


def _check_damage(value: Any, ratio: int, die: int) -> Damage:
    if value == KILL:
        return KILL
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise CRTValidationError(
            f"Invalid damage {value!r} at ratio {ratio}, die {die}"
        )
    return value


class CombatResultsTable:
    """Immutable (ratio, die) -> CRTCell lookup over a closed ratio interval."""

    def __init__(
        self,
        cells: Dict[Tuple[int, int], CRTCell],
        min_ratio: int,
        max_ratio: int,
        die_min: int = 0,
        die_max: int = 9,
    ):
        self.min_ratio = min_ratio
        self.max_ratio = max_ratio
        self.die_min = die_min
        self.die_max = die_max
        self._cells = dict(cells)
        self._validate()

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "CombatResultsTable":
        """
        Build a table from the YAML structure.

        Args:
            data: {"domain": {...}, "ratios": {ratio: [[enemy, lone_wolf], ...]}}

        Returns:
            A validated CombatResultsTable

        Raises:
            CRTValidationError: If the structure is malformed or incomplete
        """
        if not isinstance(data, dict) or "ratios" not in data:
            raise CRTValidationError("CRT data must contain a 'ratios' mapping")

        domain = data.get("domain") or {}
        ratios = data["ratios"]
        if not isinstance(ratios, dict) or not ratios:
            raise CRTValidationError("CRT 'ratios' must be a non-empty mapping")

        min_ratio = int(domain.get("min_ratio", min(int(r) for r in ratios)))
        max_ratio = int(domain.get("max_ratio", max(int(r) for r in ratios)))
        die_min = int(domain.get("die_min", 0))
        die_max = int(domain.get("die_max", 9))

        cells: Dict[Tuple[int, int], CRTCell] = {}
        for raw_ratio, row in ratios.items():
            ratio = int(raw_ratio)
            if not isinstance(row, list):
                raise CRTValidationError(f"Row for ratio {ratio} must be a list")
            for offset, pair in enumerate(row):
                die = die_min + offset
                if not isinstance(pair, (list, tuple)) or len(pair) != 2:
                    raise CRTValidationError(
                        f"Cell at ratio {ratio}, die {die} must be [enemy, lone_wolf]"
                    )
                cells[(ratio, die)] = CRTCell(
                    enemy=_check_damage(pair[0], ratio, die),
                    lone_wolf=_check_damage(pair[1], ratio, die),
                )

        return cls(cells, min_ratio, max_ratio, die_min, die_max)

    def _validate(self) -> None:
        if self.min_ratio > self.max_ratio:
            raise CRTValidationError(
                f"Empty ratio domain [{self.min_ratio}, {self.max_ratio}]"
            )

        missing = [
            (ratio, die)
            for ratio in range(self.min_ratio, self.max_ratio + 1)
            for die in range(self.die_min, self.die_max + 1)
            if (ratio, die) not in self._cells
        ]
        if missing:
            raise CRTValidationError(f"CRT is missing cells: {missing[:5]}")

        extra = [
            key
            for key in self._cells
            if not (self.min_ratio <= key[0] <= self.max_ratio)
            or not (self.die_min <= key[1] <= self.die_max)
        ]
        if extra:
            raise CRTValidationError(f"CRT has cells outside its domain: {extra[:5]}")

        stalls = [key for key, cell in self._cells.items() if cell.enemy == 0 and cell.lone_wolf == 0]
        if stalls:
            raise CRTValidationError(
                f"CRT has 0/0 cells that would never end combat: {stalls[:5]}"
            )

    def clamp_ratio(self, ratio: int) -> int:
        """Clamp a raw combat ratio into the table's domain."""
        return max(self.min_ratio, min(self.max_ratio, ratio))

    def lookup(self, ratio: int, die: int) -> CRTCell:
        """
        Look up the outcome for a round.

        The ratio is clamped first. A miss (only possible for an out-of-range
        die) fails closed with a neutral cell.
        """
        cell = self._cells.get((self.clamp_ratio(ratio), die))
        if cell is None:
            logger.warning(f"CRT lookup miss for ratio {ratio}, die {die}; using neutral cell")
            return NEUTRAL_CELL
        return cell

    def kill_dice(self, ratio: int) -> list:
        """Die values that kill the enemy outright at the given ratio."""
        clamped = self.clamp_ratio(ratio)
        return [
            die
            for die in range(self.die_min, self.die_max + 1)
            if self._cells[(clamped, die)].enemy_killed
        ]

    def __len__(self) -> int:
        return len(self._cells)


def load_crt_file(path: str) -> CombatResultsTable:
    """Load and validate a CRT from a YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    table = CombatResultsTable.from_mapping(data)
    logger.info(
        f"Loaded CRT from {os.path.basename(path)}: ratios {table.min_ratio}..{table.max_ratio}, {len(table)} cells"
    )
    return table


@functools.lru_cache(maxsize=None)
def load_crt(path: Optional[str] = None) -> CombatResultsTable:
    """Process-wide default table, loaded once."""
    return load_crt_file(path or DEFAULT_CRT_PATH)
