"""
Tests for the Combat Results Table.

Covers the bundled table's completeness and marker validity, ratio clamping,
and load-time rejection of unusable tables.
"""

import pytest

from gamebook.engine.crt import (
    NEUTRAL_CELL,
    CombatResultsTable,
    CRTValidationError,
    load_crt,
)
from gamebook.engine.game_state import KILL


def _table(rows, min_ratio=0, max_ratio=0):
    return {
        "domain": {"min_ratio": min_ratio, "max_ratio": max_ratio, "die_min": 0, "die_max": 9},
        "ratios": rows,
    }


GOOD_ROW = [[1, 1]] * 10


class TestBundledTable:
    """The table shipped with the package."""

    def test_every_cell_present(self, crt):
        assert crt.min_ratio == -11
        assert crt.max_ratio == 11
        assert len(crt) == 23 * 10

    def test_damage_values_valid(self, crt):
        for ratio in range(-11, 12):
            for die in range(10):
                cell = crt.lookup(ratio, die)
                for damage in (cell.enemy, cell.lone_wolf):
                    assert damage == KILL or (isinstance(damage, int) and damage >= 0)

    def test_no_stalling_cells(self, crt):
        for ratio in range(-11, 12):
            for die in range(10):
                cell = crt.lookup(ratio, die)
                assert not (cell.enemy == 0 and cell.lone_wolf == 0)

    def test_known_cells(self, crt):
        cell = crt.lookup(0, 1)
        assert (cell.enemy, cell.lone_wolf) == (3, 5)
        assert crt.lookup(0, 0).enemy == 12
        assert crt.lookup(11, 0).enemy_killed
        assert crt.lookup(-11, 1).lone_wolf_killed

    def test_ratio_clamped_high_and_low(self, crt):
        assert crt.lookup(40, 0) == crt.lookup(11, 0)
        assert crt.lookup(-40, 1) == crt.lookup(-11, 1)
        assert crt.clamp_ratio(12) == 11
        assert crt.clamp_ratio(-12) == -11
        assert crt.clamp_ratio(4) == 4

    def test_kill_dice(self, crt):
        assert crt.kill_dice(11) == [0, 8, 9]
        assert crt.kill_dice(0) == []

    def test_lookup_miss_is_neutral(self, crt):
        assert crt.lookup(0, 10) == NEUTRAL_CELL

    def test_default_table_loaded_once(self):
        assert load_crt() is load_crt()


class TestTableValidation:
    """Tables that must be rejected when loaded."""

    def test_minimal_table_loads(self):
        table = CombatResultsTable.from_mapping(_table({0: GOOD_ROW}))
        assert len(table) == 10

    def test_missing_ratio_row(self):
        with pytest.raises(CRTValidationError, match="missing"):
            CombatResultsTable.from_mapping(_table({0: GOOD_ROW}, max_ratio=1))

    def test_short_row(self):
        with pytest.raises(CRTValidationError, match="missing"):
            CombatResultsTable.from_mapping(_table({0: GOOD_ROW[:9]}))

    def test_zero_zero_cell_rejected(self):
        row = [[0, 0]] + GOOD_ROW[1:]
        with pytest.raises(CRTValidationError, match="never end combat"):
            CombatResultsTable.from_mapping(_table({0: row}))

    def test_negative_damage_rejected(self):
        row = [[-1, 2]] + GOOD_ROW[1:]
        with pytest.raises(CRTValidationError, match="Invalid damage"):
            CombatResultsTable.from_mapping(_table({0: row}))

    def test_unknown_marker_rejected(self):
        row = [["X", 2]] + GOOD_ROW[1:]
        with pytest.raises(CRTValidationError, match="Invalid damage"):
            CombatResultsTable.from_mapping(_table({0: row}))

    def test_malformed_cell_rejected(self):
        row = [[1]] + GOOD_ROW[1:]
        with pytest.raises(CRTValidationError, match="must be"):
            CombatResultsTable.from_mapping(_table({0: row}))

    def test_missing_ratios_key(self):
        with pytest.raises(CRTValidationError):
            CombatResultsTable.from_mapping({"domain": {}})

    def test_validation_error_is_value_error(self):
        assert issubclass(CRTValidationError, ValueError)
