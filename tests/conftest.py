"""Shared fixtures for the gamebook engine tests."""

import pytest

from gamebook.engine.crt import load_crt
from gamebook.engine.dice import ScriptedDice
from gamebook.engine.effects import EngineConfig
from gamebook.engine.game_state import ActionSheet, Inventory
from gamebook.engine.inventory import load_item_catalog


@pytest.fixture
def crt():
    """Bundled Combat Results Table."""
    return load_crt()


@pytest.fixture
def catalog():
    """Bundled item catalog."""
    return load_item_catalog()


@pytest.fixture
def sheet():
    """A fresh Lone Wolf: 25 EP, CS 15, a few items."""
    return ActionSheet(
        endurance=25,
        combat_skill=15,
        inventory=Inventory(
            weapons=["Axe"],
            pouch=12,
            backpack=["Meal"],
            special=[("pocket", "Map of Sommerlund")],
        ),
    )


@pytest.fixture
def make_config(crt, catalog):
    """Factory for an engine config with scripted dice."""

    def _make(rolls=(0,), cycle=True, **overrides):
        return EngineConfig(
            crt=crt,
            catalog=catalog,
            dice=ScriptedDice(rolls, cycle=cycle),
            **overrides,
        )

    return _make
