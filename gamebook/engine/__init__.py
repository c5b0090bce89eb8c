"""
Deterministic core: combat resolution, inventory rules and the action applier.
"""

from gamebook.engine.actions import Action, InterpretResult, ingest_action, ingest_actions
from gamebook.engine.choices import offered_choices, pick_up_item
from gamebook.engine.combat import resolve_all, resolve_combat
from gamebook.engine.crt import CombatResultsTable, CRTValidationError, load_crt
from gamebook.engine.dice import RandomNumberTable, ScriptedDice
from gamebook.engine.effects import ActionOutcome, BatchResult, EngineConfig, apply_actions
from gamebook.engine.game_state import ActionSheet, Combat, Enemy, Inventory, Winner
from gamebook.engine.inventory import classify, load_item_catalog

__all__ = [
    "Action",
    "ActionOutcome",
    "ActionSheet",
    "BatchResult",
    "CRTValidationError",
    "Combat",
    "CombatResultsTable",
    "Enemy",
    "EngineConfig",
    "InterpretResult",
    "Inventory",
    "RandomNumberTable",
    "ScriptedDice",
    "Winner",
    "apply_actions",
    "classify",
    "ingest_action",
    "ingest_actions",
    "load_crt",
    "load_item_catalog",
    "offered_choices",
    "pick_up_item",
    "resolve_all",
    "resolve_combat",
]
