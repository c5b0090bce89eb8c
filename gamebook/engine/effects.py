"""
Action applier - the engine's state machine.

Actions are the only way the engine modifies an Action Sheet. A batch is applied
strictly in order; each action sees the effects of the ones before it. The
applier never aborts a batch: every action yields an ActionOutcome, and actions
that are malformed or cannot fit are reported rather than raised.

Handlers are registered per action type with @action_handler.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional

from pydantic import Field

from .actions import (
    AddItem,
    DropItem,
    MalformedAction,
    OutcomeReason,
    RemoveChoice,
    RemoveItem,
    SetFlag,
    SetStat,
    StartCombat,
    UpdateStat,
    ingest_actions,
)
from .combat import DEFAULT_MAX_ROUNDS, resolve_all
from .crt import CombatResultsTable, load_crt
from .dice import DiceSource, RandomNumberTable
from .game_state import ActionSheet, MultiCombatResult, WireModel
from .inventory import ItemCatalog, Slot, load_item_catalog

logger = logging.getLogger(__name__)

OutcomeStatus = Literal["applied", "ignored", "discarded", "duplicate"]

# Sheet fields carried back from a combat into the working sheet
COMBAT_MERGED_FIELDS = (
    "endurance",
    "inventory",
    "flags",
    "removed_choices",
    "dropped_items",
)


@dataclass
class EngineConfig:
    """Immutable configuration injected into the applier."""

    crt: CombatResultsTable
    catalog: ItemCatalog
    dice: DiceSource
    max_combat_rounds: int = DEFAULT_MAX_ROUNDS
    pouch_capacity: Optional[int] = None  # falls back to the catalog's value

    @classmethod
    def default(
        cls,
        seed: Optional[int] = None,
        dice: Optional[DiceSource] = None,
        **overrides: Any,
    ) -> "EngineConfig":
        """Bundled tables with a (seeded) Random Number Table."""
        return cls(
            crt=overrides.pop("crt", None) or load_crt(),
            catalog=overrides.pop("catalog", None) or load_item_catalog(),
            dice=dice or RandomNumberTable(seed),
            **overrides,
        )

    @property
    def gold_capacity(self) -> int:
        if self.pouch_capacity is not None:
            return self.pouch_capacity
        return self.catalog.pouch_capacity


class ActionOutcome(WireModel):
    """What happened to one action of a batch."""

    index: int = -1
    type: str = ""
    status: OutcomeStatus = "applied"
    reason: Optional[OutcomeReason] = None
    detail: str = ""


class BatchResult(WireModel):
    """Updated sheet plus everything observable about the batch."""

    sheet: ActionSheet
    combat_log: List[str] = Field(default_factory=list)
    outcomes: List[ActionOutcome] = Field(default_factory=list)
    combats: List[MultiCombatResult] = Field(default_factory=list)

    @property
    def discarded(self) -> List[ActionOutcome]:
        return [o for o in self.outcomes if o.status == "discarded"]

    @property
    def ignored(self) -> List[ActionOutcome]:
        return [o for o in self.outcomes if o.status == "ignored"]


@dataclass
class ApplyContext:
    """Working state for one batch."""

    sheet: ActionSheet
    current_section_id: int
    config: EngineConfig
    combat_log: List[str] = field(default_factory=list)
    combats: List[MultiCombatResult] = field(default_factory=list)


def applied(detail: str = "") -> ActionOutcome:
    return ActionOutcome(status="applied", detail=detail)


def ignored(reason: OutcomeReason, detail: str = "") -> ActionOutcome:
    return ActionOutcome(status="ignored", reason=reason, detail=detail)


def discarded(reason: OutcomeReason, detail: str = "") -> ActionOutcome:
    return ActionOutcome(status="discarded", reason=reason, detail=detail)


def duplicate(reason: OutcomeReason, detail: str = "") -> ActionOutcome:
    return ActionOutcome(status="duplicate", reason=reason, detail=detail)


# Handler registry for extensibility
HANDLER_REGISTRY: Dict[str, Callable[[ApplyContext, Any], ActionOutcome]] = {}


def action_handler(tag: str):
    """Decorator to register action handlers."""

    def wrap(fn: Callable[[ApplyContext, Any], ActionOutcome]):
        HANDLER_REGISTRY[tag] = fn
        return fn

    return wrap


def _set_gold(ctx: ApplyContext, target: int) -> ActionOutcome:
    """
    Set the pouch, clamped to [0, capacity]; overflow is reported.

    A pouch already above capacity (loaded snapshot) is never cut down by the
    clamp, it only cannot grow.
    """
    capacity = ctx.config.gold_capacity
    inventory = ctx.sheet.inventory
    before = inventory.pouch
    ceiling = max(capacity, before)

    inventory.pouch = max(0, min(ceiling, target))

    if target > ceiling:
        lost = target - ceiling
        return discarded(
            OutcomeReason.POUCH_FULL,
            f"Belt Pouch holds {capacity} Gold Crowns; {lost} discarded",
        )
    if target < 0:
        return applied(f"gold {before} -> 0 (pouch cannot go below 0)")
    return applied(f"gold {before} -> {inventory.pouch}")


@action_handler("update_stat")
def apply_update_stat(ctx: ApplyContext, action: UpdateStat) -> ActionOutcome:
    """Additive stat change; gold maps to the pouch."""
    sheet = ctx.sheet
    if action.stat == "gold":
        return _set_gold(ctx, sheet.inventory.pouch + action.delta)
    if action.stat == "endurance":
        before = sheet.endurance
        sheet.endurance += action.delta
        return applied(f"endurance {before} -> {sheet.endurance}")
    before = sheet.combat_skill
    sheet.combat_skill += action.delta
    return applied(f"combatSkill {before} -> {sheet.combat_skill}")


@action_handler("set_stat")
def apply_set_stat(ctx: ApplyContext, action: SetStat) -> ActionOutcome:
    """Absolute stat overwrite."""
    sheet = ctx.sheet
    if action.stat == "gold":
        return _set_gold(ctx, action.value)
    if action.stat == "endurance":
        sheet.endurance = action.value
        return applied(f"endurance = {action.value}")
    sheet.combat_skill = action.value
    return applied(f"combatSkill = {action.value}")


def store_item(sheet: ActionSheet, item: str, catalog: ItemCatalog) -> ActionOutcome:
    """
    Put an item into the slot its classification calls for.

    Mutates ``sheet`` in place. Full slots discard the item; an item already in
    its slot is left alone.
    """
    item_class = catalog.classify(item)
    inventory = sheet.inventory

    if item_class.slot == Slot.SPECIAL:
        if item in inventory.special_names():
            return duplicate(OutcomeReason.ALREADY_PRESENT, f"{item} already carried")
        inventory.special.append((item_class.location or "", item))
        return applied(f"{item} -> special ({item_class.location})")

    if item_class.slot == Slot.WEAPON:
        slot, capacity, label = inventory.weapons, catalog.weapon_capacity, "weapons"
    else:
        slot, capacity, label = inventory.backpack, catalog.backpack_capacity, "backpack"

    if item in slot:
        return duplicate(OutcomeReason.ALREADY_PRESENT, f"{item} already in {label}")
    if len(slot) >= capacity:
        return discarded(
            OutcomeReason.SLOT_FULL, f"{label} full ({capacity}); {item} discarded"
        )
    slot.append(item)
    return applied(f"{item} -> {label}")


@action_handler("add_item")
def apply_add_item(ctx: ApplyContext, action: AddItem) -> ActionOutcome:
    return store_item(ctx.sheet, action.item, ctx.config.catalog)


@action_handler("remove_item")
def apply_remove_item(ctx: ApplyContext, action: RemoveItem) -> ActionOutcome:
    """Remove an item from whichever slot holds it."""
    inventory = ctx.sheet.inventory
    item = action.item
    removed_from = []

    if item in inventory.weapons:
        inventory.weapons.remove(item)
        removed_from.append("weapons")
    if item in inventory.backpack:
        inventory.backpack.remove(item)
        removed_from.append("backpack")
    if item in inventory.special_names():
        inventory.special = [pair for pair in inventory.special if pair[1] != item]
        removed_from.append("special")

    if not removed_from:
        return ignored(OutcomeReason.NOT_CARRIED, f"{item} is not carried")
    return applied(f"{item} removed from {', '.join(removed_from)}")


@action_handler("drop_item")
def apply_drop_item(ctx: ApplyContext, action: DropItem) -> ActionOutcome:
    """Record an item as available to pick up at a section."""
    section_id = action.section_id or ctx.current_section_id
    if not section_id or section_id <= 0:
        return ignored(OutcomeReason.INVALID_SECTION, f"no section to drop {action.item} at")

    items = ctx.sheet.dropped_items.setdefault(section_id, [])
    if action.item in items:
        return duplicate(
            OutcomeReason.ALREADY_DROPPED, f"{action.item} already available at {section_id}"
        )
    items.append(action.item)
    return applied(f"{action.item} available at section {section_id}")


@action_handler("set_flag")
def apply_set_flag(ctx: ApplyContext, action: SetFlag) -> ActionOutcome:
    ctx.sheet.flags[action.flag] = action.value
    return applied(f"{action.flag} = {action.value}")


@action_handler("remove_choice")
def apply_remove_choice(ctx: ApplyContext, action: RemoveChoice) -> ActionOutcome:
    target = action.target_section_id
    if target <= 0:
        return ignored(OutcomeReason.INVALID_SECTION, f"invalid section {target}")
    if target in ctx.sheet.removed_choices:
        return duplicate(OutcomeReason.ALREADY_REMOVED, f"choice {target} already removed")
    ctx.sheet.removed_choices.append(target)
    return applied(f"choice {target} removed")


@action_handler("start_combat")
def apply_start_combat(ctx: ApplyContext, action: StartCombat) -> ActionOutcome:
    """Run the whole combat against the sheet as mutated so far."""
    config = ctx.config
    result = resolve_all(
        ctx.sheet,
        action.combat,
        combat_skill_bonus=action.combat_skill_bonus,
        evade=action.evade,
        crt=config.crt,
        dice=config.dice,
        max_rounds=config.max_combat_rounds,
    )

    # Merge a copy; result.sheet stays as the post-combat record in BatchResult.combats
    merged = result.sheet.model_copy(deep=True)
    for name in COMBAT_MERGED_FIELDS:
        setattr(ctx.sheet, name, getattr(merged, name))
    ctx.combat_log.extend(result.log)
    ctx.combats.append(result)

    return applied(f"{result.winner.value} wins")


def apply_actions(
    sheet: ActionSheet,
    actions: Iterable[Any],
    current_section_id: int,
    config: Optional[EngineConfig] = None,
) -> BatchResult:
    """
    Apply an ordered action batch to a sheet.

    Args:
        sheet: Sheet before the batch (not modified)
        actions: Typed actions or flat wire records, in order
        current_section_id: Section the player is reading; default for drop_item
        config: Tables, catalog and dice (defaults to bundled data, unseeded dice)

    Returns:
        BatchResult with the updated sheet, combat log and one outcome per action.
        Never raises for bad input.
    """
    config = config or EngineConfig.default()
    ctx = ApplyContext(
        sheet=sheet.model_copy(deep=True),
        current_section_id=current_section_id,
        config=config,
    )
    outcomes: List[ActionOutcome] = []

    for index, action in enumerate(ingest_actions(_as_batch(actions))):
        if isinstance(action, MalformedAction):
            outcome = ignored(action.problem, action.detail)
            logger.info(f"Ignoring action #{index} ({action.type or '?'}): {action.detail}")
        else:
            outcome = _run_handler(ctx, action, index)
            if outcome.status in ("ignored", "discarded"):
                logger.info(f"Action #{index} {action.type} {outcome.status}: {outcome.detail}")

        outcome.index = index
        outcome.type = action.type
        outcomes.append(outcome)

    # Stat edits outside combat can drive endurance negative
    if ctx.sheet.endurance < 0:
        ctx.sheet.endurance = 0

    return BatchResult(
        sheet=ctx.sheet,
        combat_log=ctx.combat_log,
        outcomes=outcomes,
        combats=ctx.combats,
    )


def _as_batch(actions: Any) -> Any:
    """Materialize an iterable batch; anything else is left for ingestion to reject."""
    if actions is None:
        return []
    if isinstance(actions, (list, tuple, str, bytes, dict)):
        return actions
    try:
        return list(actions)
    except TypeError:
        return actions


def _run_handler(ctx: ApplyContext, action: Any, index: int) -> ActionOutcome:
    handler = HANDLER_REGISTRY.get(action.type)
    if handler is None:
        return ignored(OutcomeReason.UNKNOWN_TYPE, f"no handler for {action.type!r}")

    # Roll back this action alone if its handler fails
    snapshot = ctx.sheet.model_copy(deep=True)
    log_length = len(ctx.combat_log)
    combat_count = len(ctx.combats)
    try:
        return handler(ctx, action)
    except Exception as e:
        logger.exception(f"Handler for action #{index} ({action.type}) failed")
        ctx.sheet = snapshot
        del ctx.combat_log[log_length:]
        del ctx.combats[combat_count:]
        return ignored(OutcomeReason.MALFORMED, f"{action.type} failed: {e}")


def get_registered_actions() -> List[str]:
    """Get list of all registered action types."""
    return list(HANDLER_REGISTRY.keys())
