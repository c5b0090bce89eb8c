"""
Action definitions and wire ingestion.

The narrative interpreter returns actions as flat records in which every field
is present and unused fields carry neutral defaults (a constraint of strict
structured output). Inside the engine each action is a proper tagged variant:

- update_stat(stat, delta)       - set_stat(stat, value)
- add_item(item)                 - remove_item(item)
- drop_item(item, section_id?)   - set_flag(flag, value)
- remove_choice(target_section_id)
- start_combat(combat)

ingest_action translates one flat record into a variant. Records that cannot
be translated become MalformedAction markers so the applier can report them in
batch order instead of failing the batch.
"""

from enum import Enum
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .game_state import Combat, Enemy, WireModel

STAT_NAMES = ("endurance", "combatSkill", "gold")

StatName = Literal["endurance", "combatSkill", "gold"]

ACTION_TYPES = (
    "update_stat",
    "set_stat",
    "drop_item",
    "add_item",
    "remove_item",
    "set_flag",
    "start_combat",
    "remove_choice",
)


class OutcomeReason(str, Enum):
    """Why an action was not applied as requested."""

    MALFORMED = "malformed"
    UNKNOWN_TYPE = "unknown_type"
    UNKNOWN_STAT = "unknown_stat"
    EMPTY_ITEM = "empty_item"
    EMPTY_FLAG = "empty_flag"
    INVALID_SECTION = "invalid_section"
    NO_ENEMIES = "no_enemies"
    SLOT_FULL = "slot_full"
    ALREADY_PRESENT = "already_present"
    NOT_CARRIED = "not_carried"
    POUCH_FULL = "pouch_full"
    ALREADY_REMOVED = "already_removed"
    ALREADY_DROPPED = "already_dropped"
    NOT_AVAILABLE = "not_available"


class ActionBase(WireModel):
    """Fields shared by every action variant."""

    model_config = ConfigDict(frozen=True)

    reason: str = ""  # interpreter's justification, informational only


class UpdateStat(ActionBase):
    type: Literal["update_stat"] = "update_stat"
    stat: StatName
    delta: int


class SetStat(ActionBase):
    type: Literal["set_stat"] = "set_stat"
    stat: StatName
    value: int


class AddItem(ActionBase):
    type: Literal["add_item"] = "add_item"
    item: str


class RemoveItem(ActionBase):
    type: Literal["remove_item"] = "remove_item"
    item: str


class DropItem(ActionBase):
    type: Literal["drop_item"] = "drop_item"
    item: str
    section_id: Optional[int] = None  # defaults to the current section


class SetFlag(ActionBase):
    type: Literal["set_flag"] = "set_flag"
    flag: str
    value: bool


class RemoveChoice(ActionBase):
    type: Literal["remove_choice"] = "remove_choice"
    target_section_id: int


class StartCombat(ActionBase):
    type: Literal["start_combat"] = "start_combat"
    combat: Combat
    evade: bool = False
    combat_skill_bonus: int = 0


Action = Annotated[
    Union[
        UpdateStat,
        SetStat,
        AddItem,
        RemoveItem,
        DropItem,
        SetFlag,
        RemoveChoice,
        StartCombat,
    ],
    Field(discriminator="type"),
]

ACTION_ADAPTER: TypeAdapter = TypeAdapter(Action)

ACTION_CLASSES = (
    UpdateStat,
    SetStat,
    AddItem,
    RemoveItem,
    DropItem,
    SetFlag,
    RemoveChoice,
    StartCombat,
)


class MalformedAction(BaseModel):
    """An incoming record that could not be turned into an action."""

    type: str = ""
    problem: OutcomeReason = OutcomeReason.MALFORMED
    detail: str = ""
    raw: Any = None


# ---- Wire format (flat record with neutral defaults) ----


class WireCombat(WireModel):
    combat_modifier: int = 0
    enemy: List[Enemy] = Field(default_factory=list)


class WireAction(WireModel):
    """
    Flat action record as produced by the interpreter.

    Field names and neutral defaults match the interpreter's structured output
    contract: stat "endurance", delta 0, value 0, item "", flag "",
    flagValue false, combat {combatModifier: 0, enemy: []}. For remove_choice
    the target section travels in ``value``. ``sectionId`` and ``evade`` are
    optional extensions.
    """

    model_config = ConfigDict(extra="ignore")

    type: str
    reason: str = ""
    stat: str = "endurance"
    delta: int = 0
    value: int = 0
    item: str = ""
    flag: str = ""
    flag_value: bool = False
    combat: WireCombat = Field(default_factory=WireCombat)
    section_id: Optional[int] = None
    evade: bool = False


def _malformed(wire: WireAction, problem: OutcomeReason, detail: str) -> MalformedAction:
    return MalformedAction(
        type=wire.type, problem=problem, detail=detail, raw=wire.to_wire()
    )


def _stat_or_none(wire: WireAction) -> Optional[str]:
    return wire.stat if wire.stat in STAT_NAMES else None


def _update_stat(wire: WireAction):
    stat = _stat_or_none(wire)
    if stat is None:
        return _malformed(wire, OutcomeReason.UNKNOWN_STAT, f"unknown stat {wire.stat!r}")
    return UpdateStat(stat=stat, delta=wire.delta, reason=wire.reason)


def _set_stat(wire: WireAction):
    stat = _stat_or_none(wire)
    if stat is None:
        return _malformed(wire, OutcomeReason.UNKNOWN_STAT, f"unknown stat {wire.stat!r}")
    return SetStat(stat=stat, value=wire.value, reason=wire.reason)


def _item_name(wire: WireAction) -> Optional[str]:
    name = wire.item.strip()
    return name or None


def _add_item(wire: WireAction):
    item = _item_name(wire)
    if item is None:
        return _malformed(wire, OutcomeReason.EMPTY_ITEM, "add_item without an item name")
    return AddItem(item=item, reason=wire.reason)


def _remove_item(wire: WireAction):
    item = _item_name(wire)
    if item is None:
        return _malformed(wire, OutcomeReason.EMPTY_ITEM, "remove_item without an item name")
    return RemoveItem(item=item, reason=wire.reason)


def _drop_item(wire: WireAction):
    item = _item_name(wire)
    if item is None:
        return _malformed(wire, OutcomeReason.EMPTY_ITEM, "drop_item without an item name")
    section_id = wire.section_id if wire.section_id and wire.section_id > 0 else None
    return DropItem(item=item, section_id=section_id, reason=wire.reason)


def _set_flag(wire: WireAction):
    flag = wire.flag.strip()
    if not flag:
        return _malformed(wire, OutcomeReason.EMPTY_FLAG, "set_flag without a flag name")
    return SetFlag(flag=flag, value=wire.flag_value, reason=wire.reason)


def _remove_choice(wire: WireAction):
    if wire.value <= 0:
        return _malformed(
            wire, OutcomeReason.INVALID_SECTION, f"remove_choice needs a section id > 0, got {wire.value}"
        )
    return RemoveChoice(target_section_id=wire.value, reason=wire.reason)


def _start_combat(wire: WireAction):
    if not wire.combat.enemy:
        return _malformed(wire, OutcomeReason.NO_ENEMIES, "start_combat without enemies")
    combat = Combat(modifier=wire.combat.combat_modifier, enemies=wire.combat.enemy)
    return StartCombat(combat=combat, evade=wire.evade, reason=wire.reason)


_TRANSLATORS: Dict[str, Callable[[WireAction], Any]] = {
    "update_stat": _update_stat,
    "set_stat": _set_stat,
    "add_item": _add_item,
    "remove_item": _remove_item,
    "drop_item": _drop_item,
    "set_flag": _set_flag,
    "remove_choice": _remove_choice,
    "start_combat": _start_combat,
}


def ingest_action(raw: Any) -> Union[Action, MalformedAction]:
    """
    Translate one incoming record into a typed action.

    Args:
        raw: A flat wire dict, a WireAction, or an already-typed action

    Returns:
        The typed action, or a MalformedAction describing why it was rejected.
        Never raises.
    """
    if isinstance(raw, ACTION_CLASSES) or isinstance(raw, MalformedAction):
        return raw

    if isinstance(raw, WireAction):
        wire = raw
    elif isinstance(raw, dict):
        try:
            wire = WireAction.model_validate(raw)
        except ValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            location = ".".join(str(part) for part in first.get("loc", ()))
            return MalformedAction(
                type=str(raw.get("type", "")),
                problem=OutcomeReason.MALFORMED,
                detail=f"{location}: {first.get('msg', 'invalid record')}",
                raw=raw,
            )
    else:
        return MalformedAction(
            problem=OutcomeReason.MALFORMED,
            detail=f"expected an object, got {type(raw).__name__}",
            raw=raw,
        )

    translate = _TRANSLATORS.get(wire.type)
    if translate is None:
        return _malformed(wire, OutcomeReason.UNKNOWN_TYPE, f"unknown action type {wire.type!r}")
    return translate(wire)


def ingest_actions(records: Any) -> List[Union[Action, MalformedAction]]:
    """Translate a whole batch, preserving order."""
    if not isinstance(records, (list, tuple)):
        return [
            MalformedAction(
                problem=OutcomeReason.MALFORMED,
                detail="action batch must be a list",
                raw=records,
            )
        ]
    return [ingest_action(record) for record in records]


def parse_action(data: Dict[str, Any]) -> Action:
    """
    Parse the tagged (non-flat) JSON form of an action.

    Raises:
        ValidationError: If the data does not match any variant
    """
    return ACTION_ADAPTER.validate_python(data)


class InterpretResult(WireModel):
    """Interpreter reply: a message for the player plus an action batch."""

    gm_message: str = ""
    actions: List[Any] = Field(default_factory=list)

    def typed_actions(self) -> List[Union[Action, MalformedAction]]:
        return ingest_actions(self.actions)
