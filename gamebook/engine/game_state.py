"""
Core data structures for the gamebook session state and combat records.

The Action Sheet is the player's in-session record: stats, inventory, flags,
and the choice/drop bookkeeping the presentation layer uses to filter the next
section. JSON field names are camelCase on the wire and snake_case in Python;
both are accepted on input.
"""

from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# Slot capacities (special items are unbounded)
WEAPON_SLOT_CAPACITY = 2
BACKPACK_CAPACITY = 8

# Instant-kill marker used in the Combat Results Table
KILL = "K"

Damage = Union[int, Literal["K"]]


class WireModel(BaseModel):
    """Base for models exchanged with the interpreter and presentation layers."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict:
        """Export with the camelCase field names used on the wire."""
        return self.model_dump(mode="json", by_alias=True)


def _dedupe(names: List[str]) -> List[str]:
    seen = set()
    unique = []
    for name in names:
        if name not in seen:
            seen.add(name)
            unique.append(name)
    return unique


class Inventory(WireModel):
    """
    Lone Wolf's carried equipment.

    Weapons and backpack are ordered sets; special items are (location, name)
    pairs unique by name. The pouch holds Gold Crowns.
    """

    weapons: List[str] = Field(default_factory=list)
    pouch: int = 0
    backpack: List[str] = Field(default_factory=list)
    special: List[Tuple[str, str]] = Field(default_factory=list)

    @field_validator("weapons", "backpack")
    @classmethod
    def _unique_names(cls, value: List[str]) -> List[str]:
        return _dedupe(value)

    @field_validator("special")
    @classmethod
    def _unique_special(cls, value: List[Tuple[str, str]]) -> List[Tuple[str, str]]:
        seen = set()
        unique = []
        for location, name in value:
            if name not in seen:
                seen.add(name)
                unique.append((location, name))
        return unique

    @model_validator(mode="after")
    def _check_capacity(self) -> "Inventory":
        if len(self.weapons) > WEAPON_SLOT_CAPACITY:
            raise ValueError(
                f"weapons slot holds at most {WEAPON_SLOT_CAPACITY} items, got {len(self.weapons)}"
            )
        if len(self.backpack) > BACKPACK_CAPACITY:
            raise ValueError(
                f"backpack holds at most {BACKPACK_CAPACITY} items, got {len(self.backpack)}"
            )
        return self

    def special_names(self) -> List[str]:
        """Names of all special items, without their locations."""
        return [name for _, name in self.special]

    def holds(self, item: str) -> bool:
        """Whether any slot currently carries the named item."""
        return (
            item in self.weapons
            or item in self.backpack
            or item in self.special_names()
        )


class ActionSheet(WireModel):
    """
    Session State ("action sheet").

    Created once per play session and mutated only by the action applier, one
    batch at a time. Endurance is clamped to >= 0 after every batch.
    """

    endurance: int
    combat_skill: int
    inventory: Inventory = Field(default_factory=Inventory)
    flags: Dict[str, bool] = Field(default_factory=dict)
    removed_choices: List[int] = Field(default_factory=list)
    dropped_items: Dict[int, List[str]] = Field(default_factory=dict)

    @field_validator("removed_choices")
    @classmethod
    def _unique_choices(cls, value: List[int]) -> List[int]:
        return [section_id for section_id in _dedupe(value) if section_id > 0]

    @field_validator("dropped_items")
    @classmethod
    def _clean_dropped(cls, value: Dict[int, List[str]]) -> Dict[int, List[str]]:
        # Empty sets and non-positive section ids are never kept
        return {
            section_id: _dedupe(items)
            for section_id, items in value.items()
            if section_id > 0 and items
        }


class Enemy(BaseModel):
    """A single combatant in an encounter."""

    model_config = ConfigDict(populate_by_name=True)

    enemy_type: str = Field(default="", alias="enemyType")
    name: str = Field(default="Enemy", alias="enemyName")
    combat_skill: int = Field(alias="combatSkill")
    endurance: int
    modifier: int = Field(default=0, alias="enemyModifier")

    @property
    def effective_combat_skill(self) -> int:
        return self.combat_skill + self.modifier

    @property
    def label(self) -> str:
        """Display label, e.g. 'Giak Warrior (Giak)'."""
        if self.enemy_type and self.enemy_type != self.name:
            return f"{self.name} ({self.enemy_type})"
        return self.name


class Combat(BaseModel):
    """An encounter: ordered enemies plus a modifier applied against all of them."""

    model_config = ConfigDict(populate_by_name=True)

    modifier: int = Field(default=0, alias="combatModifier")
    enemies: List[Enemy] = Field(alias="enemy", min_length=1)


class Winner(str, Enum):
    """Who won a single encounter or a whole combat."""

    LONE_WOLF = "Lone Wolf"
    ENEMY = "Enemy"


class CombatRound(WireModel):
    """One exchange of blows, as looked up on the Combat Results Table."""

    round: int
    enemy_name: str
    ratio: int
    die: int
    enemy_damage: Damage
    lone_wolf_damage: Damage
    enemy_endurance_before: int
    enemy_endurance_after: int
    lone_wolf_endurance_before: int
    lone_wolf_endurance_after: int
    message: str


class EncounterResult(BaseModel):
    """Outcome of fighting one enemy to completion."""

    sheet: ActionSheet
    enemy: Enemy
    final_enemy_endurance: int
    rounds: List[CombatRound] = Field(default_factory=list)
    winner: Optional[Winner] = None
    auto_resolved: bool = False  # recorded without fighting (short-circuit)
    broken_off: bool = False  # stopped by the round limit

    @property
    def log(self) -> List[str]:
        return [r.message for r in self.rounds]


class MultiCombatResult(BaseModel):
    """Outcome of a whole combat over an ordered list of enemies."""

    sheet: ActionSheet
    log: List[str] = Field(default_factory=list)
    encounters: List[EncounterResult] = Field(default_factory=list)
    winner: Winner = Winner.ENEMY

    @property
    def rounds(self) -> List[CombatRound]:
        return [r for encounter in self.encounters for r in encounter.rounds]


class Choice(BaseModel):
    """A link from one section to another."""

    to: int
    label: str


class Section(BaseModel):
    """Section descriptor as supplied by the section provider."""

    id: int
    paragraphs: List[str] = Field(default_factory=list)
    choices: List[Choice] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n\n".join(self.paragraphs)


class OfferedChoice(BaseModel):
    """A choice as offered to the player after filtering."""

    kind: Literal["turn_to", "pickup"] = "turn_to"
    label: str
    to: Optional[int] = None
    item: Optional[str] = None
