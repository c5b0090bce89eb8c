"""
Inventory classifier.

Maps an item name to the Action Sheet slot it belongs in. Pure and stateless:
capacity checks belong to the action applier.
"""

import functools
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Pattern, Tuple

import yaml

from .game_state import BACKPACK_CAPACITY, WEAPON_SLOT_CAPACITY

DEFAULT_ITEMS_PATH = os.path.join(os.path.dirname(__file__), "tables", "items.yaml")

DEFAULT_POUCH_CAPACITY = 50


class Slot(str, Enum):
    WEAPON = "weapon"
    BACKPACK = "backpack"
    SPECIAL = "special"


@dataclass(frozen=True)
class ItemClass:
    """Result of classifying an item; location is set only for special items."""

    slot: Slot
    location: Optional[str] = None


@dataclass(frozen=True)
class ItemCatalog:
    """Immutable classification data: weapon keywords and special locations."""

    weapon_keywords: FrozenSet[str]
    special_locations: Dict[str, str]
    weapon_capacity: int = WEAPON_SLOT_CAPACITY
    backpack_capacity: int = BACKPACK_CAPACITY
    pouch_capacity: int = DEFAULT_POUCH_CAPACITY
    _weapon_patterns: Tuple[Pattern, ...] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self):
        # Longest keywords first; whole words only ("bow" must not match "bowl")
        patterns = tuple(
            re.compile(rf"\b{re.escape(keyword)}\b")
            for keyword in sorted(self.weapon_keywords, key=len, reverse=True)
        )
        object.__setattr__(self, "_weapon_patterns", patterns)

    @classmethod
    def from_mapping(cls, data: Dict) -> "ItemCatalog":
        capacities = data.get("capacities") or {}
        return cls(
            weapon_keywords=frozenset(
                str(k).strip().lower() for k in data.get("weapon_keywords") or []
            ),
            special_locations={
                str(name).strip().lower(): str(location)
                for name, location in (data.get("special_items") or {}).items()
            },
            weapon_capacity=int(capacities.get("weapons", WEAPON_SLOT_CAPACITY)),
            backpack_capacity=int(capacities.get("backpack", BACKPACK_CAPACITY)),
            pouch_capacity=int(capacities.get("pouch", DEFAULT_POUCH_CAPACITY)),
        )

    def classify(self, item_name: str) -> ItemClass:
        """
        Classify an item by name, case-insensitively.

        Special items match on the whole name; weapons match on any keyword as
        a whole word. Everything else goes to the backpack.
        """
        key = " ".join(item_name.lower().split())

        location = self.special_locations.get(key)
        if location is not None:
            return ItemClass(Slot.SPECIAL, location)

        for pattern in self._weapon_patterns:
            if pattern.search(key):
                return ItemClass(Slot.WEAPON)

        return ItemClass(Slot.BACKPACK)


def load_item_catalog_file(path: str) -> ItemCatalog:
    with open(path, "r", encoding="utf-8") as f:
        return ItemCatalog.from_mapping(yaml.safe_load(f) or {})


@functools.lru_cache(maxsize=None)
def load_item_catalog(path: Optional[str] = None) -> ItemCatalog:
    """Process-wide default catalog, loaded once."""
    return load_item_catalog_file(path or DEFAULT_ITEMS_PATH)


def classify(item_name: str, catalog: Optional[ItemCatalog] = None) -> ItemClass:
    """Classify an item against the given (or default) catalog."""
    return (catalog or load_item_catalog()).classify(item_name)
