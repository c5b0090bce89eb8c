"""Tests for the item classifier."""

import pytest

from gamebook.engine.inventory import ItemCatalog, Slot, classify


class TestClassify:
    """Classification against the bundled catalog."""

    @pytest.mark.parametrize(
        "name",
        ["Sword", "Broadsword", "Short Sword", "AXE", "Dagger", "Bow", "Warhammer"],
    )
    def test_weapons(self, name):
        assert classify(name).slot == Slot.WEAPON

    @pytest.mark.parametrize(
        "name, location",
        [
            ("Helmet", "head"),
            ("Chainmail Waistcoat", "body"),
            ("Map of Sommerlund", "pocket"),
            ("Golden Key", "pocket"),
            ("Seal of Hammerdal", "hand"),
        ],
    )
    def test_special_items(self, name, location):
        result = classify(name)
        assert result.slot == Slot.SPECIAL
        assert result.location == location

    def test_everything_else_goes_to_backpack(self):
        assert classify("Meal").slot == Slot.BACKPACK
        assert classify("Healing Potion").slot == Slot.BACKPACK
        assert classify("Rope").slot == Slot.BACKPACK

    def test_keyword_matches_whole_words_only(self):
        assert classify("Bowl of Stew").slot == Slot.BACKPACK

    def test_case_and_whitespace_insensitive(self):
        result = classify("  silver   HELM ")
        assert result.slot == Slot.SPECIAL
        assert result.location == "head"

    def test_special_checked_before_weapon_keywords(self):
        result = classify("Sommerswerd")
        assert result.slot == Slot.SPECIAL
        assert result.location == "weapon"

    def test_backpack_has_no_location(self):
        assert classify("Meal").location is None


class TestCatalog:
    """Catalogs built from mappings."""

    def test_custom_catalog(self):
        catalog = ItemCatalog.from_mapping(
            {
                "capacities": {"weapons": 3, "backpack": 4, "pouch": 20},
                "weapon_keywords": ["Lance"],
                "special_items": {"Crown": "head"},
            }
        )
        assert catalog.classify("Silver Lance").slot == Slot.WEAPON
        assert catalog.classify("crown").location == "head"
        assert catalog.classify("Sword").slot == Slot.BACKPACK
        assert catalog.weapon_capacity == 3
        assert catalog.backpack_capacity == 4
        assert catalog.pouch_capacity == 20

    def test_bundled_capacities(self, catalog):
        assert catalog.weapon_capacity == 2
        assert catalog.backpack_capacity == 8
        assert catalog.pouch_capacity == 50
