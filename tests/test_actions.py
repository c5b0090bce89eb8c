"""
Tests for action ingestion.

The interpreter sends flat records with every field present; ingestion turns
them into typed variants or MalformedAction markers without raising.
"""

import pytest
from pydantic import ValidationError

from gamebook.engine.actions import (
    AddItem,
    DropItem,
    InterpretResult,
    MalformedAction,
    OutcomeReason,
    RemoveChoice,
    SetFlag,
    SetStat,
    StartCombat,
    UpdateStat,
    ingest_action,
    ingest_actions,
    parse_action,
)


def wire(**fields):
    """Flat record with the neutral defaults the interpreter uses."""
    record = {
        "type": "update_stat",
        "reason": "",
        "stat": "endurance",
        "delta": 0,
        "value": 0,
        "item": "",
        "flag": "",
        "flagValue": False,
        "combat": {"combatModifier": 0, "enemy": []},
    }
    record.update(fields)
    return record


GIAK = {
    "enemyType": "Giak",
    "enemyName": "Giak Scout",
    "combatSkill": 12,
    "endurance": 10,
    "enemyModifier": 0,
}


class TestIngestAction:
    """Translation of single records."""

    def test_update_stat(self):
        action = ingest_action(wire(stat="gold", delta=3, reason="found coins"))
        assert action == UpdateStat(stat="gold", delta=3, reason="found coins")

    def test_set_stat_uses_value(self):
        action = ingest_action(wire(type="set_stat", stat="combatSkill", value=17, delta=4))
        assert isinstance(action, SetStat)
        assert action.value == 17

    def test_add_item_strips_name(self):
        action = ingest_action(wire(type="add_item", item="  Sword "))
        assert action == AddItem(item="Sword")

    def test_drop_item_optional_section(self):
        assert ingest_action(wire(type="drop_item", item="Dagger")).section_id is None
        dropped = ingest_action(wire(type="drop_item", item="Dagger", sectionId=12))
        assert isinstance(dropped, DropItem)
        assert dropped.section_id == 12

    def test_set_flag_uses_flag_value(self):
        action = ingest_action(wire(type="set_flag", flag="Sixth Sense", flagValue=True))
        assert action == SetFlag(flag="Sixth Sense", value=True)

    def test_remove_choice_target_travels_in_value(self):
        action = ingest_action(wire(type="remove_choice", value=141))
        assert action == RemoveChoice(target_section_id=141)

    def test_start_combat(self):
        action = ingest_action(
            wire(type="start_combat", combat={"combatModifier": -2, "enemy": [GIAK]})
        )
        assert isinstance(action, StartCombat)
        assert action.combat.modifier == -2
        assert action.combat.enemies[0].name == "Giak Scout"
        assert action.combat.enemies[0].combat_skill == 12
        assert not action.evade

    def test_missing_optional_fields_use_defaults(self):
        action = ingest_action({"type": "update_stat", "delta": -2})
        assert action == UpdateStat(stat="endurance", delta=-2)

    def test_typed_action_passes_through(self):
        action = AddItem(item="Meal")
        assert ingest_action(action) is action


class TestMalformedRecords:
    """Records that cannot become actions."""

    @pytest.mark.parametrize(
        "record, problem",
        [
            (wire(type="teleport"), OutcomeReason.UNKNOWN_TYPE),
            (wire(stat="luck", delta=1), OutcomeReason.UNKNOWN_STAT),
            (wire(type="add_item", item="   "), OutcomeReason.EMPTY_ITEM),
            (wire(type="remove_item"), OutcomeReason.EMPTY_ITEM),
            (wire(type="drop_item"), OutcomeReason.EMPTY_ITEM),
            (wire(type="set_flag", flag=""), OutcomeReason.EMPTY_FLAG),
            (wire(type="remove_choice", value=0), OutcomeReason.INVALID_SECTION),
            (wire(type="start_combat"), OutcomeReason.NO_ENEMIES),
            (wire(delta="lots"), OutcomeReason.MALFORMED),
            ({"delta": 1}, OutcomeReason.MALFORMED),
        ],
    )
    def test_problem_reported(self, record, problem):
        action = ingest_action(record)
        assert isinstance(action, MalformedAction)
        assert action.problem == problem
        assert action.detail

    def test_non_object_record(self):
        action = ingest_action("update_stat")
        assert isinstance(action, MalformedAction)
        assert "str" in action.detail

    def test_batch_must_be_a_list(self):
        actions = ingest_actions({"type": "update_stat"})
        assert len(actions) == 1
        assert isinstance(actions[0], MalformedAction)

    def test_batch_order_preserved(self):
        actions = ingest_actions(
            [wire(delta=1), wire(type="bogus"), wire(type="add_item", item="Rope")]
        )
        assert [type(a) for a in actions] == [UpdateStat, MalformedAction, AddItem]


class TestTaggedForm:
    """The typed JSON form of actions."""

    def test_parse_action(self):
        action = parse_action({"type": "set_flag", "flag": "Camouflage", "value": True})
        assert action == SetFlag(flag="Camouflage", value=True)

    def test_parse_action_camel_case(self):
        action = parse_action({"type": "remove_choice", "targetSectionId": 85})
        assert action == RemoveChoice(target_section_id=85)

    def test_parse_action_rejects_unknown_type(self):
        with pytest.raises(ValidationError):
            parse_action({"type": "fly"})

    def test_actions_are_immutable(self):
        action = AddItem(item="Meal")
        with pytest.raises(ValidationError):
            action.item = "Rope"


class TestInterpretResult:
    """Interpreter replies."""

    def test_reply_with_actions(self):
        reply = InterpretResult.model_validate(
            {
                "gmMessage": "You find a dagger.",
                "actions": [wire(type="drop_item", item="Dagger"), wire(type="nope")],
            }
        )
        assert reply.gm_message == "You find a dagger."
        typed = reply.typed_actions()
        assert isinstance(typed[0], DropItem)
        assert isinstance(typed[1], MalformedAction)
