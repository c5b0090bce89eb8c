"""
Tests for the narrative interpreter adapter.

No network: the OpenAI client is replaced by a stub that records its calls.
"""

import json
from types import SimpleNamespace

import pytest

import config
from gamebook.engine.actions import ACTION_TYPES, DropItem
from gamebook.engine.game_state import ActionSheet, Choice
from gamebook.engine.interpreter import (
    SYSTEM_PROMPT,
    InterpreterError,
    InterpretRequest,
    NarrativeInterpreter,
    build_action_schema,
    format_user_prompt,
    parse_interpret_reply,
)


REPLY = {
    "gmMessage": "A dagger lies on the ground.",
    "actions": [
        {
            "type": "drop_item",
            "reason": "dagger on the ground",
            "stat": "endurance",
            "delta": 0,
            "value": 0,
            "item": "Dagger",
            "flag": "",
            "flagValue": False,
            "combat": {"combatModifier": 0, "enemy": []},
        }
    ],
}


class StubChatClient:
    """Mimics client.chat.completions.create."""

    def __init__(self, content):
        self.content = content
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class StubResponsesClient:
    """Mimics client.responses.create."""

    def __init__(self, content):
        self.content = content
        self.calls = []
        self.responses = SimpleNamespace(create=self._create)

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(output_text=self.content)


@pytest.fixture
def request_37():
    return InterpretRequest(
        section_id=37,
        section_text="A dagger lies on the ground.",
        choices=[Choice(to=85, label="Turn to 85.")],
        sheet=ActionSheet(endurance=25, combat_skill=15),
        user_message="I look around.",
    )


class TestSchema:
    """The strict structured-output schema."""

    def test_every_action_field_required(self):
        action = build_action_schema()["properties"]["actions"]["items"]
        assert set(action["required"]) == set(action["properties"])
        assert len(action["required"]) == 9
        assert action["additionalProperties"] is False

    def test_type_enum(self):
        action = build_action_schema()["properties"]["actions"]["items"]
        assert action["properties"]["type"]["enum"] == list(ACTION_TYPES)

    def test_enemy_fields(self):
        action = build_action_schema()["properties"]["actions"]["items"]
        enemy = action["properties"]["combat"]["properties"]["enemy"]["items"]
        assert enemy["required"] == [
            "enemyType",
            "enemyName",
            "combatSkill",
            "endurance",
            "enemyModifier",
        ]

    def test_top_level(self):
        schema = build_action_schema()
        assert schema["required"] == ["gmMessage", "actions"]


class TestPrompt:
    """Prompt construction."""

    def test_user_prompt_contents(self, request_37):
        prompt = format_user_prompt(request_37)
        assert "SECTION 37 TEXT" in prompt
        assert "- (85) Turn to 85." in prompt
        assert '"combatSkill": 15' in prompt
        assert "I look around." in prompt

    def test_system_prompt_mentions_neutral_defaults(self):
        assert "flagValue: false" in SYSTEM_PROMPT


class TestReplyParsing:
    """Validation of raw replies."""

    def test_valid_reply(self):
        result = parse_interpret_reply(json.dumps(REPLY))
        assert result.gm_message == "A dagger lies on the ground."
        assert isinstance(result.typed_actions()[0], DropItem)

    def test_invalid_json(self):
        with pytest.raises(InterpreterError, match="not valid JSON"):
            parse_interpret_reply("```json {}```")

    def test_wrong_shape(self):
        with pytest.raises(InterpreterError, match="does not match"):
            parse_interpret_reply(json.dumps({"gmMessage": 3, "actions": "none"}))


class TestNarrativeInterpreter:
    """The client wrapper."""

    def test_chat_completions_call(self, request_37):
        client = StubChatClient(json.dumps(REPLY))
        interpreter = NarrativeInterpreter(model="gpt-4o-mini", client=client)
        result = interpreter.interpret(request_37)

        assert len(result.actions) == 1
        call = client.calls[0]
        assert call["model"] == "gpt-4o-mini"
        assert call["response_format"]["type"] == "json_schema"
        assert call["response_format"]["json_schema"]["strict"] is True
        assert call["messages"][0]["content"] == SYSTEM_PROMPT

    def test_responses_api_for_gpt5(self, request_37):
        client = StubResponsesClient(json.dumps(REPLY))
        interpreter = NarrativeInterpreter(model="gpt-5-mini", client=client)
        result = interpreter.interpret(request_37)

        assert result.gm_message == REPLY["gmMessage"]
        assert client.calls[0]["text"]["format"]["strict"] is True

    def test_bad_reply_raises(self, request_37):
        interpreter = NarrativeInterpreter(model="gpt-4o-mini", client=StubChatClient("nope"))
        with pytest.raises(InterpreterError):
            interpreter.interpret(request_37)

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr(config, "OPENAI_API_KEY", None)
        with pytest.raises(InterpreterError, match="OPENAI_API_KEY"):
            NarrativeInterpreter()
