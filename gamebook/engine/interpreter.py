"""
Narrative Interpreter client - LLM-based action extraction from section text.

The interpreter is an external collaborator: the engine never calls it. This
module is the adapter used by the runtime session to:
1. Format the section text, choices and current sheet into a prompt
2. Constrain the LLM with a strict structured-output schema
3. Validate the reply into an InterpretResult (gm message + flat actions)

Because strict structured output requires every property to be present, each
action is a "wide" record with neutral defaults for the fields it does not
use. Translation into typed actions happens in actions.ingest_action.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI
from pydantic import Field, ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .actions import ACTION_TYPES, STAT_NAMES, InterpretResult
from .game_state import ActionSheet, Choice, WireModel

logger = logging.getLogger(__name__)


class InterpreterError(Exception):
    """Raised when the interpreter cannot produce a valid action batch."""

    pass


class InterpretRequest(WireModel):
    """Everything the interpreter sees for one section."""

    section_id: int
    section_text: str
    choices: List[Choice] = Field(default_factory=list)
    sheet: ActionSheet
    user_message: str = ""


SYSTEM_PROMPT = """You are a Lone Wolf rules assistant embedded in a game engine.

Rules:
- Only emit actions the section text or the player's explicit message supports.
- Never invent stat changes, items or flags.
- Do not simulate combat. When combat is required, emit one start_combat action.
- If uncertain, emit no actions and explain briefly in gmMessage.
- If a rule forbids a choice, emit remove_choice with value set to that choice's section id.
- A lone closing instruction such as "Turn to 19." with no alternatives is a mandatory
  continuation, not a choice. Never remove it.
- If a choice requires a Kai Discipline and the sheet has no flag for it, emit
  remove_choice with value set to the choice's 'to' section id.

Random Number Table:
- When the text asks for a number from the Random Number Table, pick 0-9, state it in
  gmMessage, keep the matching choice and emit remove_choice for the others.
- Emit the stat changes the rolled outcome calls for.

Items:
- When an item can be picked up, emit drop_item with item set to its name. The player
  picks items up through the choices that appear.
- Never emit add_item for items lying in the section; only for items handed over.
- drop_item needs no section id; the current section is used.

Structured output:
- Every field is required. Use these neutral defaults for fields an action does not use:
  stat: "endurance", delta: 0, value: 0, item: "", flag: "", flagValue: false,
  combat: {"combatModifier": 0, "enemy": []}
- remove_choice: value is the destination section id of the choice.
- start_combat: combat.combatModifier is Lone Wolf's combat skill bonus or penalty for
  this fight; combat.enemy lists every enemy in the order they are fought, each with
  enemyType, enemyName, combatSkill, endurance and enemyModifier.

Output must be valid JSON without markdown."""


def build_action_schema() -> Dict[str, Any]:
    """
    Strict JSON schema for the interpreter's reply.

    Every object lists all of its properties as required and forbids extras,
    as strict structured output demands.
    """
    enemy_schema = {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "enemyType": {"type": "string"},
            "enemyName": {"type": "string"},
            "combatSkill": {"type": "integer"},
            "endurance": {"type": "integer"},
            "enemyModifier": {"type": "integer"},
        },
        "required": [
            "enemyType",
            "enemyName",
            "combatSkill",
            "endurance",
            "enemyModifier",
        ],
    }
    action_schema = {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "type": {"type": "string", "enum": list(ACTION_TYPES)},
            "reason": {"type": "string"},
            "stat": {"type": "string", "enum": list(STAT_NAMES)},
            "delta": {"type": "integer"},
            "value": {"type": "integer"},
            "item": {"type": "string"},
            "flag": {"type": "string"},
            "flagValue": {"type": "boolean"},
            "combat": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "combatModifier": {"type": "integer"},
                    "enemy": {"type": "array", "items": enemy_schema},
                },
                "required": ["combatModifier", "enemy"],
            },
        },
        "required": [
            "type",
            "reason",
            "stat",
            "delta",
            "value",
            "item",
            "flag",
            "flagValue",
            "combat",
        ],
    }
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "gmMessage": {"type": "string"},
            "actions": {"type": "array", "items": action_schema},
        },
        "required": ["gmMessage", "actions"],
    }


def format_user_prompt(request: InterpretRequest) -> str:
    """Render the section, its choices and the sheet for the LLM."""
    choice_lines = "\n".join(f"- ({c.to}) {c.label}" for c in request.choices)
    sheet_json = json.dumps(request.sheet.to_wire(), indent=2)
    return f"""SECTION {request.section_id} TEXT:
{request.section_text}

CHOICES:
{choice_lines or "(none)"}

CURRENT ACTION SHEET:
{sheet_json}

USER MESSAGE:
{request.user_message or "(none)"}"""


def parse_interpret_reply(content: str) -> InterpretResult:
    """
    Validate the raw LLM reply.

    Raises:
        InterpreterError: If the reply is not JSON or lacks the top-level shape
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise InterpreterError(f"Interpreter reply is not valid JSON: {e}")

    try:
        return InterpretResult.model_validate(data)
    except ValidationError as e:
        raise InterpreterError(f"Interpreter reply does not match the schema: {e}")


class NarrativeInterpreter:
    """LLM client that turns a section into an action batch."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        client: Optional[Any] = None,
    ):
        """
        Initialize the interpreter with OpenAI configuration.

        Args:
            api_key: OpenAI key (defaults to config.OPENAI_API_KEY)
            model: Model name (defaults to config.OPENAI_MODEL)
            max_tokens: Output token cap
            temperature: Sampling temperature
            client: Pre-built client object, mainly for tests
        """
        import config

        self.model = model or config.OPENAI_MODEL
        self.max_tokens = max_tokens or config.OPENAI_MAX_TOKENS
        self.temperature = (
            temperature if temperature is not None else config.OPENAI_TEMPERATURE
        )
        self.schema = build_action_schema()

        if client is not None:
            self.client = client
        else:
            key = api_key or config.OPENAI_API_KEY
            if not key:
                raise InterpreterError(
                    "OPENAI_API_KEY is required for the narrative interpreter"
                )
            self.client = OpenAI(api_key=key)

    def interpret(self, request: InterpretRequest) -> InterpretResult:
        """
        Ask the LLM for the actions a section implies.

        Returns:
            InterpretResult with the gm message and flat action records

        Raises:
            InterpreterError: On API failure after retries or an invalid reply
        """
        user_prompt = format_user_prompt(request)
        try:
            content = self._call_llm_with_retry(user_prompt)
        except Exception as e:
            logger.error(f"Interpreter call failed for section {request.section_id}: {e}")
            raise InterpreterError(f"Interpreter call failed: {e}") from e

        result = parse_interpret_reply(content)
        logger.info(
            f"Interpreter returned {len(result.actions)} actions for section {request.section_id}"
        )
        return result

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(Exception),
        reraise=True,
    )
    def _call_llm_with_retry(self, user_prompt: str) -> str:
        """Call OpenAI API with retry logic."""
        try:
            if self.model.startswith("gpt-5"):
                # Responses API for GPT-5 models
                response = self.client.responses.create(
                    model=self.model,
                    input=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": user_prompt},
                    ],
                    text={
                        "format": {
                            "type": "json_schema",
                            "name": "interpret_result",
                            "strict": True,
                            "schema": self.schema,
                        }
                    },
                    max_output_tokens=self.max_tokens,
                )
                content = response.output_text
            else:
                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": user_prompt},
                    ],
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    response_format={
                        "type": "json_schema",
                        "json_schema": {
                            "name": "interpret_result",
                            "strict": True,
                            "schema": self.schema,
                        },
                    },
                )
                content = response.choices[0].message.content
            return content.strip() if content else ""

        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise
