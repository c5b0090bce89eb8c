"""
Play session for processing section turns.

This module handles the execution pipeline for one section:
1. Take the current section and the player's message
2. Ask the narrative interpreter for actions (unless the section is skipped)
3. Apply the action batch through the engine
4. Keep the updated sheet, combat log and outcomes for display

The engine itself is side-effect-free; the session owns the single mutable
Action Sheet and serializes round trips so only one batch applies at a time.
"""

import logging
import threading
from typing import Any, Iterable, List, Optional

from gamebook.engine.actions import InterpretResult
from gamebook.engine.choices import offered_choices, pick_up_item
from gamebook.engine.effects import ActionOutcome, BatchResult, EngineConfig, apply_actions
from gamebook.engine.game_state import ActionSheet, Inventory, OfferedChoice, Section
from gamebook.engine.interpreter import InterpreterError, InterpretRequest
import config


logger = logging.getLogger(__name__)


def new_action_sheet(
    endurance: Optional[int] = None,
    combat_skill: Optional[int] = None,
    gold: Optional[int] = None,
) -> ActionSheet:
    """Starting sheet from config defaults."""
    return ActionSheet(
        endurance=config.STARTING_ENDURANCE if endurance is None else endurance,
        combat_skill=(
            config.STARTING_COMBAT_SKILL if combat_skill is None else combat_skill
        ),
        inventory=Inventory(pouch=config.STARTING_GOLD if gold is None else gold),
    )


def default_engine_config(seed: Optional[int] = None) -> EngineConfig:
    """Engine configuration built from the environment settings."""
    return EngineConfig.default(
        seed=config.DICE_SEED if seed is None else seed,
        max_combat_rounds=config.MAX_COMBAT_ROUNDS,
        pouch_capacity=config.POUCH_CAPACITY,
    )


class TurnResult:
    """Result of processing one section."""

    def __init__(
        self,
        success: bool,
        gm_message: str,
        batch: Optional[BatchResult] = None,
        skipped: bool = False,
        error_message: Optional[str] = None,
    ):
        self.success = success
        self.gm_message = gm_message
        self.batch = batch
        self.skipped = skipped  # section is on the skip list
        self.error_message = error_message

    @property
    def outcomes(self) -> List[ActionOutcome]:
        return self.batch.outcomes if self.batch else []

    @property
    def combat_log(self) -> List[str]:
        return self.batch.combat_log if self.batch else []


class PlaySession:
    """Owns one Action Sheet and coordinates interpreter and engine."""

    def __init__(
        self,
        sheet: Optional[ActionSheet] = None,
        engine_config: Optional[EngineConfig] = None,
        interpreter: Optional[Any] = None,
        skip_sections: Optional[Iterable[int]] = None,
    ):
        """
        Args:
            sheet: Starting sheet (defaults to new_action_sheet())
            engine_config: Tables, catalog and dice for the applier
            interpreter: Object with interpret(InterpretRequest) -> InterpretResult
            skip_sections: Sections never sent to the interpreter
        """
        self.sheet = sheet or new_action_sheet()
        self.engine_config = engine_config or default_engine_config()
        self.interpreter = interpreter
        self.skip_sections = frozenset(
            config.SKIP_INTERPRET_SECTIONS if skip_sections is None else skip_sections
        )
        self.current_section_id: Optional[int] = None
        self.combat_log: List[str] = []
        self._lock = threading.Lock()

    def enter_section(self, section_id: int) -> None:
        self.current_section_id = section_id
        logger.info(f"Entered section {section_id}")

    def apply_batch(
        self, actions: Iterable[Any], section_id: Optional[int] = None
    ) -> BatchResult:
        """Apply an action batch to the session sheet and keep the result."""
        with self._lock:
            return self._apply_locked(actions, section_id)

    def _apply_locked(
        self, actions: Iterable[Any], section_id: Optional[int]
    ) -> BatchResult:
        if section_id is not None:
            self.current_section_id = section_id
        current = self.current_section_id or 0

        result = apply_actions(self.sheet, actions, current, self.engine_config)
        self.sheet = result.sheet
        self.combat_log.extend(result.combat_log)
        logger.info(
            f"Applied {len(result.outcomes)} actions at section {current}; "
            f"endurance now {self.sheet.endurance}"
        )
        return result

    def play_section(self, section: Section, user_message: str = "") -> TurnResult:
        """
        Interpret a section and apply what it implies.

        Returns:
            TurnResult; interpreter failures yield an empty batch and the error
        """
        with self._lock:
            self.current_section_id = section.id

            if section.id in self.skip_sections:
                logger.info(f"Section {section.id} is on the skip list")
                batch = self._apply_locked([], section.id)
                return TurnResult(success=True, gm_message="", batch=batch, skipped=True)

            if self.interpreter is None:
                return TurnResult(
                    success=False,
                    gm_message="",
                    batch=self._apply_locked([], section.id),
                    error_message="No narrative interpreter configured",
                )

            request = InterpretRequest(
                section_id=section.id,
                section_text=section.text,
                choices=section.choices,
                sheet=self.sheet,
                user_message=user_message,
            )
            try:
                reply: InterpretResult = self.interpreter.interpret(request)
            except InterpreterError as e:
                logger.error(f"Interpreter failed for section {section.id}: {e}")
                return TurnResult(
                    success=False,
                    gm_message="",
                    batch=self._apply_locked([], section.id),
                    error_message=str(e),
                )

            batch = self._apply_locked(reply.actions, section.id)
            return TurnResult(success=True, gm_message=reply.gm_message, batch=batch)

    def choices_for(self, section: Section) -> List[OfferedChoice]:
        with self._lock:
            return offered_choices(section, self.sheet)

    def pick_up(self, item: str, section_id: Optional[int] = None) -> ActionOutcome:
        """Pick up an item dropped at a section (the current one by default)."""
        with self._lock:
            target = section_id or self.current_section_id or 0
            self.sheet, outcome = pick_up_item(
                self.sheet, target, item, self.engine_config.catalog
            )
            return outcome
