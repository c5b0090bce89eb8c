"""
Command-line runner for the gamebook engine.

Two modes:
- Replay: apply a JSON action batch to a starting sheet and print the result.
- Play: walk a JSON file of sections interactively, asking the narrative
  interpreter for each section's actions.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from gamebook.engine.effects import BatchResult
from gamebook.engine.game_state import ActionSheet, Section
from gamebook.engine.interpreter import InterpreterError, NarrativeInterpreter
from runtime.session import PlaySession, default_engine_config, new_action_sheet
import config


def setup_logging(debug: bool = False) -> None:
    """Set up logging for the runner."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def load_json(path: str) -> Any:
    """Load a JSON document, logging what went wrong on failure."""
    try:
        with open(path, "r") as f:
            return json.load(f)
    except FileNotFoundError:
        logging.error(f"File not found: {path}")
        raise
    except json.JSONDecodeError as e:
        logging.error(f"Invalid JSON in {path}: {e}")
        raise


def load_sheet(path: Optional[str]) -> ActionSheet:
    if not path:
        return new_action_sheet()
    sheet = ActionSheet.model_validate(load_json(path))
    logging.info(f"Loaded action sheet from {path}")
    return sheet


def batch_records(document: Any) -> List[Any]:
    """Accept either a bare action list or an interpreter reply object."""
    if isinstance(document, dict) and "actions" in document:
        return document["actions"]
    return document


def render_batch(result: BatchResult) -> Dict[str, Any]:
    return {
        "sheet": result.sheet.to_wire(),
        "outcomes": [o.to_wire() for o in result.outcomes],
        "combatLog": result.combat_log,
    }


def run_replay(
    batch_file: str,
    section_id: int,
    sheet_file: Optional[str] = None,
    seed: Optional[int] = None,
) -> Dict[str, Any]:
    """Apply a recorded batch and return the printable result."""
    session = PlaySession(
        sheet=load_sheet(sheet_file),
        engine_config=default_engine_config(seed),
    )
    result = session.apply_batch(batch_records(load_json(batch_file)), section_id)
    return render_batch(result)


def run_interactive(
    sections_file: str,
    start: int,
    sheet_file: Optional[str] = None,
    seed: Optional[int] = None,
) -> None:
    """Play through a file of sections using the narrative interpreter."""
    sections = {
        section.id: section
        for section in (
            Section.model_validate(data) for data in load_json(sections_file)
        )
    }
    try:
        interpreter = NarrativeInterpreter()
    except InterpreterError as e:
        print(f"❌ {e}")
        return

    session = PlaySession(
        sheet=load_sheet(sheet_file),
        engine_config=default_engine_config(seed),
        interpreter=interpreter,
    )

    section_id = start
    print("=" * 60)
    print("Lone Wolf - type a choice number, 'p <item>' to pick up, 'quit' to stop")
    print("=" * 60)

    while True:
        section = sections.get(section_id)
        if section is None:
            print(f"\nSection {section_id} is not in {sections_file}.")
            break

        print(f"\n--- Section {section.id} ---\n{section.text}")
        turn = session.play_section(section)
        if turn.gm_message:
            print(f"\n{turn.gm_message}")
        if turn.error_message:
            print(f"\n❌ {turn.error_message}")
        for line in turn.combat_log:
            print(f"  {line}")

        sheet = session.sheet
        print(
            f"\n[Endurance {sheet.endurance}, Combat Skill {sheet.combat_skill}, "
            f"Gold {sheet.inventory.pouch}]"
        )
        if sheet.endurance <= 0:
            print("\nYour life and your quest end here.")
            break

        next_id = _prompt_for_choice(session, section)
        if next_id is None:
            print("\nThanks for playing! Goodbye!")
            break
        section_id = next_id


def _prompt_for_choice(session: PlaySession, section: Section) -> Optional[int]:
    while True:
        offered = session.choices_for(section)
        for number, choice in enumerate(offered, start=1):
            print(f"  {number}. {choice.label}")

        try:
            user_input = input("\n> ").strip()
        except (KeyboardInterrupt, EOFError):
            return None

        if user_input.lower() in ["quit", "exit", "q"]:
            return None
        if user_input.lower().startswith("p "):
            outcome = session.pick_up(user_input[2:].strip(), section.id)
            print(f"  {outcome.status}: {outcome.detail}")
            continue
        if user_input.isdigit() and 1 <= int(user_input) <= len(offered):
            choice = offered[int(user_input) - 1]
            if choice.kind == "pickup":
                outcome = session.pick_up(choice.item, section.id)
                print(f"  {outcome.status}: {outcome.detail}")
                continue
            return choice.to
        print("  Please pick one of the listed choices.")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run the Lone Wolf gamebook engine")
    parser.add_argument("--batch", help="JSON action batch to replay")
    parser.add_argument("--sections", help="JSON list of sections to play interactively")
    parser.add_argument("--section", type=int, default=1, help="Current / starting section")
    parser.add_argument("--sheet", help="JSON action sheet to start from")
    parser.add_argument("--seed", type=int, default=None, help="Random Number Table seed")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    setup_logging(args.debug)

    if args.batch:
        try:
            output = run_replay(args.batch, args.section, args.sheet, args.seed)
        except Exception as e:
            logging.error(f"Replay failed: {e}")
            if args.debug:
                raise
            return 1
        print(json.dumps(output, indent=2))
        return 0

    if args.sections:
        if not config.OPENAI_API_KEY:
            print("❌ OPENAI_API_KEY is not set; interactive play needs the interpreter.")
            return 1
        run_interactive(args.sections, args.section, args.sheet, args.seed)
        return 0

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
