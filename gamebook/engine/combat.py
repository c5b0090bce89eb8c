"""
Combat resolution against the Combat Results Table.

Two layers:
- resolve_combat: Lone Wolf against one enemy, round by round, until one side
  (or both) reaches 0 endurance.
- resolve_all: an ordered list of enemies fought one after another, carrying
  Lone Wolf's endurance forward and short-circuiting once an encounter is lost.

Neither function mutates its inputs; the updated sheet is returned.
"""

import logging
from typing import List, Optional

from .crt import CombatResultsTable, load_crt
from .dice import DiceSource, RandomNumberTable
from .game_state import (
    KILL,
    ActionSheet,
    Combat,
    CombatRound,
    Damage,
    EncounterResult,
    Enemy,
    MultiCombatResult,
    Winner,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 200


def _apply_damage(endurance: int, damage: Damage) -> int:
    """Apply a CRT damage value; the kill marker zeroes endurance."""
    if damage == KILL:
        return 0
    return max(0, endurance - damage)


def _describe_loss(name: str, damage: Damage, before: int, after: int) -> str:
    if damage == KILL:
        return f"{name} is killed outright ({before} -> 0)"
    return f"{name} loses {damage} ({before} -> {after})"


def _round_message(
    number: int,
    enemy: Enemy,
    ratio: int,
    die: int,
    enemy_damage: Damage,
    lone_wolf_damage: Damage,
    enemy_before: int,
    enemy_after: int,
    lone_wolf_before: int,
    lone_wolf_after: int,
    evade: bool,
) -> str:
    if evade:
        enemy_part = f"{enemy.name} takes no damage (evading)"
    else:
        enemy_part = _describe_loss(enemy.name, enemy_damage, enemy_before, enemy_after)
    lone_wolf_part = _describe_loss(
        "Lone Wolf", lone_wolf_damage, lone_wolf_before, lone_wolf_after
    )
    return f"Round {number} (ratio {ratio:+d}, roll {die}): {enemy_part}; {lone_wolf_part}"


def _winner(lone_wolf_endurance: int, enemy_endurance: int) -> Optional[Winner]:
    if enemy_endurance <= 0 and lone_wolf_endurance > 0:
        return Winner.LONE_WOLF
    if lone_wolf_endurance <= 0 and enemy_endurance > 0:
        return Winner.ENEMY
    # Mutual destruction, or both still standing when combat was broken off
    return None


def resolve_combat(
    sheet: ActionSheet,
    enemy: Enemy,
    combat_skill_bonus: int = 0,
    evade: bool = False,
    crt: Optional[CombatResultsTable] = None,
    dice: Optional[DiceSource] = None,
    max_rounds: int = DEFAULT_MAX_ROUNDS,
) -> EncounterResult:
    """
    Fight one enemy to completion.

    Args:
        sheet: Lone Wolf's sheet going into the fight (not modified)
        enemy: The opponent
        combat_skill_bonus: Added to Lone Wolf's combat skill for every round
        evade: Enemy damage is forced to 0; Lone Wolf still takes rolled damage
        crt: Combat Results Table (defaults to the bundled table)
        dice: Random Number Table source (defaults to an unseeded one)
        max_rounds: Rounds after which a stalled fight is broken off

    Returns:
        EncounterResult with the updated sheet, final enemy endurance, per-round
        records and the winner (None on mutual destruction)
    """
    crt = crt or load_crt()
    dice = dice or RandomNumberTable()
    updated = sheet.model_copy(deep=True)

    # Already-defeated enemy: immediate win, no lookups
    if enemy.endurance <= 0:
        logger.debug(f"{enemy.name} already defeated; skipping combat")
        return EncounterResult(
            sheet=updated,
            enemy=enemy,
            final_enemy_endurance=0,
            rounds=[],
            winner=Winner.LONE_WOLF,
        )

    enemy_endurance = enemy.endurance
    lone_wolf_endurance = updated.endurance
    rounds: List[CombatRound] = []
    broken_off = False

    while lone_wolf_endurance > 0 and enemy_endurance > 0:
        if len(rounds) >= max_rounds:
            broken_off = True
            logger.warning(
                f"Combat with {enemy.name} broken off after {max_rounds} rounds without a result"
            )
            break

        raw_ratio = (updated.combat_skill + combat_skill_bonus) - enemy.effective_combat_skill
        ratio = crt.clamp_ratio(raw_ratio)
        die = dice.roll()
        cell = crt.lookup(ratio, die)

        enemy_damage: Damage = 0 if evade else cell.enemy
        lone_wolf_damage: Damage = cell.lone_wolf

        enemy_after = _apply_damage(enemy_endurance, enemy_damage)
        lone_wolf_after = _apply_damage(lone_wolf_endurance, lone_wolf_damage)

        number = len(rounds) + 1
        message = _round_message(
            number,
            enemy,
            ratio,
            die,
            enemy_damage,
            lone_wolf_damage,
            enemy_endurance,
            enemy_after,
            lone_wolf_endurance,
            lone_wolf_after,
            evade,
        )
        rounds.append(
            CombatRound(
                round=number,
                enemy_name=enemy.name,
                ratio=ratio,
                die=die,
                enemy_damage=enemy_damage,
                lone_wolf_damage=lone_wolf_damage,
                enemy_endurance_before=enemy_endurance,
                enemy_endurance_after=enemy_after,
                lone_wolf_endurance_before=lone_wolf_endurance,
                lone_wolf_endurance_after=lone_wolf_after,
                message=message,
            )
        )
        logger.debug(message)

        enemy_endurance = enemy_after
        lone_wolf_endurance = lone_wolf_after

    updated.endurance = lone_wolf_endurance
    return EncounterResult(
        sheet=updated,
        enemy=enemy,
        final_enemy_endurance=enemy_endurance,
        rounds=rounds,
        winner=_winner(lone_wolf_endurance, enemy_endurance),
        broken_off=broken_off,
    )


def _encounter_header(sheet: ActionSheet, enemy: Enemy, bonus: int) -> str:
    lone_wolf_cs = sheet.combat_skill + bonus
    return (
        f"Combat: Lone Wolf (CS {lone_wolf_cs}, EP {sheet.endurance}) vs "
        f"{enemy.label} (CS {enemy.effective_combat_skill}, EP {enemy.endurance})"
    )


def _encounter_summary(result: EncounterResult) -> str:
    name = result.enemy.name
    if result.broken_off:
        return f"Combat with {name} broken off after {len(result.rounds)} rounds."
    if result.winner == Winner.LONE_WOLF:
        return f"{name} is defeated. Lone Wolf has {result.sheet.endurance} EP left."
    if result.winner == Winner.ENEMY:
        return f"Lone Wolf is slain by {name}."
    return f"Lone Wolf and {name} fall together."


def resolve_all(
    sheet: ActionSheet,
    combat: Combat,
    combat_skill_bonus: int = 0,
    evade: bool = False,
    crt: Optional[CombatResultsTable] = None,
    dice: Optional[DiceSource] = None,
    max_rounds: int = DEFAULT_MAX_ROUNDS,
) -> MultiCombatResult:
    """
    Fight every enemy of a combat in list order.

    The combat modifier and combat_skill_bonus are summed and applied to every
    encounter. Once Lone Wolf is at 0 endurance, or an encounter ends without
    a Lone Wolf win, the remaining enemies are recorded as automatic Enemy
    wins with no rounds.

    Returns:
        MultiCombatResult; winner is Lone Wolf only if every enemy was defeated
        and Lone Wolf still has endurance left
    """
    crt = crt or load_crt()
    dice = dice or RandomNumberTable()
    bonus = combat.modifier + combat_skill_bonus

    current = sheet.model_copy(deep=True)
    log: List[str] = []
    encounters: List[EncounterResult] = []
    stopped = False

    for enemy in combat.enemies:
        if stopped or current.endurance <= 0:
            stopped = True
            encounters.append(
                EncounterResult(
                    sheet=current,
                    enemy=enemy,
                    final_enemy_endurance=enemy.endurance,
                    rounds=[],
                    winner=Winner.ENEMY,
                    auto_resolved=True,
                )
            )
            log.append(f"{enemy.label} is unopposed: Lone Wolf cannot fight on.")
            continue

        log.append(_encounter_header(current, enemy, bonus))
        result = resolve_combat(
            current,
            enemy,
            combat_skill_bonus=bonus,
            evade=evade,
            crt=crt,
            dice=dice,
            max_rounds=max_rounds,
        )
        encounters.append(result)
        log.extend(result.log)
        log.append(_encounter_summary(result))
        current = result.sheet

        if result.winner != Winner.LONE_WOLF:
            stopped = True

    all_defeated = all(e.winner == Winner.LONE_WOLF for e in encounters)
    winner = (
        Winner.LONE_WOLF if all_defeated and current.endurance > 0 else Winner.ENEMY
    )
    logger.info(
        f"Combat against {len(combat.enemies)} enemies resolved: {winner.value} wins"
    )
    return MultiCombatResult(
        sheet=current, log=log, encounters=encounters, winner=winner
    )
