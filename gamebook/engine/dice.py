"""
Die-roll sources for combat.

The Random Number Table draw is the only nondeterministic step in the engine,
so it is always injected. Any object with a ``roll() -> int`` method returning
0..9 can be used.
"""

import random
from typing import Iterable, List, Optional, Protocol


class DiceSource(Protocol):
    def roll(self) -> int: ...


class RandomNumberTable:
    """Uniform 0..9 draws from a private, optionally seeded generator."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = random.Random(seed)
        self.history: List[int] = []

    def roll(self) -> int:
        value = self._rng.randint(0, 9)
        self.history.append(value)
        return value


class ScriptedDice:
    """
    Replays a fixed sequence of rolls.

    Used for replay and tests. When the sequence is exhausted it either cycles
    (``cycle=True``) or raises IndexError.
    """

    def __init__(self, rolls: Iterable[int], cycle: bool = False):
        self.rolls = [int(r) for r in rolls]
        for r in self.rolls:
            if not 0 <= r <= 9:
                raise ValueError(f"Random Number Table values are 0-9, got {r}")
        if cycle and not self.rolls:
            raise ValueError("Cannot cycle an empty roll sequence")
        self.cycle = cycle
        self.position = 0

    def roll(self) -> int:
        if self.position >= len(self.rolls):
            if not self.cycle:
                raise IndexError(f"Scripted dice exhausted after {len(self.rolls)} rolls")
            self.position = 0
        value = self.rolls[self.position]
        self.position += 1
        return value

    @property
    def used(self) -> int:
        return self.position
