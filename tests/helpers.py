from __future__ import annotations

from collections.abc import Iterable, Sequence
from random import Random
from typing import Any

from diceforge.game.affixes import AffixPool
from diceforge.game.context import AffixContext
from diceforge.game.dice.die import Die
from diceforge.game.dice.pool import DicePool
from diceforge.game.enums import DieType


class FixedRandom(Random):
    """Random whose ``randint`` and ``uniform`` replay a fixed script.

    ``randint`` values are clamped into the requested range so a script
    written for d6 dice stays valid for smaller windows.
    """

    def __init__(self, values: Iterable[float]) -> None:
        super().__init__(0)
        self.values = list(values)
        self.index = 0

    def _next(self) -> float:
        value = self.values[self.index % len(self.values)]
        self.index += 1
        return value

    def randint(self, a: int, b: int) -> int:
        return max(a, min(b, int(self._next())))

    def uniform(self, a: float, b: float) -> float:
        return max(a, min(b, float(self._next())))


class DummyPlayer:
    """Minimal stand-in for a player: stats, health and equipment."""

    def __init__(
        self,
        stats: dict[str, float] | None = None,
        current_health: float = 100,
        max_health: float = 100,
        equipment: Any = None,
    ) -> None:
        self.stats = dict(stats or {})
        self.current_health = current_health
        self.max_health = max_health
        self._equipment = equipment

    def get_equipped_items(self) -> list[Any]:
        if self._equipment is None:
            return []
        return self._equipment.get_equipped_items()


def make_dice(
    values: Sequence[int], die_type: DieType = DieType.D6, **kwargs: Any
) -> list[Die]:
    """Dice showing ``values``, with slot indices matching their position."""
    dice = []
    for index, value in enumerate(values):
        die = Die(die_type=die_type, current_value=value, slot_index=index, **kwargs)
        die.reset_modifications()
        dice.append(die)
    return dice


def make_pool(values: Sequence[int], **kwargs: Any) -> DicePool:
    return DicePool(make_dice(values, **kwargs))


def make_context(
    player: Any = None,
    affix_pool: AffixPool | None = None,
    dice_pool: Any = None,
    **values: Any,
) -> AffixContext:
    return AffixContext(
        player=player,
        affix_manager=affix_pool,
        dice_pool=dice_pool,
        values=values,
    )
