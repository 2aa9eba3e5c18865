"""The ordered dice hand owned by one combatant."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

from diceforge.game.context import AffixContext
from diceforge.game.dice.engine import DiceAffixEngine
from diceforge.game.enums import DiceTrigger

if TYPE_CHECKING:
    from diceforge.events import GameEvent
    from diceforge.game.dice.dice_affix import DiceAffix
    from diceforge.game.dice.die import Die
    from diceforge.types import SlotIndex
    from diceforge.util.rng import RNG

logger = logging.getLogger(__name__)


class DicePool:
    """Ordered dice with slot indices kept in sync with list position.

    Every trigger-firing method returns the events produced by the affixes it
    activated, in activation order.
    """

    def __init__(
        self,
        dice: list[Die] | None = None,
        engine: DiceAffixEngine | None = None,
        rng: RNG | None = None,
    ) -> None:
        self._dice: list[Die] = []
        self.rng = rng
        self.engine = engine or DiceAffixEngine(rng)
        self.in_combat = False
        for die in dice or []:
            self.add_die(die)

    def __len__(self) -> int:
        return len(self._dice)

    def __iter__(self) -> Iterator[Die]:
        return iter(list(self._dice))

    def __getitem__(self, index: SlotIndex) -> Die:
        return self._dice[index]

    @property
    def dice(self) -> list[Die]:
        return list(self._dice)

    def _context(self, context: AffixContext | None) -> AffixContext:
        """``context`` with this pool filled in as its dice pool."""
        context = context or AffixContext()
        if context.dice_pool is None:
            context = dataclasses.replace(context, dice_pool=self)
        return context

    def _fire(
        self, trigger: DiceTrigger, context: AffixContext | None
    ) -> list[GameEvent]:
        return self.engine.process_trigger(trigger, self._dice, self._context(context))

    def _reindex(self) -> None:
        for index, die in enumerate(self._dice):
            die.slot_index = index

    def add_die(self, die: Die) -> None:
        self._dice.append(die)
        self._reindex()

    def remove_die(self, die: Die) -> bool:
        for index, existing in enumerate(self._dice):
            if existing is die:
                del self._dice[index]
                self._reindex()
                return True
        return False

    def remove_dice_from_source(self, source: str) -> list[Die]:
        removed = self.dice_from_source(source)
        if removed:
            self._dice = [d for d in self._dice if d.source != source]
            self._reindex()
        return removed

    def dice_from_source(self, source: str) -> list[Die]:
        """Dice granted by the item named ``source``."""
        return [d for d in self._dice if d.source == source]

    def move_die(
        self,
        from_index: SlotIndex,
        to_index: SlotIndex,
        context: AffixContext | None = None,
    ) -> list[GameEvent]:
        """Move a die to a new slot and fire ON_REORDER."""
        if not (0 <= from_index < len(self._dice) and 0 <= to_index < len(self._dice)):
            logger.warning(
                f"Can't move die {from_index} -> {to_index} in a pool of "
                f"{len(self._dice)}"
            )
            return []
        if from_index == to_index:
            return []
        die = self._dice.pop(from_index)
        self._dice.insert(to_index, die)
        self._reindex()
        return self._fire(DiceTrigger.ON_REORDER, context)

    def roll_all(self, context: AffixContext | None = None) -> list[GameEvent]:
        """Roll every die, then run ON_ROLL and PASSIVE affixes."""
        for die in self._dice:
            die.is_consumed = False
            die.roll(self.rng)
        events = self._fire(DiceTrigger.ON_ROLL, context)
        events.extend(self._fire(DiceTrigger.PASSIVE, context))
        return events

    def reapply(self, context: AffixContext | None = None) -> list[GameEvent]:
        """Reset every die to its raw face and rerun ON_ROLL and PASSIVE.

        Used after the affixes on the dice changed mid-turn (equipment swap,
        set bonus change) so values reflect the new affix list.
        """
        for die in self._dice:
            die.reset_modifications()
        events = self._fire(DiceTrigger.ON_ROLL, context)
        events.extend(self._fire(DiceTrigger.PASSIVE, context))
        return events

    def use_die(
        self, index: SlotIndex, context: AffixContext | None = None
    ) -> list[GameEvent]:
        """Consume the die in ``index`` and fire its ON_USE affixes."""
        if not 0 <= index < len(self._dice):
            logger.warning(f"No die in slot {index}")
            return []
        die = self._dice[index]
        if die.is_consumed:
            logger.warning(f"Die in slot {index} was already used this turn")
            return []
        context = self._context(context)
        events = [
            event
            for affix, priority in die.get_layered_affixes()
            if affix.trigger is DiceTrigger.ON_USE
            for event in self.engine.activate(affix, die, self._dice, context, priority)
        ]
        die.is_consumed = True
        return events

    def spend_reroll(
        self, index: SlotIndex, context: AffixContext | None = None
    ) -> list[GameEvent]:
        """Spend a granted reroll on one die and rerun the pool's ON_ROLL pass."""
        if not 0 <= index < len(self._dice):
            return []
        if self._dice[index].spend_reroll(self.rng) is None:
            return []
        return self.reapply(context)

    def take_duplicates(self) -> list[Die]:
        """Copies of every die flagged by DUPLICATE_ON_MAX, clearing the flags.

        The copies are not added to the pool; the caller decides where they go.
        """
        copies: list[Die] = []
        for die in self._dice:
            if die.duplicate_pending:
                die.duplicate_pending = False
                copies.append(die.duplicate())
        return copies

    def start_combat(self, context: AffixContext | None = None) -> list[GameEvent]:
        self.in_combat = True
        return self._fire(DiceTrigger.ON_COMBAT_START, context)

    def end_combat(self, context: AffixContext | None = None) -> list[GameEvent]:
        """Fire ON_COMBAT_END, then clear per-combat hand state."""
        events = self._fire(DiceTrigger.ON_COMBAT_END, context)
        for die in self._dice:
            die.is_consumed = False
            die.rerolls_available = 0
            die.unlock()
        self.in_combat = False
        return events

    def apply_affix_to_dice(
        self,
        affix: DiceAffix,
        predicate: Callable[[Die], bool] | None = None,
    ) -> int:
        """Attach a separate copy of ``affix`` to every matching die.

        Returns the number of dice that received it.
        """
        count = 0
        for die in self._dice:
            if predicate is None or predicate(die):
                die.add_affix(affix.instantiate(affix.source, affix.source_type))
                count += 1
        return count

    def remove_affixes_by_source(self, source: str) -> int:
        """Strip applied affixes stamped with ``source`` from every die."""
        return sum(len(die.remove_affixes_by_source(source)) for die in self._dice)

    def total_value(self, include_consumed: bool = True) -> int:
        return sum(
            die.modified_value
            for die in self._dice
            if include_consumed or not die.is_consumed
        )
