"""Equipment items and the slots that hold them.

Equipping an item stamps owned copies of its affixes and dice with the item's
name, so unequipping can strip exactly what that item granted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from diceforge.game.enums import Rarity

if TYPE_CHECKING:
    from diceforge.events import GameEvent
    from diceforge.game.affixes.affix import Affix
    from diceforge.game.affixes.pool import AffixPool
    from diceforge.game.dice.die import Die
    from diceforge.game.dice.pool import DicePool
    from diceforge.game.sets import SetBonusTracker, SetDefinition

logger = logging.getLogger(__name__)


@dataclass
class EquipmentItem:
    """An equippable item. Its affixes and dice are templates."""

    name: str
    rarity: Rarity = Rarity.COMMON
    set_definition: SetDefinition | None = None
    affixes: list[Affix] = field(default_factory=list)
    dice: list[Die] = field(default_factory=list)

    def get_set_definition(self) -> SetDefinition | None:
        return self.set_definition

    def get_rarity(self) -> Rarity:
        return self.rarity

    def get_name(self) -> str:
        return self.name


class Equipment:
    """Named equipment slots wired to a combatant's affix and dice pools."""

    def __init__(
        self,
        slot_names: list[str],
        affix_pool: AffixPool,
        dice_pool: DicePool | None = None,
        set_tracker: SetBonusTracker | None = None,
    ) -> None:
        self.slots: dict[str, EquipmentItem | None] = dict.fromkeys(slot_names)
        self.affix_pool = affix_pool
        self.dice_pool = dice_pool
        self.set_tracker = set_tracker

    def get_equipped_items(self) -> list[EquipmentItem]:
        return [item for item in self.slots.values() if item is not None]

    def get_item(self, slot: str) -> EquipmentItem | None:
        return self.slots.get(slot)

    def equip(self, slot: str, item: EquipmentItem) -> list[GameEvent]:
        """Put ``item`` in ``slot``, replacing whatever was there.

        The item's name is the source stamped on everything it grants, so two
        equipped items can't share a name. Equipping a second item with the
        name of one held in another slot is refused with a warning.

        Raises:
            ValueError: If ``slot`` doesn't exist.
        """
        if slot not in self.slots:
            raise ValueError(f"Invalid equipment slot: {slot}")
        if any(existing is item for existing in self.slots.values()):
            logger.warning(f"{item.name} is already equipped")
            return []
        if any(
            other is not None and other.name == item.name
            for other_slot, other in self.slots.items()
            if other_slot != slot
        ):
            logger.warning(f"Another item named {item.name} is already equipped")
            return []

        events = self.unequip(slot)
        self.slots[slot] = item
        self._grant(item)
        events.extend(self._refresh_sets())
        return events

    def unequip(self, slot: str) -> list[GameEvent]:
        if slot not in self.slots:
            raise ValueError(f"Invalid equipment slot: {slot}")
        item = self.slots[slot]
        if item is None:
            return []
        self.slots[slot] = None
        self._strip(item)
        return self._refresh_sets()

    def _grant(self, item: EquipmentItem) -> None:
        for affix in item.affixes:
            self.affix_pool.add_affix(affix.instantiate(item.name))
        if self.dice_pool is None:
            return
        for template in item.dice:
            die = template.duplicate()
            die.source = item.name
            self.dice_pool.add_die(die)

    def _strip(self, item: EquipmentItem) -> None:
        self.affix_pool.remove_affixes_by_source(item.name)
        if self.dice_pool is not None:
            self.dice_pool.remove_dice_from_source(item.name)

    def _refresh_sets(self) -> list[GameEvent]:
        if self.set_tracker is None:
            return []
        return list(self.set_tracker.recalculate_all(self.get_equipped_items()))
