"""Equipment set bonuses.

Each registered set tracks how many of its pieces are equipped. On every
equipment change :meth:`SetBonusTracker.recalculate_all` recounts all sets in
one pass, and for each set whose count changed it strips every bonus the set
granted and re-grants the thresholds the new count reaches. Thresholds are
never diffed individually.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from diceforge import config
from diceforge.events import SetBonusChangedEvent

if TYPE_CHECKING:
    from diceforge.game.affixes.affix import Affix
    from diceforge.game.affixes.pool import AffixPool
    from diceforge.game.context import Equippable
    from diceforge.game.dice.dice_affix import DiceAffix
    from diceforge.game.dice.pool import DicePool

logger = logging.getLogger(__name__)


@dataclass
class SetBonusThreshold:
    """Bonuses granted once ``required_pieces`` of a set are equipped."""

    required_pieces: int
    affixes: list[Affix] = field(default_factory=list)
    dice_affixes: list[DiceAffix] = field(default_factory=list)
    description: str = ""


@dataclass
class SetDefinition:
    set_id: str
    name: str
    total_pieces: int
    thresholds: list[SetBonusThreshold] = field(default_factory=list)

    @property
    def source_name(self) -> str:
        """Source stamped on every affix this set grants."""
        return f"{config.SET_SOURCE_PREFIX}{self.name}"

    def thresholds_for(self, count: int) -> list[SetBonusThreshold]:
        if count <= 0:
            return []
        return [t for t in self.thresholds if t.required_pieces <= count]

    def validate(self) -> list[str]:
        problems: list[str] = []
        if self.total_pieces <= 0:
            problems.append(f"Set '{self.set_id}' has no pieces")
        for threshold in self.thresholds:
            if not 0 < threshold.required_pieces <= self.total_pieces:
                problems.append(
                    f"Set '{self.set_id}' threshold needs {threshold.required_pieces} "
                    f"of {self.total_pieces} pieces"
                )
            for affix in threshold.affixes:
                problems.extend(affix.validate())
            for dice_affix in threshold.dice_affixes:
                problems.extend(dice_affix.validate())
        return problems


class SetBonusTracker:
    """Keeps set bonuses in the affix and dice pools in step with equipment."""

    def __init__(
        self, affix_pool: AffixPool, dice_pool: DicePool | None = None
    ) -> None:
        self.affix_pool = affix_pool
        self.dice_pool = dice_pool
        self._sets: dict[str, SetDefinition] = {}
        self._counts: dict[str, int] = {}
        self._pieces: dict[str, tuple[str, ...]] = {}

    def register_set(self, definition: SetDefinition) -> None:
        if definition.set_id in self._sets:
            logger.debug(f"Set '{definition.set_id}' re-registered")
        self._sets[definition.set_id] = definition
        self._counts.setdefault(definition.set_id, 0)

    def get_set(self, set_id: str) -> SetDefinition | None:
        return self._sets.get(set_id)

    def get_equipped_count(self, set_id: str) -> int:
        return self._counts.get(set_id, 0)

    def get_active_thresholds(self, set_id: str) -> list[SetBonusThreshold]:
        definition = self._sets.get(set_id)
        if definition is None:
            return []
        return definition.thresholds_for(self.get_equipped_count(set_id))

    def recalculate_all(
        self, equipped: Iterable[Equippable]
    ) -> list[SetBonusChangedEvent]:
        """Recount every set against ``equipped`` and rebuild changed sets.

        A set changes when its piece count changes or when one of its pieces
        is swapped for another piece of the same set.

        Sets seen on an item but never registered are registered on the fly.
        Calling this again with unchanged equipment returns ``[]`` and
        touches nothing.
        """
        counts = dict.fromkeys(self._sets, 0)
        pieces: dict[str, list[str]] = {set_id: [] for set_id in self._sets}
        for item in equipped:
            definition = item.get_set_definition()
            if definition is None:
                continue
            if definition.set_id not in self._sets:
                self.register_set(definition)
                counts[definition.set_id] = 0
                pieces[definition.set_id] = []
            counts[definition.set_id] += 1
            pieces[definition.set_id].append(item.get_name())

        events: list[SetBonusChangedEvent] = []
        for set_id, new_count in counts.items():
            names = tuple(sorted(pieces[set_id]))
            if names == self._pieces.get(set_id, ()):
                continue
            definition = self._sets[set_id]
            self._deactivate(definition)
            self._counts[set_id] = new_count
            self._pieces[set_id] = names
            active = self._activate(definition, new_count, pieces[set_id])
            logger.debug(
                f"Set '{set_id}' now {new_count}/{definition.total_pieces}, "
                f"{len(active)} threshold(s) active"
            )
            events.append(
                SetBonusChangedEvent(
                    set_id=set_id,
                    new_count=new_count,
                    total_pieces=definition.total_pieces,
                    active_thresholds=[t.required_pieces for t in active],
                )
            )
        return events

    def _deactivate(self, definition: SetDefinition) -> None:
        source = definition.source_name
        self.affix_pool.remove_affixes_by_source(source)
        if self.dice_pool is not None:
            self.dice_pool.remove_affixes_by_source(source)

    def _activate(
        self, definition: SetDefinition, count: int, item_names: list[str]
    ) -> list[SetBonusThreshold]:
        source = definition.source_name
        active = definition.thresholds_for(count)
        owned = set(item_names)
        for threshold in active:
            for affix in threshold.affixes:
                self.affix_pool.add_affix(
                    affix.instantiate(source, config.SET_SOURCE_TYPE)
                )
            if self.dice_pool is None:
                continue
            for dice_affix in threshold.dice_affixes:
                self.dice_pool.apply_affix_to_dice(
                    dice_affix.instantiate(source, config.SET_SOURCE_TYPE),
                    lambda die: die.source in owned,
                )
        return active
