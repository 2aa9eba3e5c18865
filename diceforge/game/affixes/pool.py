"""The player's pool of active item-level affixes."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterator

from diceforge.game.affixes.affix import Affix
from diceforge.game.enums import AffixCategory

logger = logging.getLogger(__name__)


class AffixPool:
    """Insertion-ordered collection of affix instances owned by one combatant.

    A category counts an affix once for every step that feeds it, so a compound
    affix with two DAMAGE_BONUS steps counts twice toward DAMAGE_BONUS.
    """

    def __init__(self) -> None:
        self._affixes: list[Affix] = []

    def __len__(self) -> int:
        return len(self._affixes)

    def __iter__(self) -> Iterator[Affix]:
        return iter(list(self._affixes))

    def __contains__(self, affix: object) -> bool:
        return any(existing is affix for existing in self._affixes)

    def add_affix(self, affix: Affix) -> None:
        if affix in self:
            logger.warning(f"Affix '{affix.name}' is already in the pool")
            return
        if not affix.source:
            logger.warning(
                f"Affix '{affix.name}' added without a source; it can only be "
                "removed individually"
            )
        self._affixes.append(affix)

    def remove_affix(self, affix: Affix) -> bool:
        for index, existing in enumerate(self._affixes):
            if existing is affix:
                del self._affixes[index]
                return True
        return False

    def remove_affixes_by_source(self, source: str) -> list[Affix]:
        """Remove every affix stamped with ``source`` and return them."""
        removed = [a for a in self._affixes if a.source == source]
        if removed:
            self._affixes = [a for a in self._affixes if a.source != source]
        return removed

    def get_affixes_by_source(self, source: str) -> list[Affix]:
        return [a for a in self._affixes if a.source == source]

    def get_affixes_by_category(self, category: AffixCategory) -> list[Affix]:
        return [
            a
            for a in self._affixes
            if any(step.category is category for step in a.steps())
        ]

    def count_by_category(self, category: AffixCategory) -> int:
        return self.snapshot_counts().get(category, 0)

    def snapshot_counts(self) -> dict[AffixCategory, int]:
        """Per-category counts at this moment, detached from the live pool."""
        counts: Counter[AffixCategory] = Counter()
        for affix in self._affixes:
            for step in affix.steps():
                counts[step.category] += 1
        return dict(counts)

    def get_all_affixes(self) -> list[Affix]:
        return list(self._affixes)

    def clear(self) -> None:
        self._affixes.clear()
