"""Runtime context read by conditions and value sources.

The context is a read-only view of combat state handed to the engine for one
evaluation. Every reference is optional: a missing player, pool or dice pool
resolves to a documented default (0, 1.0, or "condition not met") rather than
an error, because affixes are authored data and must never crash a turn.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from diceforge.game.enums import Rarity

if TYPE_CHECKING:
    from diceforge.game.affixes.pool import AffixPool
    from diceforge.game.enums import AffixCategory
    from diceforge.game.sets import SetDefinition


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()
"""Sentinel returned by :meth:`AffixContext.get` for absent keys."""


@runtime_checkable
class Equippable(Protocol):
    """One interface for anything that can sit in an equipment slot."""

    def get_set_definition(self) -> SetDefinition | None: ...

    def get_rarity(self) -> Rarity: ...

    def get_name(self) -> str: ...


def equipped_items(player: Any) -> list[Equippable]:
    """Return the non-empty equipment of ``player``.

    Accepts a ``get_equipped_items()`` accessor or an ``equipment`` mapping of
    slot to item (``None`` for empty slots).
    """
    if player is None:
        return []
    accessor = getattr(player, "get_equipped_items", None)
    if callable(accessor):
        return list(accessor())
    equipment = getattr(player, "equipment", None)
    if isinstance(equipment, Mapping):
        return [item for item in equipment.values() if item is not None]
    return []


def health_percent(combatant: Any) -> float | None:
    """Current over max health for ``combatant``, or ``None`` if unknown."""
    if combatant is None:
        return None
    accessor = getattr(combatant, "get_health_percent", None)
    if callable(accessor):
        return float(accessor())
    current = getattr(combatant, "current_health", None)
    maximum = getattr(combatant, "max_health", None)
    if current is None or not maximum:
        return None
    return max(0.0, float(current) / float(maximum))


@dataclass(slots=True)
class AffixContext:
    """Typed bag of optional references consumed by the engine.

    Attributes:
        player: Owner of the affixes. Provides stats and equipment.
        source: Acting combatant, used first for health lookups.
        affix_manager: The player's :class:`AffixPool`.
        dice_pool: The active dice pool (anything sized).
        turn_number: Current combat turn, 0 outside combat.
        source_tag: Tag of whatever triggered the evaluation (an action id,
            a damage type, ...) compared by SOURCE_TAG_* conditions.
        values: Extra keys conditions may read.
        affix_counts: Frozen per-category affix counts. When set, value sources
            read these instead of the live pool.
    """

    player: Any = None
    source: Any = None
    affix_manager: AffixPool | None = None
    dice_pool: Any = None
    turn_number: int = 0
    source_tag: str = ""
    values: dict[str, Any] = field(default_factory=dict)
    affix_counts: Mapping[AffixCategory, int] | None = None

    def get(self, key: str) -> Any:
        """Look up ``key``: typed fields, derived keys, then ``values``.

        Returns :data:`MISSING` when nothing answers.
        """
        match key:
            case "turn_number":
                return self.turn_number
            case "source_tag":
                return self.source_tag
            case "health_percent":
                percent = self.health_percent()
                return MISSING if percent is None else percent
            case "dice_pool_size":
                return MISSING if self.dice_pool is None else len(self.dice_pool)
            case "equipped_item_count":
                return len(equipped_items(self.player))
        return self.values.get(key, MISSING)

    def has(self, key: str) -> bool:
        return self.get(key) is not MISSING

    def health_percent(self) -> float | None:
        percent = health_percent(self.source)
        if percent is None:
            percent = health_percent(self.player)
        return percent

    def equipped_items(self) -> list[Equippable]:
        return equipped_items(self.player)

    def with_snapshot(self) -> AffixContext:
        """Return a copy whose affix counts are frozen at this moment.

        Batch evaluation resolves every value against one snapshot so an affix
        added partway through a batch can't change its own count or a
        sibling's.
        """
        if self.affix_manager is None:
            return dataclasses.replace(self, affix_counts={})
        return dataclasses.replace(
            self, affix_counts=self.affix_manager.snapshot_counts()
        )

    def with_values(self, **values: Any) -> AffixContext:
        merged = dict(self.values)
        merged.update(values)
        return dataclasses.replace(self, values=merged)


def rarity_sum(items: Iterable[Equippable]) -> int:
    total = 0
    for item in items:
        rarity = item.get_rarity()
        total += rarity.value if isinstance(rarity, Rarity) else int(rarity)
    return total
