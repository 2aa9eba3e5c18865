"""Resolve an affix's value source against the runtime context.

Each :class:`ValueSource` yields a scalar multiplier; the contribution of an
affix step is ``effect_number * multiplier``. Missing collaborators resolve to
the documented default for their source (0 for counts and stats, 1.0 for
health percent).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from diceforge.game.context import rarity_sum
from diceforge.game.enums import AffixCategory, ValueSource
from diceforge.game.serialization import AffixDataError, enum_from_ordinal

if TYPE_CHECKING:
    from diceforge.game.context import AffixContext
    from diceforge.types import EffectData

logger = logging.getLogger(__name__)


def lookup_stat(player: Any, stat_name: str) -> float:
    """Read ``stat_name`` from ``player``.

    Tries, in order: a ``get_stat(name)`` accessor, the player as a mapping, a
    ``stats`` mapping or object on the player, and a plain attribute. Unknown
    stats return 0 with a warning.
    """
    if player is None or not stat_name:
        return 0.0

    accessor = getattr(player, "get_stat", None)
    if callable(accessor):
        value = accessor(stat_name)
        return 0.0 if value is None else float(value)

    if isinstance(player, Mapping):
        if stat_name in player:
            return float(player[stat_name])
    else:
        stats = getattr(player, "stats", None)
        if isinstance(stats, Mapping) and stat_name in stats:
            return float(stats[stat_name])
        if stats is not None and not isinstance(stats, Mapping):
            value = getattr(stats, stat_name, None)
            if isinstance(value, int | float):
                return float(value)
        value = getattr(player, stat_name, None)
        if isinstance(value, int | float):
            return float(value)

    logger.warning(f"Unknown player stat '{stat_name}', using 0")
    return 0.0


def _category_param(params: EffectData) -> AffixCategory | None:
    raw = params.get("category", params.get("affix_category"))
    if raw is None:
        return None
    try:
        return enum_from_ordinal(AffixCategory, raw, AffixCategory.NONE)
    except AffixDataError:
        logger.warning(f"Unknown affix category {raw!r} for ACTIVE_AFFIX_COUNT")
        return None


def _active_affix_count(context: AffixContext, params: EffectData) -> float:
    category = _category_param(params)
    if category is None:
        logger.warning("ACTIVE_AFFIX_COUNT without a category, using 0")
        return 0.0
    if context.affix_counts is not None:
        return float(context.affix_counts.get(category, 0))
    if context.affix_manager is None:
        return 0.0
    return float(context.affix_manager.count_by_category(category))


def resolve_value_source(
    source: ValueSource,
    context: AffixContext | None,
    params: EffectData | None = None,
) -> float:
    """Return the multiplier ``source`` yields under ``context``."""
    params = params or {}
    if source is ValueSource.STATIC:
        return 1.0
    if context is None:
        return 1.0 if source is ValueSource.PLAYER_HEALTH_PERCENT else 0.0

    match source:
        case ValueSource.PLAYER_STAT:
            return lookup_stat(context.player, str(params.get("stat_name", "")))
        case ValueSource.PLAYER_HEALTH_PERCENT:
            percent = context.health_percent()
            return 1.0 if percent is None else percent
        case ValueSource.EQUIPPED_ITEM_COUNT:
            return float(len(context.equipped_items()))
        case ValueSource.ACTIVE_AFFIX_COUNT:
            return _active_affix_count(context, params)
        case ValueSource.EQUIPMENT_RARITY_SUM:
            return float(rarity_sum(context.equipped_items()))
        case ValueSource.DICE_POOL_SIZE:
            return 0.0 if context.dice_pool is None else float(len(context.dice_pool))
        case ValueSource.COMBAT_TURN_NUMBER:
            return float(context.turn_number)

    logger.warning(f"Unhandled value source {source}, using 0")
    return 0.0


def validate_source_params(source: ValueSource, params: EffectData) -> list[str]:
    """Design-time check that ``params`` carries what ``source`` reads."""
    problems: list[str] = []
    if source is ValueSource.PLAYER_STAT and not params.get("stat_name"):
        problems.append("PLAYER_STAT value source needs effect_data['stat_name']")
    if source is ValueSource.ACTIVE_AFFIX_COUNT and _category_param(params) is None:
        problems.append("ACTIVE_AFFIX_COUNT value source needs effect_data['category']")
    return problems


def resolve_value(
    source: ValueSource,
    effect_number: float,
    context: AffixContext | None,
    params: EffectData | None = None,
) -> float:
    """``effect_number`` scaled by what ``source`` resolves to."""
    return effect_number * resolve_value_source(source, context, params)
