"""Turn item-level affixes into concrete stat contributions."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from diceforge.game.conditions import evaluate_condition
from diceforge.game.enums import AffixCategory
from diceforge.game.value_sources import resolve_value

if TYPE_CHECKING:
    from diceforge.game.affixes.affix import Affix
    from diceforge.game.affixes.pool import AffixPool
    from diceforge.game.context import AffixContext
    from diceforge.game.dice.die import Die
    from diceforge.game.scaling import ScalingConfig
    from diceforge.util.rng import RNG

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AffixContribution:
    """One ``(category, value)`` produced by an affix step."""

    category: AffixCategory
    value: float
    affix_name: str = ""
    source: str = ""
    granted_action: str | None = None
    granted_dice: tuple[Die, ...] = field(default=())


class AffixEvaluator:
    """Resolves affixes against a context.

    The scaling config is injected once; it's only consulted when rolling
    values at generation time, never during evaluation.
    """

    def __init__(self, scaling_config: ScalingConfig | None = None) -> None:
        self.scaling_config = scaling_config

    def evaluate(self, affix: Affix, context: AffixContext) -> list[AffixContribution]:
        """Evaluate every step of ``affix`` in declared order.

        A step whose condition (its override, else the parent's) blocks is
        skipped. Otherwise it contributes
        ``resolver(value_source) * effect_number * condition.multiplier``.
        """
        contributions: list[AffixContribution] = []
        for step in affix.steps():
            condition = step.resolve_condition(affix.condition)
            result = evaluate_condition(condition, context)
            if result.blocked:
                continue
            value = resolve_value(
                step.value_source, step.effect_number, context, step.effect_data
            )
            contributions.append(
                AffixContribution(
                    category=step.category,
                    value=value * result.multiplier,
                    affix_name=affix.name,
                    source=affix.source,
                    granted_action=step.granted_action,
                    granted_dice=tuple(step.granted_dice),
                )
            )
        return contributions

    def evaluate_batch(
        self, affixes: Iterable[Affix], context: AffixContext
    ) -> list[AffixContribution]:
        """Evaluate several affixes against one frozen snapshot of the pool.

        Counts read by ACTIVE_AFFIX_COUNT are captured before the first value
        is resolved, so results don't depend on evaluation order.
        """
        snapshot = context
        if context.affix_counts is None:
            snapshot = context.with_snapshot()
        contributions: list[AffixContribution] = []
        for affix in affixes:
            contributions.extend(self.evaluate(affix, snapshot))
        return contributions

    def evaluate_pool(
        self, pool: AffixPool, context: AffixContext
    ) -> list[AffixContribution]:
        """Evaluate everything currently in ``pool``."""
        if context.affix_manager is not pool:
            logger.debug("Context affix_manager differs from the evaluated pool")
        return self.evaluate_batch(pool.get_all_affixes(), context)

    def roll(self, affix: Affix, level: int, rng: RNG | None = None) -> float:
        """Roll ``affix.effect_number`` for ``level`` with the injected config."""
        return affix.roll_for_level(level, self.scaling_config, rng)

    @staticmethod
    def aggregate(
        contributions: Iterable[AffixContribution],
    ) -> dict[AffixCategory, float]:
        """Sum contributions per category."""
        totals: defaultdict[AffixCategory, float] = defaultdict(float)
        for contribution in contributions:
            totals[contribution.category] += contribution.value
        return dict(totals)
