"""Positional activation of dice affixes.

For one trigger, every die is visited in slot order and each of its affixes
(element, inherent, applied) whose trigger matches is activated:

1. Position gate: the owning die's slot must satisfy the affix's requirement.
2. For each step: resolve its target set and condition (override or parent),
   resolve the value, and mutate each target die.

All steps of one activation read the values the dice had when the activation
began, so a compound "steal" affix that drains a neighbour and then feeds the
owner sees the neighbour's original value in both steps.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from diceforge import config
from diceforge.events import (
    DieDuplicateRequestedEvent,
    DieStateChangedEvent,
    GameEvent,
    StatusGrantedEvent,
)
from diceforge.game.conditions import evaluate_condition
from diceforge.game.context import AffixContext
from diceforge.game.dice.dice_affix import (
    DiceAffix,
    DiceAffixSubEffect,
    face_count,
    nested_condition,
    nested_step,
)
from diceforge.game.dice.die import Die, StatusGrant, round_half_up
from diceforge.game.enums import (
    DamageType,
    DamageTypePriority,
    DiceEffectType,
    DiceTrigger,
    DieType,
    NeighborTarget,
    PositionRequirement,
)
from diceforge.game.serialization import AffixDataError, enum_from_ordinal
from diceforge.game.value_sources import resolve_value

if TYPE_CHECKING:
    from collections.abc import Sequence

    from diceforge.types import SlotIndex
    from diceforge.util.rng import RNG

logger = logging.getLogger(__name__)

# Effects that read from each target and write to the owning die.
_READ_FROM_TARGET = {DiceEffectType.COPY_NEIGHBOR_VALUE, DiceEffectType.COPY_TAGS}
_MAX_CONDITIONAL_DEPTH = 8


def check_position(
    slot_index: SlotIndex,
    total_slots: int,
    requirement: PositionRequirement,
    specific_slot: SlotIndex = 0,
) -> bool:
    """Whether a die in ``slot_index`` of ``total_slots`` meets ``requirement``."""
    last = total_slots - 1
    match requirement:
        case PositionRequirement.ANY:
            return True
        case PositionRequirement.FIRST:
            return slot_index == 0
        case PositionRequirement.LAST:
            return slot_index == last
        case PositionRequirement.NOT_FIRST:
            return slot_index != 0
        case PositionRequirement.NOT_LAST:
            return slot_index != last
        case PositionRequirement.SPECIFIC_SLOT:
            return slot_index == specific_slot
        case PositionRequirement.EVEN_SLOTS:
            return slot_index % 2 == 0
        case PositionRequirement.ODD_SLOTS:
            return slot_index % 2 == 1
    return False


def get_target_indices(
    source_index: SlotIndex, total_dice: int, neighbor_target: NeighborTarget
) -> list[SlotIndex]:
    """Slots hit by ``neighbor_target`` from ``source_index``, in ascending order.

    Neighbours past either end are dropped; there is no wraparound.
    """
    if not 0 <= source_index < total_dice:
        return []
    left = source_index - 1
    right = source_index + 1
    match neighbor_target:
        case NeighborTarget.SELF:
            return [source_index]
        case NeighborTarget.LEFT:
            return [left] if left >= 0 else []
        case NeighborTarget.RIGHT:
            return [right] if right < total_dice else []
        case NeighborTarget.BOTH_NEIGHBORS:
            return [i for i in (left, right) if 0 <= i < total_dice]
        case NeighborTarget.ALL_LEFT:
            return list(range(source_index))
        case NeighborTarget.ALL_RIGHT:
            return list(range(right, total_dice))
        case NeighborTarget.ALL_OTHERS:
            return [i for i in range(total_dice) if i != source_index]
        case NeighborTarget.ALL_DICE:
            return list(range(total_dice))
    return []


class DiceAffixEngine:
    """Applies dice affixes to a pool of dice.

    The engine holds no combat state; it only keeps the RNG used for affix
    rerolls. Every call returns the events it produced.
    """

    def __init__(self, rng: RNG | None = None) -> None:
        self.rng = rng

    def process_trigger(
        self,
        trigger: DiceTrigger,
        dice: Sequence[Die],
        context: AffixContext | None = None,
    ) -> list[GameEvent]:
        """Activate every affix matching ``trigger`` across ``dice``."""
        context = context or AffixContext()
        events: list[GameEvent] = []
        for die in list(dice):
            for affix, priority in die.get_layered_affixes():
                if affix.trigger is trigger:
                    events.extend(self.activate(affix, die, dice, context, priority))
        return events

    def activate(
        self,
        affix: DiceAffix,
        source_die: Die,
        dice: Sequence[Die],
        context: AffixContext | None = None,
        priority: DamageTypePriority = DamageTypePriority.APPLIED_AFFIX,
    ) -> list[GameEvent]:
        """Run one activation of ``affix`` owned by ``source_die``."""
        source_index = next(
            (i for i, die in enumerate(dice) if die is source_die), None
        )
        if source_index is None:
            logger.warning(f"Die {source_die} is not in the dice passed to activate")
            return []

        total = len(dice)
        if not check_position(
            source_index, total, affix.position_requirement, affix.specific_slot
        ):
            return []

        snapshot = [die.modified_value for die in dice]
        tag_snapshot = [frozenset(die.tags) for die in dice]
        context = (context or AffixContext()).with_values(
            die_value=snapshot[source_index],
            die_current_value=source_die.current_value,
            die_faces=source_die.max_face,
            die_tags=sorted(source_die.tags),
            slot_index=source_index,
            total_dice=total,
            is_max_roll=source_die.is_max_roll,
        )

        events: list[GameEvent] = []
        for step in affix.steps():
            condition = step.resolve_condition(affix.condition)
            result = evaluate_condition(condition, context)
            if result.blocked:
                continue
            target = step.resolve_target(affix.neighbor_target)
            value = (
                resolve_value(
                    step.value_source, step.effect_value, context, step.effect_data
                )
                * result.multiplier
            )
            for index in get_target_indices(source_index, total, target):
                events.extend(
                    self._apply(
                        step,
                        value,
                        dice[index],
                        source_die,
                        snapshot[index],
                        tag_snapshot[index],
                        affix.name,
                        priority,
                        context,
                    )
                )
        return events

    def _apply(
        self,
        step: DiceAffixSubEffect,
        value: float,
        target: Die,
        owner: Die,
        target_value: int,
        target_tags: frozenset[str],
        affix_name: str,
        priority: DamageTypePriority,
        context: AffixContext,
        depth: int = 0,
    ) -> list[GameEvent]:
        data = step.effect_data
        effect = step.effect_type
        writes_to = owner if effect in _READ_FROM_TARGET else target
        event: GameEvent | None = None

        match effect:
            case DiceEffectType.MODIFY_VALUE_FLAT:
                event = writes_to.apply_flat_modifier(value, affix_name)
            case DiceEffectType.MODIFY_VALUE_PERCENT:
                event = writes_to.apply_percent_modifier(value, affix_name)
            case DiceEffectType.SET_MINIMUM_VALUE:
                event = writes_to.set_minimum_value(value, affix_name)
            case DiceEffectType.SET_MAXIMUM_VALUE:
                event = writes_to.set_maximum_value(value, affix_name)
            case DiceEffectType.ADD_TAG:
                event = writes_to.add_tag(str(data.get("tag", "")), affix_name)
            case DiceEffectType.REMOVE_TAG:
                event = writes_to.remove_tag(str(data.get("tag", "")), affix_name)
            case DiceEffectType.COPY_TAGS:
                return [
                    e
                    for tag in sorted(target_tags)
                    if (e := writes_to.add_tag(tag, affix_name)) is not None
                ]
            case DiceEffectType.GRANT_REROLL:
                granted = max(0, round_half_up(value))
                if granted:
                    writes_to.rerolls_available += granted
                    event = DieStateChangedEvent(
                        writes_to, "rerolls_granted", str(granted), affix_name
                    )
            case DiceEffectType.AUTO_REROLL_LOW:
                threshold = data.get("threshold")
                if threshold is None:
                    threshold = value or config.DEFAULT_AUTO_REROLL_THRESHOLD
                try:
                    threshold = float(threshold)
                except (TypeError, ValueError):
                    logger.warning(f"{affix_name}: bad reroll threshold {threshold!r}")
                    return []
                if writes_to.current_value <= threshold:
                    event = writes_to.reroll(self.rng)
            case DiceEffectType.DUPLICATE_ON_MAX:
                if writes_to.is_max_roll and not writes_to.duplicate_pending:
                    writes_to.duplicate_pending = True
                    event = DieDuplicateRequestedEvent(
                        writes_to, writes_to.slot_index, affix_name
                    )
            case DiceEffectType.LOCK_DIE:
                event = writes_to.lock(affix_name)
            case DiceEffectType.CHANGE_DIE_TYPE:
                event = self._change_die_type(writes_to, data, value, affix_name)
            case DiceEffectType.COPY_NEIGHBOR_VALUE:
                copied = round_half_up(target_value * value)
                if copied:
                    event = writes_to.apply_flat_modifier(copied, affix_name)
            case DiceEffectType.ADD_DAMAGE_TYPE:
                try:
                    damage_type = enum_from_ordinal(
                        DamageType, data.get("damage_type"), DamageType.NONE
                    )
                except AffixDataError as exc:
                    logger.warning(f"{affix_name}: {exc}")
                    return []
                if damage_type is not DamageType.NONE:
                    event = writes_to.set_damage_type(damage_type, priority, affix_name)
            case DiceEffectType.GRANT_STATUS_EFFECT:
                event = self._grant_status(writes_to, data, value, affix_name)
            case DiceEffectType.CONDITIONAL:
                return self._apply_conditional(
                    data,
                    target,
                    owner,
                    target_value,
                    target_tags,
                    affix_name,
                    priority,
                    context,
                    depth,
                )
            case _:
                logger.warning(f"Unhandled dice effect type {effect}")

        return [] if event is None else [event]

    def _change_die_type(
        self, die: Die, data: dict, value: float, affix_name: str
    ) -> GameEvent | None:
        faces = face_count(data.get("die_type", value))
        if faces not in config.VALID_DIE_FACES:
            logger.warning(f"{affix_name}: can't change die to {faces} faces")
            return None
        return die.change_die_type(DieType(faces), affix_name)

    def _grant_status(
        self, die: Die, data: dict, value: float, affix_name: str
    ) -> GameEvent | None:
        status_id = str(data.get("status_id", ""))
        if not status_id:
            logger.warning(f"{affix_name}: GRANT_STATUS_EFFECT without a status_id")
            return None
        try:
            stacks = int(data.get("stacks") or 0)
        except (TypeError, ValueError):
            logger.warning(f"{affix_name}: bad status stacks {data.get('stacks')!r}")
            return None
        stacks = stacks or max(1, round_half_up(value))
        grant = StatusGrant(status_id, stacks, str(data.get("target", "enemy")))
        die.status_grants.append(grant)
        return StatusGrantedEvent(grant.status_id, grant.stacks, grant.target, die)

    def _apply_conditional(
        self,
        data: dict,
        target: Die,
        owner: Die,
        target_value: int,
        target_tags: frozenset[str],
        affix_name: str,
        priority: DamageTypePriority,
        context: AffixContext,
        depth: int,
    ) -> list[GameEvent]:
        if depth >= _MAX_CONDITIONAL_DEPTH:
            logger.warning(f"{affix_name}: CONDITIONAL nested too deeply")
            return []
        try:
            inner = nested_step(data)
            condition = nested_condition(data)
        except AffixDataError as exc:
            logger.warning(f"{affix_name}: {exc}")
            return []
        if inner is None:
            return []
        result = evaluate_condition(condition, context)
        if result.blocked:
            return []
        value = (
            resolve_value(
                inner.value_source, inner.effect_value, context, inner.effect_data
            )
            * result.multiplier
        )
        return self._apply(
            inner,
            value,
            target,
            owner,
            target_value,
            target_tags,
            affix_name,
            priority,
            context,
            depth + 1,
        )
