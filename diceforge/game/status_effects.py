"""Stacking status effects (poison, burn, regeneration, armor up, ...).

A :class:`StatusAffix` is an immutable template. Everything that changes over
a fight (stacks, remaining turns) lives on a :class:`StatusInstance`, and the
template's methods operate on an instance passed in. Tick, decay and duration
each run at their own timing point, so a poison can deal damage at the start
of a turn but lose a stack at the end of it.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from diceforge import config
from diceforge.events import GameEvent, StatusExpiredEvent, StatusTickEvent
from diceforge.game.affixes.evaluator import AffixContribution
from diceforge.game.enums import (
    AffixCategory,
    DamageType,
    DecayStyle,
    DurationType,
    StatusTiming,
)
from diceforge.game.serialization import (
    enum_from_ordinal,
    enum_to_ordinal,
    read_number,
    to_bool,
)

if TYPE_CHECKING:
    from diceforge.types import SerializedRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TickResult:
    """What one tick of a status instance would do. Applying it is up to the caller."""

    damage: float = 0.0
    heal: float = 0.0
    stat_modifiers: dict[AffixCategory, float] = field(default_factory=dict)


@dataclass
class StatusInstance:
    """A status effect currently on a combatant.

    Attributes
    ----------
    status_affix:
        The template this instance was created from.
    current_stacks:
        Stack count, kept within ``[0, status_affix.max_stacks]``.
    remaining_turns:
        Turns left for ``TURN_BASED`` statuses, ``-1`` for everything else.
    source_name:
        Who or what applied the status, for the combat log.
    """

    status_affix: StatusAffix
    current_stacks: int = 1
    remaining_turns: int = -1
    source_name: str = ""

    @property
    def status_id(self) -> str:
        return self.status_affix.status_id

    def is_expired(self) -> bool:
        return self.status_affix.is_expired(self)


@dataclass
class StatusAffix:
    """Template for a stacking status effect.

    Attributes
    ----------
    status_id:
        Unique identifier. Reapplying a status with the same id stacks onto
        the existing instance.
    max_stacks:
        Hard cap for ``current_stacks``.
    duration_type:
        ``TURN_BASED`` statuses count down ``remaining_turns``; ``COMBAT``
        statuses last until the fight ends; ``PERMANENT`` ones until removed.
    refresh_on_reapply:
        Reset ``remaining_turns`` to ``default_duration`` when stacks are added.
    decay_style / decay_amount:
        How stacks fall off at ``decay_timing``.
    tick_timing / decay_timing / duration_timing:
        Turn phase at which each of the three updates runs.
    damage_per_stack / heal_per_stack / stat_modifiers_per_stack:
        Per-stack payload of one tick.
    """

    status_id: str
    name: str = ""
    description: str = ""
    max_stacks: int = config.DEFAULT_MAX_STACKS
    duration_type: DurationType = DurationType.TURN_BASED
    default_duration: int = config.DEFAULT_STATUS_DURATION
    refresh_on_reapply: bool = True
    decay_style: DecayStyle = DecayStyle.NONE
    decay_amount: int = 1
    tick_timing: StatusTiming = StatusTiming.START_OF_TURN
    decay_timing: StatusTiming = StatusTiming.END_OF_TURN
    duration_timing: StatusTiming = StatusTiming.END_OF_TURN
    damage_per_stack: float = 0.0
    heal_per_stack: float = 0.0
    stat_modifiers_per_stack: dict[AffixCategory, float] = field(default_factory=dict)
    damage_type: DamageType = DamageType.NONE
    is_debuff: bool = True

    @property
    def is_turn_based(self) -> bool:
        return self.duration_type is DurationType.TURN_BASED

    def _clamp_stacks(self, stacks: int) -> int:
        return max(0, min(stacks, self.max_stacks))

    def create_instance(self, stacks: int = 1, source_name: str = "") -> StatusInstance:
        return StatusInstance(
            status_affix=self,
            current_stacks=self._clamp_stacks(stacks),
            remaining_turns=self.default_duration if self.is_turn_based else -1,
            source_name=source_name,
        )

    def add_stacks(self, instance: StatusInstance, amount: int) -> None:
        instance.current_stacks = self._clamp_stacks(instance.current_stacks + amount)
        if self.refresh_on_reapply and self.is_turn_based:
            instance.remaining_turns = self.default_duration

    def remove_stacks(self, instance: StatusInstance, amount: int) -> None:
        instance.current_stacks = self._clamp_stacks(instance.current_stacks - amount)

    def apply_tick(self, instance: StatusInstance) -> TickResult:
        """Payload of one tick at the instance's current stacks. Mutates nothing."""
        stacks = instance.current_stacks
        return TickResult(
            damage=stacks * self.damage_per_stack,
            heal=stacks * self.heal_per_stack,
            stat_modifiers={
                category: stacks * per_stack
                for category, per_stack in self.stat_modifiers_per_stack.items()
            },
        )

    def apply_decay(self, instance: StatusInstance) -> int:
        """Decay stacks per ``decay_style``. Returns the number of stacks lost."""
        before = instance.current_stacks
        match self.decay_style:
            case DecayStyle.FLAT:
                self.remove_stacks(instance, self.decay_amount)
            case DecayStyle.HALVING:
                instance.current_stacks = 0 if before <= 1 else math.ceil(before / 2)
            case DecayStyle.NONE:
                pass
        return before - instance.current_stacks

    def decrement_duration(self, instance: StatusInstance) -> None:
        if self.is_turn_based and instance.remaining_turns > 0:
            instance.remaining_turns -= 1

    def is_expired(self, instance: StatusInstance) -> bool:
        if instance.current_stacks <= 0:
            return True
        return self.is_turn_based and instance.remaining_turns <= 0

    def validate(self) -> list[str]:
        problems: list[str] = []
        if not self.status_id:
            problems.append("Status has no status_id")
        if self.max_stacks <= 0:
            problems.append(f"{self.status_id}: max_stacks must be positive")
        if self.is_turn_based and self.default_duration <= 0:
            problems.append(f"{self.status_id}: turn-based status with no duration")
        if self.decay_style is DecayStyle.FLAT and self.decay_amount <= 0:
            problems.append(f"{self.status_id}: FLAT decay needs a positive amount")
        return problems

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> SerializedRecord:
        return {
            "status_id": self.status_id,
            "name": self.name,
            "description": self.description,
            "max_stacks": self.max_stacks,
            "duration_type": enum_to_ordinal(self.duration_type),
            "default_duration": self.default_duration,
            "refresh_on_reapply": self.refresh_on_reapply,
            "decay_style": enum_to_ordinal(self.decay_style),
            "decay_amount": self.decay_amount,
            "tick_timing": enum_to_ordinal(self.tick_timing),
            "decay_timing": enum_to_ordinal(self.decay_timing),
            "duration_timing": enum_to_ordinal(self.duration_timing),
            "damage_per_stack": self.damage_per_stack,
            "heal_per_stack": self.heal_per_stack,
            "stat_modifiers_per_stack": {
                str(enum_to_ordinal(category)): value
                for category, value in self.stat_modifiers_per_stack.items()
            },
            "damage_type": enum_to_ordinal(self.damage_type),
            "is_debuff": self.is_debuff,
        }

    @classmethod
    def from_dict(cls, record: SerializedRecord) -> StatusAffix:
        modifiers = {
            enum_from_ordinal(AffixCategory, int(key), AffixCategory.NONE): float(value)
            for key, value in (record.get("stat_modifiers_per_stack") or {}).items()
        }
        return cls(
            status_id=str(record.get("status_id", "")),
            name=str(record.get("name", "")),
            description=str(record.get("description", "")),
            max_stacks=int(
                read_number(record, "max_stacks", config.DEFAULT_MAX_STACKS)
            ),
            duration_type=enum_from_ordinal(
                DurationType, record.get("duration_type"), DurationType.TURN_BASED
            ),
            default_duration=int(
                read_number(record, "default_duration", config.DEFAULT_STATUS_DURATION)
            ),
            refresh_on_reapply=to_bool(record.get("refresh_on_reapply", True)),
            decay_style=enum_from_ordinal(
                DecayStyle, record.get("decay_style"), DecayStyle.NONE
            ),
            decay_amount=int(read_number(record, "decay_amount", 1)),
            tick_timing=enum_from_ordinal(
                StatusTiming, record.get("tick_timing"), StatusTiming.START_OF_TURN
            ),
            decay_timing=enum_from_ordinal(
                StatusTiming, record.get("decay_timing"), StatusTiming.END_OF_TURN
            ),
            duration_timing=enum_from_ordinal(
                StatusTiming, record.get("duration_timing"), StatusTiming.END_OF_TURN
            ),
            damage_per_stack=read_number(record, "damage_per_stack", 0.0),
            heal_per_stack=read_number(record, "heal_per_stack", 0.0),
            stat_modifiers_per_stack=modifiers,
            damage_type=enum_from_ordinal(
                DamageType, record.get("damage_type"), DamageType.NONE
            ),
            is_debuff=to_bool(record.get("is_debuff", True)),
        )


class StatusEffectTracker:
    """All status instances on one combatant, keyed by ``status_id``."""

    def __init__(self, owner_name: str = "") -> None:
        self.owner_name = owner_name
        self._instances: dict[str, StatusInstance] = {}

    def __len__(self) -> int:
        return len(self._instances)

    def __iter__(self) -> Iterator[StatusInstance]:
        return iter(list(self._instances.values()))

    def get(self, status_id: str) -> StatusInstance | None:
        return self._instances.get(status_id)

    def has_status(self, status_id: str) -> bool:
        return status_id in self._instances

    def apply_status(
        self, status_affix: StatusAffix, stacks: int = 1, source_name: str = ""
    ) -> StatusInstance:
        """Apply ``stacks`` of a status, stacking onto an existing instance."""
        existing = self._instances.get(status_affix.status_id)
        if existing is not None:
            status_affix.add_stacks(existing, stacks)
            return existing
        instance = status_affix.create_instance(stacks, source_name)
        self._instances[status_affix.status_id] = instance
        logger.debug(
            f"{self.owner_name or 'combatant'} gains {status_affix.status_id} "
            f"x{instance.current_stacks}"
        )
        return instance

    def remove_status(self, status_id: str) -> bool:
        return self._instances.pop(status_id, None) is not None

    def process_timing(self, timing: StatusTiming) -> list[GameEvent]:
        """Run every tick, decay and duration update scheduled for ``timing``.

        Expired instances are removed afterwards, each with a
        :class:`StatusExpiredEvent`.
        """
        events: list[GameEvent] = []
        for instance in list(self._instances.values()):
            template = instance.status_affix
            if template.tick_timing is timing:
                events.append(
                    StatusTickEvent(
                        status_id=instance.status_id,
                        stacks=instance.current_stacks,
                        result=template.apply_tick(instance),
                    )
                )
            if template.decay_timing is timing:
                template.apply_decay(instance)
            if template.duration_timing is timing:
                template.decrement_duration(instance)
        events.extend(self._prune())
        return events

    def _prune(self) -> list[GameEvent]:
        expired = [i for i in self._instances.values() if i.is_expired()]
        for instance in expired:
            del self._instances[instance.status_id]
        return [StatusExpiredEvent(i.status_id, i.source_name) for i in expired]

    def get_stat_modifiers(self) -> list[AffixContribution]:
        """Current stat modifiers of every status, one contribution per category."""
        contributions: list[AffixContribution] = []
        for instance in self._instances.values():
            result = instance.status_affix.apply_tick(instance)
            contributions.extend(
                AffixContribution(
                    category=category,
                    value=value,
                    affix_name=instance.status_affix.name or instance.status_id,
                    source=instance.source_name,
                )
                for category, value in result.stat_modifiers.items()
            )
        return contributions

    def clear_combat_statuses(self) -> list[GameEvent]:
        """Drop everything that doesn't outlive a fight. Permanent statuses stay."""
        ending = [
            i
            for i in self._instances.values()
            if i.status_affix.duration_type is not DurationType.PERMANENT
        ]
        for instance in ending:
            del self._instances[instance.status_id]
        return [StatusExpiredEvent(i.status_id, i.source_name) for i in ending]

    def clear(self) -> None:
        self._instances.clear()
