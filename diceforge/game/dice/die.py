"""Runtime die instances and their value pipeline.

A die's value has two layers. ``current_value`` is the raw face rolled and
doesn't change until the die is rolled again. ``modified_value`` is reset to
``current_value + modifier`` by :meth:`Die.reset_modifications` and then
mutated by every matching affix, in element, inherent, applied order. It never
drops below :data:`~diceforge.config.DIE_MIN_VALUE`.

Mutators return a :class:`~diceforge.events.DieValueModifiedEvent` (or a state
event) when something actually changed and ``None`` otherwise, so callers can
collect exactly the notifications observers need.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from diceforge import config
from diceforge.events import (
    DieRerolledEvent,
    DieStateChangedEvent,
    DieValueModifiedEvent,
)
from diceforge.game.dice.dice_affix import DiceAffix, element_affix_for
from diceforge.game.enums import DamageType, DamageTypePriority, DieType
from diceforge.game.serialization import (
    enum_from_ordinal,
    enum_to_ordinal,
    read_number,
    to_bool,
)
from diceforge.util import rng as rng_module

if TYPE_CHECKING:
    from diceforge.types import FaceValue, SerializedRecord

logger = logging.getLogger(__name__)

_rng = rng_module.get("dice.roll")


def _floor(value: int) -> int:
    return max(config.DIE_MIN_VALUE, value)


def round_half_up(value: float) -> int:
    """Round to the nearest int, halves toward positive infinity."""
    return math.floor(value + 0.5)


@dataclass(slots=True)
class StatusGrant:
    """A status application requested by a GRANT_STATUS_EFFECT step."""

    status_id: str
    stacks: int = 1
    target: str = "enemy"


@dataclass
class Die:
    """One die in a combatant's pool.

    Attributes:
        die_type: Face count.
        element: Innate damage type. ``NONE`` inherits the action's type.
        inherent_affixes: Affixes baked into the die template. Never mutated.
        applied_affixes: Affixes added at runtime (equipment, sets, buffs).
        current_value: Raw face rolled.
        modified_value: Value after affixes; always >= 1.
        modifier: Flat external bias added to the baseline every roll.
        tags: Free-form tags read by conditions and other affixes.
        slot_index: Position in the owning pool.
        is_locked: Locked dice keep their face when the pool rerolls.
        can_reroll: Whether rerolls may be spent on this die.
        rerolls_available: Rerolls granted by GRANT_REROLL.
        source: Name of the item this die came from ("" for base dice).
        is_consumed: Used up this turn. Hand state; never persisted.
    """

    die_type: DieType = DieType.D6
    element: DamageType = DamageType.NONE
    inherent_affixes: tuple[DiceAffix, ...] = ()
    applied_affixes: list[DiceAffix] = field(default_factory=list)
    current_value: FaceValue = 1
    modified_value: int = 1
    modifier: int = 0
    tags: set[str] = field(default_factory=set)
    slot_index: int = 0
    is_locked: bool = False
    can_reroll: bool = True
    rerolls_available: int = 0
    source: str = ""

    # Per-roll state, rebuilt by reset_modifications().
    is_consumed: bool = field(default=False, compare=False)
    damage_type: DamageType = field(default=DamageType.NONE, compare=False)
    damage_type_priority: DamageTypePriority = field(
        default=DamageTypePriority.NONE, compare=False
    )
    status_grants: list[StatusGrant] = field(default_factory=list, compare=False)
    duplicate_pending: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        self.inherent_affixes = tuple(self.inherent_affixes)
        self.current_value = max(1, min(self.current_value, self.max_face))
        self.modified_value = _floor(self.modified_value)
        self._reset_damage_type()

    def __str__(self) -> str:
        return f"d{self.max_face}[{self.modified_value}]@{self.slot_index}"

    @property
    def max_face(self) -> int:
        return self.die_type.value

    @property
    def is_max_roll(self) -> bool:
        return self.current_value == self.max_face

    # ------------------------------------------------------------------
    # Rolling
    # ------------------------------------------------------------------
    def roll(self, rng: rng_module.RNG | None = None) -> FaceValue:
        """Roll a new face and reset the modification layer.

        Locked dice keep their face but still reset modifications.
        """
        if not self.is_locked:
            self.current_value = (rng or _rng).randint(1, self.max_face)
        self.reset_modifications()
        return self.current_value

    def reset_modifications(self) -> None:
        """Rebuild ``modified_value`` and per-roll state from the raw face."""
        self.modified_value = _floor(self.current_value + self.modifier)
        self.status_grants.clear()
        self.duplicate_pending = False
        self._reset_damage_type()

    def reroll(self, rng: rng_module.RNG | None = None) -> DieRerolledEvent | None:
        """Reroll the face, keeping modifications already applied this roll."""
        if self.is_locked:
            return None
        old_value = self.current_value
        delta = self.modified_value - _floor(old_value + self.modifier)
        self.current_value = (rng or _rng).randint(1, self.max_face)
        self.modified_value = _floor(self.current_value + self.modifier + delta)
        return DieRerolledEvent(
            die=self, old_value=old_value, new_value=self.current_value
        )

    def spend_reroll(self, rng: rng_module.RNG | None = None) -> FaceValue | None:
        """Spend one granted reroll: roll fresh and reset modifications.

        Returns the new face, or ``None`` if no reroll could be spent. The
        pool reapplies ON_ROLL affixes afterwards.
        """
        if not self.can_reroll or self.rerolls_available <= 0 or self.is_locked:
            return None
        self.rerolls_available -= 1
        return self.roll(rng)

    # ------------------------------------------------------------------
    # Value mutation
    # ------------------------------------------------------------------
    def _set_modified(
        self, new_value: int, reason: str, affix_name: str = ""
    ) -> DieValueModifiedEvent | None:
        new_value = _floor(new_value)
        if new_value == self.modified_value:
            return None
        old_value = self.modified_value
        self.modified_value = new_value
        return DieValueModifiedEvent(
            die=self,
            old_value=old_value,
            new_value=new_value,
            reason=reason,
            affix_name=affix_name,
        )

    def apply_flat_modifier(
        self, amount: float, affix_name: str = ""
    ) -> DieValueModifiedEvent | None:
        """Add ``amount`` (rounded) to the modified value, floored at 1."""
        return self._set_modified(
            self.modified_value + round_half_up(amount), "flat", affix_name
        )

    def apply_percent_modifier(
        self, multiplier: float, affix_name: str = ""
    ) -> DieValueModifiedEvent | None:
        """Scale the modified value by ``multiplier``.

        The multiplier is absolute: 1.0 leaves the value alone, 1.5 adds half.
        Halves round up.
        """
        scaled = round_half_up(self.modified_value * multiplier)
        return self._set_modified(scaled, "percent", affix_name)

    def set_minimum_value(
        self, minimum: float, affix_name: str = ""
    ) -> DieValueModifiedEvent | None:
        """Raise the value to ``minimum`` if it's below. Never lowers it."""
        minimum = round_half_up(minimum)
        if self.modified_value >= minimum:
            return None
        return self._set_modified(minimum, "minimum", affix_name)

    def set_maximum_value(
        self, maximum: float, affix_name: str = ""
    ) -> DieValueModifiedEvent | None:
        """Lower the value to ``maximum`` if it's above. Never raises it."""
        maximum = round_half_up(maximum)
        if self.modified_value <= maximum:
            return None
        return self._set_modified(maximum, "maximum", affix_name)

    # ------------------------------------------------------------------
    # State mutation
    # ------------------------------------------------------------------
    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def add_tag(self, tag: str, affix_name: str = "") -> DieStateChangedEvent | None:
        if not tag or tag in self.tags:
            return None
        self.tags.add(tag)
        return DieStateChangedEvent(self, "tag_added", tag, affix_name)

    def remove_tag(self, tag: str, affix_name: str = "") -> DieStateChangedEvent | None:
        if tag not in self.tags:
            return None
        self.tags.discard(tag)
        return DieStateChangedEvent(self, "tag_removed", tag, affix_name)

    def lock(self, affix_name: str = "") -> DieStateChangedEvent | None:
        if self.is_locked:
            return None
        self.is_locked = True
        return DieStateChangedEvent(self, "locked", "", affix_name)

    def unlock(self) -> DieStateChangedEvent | None:
        if not self.is_locked:
            return None
        self.is_locked = False
        return DieStateChangedEvent(self, "unlocked")

    def change_die_type(
        self, die_type: DieType, affix_name: str = ""
    ) -> DieStateChangedEvent | None:
        """Switch face count. A face above the new maximum is pulled down to it."""
        if die_type is self.die_type:
            return None
        old_type = self.die_type
        self.die_type = die_type
        if self.current_value > self.max_face:
            drop = self.current_value - self.max_face
            self.current_value = self.max_face
            self.modified_value = _floor(self.modified_value - drop)
        return DieStateChangedEvent(
            self, "die_type", f"d{old_type.value}->d{die_type.value}", affix_name
        )

    def set_damage_type(
        self,
        damage_type: DamageType,
        priority: DamageTypePriority,
        affix_name: str = "",
    ) -> DieStateChangedEvent | None:
        """Set the damage type unless a higher-priority source already did.

        Equal priority overwrites, so the later of two applied affixes wins.
        """
        if priority.value < self.damage_type_priority.value:
            return None
        changed = damage_type is not self.damage_type
        self.damage_type = damage_type
        self.damage_type_priority = priority
        if not changed:
            return None
        return DieStateChangedEvent(self, "damage_type", damage_type.name, affix_name)

    def _reset_damage_type(self) -> None:
        self.damage_type = self.element
        self.damage_type_priority = (
            DamageTypePriority.NONE
            if self.element is DamageType.NONE
            else DamageTypePriority.INNATE
        )

    # ------------------------------------------------------------------
    # Affixes
    # ------------------------------------------------------------------
    def add_affix(self, affix: DiceAffix) -> None:
        self.applied_affixes.append(affix)

    def remove_affix(self, affix: DiceAffix) -> bool:
        for index, existing in enumerate(self.applied_affixes):
            if existing is affix:
                del self.applied_affixes[index]
                return True
        return False

    def remove_affixes_by_source(self, source: str) -> list[DiceAffix]:
        removed = [a for a in self.applied_affixes if a.source == source]
        if removed:
            self.applied_affixes = [
                a for a in self.applied_affixes if a.source != source
            ]
        return removed

    def get_layered_affixes(self) -> list[tuple[DiceAffix, DamageTypePriority]]:
        """Affixes in activation order, paired with their damage-type priority."""
        layered: list[tuple[DiceAffix, DamageTypePriority]] = []
        element_affix = element_affix_for(self.element)
        if element_affix is not None:
            layered.append((element_affix, DamageTypePriority.INNATE))
        layered.extend(
            (affix, DamageTypePriority.INHERENT_AFFIX)
            for affix in self.inherent_affixes
        )
        layered.extend(
            (affix, DamageTypePriority.APPLIED_AFFIX) for affix in self.applied_affixes
        )
        return layered

    def get_all_affixes(self) -> list[DiceAffix]:
        """Element affix, then inherent affixes, then applied affixes."""
        return [affix for affix, _ in self.get_layered_affixes()]

    def duplicate(self) -> Die:
        """Independent copy for DUPLICATE_ON_MAX. The copy isn't consumed."""
        clone = copy.deepcopy(self)
        clone.is_consumed = False
        clone.duplicate_pending = False
        return clone

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> SerializedRecord:
        return {
            "die_type": enum_to_ordinal(self.die_type),
            "element": enum_to_ordinal(self.element),
            "inherent_affixes": [a.to_dict() for a in self.inherent_affixes],
            "applied_affixes": [a.to_dict() for a in self.applied_affixes],
            "current_value": self.current_value,
            "modified_value": self.modified_value,
            "modifier": self.modifier,
            "tags": sorted(self.tags),
            "slot_index": self.slot_index,
            "is_locked": self.is_locked,
            "can_reroll": self.can_reroll,
            "rerolls_available": self.rerolls_available,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, record: SerializedRecord) -> Die:
        return cls(
            die_type=enum_from_ordinal(DieType, record.get("die_type"), DieType.D6),
            element=enum_from_ordinal(
                DamageType, record.get("element"), DamageType.NONE
            ),
            inherent_affixes=tuple(
                DiceAffix.from_dict(a) for a in record.get("inherent_affixes") or []
            ),
            applied_affixes=[
                DiceAffix.from_dict(a) for a in record.get("applied_affixes") or []
            ],
            current_value=int(read_number(record, "current_value", 1)),
            modified_value=int(read_number(record, "modified_value", 1)),
            modifier=int(read_number(record, "modifier", 0)),
            tags=set(record.get("tags") or []),
            slot_index=int(read_number(record, "slot_index", 0)),
            is_locked=to_bool(record.get("is_locked", False)),
            can_reroll=to_bool(record.get("can_reroll", True)),
            rerolls_available=int(read_number(record, "rerolls_available", 0)),
            source=str(record.get("source", "")),
        )
