"""Item-level affix templates and their sub-effects.

An :class:`Affix` is authored once as a template. Equipping an item, activating
a set threshold or applying a status creates an owned copy with
:meth:`Affix.instantiate`, stamped with the ``source`` it came from so every
copy from that source can be removed together later. Templates are never
mutated at runtime; the one exception is :meth:`Affix.roll_value`, which is
called on a fresh copy at item/enemy generation time.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from diceforge import config
from diceforge.game.conditions import AffixCondition, condition_from_record
from diceforge.game.dice.die import Die
from diceforge.game.enums import AffixCategory, ValueSource
from diceforge.game.scaling import fuzz_range, lerp, roll_in_window
from diceforge.game.serialization import (
    enum_from_ordinal,
    enum_to_ordinal,
    read_number,
    to_bool,
)
from diceforge.game.value_sources import validate_source_params
from diceforge.util import rng as rng_module

if TYPE_CHECKING:
    from diceforge.game.scaling import ScalingConfig
    from diceforge.types import EffectData, SerializedRecord

logger = logging.getLogger(__name__)

_rng = rng_module.get("affix.roll")


def _is_whole(value: float) -> bool:
    return isinstance(value, int) or float(value).is_integer()


@dataclass
class AffixSubEffect:
    """One step of a compound affix.

    ``override_condition`` replaces the parent's condition for this step only.
    Overriding with ``condition=None`` makes the step fire unconditionally.
    """

    category: AffixCategory = AffixCategory.NONE
    value_source: ValueSource = ValueSource.STATIC
    effect_number: float = 0
    effect_data: EffectData = field(default_factory=dict)
    override_condition: bool = False
    condition: AffixCondition | None = None
    granted_action: str | None = None
    granted_dice: list[Die] = field(default_factory=list)

    def resolve_condition(
        self, parent_condition: AffixCondition | None
    ) -> AffixCondition | None:
        return self.condition if self.override_condition else parent_condition

    def to_dict(self) -> SerializedRecord:
        return {
            "category": enum_to_ordinal(self.category),
            "value_source": enum_to_ordinal(self.value_source),
            "effect_number": self.effect_number,
            "effect_data": copy.deepcopy(self.effect_data),
            "override_condition": self.override_condition,
            "condition": None if self.condition is None else self.condition.to_dict(),
            "granted_action": self.granted_action,
            "granted_dice": [die.to_dict() for die in self.granted_dice],
        }

    @classmethod
    def from_dict(cls, record: SerializedRecord) -> AffixSubEffect:
        return cls(
            category=enum_from_ordinal(
                AffixCategory, record.get("category"), AffixCategory.NONE
            ),
            value_source=enum_from_ordinal(
                ValueSource, record.get("value_source"), ValueSource.STATIC
            ),
            effect_number=read_number(record, "effect_number", 0),
            effect_data=copy.deepcopy(record.get("effect_data") or {}),
            override_condition=to_bool(record.get("override_condition", False)),
            condition=condition_from_record(record.get("condition")),
            granted_action=record.get("granted_action"),
            granted_dice=[Die.from_dict(d) for d in record.get("granted_dice") or []],
        )


@dataclass
class Affix:
    """A data-defined modifier attached to an item, enemy or set bonus.

    Attributes:
        category: Stat or pool the contribution feeds.
        value_source: Where the multiplier for ``effect_number`` comes from.
        effect_min: Low end of the rollable range.
        effect_max: High end of the rollable range.
        effect_number: The rolled (or static) value used at evaluation time.
        roll_fuzz: Per-affix fuzz fraction, overriding the scaling config.
        effect_data: Free-form parameters (stat names, tag names, proc data).
        condition: Gate for every step that doesn't override it.
        sub_effects: When non-empty, these steps replace the top-level fields.
        source: Stamped by :meth:`instantiate`; used for bulk removal.
        source_type: Kind of source ("item", "set", "status", ...).
    """

    name: str = ""
    description: str = ""
    category: AffixCategory = AffixCategory.NONE
    value_source: ValueSource = ValueSource.STATIC
    effect_min: float = 0
    effect_max: float = 0
    effect_number: float = 0
    roll_fuzz: float | None = None
    effect_data: EffectData = field(default_factory=dict)
    condition: AffixCondition | None = None
    sub_effects: list[AffixSubEffect] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    granted_action: str | None = None
    granted_dice: list[Die] = field(default_factory=list)
    source: str = ""
    source_type: str = ""

    @property
    def has_scaling(self) -> bool:
        """True when the affix defines a range to roll inside."""
        return self.effect_min != self.effect_max

    @property
    def is_compound(self) -> bool:
        return bool(self.sub_effects)

    def steps(self) -> list[AffixSubEffect]:
        """The steps evaluation iterates.

        Compound affixes return their sub-effects; otherwise a single step is
        built from the top-level fields, inheriting the parent condition.
        """
        if self.sub_effects:
            return list(self.sub_effects)
        return [
            AffixSubEffect(
                category=self.category,
                value_source=self.value_source,
                effect_number=self.effect_number,
                effect_data=self.effect_data,
                granted_action=self.granted_action,
                granted_dice=self.granted_dice,
            )
        ]

    def instantiate(self, source: str, source_type: str = "item") -> Affix:
        """Return an owned deep copy stamped with ``source``."""
        instance = copy.deepcopy(self)
        instance.source = source
        instance.source_type = source_type
        return instance

    def roll_value(
        self,
        t: float,
        scaling_config: ScalingConfig | None = None,
        rng: rng_module.RNG | None = None,
    ) -> float:
        """Set ``effect_number`` from power position ``t`` and return it.

        The center is ``lerp(effect_min, effect_max, t)``; the value is sampled
        uniformly inside the fuzz window around it. Integer ranges roll whole
        numbers. Affixes without a range keep their ``effect_number``.
        """
        if not self.has_scaling:
            return self.effect_number

        t = max(0.0, min(1.0, t))
        center = lerp(self.effect_min, self.effect_max, t)
        if scaling_config is not None:
            window = scaling_config.fuzz_range(
                center, self.effect_min, self.effect_max, self.roll_fuzz
            )
        else:
            logger.warning(
                f"Affix '{self.name}' rolled without a scaling config, "
                "using default fuzz"
            )
            fuzz_pct = self.roll_fuzz
            if fuzz_pct is None:
                fuzz_pct = config.DEFAULT_FUZZ_PCT
            window = fuzz_range(
                center,
                self.effect_min,
                self.effect_max,
                fuzz_pct,
                config.MIN_ABSOLUTE_FUZZ,
            )

        integer = _is_whole(self.effect_min) and _is_whole(self.effect_max)
        self.effect_number = roll_in_window(window, integer, rng or _rng)
        return self.effect_number

    def roll_for_level(
        self,
        level: int,
        scaling_config: ScalingConfig | None = None,
        rng: rng_module.RNG | None = None,
    ) -> float:
        """Roll ``effect_number`` for an item or enemy of ``level``."""
        if scaling_config is None:
            t = max(0.0, min(1.0, (level - 1) / max(1, config.MAX_LEVEL - 1)))
        else:
            t = scaling_config.power_position(level)
        return self.roll_value(t, scaling_config, rng)

    def validate(self) -> list[str]:
        """Design-time checks. Returns a list of problems, empty when valid."""
        problems: list[str] = []
        label = self.name or "<unnamed affix>"
        if self.effect_min > self.effect_max:
            problems.append(
                f"{label}: effect_min {self.effect_min} > effect_max {self.effect_max}"
            )
        if self.roll_fuzz is not None and self.roll_fuzz < 0:
            problems.append(f"{label}: roll_fuzz must not be negative")
        if self.condition is not None:
            problems.extend(f"{label}: {p}" for p in self.condition.validate())

        for index, step in enumerate(self.steps()):
            where = f"{label} step {index}" if self.sub_effects else label
            if step.category is AffixCategory.NONE:
                problems.append(f"{where}: category is NONE")
            if step.category is AffixCategory.NEW_ACTION and not step.granted_action:
                problems.append(f"{where}: NEW_ACTION grants no action")
            if step.category is AffixCategory.DICE and not step.granted_dice:
                problems.append(f"{where}: DICE grants no dice")
            problems.extend(
                f"{where}: {p}"
                for p in validate_source_params(step.value_source, step.effect_data)
            )
            if step.override_condition and step.condition is not None:
                problems.extend(f"{where}: {p}" for p in step.condition.validate())
        return problems

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> SerializedRecord:
        return {
            "name": self.name,
            "description": self.description,
            "category": enum_to_ordinal(self.category),
            "value_source": enum_to_ordinal(self.value_source),
            "effect_min": self.effect_min,
            "effect_max": self.effect_max,
            "effect_number": self.effect_number,
            "roll_fuzz": self.roll_fuzz,
            "effect_data": copy.deepcopy(self.effect_data),
            "condition": None if self.condition is None else self.condition.to_dict(),
            "sub_effects": [sub.to_dict() for sub in self.sub_effects],
            "tags": list(self.tags),
            "granted_action": self.granted_action,
            "granted_dice": [die.to_dict() for die in self.granted_dice],
            "source": self.source,
            "source_type": self.source_type,
        }

    @classmethod
    def from_dict(cls, record: SerializedRecord) -> Affix:
        roll_fuzz = record.get("roll_fuzz")
        return cls(
            name=str(record.get("name", "")),
            description=str(record.get("description", "")),
            category=enum_from_ordinal(
                AffixCategory, record.get("category"), AffixCategory.NONE
            ),
            value_source=enum_from_ordinal(
                ValueSource, record.get("value_source"), ValueSource.STATIC
            ),
            effect_min=read_number(record, "effect_min", 0),
            effect_max=read_number(record, "effect_max", 0),
            effect_number=read_number(record, "effect_number", 0),
            roll_fuzz=(
                None if roll_fuzz is None else read_number(record, "roll_fuzz", 0)
            ),
            effect_data=copy.deepcopy(record.get("effect_data") or {}),
            condition=condition_from_record(record.get("condition")),
            sub_effects=[
                AffixSubEffect.from_dict(sub) for sub in record.get("sub_effects") or []
            ],
            tags=list(record.get("tags") or []),
            granted_action=record.get("granted_action"),
            granted_dice=[Die.from_dict(d) for d in record.get("granted_dice") or []],
            source=str(record.get("source", "")),
            source_type=str(record.get("source_type", "")),
        )
