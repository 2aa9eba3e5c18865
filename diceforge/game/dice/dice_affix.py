"""Die-level affix templates.

A :class:`DiceAffix` is gated by the owning die's slot (``position_requirement``)
and lands on dice chosen relative to it (``neighbor_target``). Like item
affixes, a non-empty ``sub_effects`` list replaces the top-level effect
fields, and each step may override the target and condition.

``effect_data`` is plain data. Nested records used by ``CONDITIONAL`` steps
(``"condition"`` and ``"effect"``) are stored as dicts and decoded when the
step runs; ``to_dict()`` converts any live objects placed there.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from functools import cache
from typing import TYPE_CHECKING, Any

from diceforge import config
from diceforge.game.conditions import AffixCondition, condition_from_record
from diceforge.game.enums import (
    DamageType,
    DiceEffectType,
    DiceTrigger,
    DiceVisualEffect,
    NeighborTarget,
    PositionRequirement,
    ValueSource,
    VisualComponentEffect,
)
from diceforge.game.serialization import (
    AffixDataError,
    enum_from_ordinal,
    enum_to_ordinal,
    read_number,
    to_bool,
)
from diceforge.game.value_sources import validate_source_params

if TYPE_CHECKING:
    from diceforge.types import EffectData, SerializedRecord


# Legacy single visual -> (component field, component effect).
_LEGACY_VISUAL_MIGRATION: dict[
    DiceVisualEffect, tuple[str, VisualComponentEffect]
] = {
    DiceVisualEffect.COLOR_TINT: ("fill_effect", VisualComponentEffect.TINT),
    DiceVisualEffect.OVERLAY_TEXTURE: ("fill_effect", VisualComponentEffect.TEXTURE),
    DiceVisualEffect.SHADER: ("fill_effect", VisualComponentEffect.SHADER),
    DiceVisualEffect.BORDER_GLOW: ("stroke_effect", VisualComponentEffect.GLOW),
    DiceVisualEffect.PARTICLE: ("fill_effect", VisualComponentEffect.PARTICLE),
}
_COMPONENT_FIELDS = ("fill_effect", "stroke_effect", "value_effect")


def _encode_effect_data(effect_data: EffectData) -> EffectData:
    encoded = copy.deepcopy(effect_data)
    nested_condition = encoded.get("condition")
    if isinstance(nested_condition, AffixCondition):
        encoded["condition"] = nested_condition.to_dict()
    nested_effect = encoded.get("effect")
    if isinstance(nested_effect, DiceAffixSubEffect):
        encoded["effect"] = nested_effect.to_dict()
    return encoded


@dataclass
class DiceAffixSubEffect:
    """One step of a compound dice affix."""

    effect_type: DiceEffectType = DiceEffectType.MODIFY_VALUE_FLAT
    effect_value: float = 0
    value_source: ValueSource = ValueSource.STATIC
    effect_data: EffectData = field(default_factory=dict)
    override_target: bool = False
    target: NeighborTarget = NeighborTarget.SELF
    override_condition: bool = False
    condition: AffixCondition | None = None

    def resolve_target(self, parent_target: NeighborTarget) -> NeighborTarget:
        return self.target if self.override_target else parent_target

    def resolve_condition(
        self, parent_condition: AffixCondition | None
    ) -> AffixCondition | None:
        return self.condition if self.override_condition else parent_condition

    def validate(self) -> list[str]:
        problems = validate_effect_params(self.effect_type, self.effect_data)
        problems.extend(validate_source_params(self.value_source, self.effect_data))
        if self.override_condition and self.condition is not None:
            problems.extend(self.condition.validate())
        return problems

    def to_dict(self) -> SerializedRecord:
        return {
            "effect_type": enum_to_ordinal(self.effect_type),
            "effect_value": self.effect_value,
            "value_source": enum_to_ordinal(self.value_source),
            "effect_data": _encode_effect_data(self.effect_data),
            "override_target": self.override_target,
            "target": enum_to_ordinal(self.target),
            "override_condition": self.override_condition,
            "condition": None if self.condition is None else self.condition.to_dict(),
        }

    @classmethod
    def from_dict(cls, record: SerializedRecord) -> DiceAffixSubEffect:
        return cls(
            effect_type=enum_from_ordinal(
                DiceEffectType,
                record.get("effect_type"),
                DiceEffectType.MODIFY_VALUE_FLAT,
            ),
            effect_value=read_number(record, "effect_value", 0),
            value_source=enum_from_ordinal(
                ValueSource, record.get("value_source"), ValueSource.STATIC
            ),
            effect_data=copy.deepcopy(record.get("effect_data") or {}),
            override_target=to_bool(record.get("override_target", False)),
            target=enum_from_ordinal(
                NeighborTarget, record.get("target"), NeighborTarget.SELF
            ),
            override_condition=to_bool(record.get("override_condition", False)),
            condition=condition_from_record(record.get("condition")),
        )


def face_count(value: Any) -> int:
    """Face count named by ``value`` (an int, a DieType, or "d8"); -1 if invalid."""
    if hasattr(value, "value") and isinstance(value.value, int):
        return value.value
    if isinstance(value, str):
        value = value.strip().lower().removeprefix("d")
    try:
        return int(value)
    except (TypeError, ValueError):
        return -1


def nested_step(effect_data: EffectData) -> DiceAffixSubEffect | None:
    """Decode the ``"effect"`` record wrapped by a CONDITIONAL step."""
    record = effect_data.get("effect")
    if record is None:
        return None
    if isinstance(record, DiceAffixSubEffect):
        return record
    return DiceAffixSubEffect.from_dict(record)


def nested_condition(effect_data: EffectData) -> AffixCondition | None:
    """Decode the ``"condition"`` record wrapped by a CONDITIONAL step."""
    return condition_from_record(effect_data.get("condition"))


def validate_effect_params(
    effect_type: DiceEffectType, effect_data: EffectData
) -> list[str]:
    """Design-time check that ``effect_data`` carries what ``effect_type`` reads."""
    problems: list[str] = []
    match effect_type:
        case DiceEffectType.ADD_TAG | DiceEffectType.REMOVE_TAG:
            if not effect_data.get("tag"):
                problems.append(f"{effect_type.name} needs effect_data['tag']")
        case DiceEffectType.CHANGE_DIE_TYPE:
            faces = effect_data.get("die_type")
            if faces is not None and face_count(faces) not in config.VALID_DIE_FACES:
                problems.append(f"CHANGE_DIE_TYPE to invalid face count {faces}")
        case DiceEffectType.ADD_DAMAGE_TYPE:
            try:
                damage_type = enum_from_ordinal(
                    DamageType, effect_data.get("damage_type"), DamageType.NONE
                )
            except AffixDataError as exc:
                problems.append(str(exc))
            else:
                if damage_type is DamageType.NONE:
                    problems.append("ADD_DAMAGE_TYPE needs effect_data['damage_type']")
        case DiceEffectType.GRANT_STATUS_EFFECT:
            if not effect_data.get("status_id"):
                problems.append("GRANT_STATUS_EFFECT needs effect_data['status_id']")
        case DiceEffectType.CONDITIONAL:
            if effect_data.get("condition") is None:
                problems.append("CONDITIONAL needs a nested condition")
            inner = effect_data.get("effect")
            if inner is None:
                problems.append("CONDITIONAL needs a nested effect")
            else:
                try:
                    step = nested_step(effect_data)
                except AffixDataError as exc:
                    problems.append(f"nested: {exc}")
                else:
                    if step is not None:
                        problems.extend(f"nested: {p}" for p in step.validate())
    return problems


@dataclass
class DiceAffix:
    """A data-defined modifier attached to a die.

    Attributes:
        trigger: When the affix activates.
        position_requirement: Slot the owning die must occupy.
        specific_slot: Slot index for ``SPECIFIC_SLOT``.
        neighbor_target: Dice the effect lands on, relative to the owner.
        effect_type: The mutation performed (top-level step).
        effect_value: Magnitude, scaled by ``value_source``.
        condition: Gate for every step that doesn't override it.
        sub_effects: When non-empty, these steps replace the top-level fields.
        visual_effect: Legacy single visual, kept for older data.
        fill_effect / stroke_effect / value_effect: Per-component visuals.
    """

    name: str = ""
    description: str = ""
    trigger: DiceTrigger = DiceTrigger.ON_ROLL
    position_requirement: PositionRequirement = PositionRequirement.ANY
    specific_slot: int = 0
    neighbor_target: NeighborTarget = NeighborTarget.SELF
    effect_type: DiceEffectType = DiceEffectType.MODIFY_VALUE_FLAT
    effect_value: float = 0
    value_source: ValueSource = ValueSource.STATIC
    effect_data: EffectData = field(default_factory=dict)
    condition: AffixCondition | None = None
    sub_effects: list[DiceAffixSubEffect] = field(default_factory=list)
    source: str = ""
    source_type: str = ""
    visual_effect: DiceVisualEffect = DiceVisualEffect.NONE
    fill_effect: VisualComponentEffect = VisualComponentEffect.NONE
    stroke_effect: VisualComponentEffect = VisualComponentEffect.NONE
    value_effect: VisualComponentEffect = VisualComponentEffect.NONE
    show_in_summary: bool = True

    @property
    def is_compound(self) -> bool:
        return bool(self.sub_effects)

    def steps(self) -> list[DiceAffixSubEffect]:
        """Sub-effects, or one step built from the top-level fields."""
        if self.sub_effects:
            return list(self.sub_effects)
        return [
            DiceAffixSubEffect(
                effect_type=self.effect_type,
                effect_value=self.effect_value,
                value_source=self.value_source,
                effect_data=self.effect_data,
                target=self.neighbor_target,
            )
        ]

    def instantiate(self, source: str, source_type: str = "item") -> DiceAffix:
        """Return an owned deep copy stamped with ``source``."""
        instance = copy.deepcopy(self)
        instance.source = source
        instance.source_type = source_type
        return instance

    def validate(self) -> list[str]:
        """Design-time checks. Returns a list of problems, empty when valid."""
        label = self.name or "<unnamed dice affix>"
        problems: list[str] = []
        if (
            self.position_requirement is PositionRequirement.SPECIFIC_SLOT
            and self.specific_slot < 0
        ):
            problems.append(f"{label}: specific_slot must not be negative")
        if self.condition is not None:
            problems.extend(f"{label}: {p}" for p in self.condition.validate())
        if self.sub_effects:
            for index, step in enumerate(self.sub_effects):
                problems.extend(f"{label} step {index}: {p}" for p in step.validate())
        else:
            problems.extend(
                f"{label}: {p}"
                for p in validate_effect_params(self.effect_type, self.effect_data)
            )
            problems.extend(
                f"{label}: {p}"
                for p in validate_source_params(self.value_source, self.effect_data)
            )
        return problems

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> SerializedRecord:
        return {
            "name": self.name,
            "description": self.description,
            "trigger": enum_to_ordinal(self.trigger),
            "position_requirement": enum_to_ordinal(self.position_requirement),
            "specific_slot": self.specific_slot,
            "neighbor_target": enum_to_ordinal(self.neighbor_target),
            "effect_type": enum_to_ordinal(self.effect_type),
            "effect_value": self.effect_value,
            "value_source": enum_to_ordinal(self.value_source),
            "effect_data": _encode_effect_data(self.effect_data),
            "condition": None if self.condition is None else self.condition.to_dict(),
            "sub_effects": [sub.to_dict() for sub in self.sub_effects],
            "source": self.source,
            "source_type": self.source_type,
            "visual_effect": enum_to_ordinal(self.visual_effect),
            "fill_effect": enum_to_ordinal(self.fill_effect),
            "stroke_effect": enum_to_ordinal(self.stroke_effect),
            "value_effect": enum_to_ordinal(self.value_effect),
            "show_in_summary": self.show_in_summary,
        }

    @classmethod
    def from_dict(cls, record: SerializedRecord) -> DiceAffix:
        visual_effect = enum_from_ordinal(
            DiceVisualEffect, record.get("visual_effect"), DiceVisualEffect.NONE
        )
        components: dict[str, Any] = {
            name: enum_from_ordinal(
                VisualComponentEffect, record.get(name), VisualComponentEffect.NONE
            )
            for name in _COMPONENT_FIELDS
        }
        has_components = any(name in record for name in _COMPONENT_FIELDS)
        if not has_components and visual_effect in _LEGACY_VISUAL_MIGRATION:
            component, effect = _LEGACY_VISUAL_MIGRATION[visual_effect]
            components[component] = effect

        return cls(
            name=str(record.get("name", "")),
            description=str(record.get("description", "")),
            trigger=enum_from_ordinal(
                DiceTrigger, record.get("trigger"), DiceTrigger.ON_ROLL
            ),
            position_requirement=enum_from_ordinal(
                PositionRequirement,
                record.get("position_requirement"),
                PositionRequirement.ANY,
            ),
            specific_slot=int(read_number(record, "specific_slot", 0)),
            neighbor_target=enum_from_ordinal(
                NeighborTarget, record.get("neighbor_target"), NeighborTarget.SELF
            ),
            effect_type=enum_from_ordinal(
                DiceEffectType,
                record.get("effect_type"),
                DiceEffectType.MODIFY_VALUE_FLAT,
            ),
            effect_value=read_number(record, "effect_value", 0),
            value_source=enum_from_ordinal(
                ValueSource, record.get("value_source"), ValueSource.STATIC
            ),
            effect_data=copy.deepcopy(record.get("effect_data") or {}),
            condition=condition_from_record(record.get("condition")),
            sub_effects=[
                DiceAffixSubEffect.from_dict(sub)
                for sub in record.get("sub_effects") or []
            ],
            source=str(record.get("source", "")),
            source_type=str(record.get("source_type", "")),
            visual_effect=visual_effect,
            show_in_summary=to_bool(record.get("show_in_summary", True)),
            **components,
        )


@cache
def _element_affix_template(element: DamageType) -> DiceAffix:
    return DiceAffix(
        name=f"{element.name.title()} Element",
        description=f"Deals {element.name.lower()} damage.",
        trigger=DiceTrigger.ON_ROLL,
        effect_type=DiceEffectType.ADD_DAMAGE_TYPE,
        effect_data={"damage_type": element.value},
        source_type="element",
        show_in_summary=False,
    )


def element_affix_for(element: DamageType) -> DiceAffix | None:
    """Built-in affix that stamps a die's innate element, or ``None``."""
    if element is DamageType.NONE:
        return None
    return _element_affix_template(element)
