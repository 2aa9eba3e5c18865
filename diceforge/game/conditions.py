"""Runtime predicates that gate affix effects.

A condition compares one context value against a comparand and answers with a
:class:`ConditionResult`. ``blocked`` suppresses the effect entirely;
``multiplier`` scales the resolved value when it isn't blocked. Only the
``PER_UNIT*`` types produce a multiplier other than 1.0.

Conditions fail safe: a key the context can't answer, or a value that can't
be compared, means "condition not met". Evaluation never raises.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Collection
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from diceforge.game.context import MISSING
from diceforge.game.enums import ConditionType
from diceforge.game.serialization import (
    enum_from_ordinal,
    enum_to_ordinal,
    read_number,
    to_bool,
)

if TYPE_CHECKING:
    from diceforge.game.context import AffixContext
    from diceforge.types import SerializedRecord

logger = logging.getLogger(__name__)

_ORDERING_TYPES = {
    ConditionType.GREATER_THAN,
    ConditionType.GREATER_OR_EQUAL,
    ConditionType.LESS_THAN,
    ConditionType.LESS_OR_EQUAL,
}
_SCALING_TYPES = {ConditionType.PER_UNIT, ConditionType.PER_UNIT_BELOW}
_SOURCE_TAG_TYPES = {ConditionType.SOURCE_TAG_EQUALS, ConditionType.SOURCE_TAG_CONTAINS}


@dataclass(frozen=True, slots=True)
class ConditionResult:
    blocked: bool
    multiplier: float = 1.0


PASSED = ConditionResult(blocked=False, multiplier=1.0)
BLOCKED = ConditionResult(blocked=True, multiplier=0.0)


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _values_equal(left: Any, right: Any) -> bool:
    left_num, right_num = _as_float(left), _as_float(right)
    if left_num is not None and right_num is not None:
        return math.isclose(left_num, right_num, rel_tol=1e-9, abs_tol=1e-9)
    return str(left) == str(right)


@dataclass
class AffixCondition:
    """Predicate over an :class:`AffixContext`.

    Attributes:
        condition_type: The comparison to perform.
        key: Context key read by the comparison. Ignored by ``NONE`` and the
            ``SOURCE_TAG_*`` types, which always read ``source_tag``.
        compare_value: Right-hand side (number, string, or list for
            ``IN_ARRAY``).
        negate: Invert the pass/fail decision of a comparison that could be
            made. A missing key stays "not met" even when negated.
        scale_per_unit: Multiplier per unit of the context value for the
            ``PER_UNIT*`` types.
        max_multiplier: Optional cap for the ``PER_UNIT*`` multiplier.
    """

    condition_type: ConditionType = ConditionType.NONE
    key: str = ""
    compare_value: Any = None
    negate: bool = False
    scale_per_unit: float = 1.0
    max_multiplier: float | None = None

    def evaluate(self, context: AffixContext) -> ConditionResult:
        ctype = self.condition_type
        if ctype is ConditionType.NONE:
            return BLOCKED if self.negate else PASSED

        if ctype is ConditionType.HAS_KEY:
            return self._decide(context.has(self.key))

        if ctype in _SOURCE_TAG_TYPES:
            tag = context.source_tag or ""
            wanted = "" if self.compare_value is None else str(self.compare_value)
            if ctype is ConditionType.SOURCE_TAG_EQUALS:
                return self._decide(tag == wanted)
            return self._decide(bool(wanted) and wanted in tag)

        value = context.get(self.key)
        if value is MISSING:
            logger.debug(f"Condition key '{self.key}' missing from context")
            return BLOCKED

        if ctype in _SCALING_TYPES:
            return self._scaled(value)

        met = self._compare(value)
        if met is None:
            return BLOCKED
        return self._decide(met)

    def _decide(self, met: bool) -> ConditionResult:
        if self.negate:
            met = not met
        return PASSED if met else BLOCKED

    def _compare(self, value: Any) -> bool | None:
        """Run the comparison; ``None`` means the values weren't comparable."""
        ctype = self.condition_type
        if ctype is ConditionType.EQUALS:
            return _values_equal(value, self.compare_value)
        if ctype is ConditionType.NOT_EQUALS:
            return not _values_equal(value, self.compare_value)
        if ctype is ConditionType.IS_TRUE:
            return to_bool(value)
        if ctype is ConditionType.IN_ARRAY:
            return self._membership(value)
        if ctype in _ORDERING_TYPES:
            left, right = _as_float(value), _as_float(self.compare_value)
            if left is None or right is None:
                return None
            match ctype:
                case ConditionType.GREATER_THAN:
                    return left > right
                case ConditionType.GREATER_OR_EQUAL:
                    return left >= right
                case ConditionType.LESS_THAN:
                    return left < right
                case ConditionType.LESS_OR_EQUAL:
                    return left <= right
        logger.warning(f"Unhandled condition type {ctype}")
        return None

    def _membership(self, value: Any) -> bool | None:
        haystack = self.compare_value
        if isinstance(haystack, Collection) and not isinstance(haystack, str):
            return any(_values_equal(value, item) for item in haystack)
        if isinstance(value, Collection) and not isinstance(value, str):
            return any(_values_equal(item, haystack) for item in value)
        return None

    def _scaled(self, value: Any) -> ConditionResult:
        amount = _as_float(value)
        if amount is None:
            return BLOCKED
        if self.condition_type is ConditionType.PER_UNIT_BELOW:
            ceiling = _as_float(self.compare_value)
            if ceiling is None:
                return BLOCKED
            amount = max(0.0, ceiling - amount)
        multiplier = amount * self.scale_per_unit
        if self.max_multiplier is not None:
            multiplier = min(multiplier, self.max_multiplier)
        return ConditionResult(blocked=False, multiplier=multiplier)

    def validate(self) -> list[str]:
        problems: list[str] = []
        needs_key = not (
            self.condition_type is ConditionType.NONE
            or self.condition_type in _SOURCE_TAG_TYPES
        )
        if needs_key and not self.key:
            problems.append(f"{self.condition_type.name} condition has no key")
        numeric = _as_float(self.compare_value)
        if self.condition_type in _ORDERING_TYPES and numeric is None:
            problems.append(
                f"{self.condition_type.name} needs a numeric compare_value, "
                f"got {self.compare_value!r}"
            )
        if self.condition_type is ConditionType.IN_ARRAY and not isinstance(
            self.compare_value, list | tuple | set
        ):
            problems.append("IN_ARRAY condition needs a list compare_value")
        return problems

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> SerializedRecord:
        compare = self.compare_value
        if isinstance(compare, tuple | set):
            compare = list(compare)
        return {
            "condition_type": enum_to_ordinal(self.condition_type),
            "key": self.key,
            "compare_value": compare,
            "negate": self.negate,
            "scale_per_unit": self.scale_per_unit,
            "max_multiplier": self.max_multiplier,
        }

    @classmethod
    def from_dict(cls, record: SerializedRecord) -> AffixCondition:
        max_multiplier = record.get("max_multiplier")
        return cls(
            condition_type=enum_from_ordinal(
                ConditionType, record.get("condition_type"), ConditionType.NONE
            ),
            key=str(record.get("key", "")),
            compare_value=record.get("compare_value"),
            negate=to_bool(record.get("negate", False)),
            scale_per_unit=read_number(record, "scale_per_unit", 1.0),
            max_multiplier=None
            if max_multiplier is None
            else read_number(record, "max_multiplier", 0.0),
        )


def evaluate_condition(
    condition: AffixCondition | None, context: AffixContext
) -> ConditionResult:
    """Evaluate ``condition``; no condition always passes."""
    if condition is None:
        return PASSED
    return condition.evaluate(context)


def condition_from_record(record: Any) -> AffixCondition | None:
    """Decode an optional nested condition record."""
    if record is None:
        return None
    if isinstance(record, AffixCondition):
        return record
    return AffixCondition.from_dict(record)
