"""Tests for affix conditions."""

from __future__ import annotations

import pytest

from diceforge.game.conditions import (
    BLOCKED,
    PASSED,
    AffixCondition,
    condition_from_record,
    evaluate_condition,
)
from diceforge.game.context import AffixContext
from diceforge.game.enums import ConditionType
from diceforge.game.serialization import AffixDataError
from tests.helpers import DummyPlayer


def _ctx(**values: object) -> AffixContext:
    return AffixContext(values=dict(values))


class TestComparisons:
    @pytest.mark.parametrize(
        ("condition_type", "compare_value", "value", "expected"),
        [
            (ConditionType.EQUALS, 3, 3, True),
            (ConditionType.EQUALS, 3, 3.0, True),
            (ConditionType.EQUALS, "fire", "fire", True),
            (ConditionType.NOT_EQUALS, 3, 4, True),
            (ConditionType.GREATER_THAN, 3, 4, True),
            (ConditionType.GREATER_THAN, 3, 3, False),
            (ConditionType.GREATER_OR_EQUAL, 3, 3, True),
            (ConditionType.LESS_THAN, 3, 2, True),
            (ConditionType.LESS_OR_EQUAL, 3, 4, False),
            (ConditionType.IS_TRUE, None, "yes", True),
            (ConditionType.IS_TRUE, None, 0, False),
            (ConditionType.IN_ARRAY, [1, 3, 5], 3, True),
            (ConditionType.IN_ARRAY, [1, 3, 5], 2, False),
        ],
    )
    def test_comparison_types(
        self,
        condition_type: ConditionType,
        compare_value: object,
        value: object,
        expected: bool,
    ) -> None:
        condition = AffixCondition(condition_type, "x", compare_value)
        assert condition.evaluate(_ctx(x=value)).blocked is not expected

    def test_negate_inverts_result(self) -> None:
        condition = AffixCondition(ConditionType.GREATER_THAN, "x", 3, negate=True)
        assert condition.evaluate(_ctx(x=1)) == PASSED
        assert condition.evaluate(_ctx(x=5)) == BLOCKED

    def test_missing_key_blocks_even_when_negated(self) -> None:
        condition = AffixCondition(ConditionType.EQUALS, "absent", 1, negate=True)
        assert condition.evaluate(_ctx()) == BLOCKED

    def test_incomparable_values_block(self) -> None:
        condition = AffixCondition(ConditionType.GREATER_THAN, "x", 3)
        assert condition.evaluate(_ctx(x="lots")).blocked

    def test_none_condition_type_passes(self) -> None:
        assert AffixCondition().evaluate(_ctx()) == PASSED
        assert evaluate_condition(None, _ctx()) == PASSED


class TestContextKeys:
    def test_reads_typed_fields(self) -> None:
        context = AffixContext(turn_number=4)
        condition = AffixCondition(ConditionType.GREATER_OR_EQUAL, "turn_number", 3)
        assert not condition.evaluate(context).blocked

    def test_reads_health_percent_from_player(self) -> None:
        context = AffixContext(player=DummyPlayer(current_health=20, max_health=100))
        condition = AffixCondition(ConditionType.LESS_THAN, "health_percent", 0.5)
        assert not condition.evaluate(context).blocked

    def test_has_key(self) -> None:
        condition = AffixCondition(ConditionType.HAS_KEY, "combo")
        assert not condition.evaluate(_ctx(combo=1)).blocked
        assert condition.evaluate(_ctx()).blocked

    def test_source_tag_types(self) -> None:
        context = AffixContext(source_tag="fire_slash")
        equals = AffixCondition(ConditionType.SOURCE_TAG_EQUALS, compare_value="fire")
        contains = AffixCondition(
            ConditionType.SOURCE_TAG_CONTAINS, compare_value="fire"
        )
        assert equals.evaluate(context).blocked
        assert not contains.evaluate(context).blocked


class TestScalingConditions:
    def test_per_unit_multiplier(self) -> None:
        condition = AffixCondition(ConditionType.PER_UNIT, "stacks", scale_per_unit=0.5)
        result = condition.evaluate(_ctx(stacks=4))
        assert not result.blocked
        assert result.multiplier == pytest.approx(2.0)

    def test_per_unit_cap(self) -> None:
        condition = AffixCondition(
            ConditionType.PER_UNIT, "stacks", scale_per_unit=1.0, max_multiplier=3.0
        )
        assert condition.evaluate(_ctx(stacks=10)).multiplier == pytest.approx(3.0)

    def test_per_unit_below(self) -> None:
        condition = AffixCondition(
            ConditionType.PER_UNIT_BELOW, "health", compare_value=10, scale_per_unit=0.1
        )
        assert condition.evaluate(_ctx(health=4)).multiplier == pytest.approx(0.6)
        assert condition.evaluate(_ctx(health=12)).multiplier == 0.0


class TestValidationAndRecords:
    def test_validate_reports_missing_key_and_bad_comparand(self) -> None:
        problems = AffixCondition(ConditionType.GREATER_THAN, "", "many").validate()
        assert len(problems) == 2

    def test_validate_in_array_needs_list(self) -> None:
        problems = AffixCondition(ConditionType.IN_ARRAY, "x", 3).validate()
        assert problems == ["IN_ARRAY condition needs a list compare_value"]

    def test_record_round_trip(self) -> None:
        condition = AffixCondition(
            ConditionType.PER_UNIT, "stacks", (1, 2), True, 0.25, 2.0
        )
        restored = AffixCondition.from_dict(condition.to_dict())
        assert restored == AffixCondition(
            ConditionType.PER_UNIT, "stacks", [1, 2], True, 0.25, 2.0
        )

    def test_missing_fields_take_defaults(self) -> None:
        assert AffixCondition.from_dict({}) == AffixCondition()

    def test_bad_ordinal_raises(self) -> None:
        with pytest.raises(AffixDataError):
            AffixCondition.from_dict({"condition_type": 99})

    def test_condition_from_record_passthrough(self) -> None:
        condition = AffixCondition(ConditionType.IS_TRUE, "x")
        assert condition_from_record(condition) is condition
        assert condition_from_record(None) is None
