"""Tests for the combatant dice pool."""

from __future__ import annotations

from diceforge.game.context import AffixContext
from diceforge.game.dice.dice_affix import DiceAffix
from diceforge.game.dice.die import Die
from diceforge.game.dice.pool import DicePool
from diceforge.game.enums import (
    DiceEffectType,
    DiceTrigger,
    NeighborTarget,
    ValueSource,
)
from tests.helpers import FixedRandom, make_dice, make_pool


def _flat(
    value: int, trigger: DiceTrigger = DiceTrigger.ON_ROLL, **kwargs: object
) -> DiceAffix:
    return DiceAffix(
        name=f"+{value}",
        trigger=trigger,
        effect_type=DiceEffectType.MODIFY_VALUE_FLAT,
        effect_value=value,
        **kwargs,
    )


class TestMembership:
    def test_slot_indices_follow_position(self) -> None:
        pool = DicePool(make_dice([1, 2, 3]))
        middle = pool[1]
        pool.remove_die(middle)
        assert [d.slot_index for d in pool] == [0, 1]
        assert [d.current_value for d in pool] == [1, 3]

    def test_remove_die_by_identity(self) -> None:
        twin_a, twin_b = Die(current_value=2), Die(current_value=2)
        pool = DicePool([twin_a, twin_b])
        pool.remove_die(twin_b)
        assert pool.dice[0] is twin_a

    def test_dice_from_source(self) -> None:
        pool = DicePool(make_dice([1, 1]))
        pool[1].source = "Ember Helm"
        assert pool.dice_from_source("Ember Helm") == [pool[1]]
        removed = pool.remove_dice_from_source("Ember Helm")
        assert [d.source for d in removed] == ["Ember Helm"]
        assert len(pool) == 1


class TestTriggers:
    def test_roll_all_runs_on_roll_then_passive(self) -> None:
        die = Die()
        die.add_affix(_flat(1, DiceTrigger.PASSIVE))
        die.add_affix(
            DiceAffix(
                "Double",
                effect_type=DiceEffectType.MODIFY_VALUE_PERCENT,
                effect_value=2.0,
            )
        )
        pool = DicePool([die], rng=FixedRandom([3]))

        pool.roll_all()

        assert die.current_value == 3
        assert die.modified_value == 7

    def test_move_die_fires_on_reorder(self) -> None:
        pool = DicePool(make_dice([1, 2, 3]))
        pool[0].add_affix(
            _flat(
                5,
                DiceTrigger.ON_REORDER,
                neighbor_target=NeighborTarget.LEFT,
            )
        )

        events = pool.move_die(0, 2)

        assert [d.current_value for d in pool] == [2, 3, 1]
        assert [d.modified_value for d in pool] == [2, 8, 1]
        assert len(events) == 1

    def test_move_out_of_range_is_ignored(self) -> None:
        pool = DicePool(make_dice([1, 2]))
        assert pool.move_die(0, 5) == []
        assert [d.current_value for d in pool] == [1, 2]

    def test_use_die_consumes_and_fires_on_use(self) -> None:
        pool = DicePool(make_dice([2, 2]))
        pool[0].add_affix(
            _flat(3, DiceTrigger.ON_USE, neighbor_target=NeighborTarget.RIGHT)
        )

        pool.use_die(0)

        assert pool[0].is_consumed
        assert pool[1].modified_value == 5
        assert pool.use_die(0) == []
        assert pool.total_value(include_consumed=False) == 5

    def test_combat_start_and_end(self) -> None:
        pool = DicePool(make_dice([2]))
        pool[0].add_affix(
            DiceAffix(
                "Steady",
                trigger=DiceTrigger.ON_COMBAT_START,
                effect_type=DiceEffectType.LOCK_DIE,
            )
        )

        pool.start_combat()
        assert pool.in_combat
        assert pool[0].is_locked

        pool.end_combat()
        assert not pool.in_combat
        assert not pool[0].is_locked

    def test_spend_reroll_reapplies_affixes(self) -> None:
        pool = DicePool(make_dice([1]), rng=FixedRandom([5]))
        pool[0].rerolls_available = 1
        pool[0].add_affix(_flat(1))

        pool.spend_reroll(0)

        assert pool[0].current_value == 5
        assert pool[0].modified_value == 6

    def test_take_duplicates(self) -> None:
        pool = DicePool(make_dice([6, 2]))
        pool[0].add_affix(
            DiceAffix("Echo", effect_type=DiceEffectType.DUPLICATE_ON_MAX)
        )
        pool.reapply()

        copies = pool.take_duplicates()

        assert len(copies) == 1
        assert copies[0] is not pool[0]
        assert copies[0].current_value == 6
        assert not pool[0].duplicate_pending
        assert len(pool) == 2


class TestAffixDistribution:
    def test_apply_affix_gives_each_die_its_own_copy(self) -> None:
        pool = DicePool(make_dice([1, 2, 3]))
        template = _flat(1, source="set:Night", source_type="set")

        count = pool.apply_affix_to_dice(template, lambda d: d.current_value > 1)

        assert count == 2
        assert pool[0].applied_affixes == []
        assert pool[1].applied_affixes[0] is not pool[2].applied_affixes[0]
        assert pool[1].applied_affixes[0].source == "set:Night"

    def test_remove_affixes_by_source(self) -> None:
        pool = DicePool(make_dice([1, 2]))
        pool.apply_affix_to_dice(_flat(1, source="set:Night"))
        pool.apply_affix_to_dice(_flat(2, source="Ring"))

        assert pool.remove_affixes_by_source("set:Night") == 2
        assert [a.source for d in pool for a in d.applied_affixes] == ["Ring", "Ring"]


class TestPoolContext:
    def _sized(self) -> DiceAffix:
        return _flat(1, value_source=ValueSource.DICE_POOL_SIZE)

    def test_pool_size_source_sees_the_pool(self) -> None:
        pool = make_pool([3, 3, 3])
        pool[0].add_affix(self._sized())

        pool.reapply()

        assert [d.modified_value for d in pool] == [6, 3, 3]

    def test_caller_context_gets_the_pool(self) -> None:
        pool = make_pool([3, 3])
        pool[0].add_affix(self._sized())

        pool.reapply(AffixContext(turn_number=4))

        assert pool[0].modified_value == 5

    def test_explicit_dice_pool_is_kept(self) -> None:
        pool = make_pool([3, 3])
        pool[0].add_affix(self._sized())

        pool.reapply(AffixContext(dice_pool=[object()] * 5))

        assert pool[0].modified_value == 8

    def test_use_die_sees_the_pool(self) -> None:
        pool = make_pool([2, 2, 2, 2])
        pool[1].add_affix(
            _flat(1, DiceTrigger.ON_USE, value_source=ValueSource.DICE_POOL_SIZE)
        )

        pool.use_die(1)

        assert pool[1].modified_value == 6
