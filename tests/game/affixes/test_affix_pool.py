"""Tests for the active affix pool."""

from __future__ import annotations

import logging

import pytest

from diceforge.game.affixes import Affix, AffixPool, AffixSubEffect
from diceforge.game.enums import AffixCategory


def _affix(name: str, category: AffixCategory, source: str = "Ring") -> Affix:
    return Affix(name, category=category, source=source)


class TestAffixPool:
    def test_remove_by_source_only_touches_that_source(self) -> None:
        pool = AffixPool()
        ring = _affix("a", AffixCategory.DAMAGE_BONUS, "Ring")
        boots = _affix("b", AffixCategory.DODGE_BONUS, "Boots")
        pool.add_affix(ring)
        pool.add_affix(boots)

        removed = pool.remove_affixes_by_source("Ring")

        assert removed == [ring]
        assert pool.get_all_affixes() == [boots]

    def test_compound_affix_counts_once_per_step(self) -> None:
        pool = AffixPool()
        pool.add_affix(
            Affix(
                "Twin",
                source="Ring",
                sub_effects=[
                    AffixSubEffect(AffixCategory.DAMAGE_BONUS),
                    AffixSubEffect(AffixCategory.DAMAGE_BONUS),
                    AffixSubEffect(AffixCategory.ARMOR_BONUS),
                ],
            )
        )
        assert pool.count_by_category(AffixCategory.DAMAGE_BONUS) == 2
        assert pool.snapshot_counts() == {
            AffixCategory.DAMAGE_BONUS: 2,
            AffixCategory.ARMOR_BONUS: 1,
        }
        assert len(pool.get_affixes_by_category(AffixCategory.ARMOR_BONUS)) == 1

    def test_duplicate_instance_is_rejected(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        pool = AffixPool()
        affix = _affix("a", AffixCategory.LUCK_BONUS)
        with caplog.at_level(logging.WARNING):
            pool.add_affix(affix)
            pool.add_affix(affix)
        assert len(pool) == 1
        assert "already in the pool" in caplog.text

    def test_equal_but_distinct_instances_are_both_kept(self) -> None:
        pool = AffixPool()
        pool.add_affix(_affix("a", AffixCategory.LUCK_BONUS))
        pool.add_affix(_affix("a", AffixCategory.LUCK_BONUS))
        assert len(pool) == 2

    def test_remove_affix_by_identity(self) -> None:
        pool = AffixPool()
        first = _affix("a", AffixCategory.LUCK_BONUS)
        second = _affix("a", AffixCategory.LUCK_BONUS)
        pool.add_affix(first)
        pool.add_affix(second)

        assert pool.remove_affix(second)
        assert first in pool
        assert second not in pool
        assert not pool.remove_affix(second)

    def test_get_by_source_and_clear(self) -> None:
        pool = AffixPool()
        pool.add_affix(_affix("a", AffixCategory.LUCK_BONUS, "set:Ember"))
        assert [a.name for a in pool.get_affixes_by_source("set:Ember")] == ["a"]
        pool.clear()
        assert len(pool) == 0
