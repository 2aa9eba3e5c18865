from __future__ import annotations

import logging

import pytest

from diceforge.game.affixes import Affix, AffixPool
from diceforge.game.dice.die import Die
from diceforge.game.dice.pool import DicePool
from diceforge.game.enums import AffixCategory, DieType, Rarity
from diceforge.game.equipment import Equipment, EquipmentItem


def _item(name: str, *, faces: DieType = DieType.D6) -> EquipmentItem:
    return EquipmentItem(
        name,
        rarity=Rarity.RARE,
        affixes=[
            Affix(f"{name} edge", category=AffixCategory.DAMAGE_BONUS, effect_number=3)
        ],
        dice=[Die(die_type=faces)],
    )


@pytest.fixture
def rig() -> tuple[Equipment, AffixPool, DicePool]:
    affix_pool = AffixPool()
    dice_pool = DicePool()
    equipment = Equipment(["main_hand", "off_hand"], affix_pool, dice_pool)
    return equipment, affix_pool, dice_pool


def test_equip_grants_sourced_copies(rig) -> None:
    equipment, affix_pool, dice_pool = rig
    sword = _item("Sword", faces=DieType.D8)

    assert equipment.equip("main_hand", sword) == []

    (granted,) = affix_pool.get_all_affixes()
    assert granted.source == "Sword"
    assert granted is not sword.affixes[0]
    assert sword.affixes[0].source == ""
    (die,) = dice_pool.dice
    assert die.source == "Sword"
    assert die.die_type is DieType.D8
    assert die is not sword.dice[0]


def test_unequip_strips_only_that_item(rig) -> None:
    equipment, affix_pool, dice_pool = rig
    equipment.equip("main_hand", _item("Sword"))
    equipment.equip("off_hand", _item("Dagger"))

    equipment.unequip("main_hand")

    assert [a.source for a in affix_pool] == ["Dagger"]
    assert [d.source for d in dice_pool] == ["Dagger"]
    assert equipment.get_item("main_hand") is None
    assert equipment.unequip("main_hand") == []


def test_equipping_over_an_item_replaces_it(rig) -> None:
    equipment, affix_pool, dice_pool = rig
    equipment.equip("main_hand", _item("Sword"))
    axe = _item("Axe")

    equipment.equip("main_hand", axe)

    assert equipment.get_item("main_hand") is axe
    assert [a.source for a in affix_pool] == ["Axe"]
    assert [d.source for d in dice_pool] == ["Axe"]
    assert equipment.get_equipped_items() == [axe]


def test_invalid_slot_raises(rig) -> None:
    equipment, _, _ = rig
    with pytest.raises(ValueError, match="Invalid equipment slot"):
        equipment.equip("tail", _item("Sword"))
    with pytest.raises(ValueError):
        equipment.unequip("tail")


def test_same_item_twice_is_refused(rig, caplog) -> None:
    equipment, affix_pool, _ = rig
    sword = _item("Sword")
    equipment.equip("main_hand", sword)

    with caplog.at_level(logging.WARNING):
        equipment.equip("off_hand", sword)

    assert "already equipped" in caplog.text
    assert equipment.get_item("off_hand") is None
    assert len(affix_pool) == 1


def test_works_without_a_dice_pool() -> None:
    affix_pool = AffixPool()
    equipment = Equipment(["ring"], affix_pool)
    equipment.equip("ring", _item("Band"))
    assert [a.name for a in affix_pool] == ["Band edge"]
    equipment.unequip("ring")
    assert len(affix_pool) == 0


def test_item_accessors() -> None:
    sword = _item("Sword")
    assert sword.get_name() == "Sword"
    assert sword.get_rarity() is Rarity.RARE
    assert sword.get_set_definition() is None


def test_second_item_with_an_equipped_name_is_refused(rig, caplog) -> None:
    equipment, affix_pool, dice_pool = rig
    equipment.equip("main_hand", _item("Sword"))

    with caplog.at_level(logging.WARNING):
        events = equipment.equip("off_hand", _item("Sword"))

    assert events == []
    assert "Another item named Sword" in caplog.text
    assert equipment.get_item("off_hand") is None
    assert len(affix_pool) == 1
    assert len(dice_pool) == 1


def test_same_name_may_replace_itself_in_its_slot(rig) -> None:
    equipment, affix_pool, dice_pool = rig
    equipment.equip("main_hand", _item("Sword"))
    upgraded = _item("Sword", faces=DieType.D10)

    equipment.equip("main_hand", upgraded)

    assert equipment.get_item("main_hand") is upgraded
    assert len(affix_pool) == 1
    assert [d.die_type for d in dice_pool] == [DieType.D10]
