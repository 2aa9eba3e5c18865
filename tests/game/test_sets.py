"""Tests for set bonus tracking."""

from __future__ import annotations

from diceforge.events import SetBonusChangedEvent
from diceforge.game.affixes import Affix, AffixPool
from diceforge.game.dice.dice_affix import DiceAffix
from diceforge.game.dice.die import Die
from diceforge.game.dice.pool import DicePool
from diceforge.game.enums import AffixCategory, DiceEffectType
from diceforge.game.equipment import Equipment, EquipmentItem
from diceforge.game.sets import SetBonusThreshold, SetBonusTracker, SetDefinition

SLOTS = ["head", "chest", "legs", "ring"]


def _ember_set() -> SetDefinition:
    return SetDefinition(
        set_id="ember",
        name="Ember",
        total_pieces=3,
        thresholds=[
            SetBonusThreshold(
                required_pieces=2,
                affixes=[
                    Affix(
                        "Kindled",
                        category=AffixCategory.FIRE_DAMAGE_BONUS,
                        effect_number=2,
                    )
                ],
                dice_affixes=[
                    DiceAffix(
                        "Smolder",
                        effect_type=DiceEffectType.MODIFY_VALUE_FLAT,
                        effect_value=1,
                    )
                ],
                description="+2 fire damage, set dice +1",
            ),
            SetBonusThreshold(
                required_pieces=3,
                affixes=[Affix("Inferno", category=AffixCategory.DAMAGE_MULTIPLIER)],
            ),
        ],
    )


def _rig() -> tuple[Equipment, SetBonusTracker, AffixPool, DicePool, SetDefinition]:
    affix_pool = AffixPool()
    dice_pool = DicePool([Die(source="")])
    tracker = SetBonusTracker(affix_pool, dice_pool)
    ember = _ember_set()
    tracker.register_set(ember)
    equipment = Equipment(SLOTS, affix_pool, dice_pool, tracker)
    return equipment, tracker, affix_pool, dice_pool, ember


def _piece(name: str, ember: SetDefinition) -> EquipmentItem:
    return EquipmentItem(
        name,
        set_definition=ember,
        affixes=[Affix(f"{name} armor", category=AffixCategory.ARMOR_BONUS)],
        dice=[Die()],
    )


def _set_sources(affix_pool: AffixPool) -> list[str]:
    return [a.name for a in affix_pool.get_affixes_by_source("set:Ember")]


class TestThresholds:
    def test_threshold_active_with_enough_pieces(self) -> None:
        equipment, tracker, affix_pool, _, ember = _rig()
        for slot, name in zip(SLOTS, ("Helm", "Mail", "Greaves"), strict=False):
            equipment.equip(slot, _piece(name, ember))

        assert tracker.get_equipped_count("ember") == 3
        active = tracker.get_active_thresholds("ember")
        assert [t.required_pieces for t in active] == [2, 3]
        assert _set_sources(affix_pool) == ["Kindled", "Inferno"]

    def test_dropping_below_threshold_removes_only_set_affixes(self) -> None:
        equipment, tracker, affix_pool, dice_pool, ember = _rig()
        for slot, name in zip(SLOTS, ("Helm", "Mail", "Greaves"), strict=False):
            equipment.equip(slot, _piece(name, ember))

        events = equipment.unequip("chest") + equipment.unequip("legs")

        assert tracker.get_equipped_count("ember") == 1
        assert tracker.get_active_thresholds("ember") == []
        assert _set_sources(affix_pool) == []
        assert [a.name for a in affix_pool] == ["Helm armor"]
        assert all(not d.applied_affixes for d in dice_pool)
        assert events[-1] == SetBonusChangedEvent("ember", 1, 3, [])

    def test_set_dice_affixes_only_reach_set_dice(self) -> None:
        equipment, _, _, dice_pool, ember = _rig()
        equipment.equip("head", _piece("Helm", ember))
        equipment.equip("chest", _piece("Mail", ember))
        equipment.equip("ring", EquipmentItem("Plain Ring", dice=[Die()]))

        by_source = {
            die.source: [a.source for a in die.applied_affixes] for die in dice_pool
        }

        assert by_source == {
            "": [],
            "Helm": ["set:Ember"],
            "Mail": ["set:Ember"],
            "Plain Ring": [],
        }

    def test_change_event_reports_active_thresholds(self) -> None:
        equipment, _, _, _, ember = _rig()
        equipment.equip("head", _piece("Helm", ember))
        events = equipment.equip("chest", _piece("Mail", ember))
        assert events == [SetBonusChangedEvent("ember", 2, 3, [2])]


class TestPieceSwaps:
    def _dice_affixes(self, dice_pool: DicePool) -> dict[str, list[str]]:
        return {
            die.source: [a.name for a in die.applied_affixes]
            for die in dice_pool
            if die.source
        }

    def test_swapping_a_piece_moves_set_dice_affixes(self) -> None:
        equipment, tracker, affix_pool, dice_pool, ember = _rig()
        equipment.equip("head", _piece("Helm", ember))
        equipment.equip("chest", _piece("Mail", ember))

        equipment.equip("head", _piece("Crown", ember))

        assert tracker.get_equipped_count("ember") == 2
        assert self._dice_affixes(dice_pool) == {
            "Mail": ["Smolder"],
            "Crown": ["Smolder"],
        }
        assert _set_sources(affix_pool) == ["Kindled"]

    def test_replacing_a_piece_with_a_same_named_copy(self) -> None:
        equipment, _, _, dice_pool, ember = _rig()
        equipment.equip("head", _piece("Helm", ember))
        equipment.equip("chest", _piece("Mail", ember))

        equipment.equip("head", _piece("Helm", ember))

        assert self._dice_affixes(dice_pool) == {
            "Mail": ["Smolder"],
            "Helm": ["Smolder"],
        }

    def test_tracker_rebuilds_when_pieces_change_at_same_count(self) -> None:
        affix_pool = AffixPool()
        dice_pool = DicePool([Die(source="Helm"), Die(source="Mail")])
        tracker = SetBonusTracker(affix_pool, dice_pool)
        ember = _ember_set()
        tracker.recalculate_all([_piece("Helm", ember), _piece("Mail", ember)])
        dice_pool.remove_dice_from_source("Helm")
        dice_pool.add_die(Die(source="Crown"))

        events = tracker.recalculate_all(
            [_piece("Crown", ember), _piece("Mail", ember)]
        )

        assert events == [SetBonusChangedEvent("ember", 2, 3, [2])]
        assert self._dice_affixes(dice_pool) == {
            "Mail": ["Smolder"],
            "Crown": ["Smolder"],
        }
        assert len(affix_pool) == 1


class TestRecalculate:
    def test_second_pass_is_a_no_op(self) -> None:
        equipment, tracker, affix_pool, dice_pool, ember = _rig()
        equipment.equip("head", _piece("Helm", ember))
        equipment.equip("chest", _piece("Mail", ember))
        before = affix_pool.get_all_affixes()
        dice_before = [list(d.applied_affixes) for d in dice_pool]

        events = tracker.recalculate_all(equipment.get_equipped_items())

        assert events == []
        after = affix_pool.get_all_affixes()
        assert len(after) == len(before)
        assert all(a is b for a, b in zip(after, before, strict=True))
        assert [list(d.applied_affixes) for d in dice_pool] == dice_before

    def test_unknown_set_is_registered_on_the_fly(self) -> None:
        affix_pool = AffixPool()
        tracker = SetBonusTracker(affix_pool)
        ember = _ember_set()

        events = tracker.recalculate_all([_piece("Helm", ember), _piece("Mail", ember)])

        assert tracker.get_set("ember") is ember
        assert events[0].new_count == 2
        assert _set_sources(affix_pool) == ["Kindled"]

    def test_templates_are_not_shared_with_the_pool(self) -> None:
        affix_pool = AffixPool()
        tracker = SetBonusTracker(affix_pool)
        ember = _ember_set()
        tracker.recalculate_all([_piece("Helm", ember), _piece("Mail", ember)])

        (granted,) = affix_pool.get_all_affixes()
        assert granted is not ember.thresholds[0].affixes[0]
        assert ember.thresholds[0].affixes[0].source == ""
        assert granted.source_type == "set"

    def test_validate(self) -> None:
        assert _ember_set().validate() == []
        broken = SetDefinition("x", "X", 2, [SetBonusThreshold(required_pieces=3)])
        assert broken.validate() != []
