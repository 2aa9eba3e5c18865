"""Enumerations shared by the affix, dice, set and status systems.

Integer values are the serialized ordinals written by ``to_dict()``. Append
new members at the end of an enum; reordering breaks saved data.
"""

from enum import Enum


class AffixCategory(Enum):
    """Which stat or pool an item-level affix contribution feeds."""

    NONE = 0
    STRENGTH_BONUS = 1
    STRENGTH_MULTIPLIER = 2
    AGILITY_BONUS = 3
    AGILITY_MULTIPLIER = 4
    INTELLECT_BONUS = 5
    INTELLECT_MULTIPLIER = 6
    LUCK_BONUS = 7
    HEALTH_BONUS = 8
    MANA_BONUS = 9
    ARMOR_BONUS = 10
    BARRIER_BONUS = 11
    DAMAGE_BONUS = 12
    DAMAGE_MULTIPLIER = 13
    DEFENSE_BONUS = 14
    CRIT_CHANCE_BONUS = 15
    DODGE_BONUS = 16
    PHYSICAL_DAMAGE_BONUS = 17
    FIRE_DAMAGE_BONUS = 18
    ICE_DAMAGE_BONUS = 19
    SHOCK_DAMAGE_BONUS = 20
    POISON_DAMAGE_BONUS = 21
    SHADOW_DAMAGE_BONUS = 22
    RESIST_BONUS = 23
    HEAL_BONUS = 24
    NEW_ACTION = 25
    DICE = 26
    PROC = 27
    MISC = 28


class ValueSource(Enum):
    """Where an affix reads the multiplier applied to its ``effect_number``."""

    STATIC = 0
    PLAYER_STAT = 1
    PLAYER_HEALTH_PERCENT = 2
    EQUIPPED_ITEM_COUNT = 3
    ACTIVE_AFFIX_COUNT = 4
    EQUIPMENT_RARITY_SUM = 5
    DICE_POOL_SIZE = 6
    COMBAT_TURN_NUMBER = 7


class ConditionType(Enum):
    """Comparison performed by an :class:`AffixCondition`."""

    NONE = 0
    EQUALS = 1
    NOT_EQUALS = 2
    GREATER_THAN = 3
    GREATER_OR_EQUAL = 4
    LESS_THAN = 5
    LESS_OR_EQUAL = 6
    IS_TRUE = 7
    SOURCE_TAG_EQUALS = 8
    SOURCE_TAG_CONTAINS = 9
    HAS_KEY = 10
    IN_ARRAY = 11
    # Scaling types: never block on their own, produce a multiplier instead.
    PER_UNIT = 12
    PER_UNIT_BELOW = 13


class DiceTrigger(Enum):
    """When a dice affix activates."""

    ON_ROLL = 0
    ON_USE = 1
    PASSIVE = 2
    ON_REORDER = 3
    ON_COMBAT_START = 4
    ON_COMBAT_END = 5


class PositionRequirement(Enum):
    """Which slot the owning die must occupy for its affix to activate."""

    ANY = 0
    FIRST = 1
    LAST = 2
    NOT_FIRST = 3
    NOT_LAST = 4
    SPECIFIC_SLOT = 5
    EVEN_SLOTS = 6
    ODD_SLOTS = 7


class NeighborTarget(Enum):
    """Which dice, relative to the owning die, an effect lands on."""

    SELF = 0
    LEFT = 1
    RIGHT = 2
    BOTH_NEIGHBORS = 3
    ALL_LEFT = 4
    ALL_RIGHT = 5
    ALL_OTHERS = 6
    ALL_DICE = 7


class DiceEffectType(Enum):
    """Mutation a dice affix step performs on each target die."""

    MODIFY_VALUE_FLAT = 0
    MODIFY_VALUE_PERCENT = 1
    SET_MINIMUM_VALUE = 2
    SET_MAXIMUM_VALUE = 3
    ADD_TAG = 4
    REMOVE_TAG = 5
    COPY_TAGS = 6
    GRANT_REROLL = 7
    AUTO_REROLL_LOW = 8
    DUPLICATE_ON_MAX = 9
    LOCK_DIE = 10
    CHANGE_DIE_TYPE = 11
    COPY_NEIGHBOR_VALUE = 12
    ADD_DAMAGE_TYPE = 13
    GRANT_STATUS_EFFECT = 14
    CONDITIONAL = 15


class DieType(Enum):
    """Face count of a die. The value is the number of faces."""

    D4 = 4
    D6 = 6
    D8 = 8
    D10 = 10
    D12 = 12
    D20 = 20


class DamageType(Enum):
    """Elemental tag carried by a die. NONE inherits the action's damage type."""

    NONE = 0
    SLASHING = 1
    BLUNT = 2
    PIERCING = 3
    FIRE = 4
    ICE = 5
    SHOCK = 6
    POISON = 7
    SHADOW = 8


class DamageTypePriority(Enum):
    """Who set a die's damage type. Higher values win."""

    NONE = 0
    INNATE = 1
    INHERENT_AFFIX = 2
    APPLIED_AFFIX = 3


class Rarity(Enum):
    """Equipment rarity tier. The value is summed by EQUIPMENT_RARITY_SUM."""

    COMMON = 0
    UNCOMMON = 1
    RARE = 2
    EPIC = 3
    LEGENDARY = 4


class DiceVisualEffect(Enum):
    """Legacy single-field visual for a dice affix.

    Superseded by the per-component fields on :class:`DiceAffix`; still read
    when loading older data.
    """

    NONE = 0
    COLOR_TINT = 1
    OVERLAY_TEXTURE = 2
    SHADER = 3
    BORDER_GLOW = 4
    PARTICLE = 5


class VisualComponentEffect(Enum):
    """Visual applied to one component (fill, stroke or value label) of a die."""

    NONE = 0
    TINT = 1
    TEXTURE = 2
    SHADER = 3
    GLOW = 4
    PARTICLE = 5


class StatusTiming(Enum):
    """Point in the turn where a status ticks, decays or loses duration."""

    START_OF_TURN = 0
    END_OF_TURN = 1
    ON_HIT = 2
    ON_DAMAGED = 3
    ON_HEAL = 4


class DurationType(Enum):
    """How a status instance's lifetime is measured."""

    TURN_BASED = 0
    PERMANENT = 1
    COMBAT = 2


class DecayStyle(Enum):
    """How stacks fall off a status instance."""

    NONE = 0
    FLAT = 1
    HALVING = 2
