from __future__ import annotations

from typing import Any, TypeAlias

# =============================================================================
# DICE TYPES
# =============================================================================

# Position of a die within its owning pool. Slot 0 is the leftmost die.
SlotIndex: TypeAlias = int

# Raw face value of a die roll (1..face count).
FaceValue: TypeAlias = int

# =============================================================================
# AFFIX TYPES
# =============================================================================

# Free-form keyed parameters carried by affixes and sub-effects
# (tag names, thresholds, stat names, nested payloads).
EffectData: TypeAlias = dict[str, Any]

# Flat key-value record produced by ``to_dict()`` on serializable resources.
SerializedRecord: TypeAlias = dict[str, Any]

# =============================================================================
# SCALING TYPES
# =============================================================================

# Inclusive (min_level, max_level) band for a world region.
LevelBand: TypeAlias = tuple[int, int]

# =============================================================================
# UTILITY TYPES
# =============================================================================

# Random seed for deterministic generation.
# Can be an int for numeric seeds or a descriptive string like "burrito1".
RandomSeed: TypeAlias = int | str | None
