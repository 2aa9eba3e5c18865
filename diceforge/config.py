"""
Configuration constants.

Centralizes the tuning numbers used by the affix and dice engine.
Organized by functional area for easy maintenance.

Runtime configuration objects (see :class:`~diceforge.game.scaling.ScalingConfig`)
take their defaults from here but are always passed in explicitly; nothing in
the engine reads mutable global state.
"""

import sys

from diceforge.types import LevelBand, RandomSeed

# =============================================================================
# GENERAL
# =============================================================================

# RANDOM_SEED = None
RANDOM_SEED: RandomSeed = "burrito1"

# Test environment detection
IS_TEST_ENVIRONMENT = "pytest" in sys.modules

# =============================================================================
# SCALING
# =============================================================================

# Highest character/item level. Level 1 maps to power position 0.0 and
# MAX_LEVEL maps to 1.0.
MAX_LEVEL = 100

# Fuzz applied around the level-determined center of an affix roll, as a
# fraction of the center value.
DEFAULT_FUZZ_PCT = 0.15

# Absolute floor for the fuzz window. Percentage fuzz alone collapses to a
# single value for small integer ranges (a center of 2 with 15% fuzz always
# rounds back to 2).
MIN_ABSOLUTE_FUZZ = 1.0

# Level bands per world region, used by procedural generation to pick a
# level appropriate for where an item or enemy is spawned.
REGION_LEVEL_BANDS: dict[int, LevelBand] = {
    1: (1, 10),
    2: (8, 25),
    3: (20, 40),
    4: (35, 60),
    5: (55, 80),
    6: (75, 100),
}

# =============================================================================
# DICE
# =============================================================================

# Game design floor for any die value after modification.
DIE_MIN_VALUE = 1

# Face counts a die may have.
VALID_DIE_FACES = (4, 6, 8, 10, 12, 20)

# Default roll threshold for AUTO_REROLL_LOW when the affix doesn't specify one.
DEFAULT_AUTO_REROLL_THRESHOLD = 1

# =============================================================================
# STATUS EFFECTS
# =============================================================================

DEFAULT_MAX_STACKS = 99
DEFAULT_STATUS_DURATION = 3

# =============================================================================
# SET BONUSES
# =============================================================================

# Prefix of the source tag stamped on affixes granted by set thresholds.
SET_SOURCE_PREFIX = "set:"
SET_SOURCE_TYPE = "set"
