"""
Configuration constants.

Centralizes the magic numbers and tunables used by the automap engine and the
editor integration around it. Organized by functional area.
"""

import sys

# =============================================================================
# GENERAL
# =============================================================================

# Master seed for tessella.util.rng. None gives a fresh entropy-seeded run
# every session; set a value to make automap runs reproducible.
RANDOM_SEED = None

# Test environment detection
IS_TEST_ENVIRONMENT = "pytest" in sys.modules

# =============================================================================
# AUTOMAP RULES
# =============================================================================

# Rule sets in UntilStable mode stop after this many passes even if cells are
# still changing. Probabilistic outputs can oscillate forever without it.
# At 100 passes on a 256x256 layer with 10 rules this is ~65M cell tests.
AUTOMAP_UNTIL_STABLE_MAX_ITERATIONS = 100

# Edit-time bounds for an output alternative's weight.
AUTOMAP_MIN_WEIGHT = 1
AUTOMAP_MAX_WEIGHT = 100

# Width and height of the pattern grid given to newly created rules.
AUTOMAP_DEFAULT_PATTERN_SIZE = 3

# Name given to newly created rules and rule sets.
AUTOMAP_DEFAULT_RULE_NAME = "New Rule"
AUTOMAP_DEFAULT_RULE_SET_NAME = "New Rule Set"

# =============================================================================
# EDITOR INTEGRATION
# =============================================================================

# Run every enabled rule set automatically after a paint stroke completes.
AUTOMAP_AUTO_ON_DRAW = False

# RNG domain used for weighted output selection when no rng is injected.
AUTOMAP_RNG_DOMAIN = "automap.output"
