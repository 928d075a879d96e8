"""Rule-based automapping for Tessella.

This package rewrites tile layers from user-authored rules:
- PatternGrid / Rule / RuleSet / AutomapConfig: the rule data model
- GridAccessor: edge-aware reads of a tile layer
- matches(): tests a rule's input pattern at an anchor position
- select_output(): weighted choice between a rule's output alternatives
- apply(): runs rule sets over a layer, honoring overlap and apply modes

Example usage:
    from tessella.automap import apply

    result = apply(config.enabled_rule_sets(), ground, ground, rng=random.Random(7))
    print(result.changed_cells)

The engine has no editor dependency; undo integration lives in
tessella.editor.commands.
"""

from .applier import ApplyResult, PassResult, apply, apply_pass, apply_rule
from .grid import OUT_OF_BOUNDS, GridAccessor
from .matcher import cell_matches, matches
from .selector import output_probabilities, select_output
from .types import (
    EMPTY,
    IGNORE,
    LEAVE_UNCHANGED,
    NON_EMPTY,
    ApplyMode,
    AutomapConfig,
    AutomapError,
    EdgeHandling,
    Empty,
    Ignore,
    InputCell,
    LeaveUnchanged,
    NonEmpty,
    NotTile,
    Once,
    OutputAlternative,
    OutputCell,
    PatternDimensionError,
    PatternGrid,
    PlaceTile,
    Rule,
    RuleConfigurationError,
    RuleSet,
    Tile,
    UnknownRuleError,
    UnknownRuleSetError,
    UntilStable,
)

__all__ = [
    "EMPTY",
    "IGNORE",
    "LEAVE_UNCHANGED",
    "NON_EMPTY",
    "OUT_OF_BOUNDS",
    "ApplyMode",
    "ApplyResult",
    "AutomapConfig",
    "AutomapError",
    "EdgeHandling",
    "Empty",
    "GridAccessor",
    "Ignore",
    "InputCell",
    "LeaveUnchanged",
    "NonEmpty",
    "NotTile",
    "Once",
    "OutputAlternative",
    "OutputCell",
    "PassResult",
    "PatternDimensionError",
    "PatternGrid",
    "PlaceTile",
    "Rule",
    "RuleConfigurationError",
    "RuleSet",
    "Tile",
    "UnknownRuleError",
    "UnknownRuleSetError",
    "UntilStable",
    "apply",
    "apply_pass",
    "apply_rule",
    "cell_matches",
    "matches",
    "output_probabilities",
    "select_output",
]
