"""Data model for the rule-based automapping engine.

A project holds one AutomapConfig: an ordered list of RuleSets. Each rule set
runs its rules in order against a tile layer, sharing one edge-handling policy
and one apply mode. A Rule pairs an input pattern (what to look for) with one
or more weighted OutputAlternatives (what to write when it is found).

Patterns are PatternGrids of odd width and height. The center cell is the
origin: it lines up with the anchor position being tested, and every other
cell is addressed by its offset from it.

The cell types are closed tagged unions:
- InputCell: Ignore, Empty, NonEmpty, Tile(id), NotTile(id)
- OutputCell: LeaveUnchanged, PlaceTile(id)

Rule definitions are edited by the rule editor and only ever read by the
applier.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum, auto

from tessella import config
from tessella.types import (
    OutputAlternativeId,
    RuleId,
    RuleSetId,
    TileId,
)


class AutomapError(Exception):
    """Base class for errors raised while editing automap rules."""

    pass


class PatternDimensionError(AutomapError, ValueError):
    """Raised for pattern sizes without a unique center cell.

    Only odd, positive widths and heights are accepted.
    """

    pass


class RuleConfigurationError(AutomapError, ValueError):
    """Raised when an edit would leave a rule in an invalid state."""

    pass


class UnknownRuleError(AutomapError, LookupError):
    """Raised when a rule id is not part of the rule set."""

    pass


class UnknownRuleSetError(AutomapError, LookupError):
    """Raised when a rule set id is not part of the automap config."""

    pass


# =============================================================================
# Cells
# =============================================================================


@dataclass(frozen=True, slots=True)
class Ignore:
    """Input cell that matches anything, including out-of-bounds cells."""


@dataclass(frozen=True, slots=True)
class Empty:
    """Input cell that matches a cell holding no tile."""


@dataclass(frozen=True, slots=True)
class NonEmpty:
    """Input cell that matches a cell holding any tile."""


@dataclass(frozen=True, slots=True)
class Tile:
    """Input cell that matches exactly one tile id."""

    tile_id: TileId


@dataclass(frozen=True, slots=True)
class NotTile:
    """Input cell that matches an empty cell or any other tile id."""

    tile_id: TileId


@dataclass(frozen=True, slots=True)
class LeaveUnchanged:
    """Output cell that writes nothing."""


@dataclass(frozen=True, slots=True)
class PlaceTile:
    """Output cell that writes a tile id."""

    tile_id: TileId


type InputCell = Ignore | Empty | NonEmpty | Tile | NotTile
type OutputCell = LeaveUnchanged | PlaceTile

IGNORE = Ignore()
EMPTY = Empty()
NON_EMPTY = NonEmpty()
LEAVE_UNCHANGED = LeaveUnchanged()


# =============================================================================
# Pattern grids
# =============================================================================


def check_pattern_dimensions(width: int, height: int) -> None:
    """Raise PatternDimensionError unless both sizes are odd and positive."""
    for label, size in (("width", width), ("height", height)):
        if size <= 0 or size % 2 == 0:
            raise PatternDimensionError(
                f"Pattern {label} must be a positive odd number, got {size}"
            )


@dataclass
class PatternGrid[CellType]:
    """A width x height grid of cells stored in row-major order.

    Attributes:
        width: Number of columns (odd).
        height: Number of rows (odd).
        cells: Row-major cells; ``cells[row * width + col]``.
    """

    width: int
    height: int
    cells: list[CellType]

    def __post_init__(self) -> None:
        check_pattern_dimensions(self.width, self.height)
        if len(self.cells) != self.width * self.height:
            raise PatternDimensionError(
                f"{self.width}x{self.height} pattern needs "
                f"{self.width * self.height} cells, got {len(self.cells)}"
            )

    @classmethod
    def filled(cls, width: int, height: int, cell: CellType) -> PatternGrid[CellType]:
        return cls(width, height, [cell] * (width * height))

    @property
    def origin(self) -> tuple[int, int]:
        """(col, row) of the center cell."""
        return self.width // 2, self.height // 2

    def get(self, col: int, row: int) -> CellType:
        return self.cells[self._index(col, row)]

    def set(self, col: int, row: int, cell: CellType) -> None:
        self.cells[self._index(col, row)] = cell

    def get_offset(self, dx: int, dy: int) -> CellType:
        """Return the cell at an offset from the origin."""
        ox, oy = self.origin
        return self.get(ox + dx, oy + dy)

    def offsets(self) -> Iterator[tuple[int, int, CellType]]:
        """Yield (dx, dy, cell) relative to the origin, row by row."""
        ox, oy = self.origin
        for row in range(self.height):
            for col in range(self.width):
                yield col - ox, row - oy, self.cells[row * self.width + col]

    def resized(self, width: int, height: int, fill: CellType) -> PatternGrid[CellType]:
        """Return a copy resized to width x height.

        Existing cells keep their (col, row); cells past the old edges are
        set to ``fill`` and cells past the new edges are dropped.
        """
        check_pattern_dimensions(width, height)
        cells: list[CellType] = []
        for row in range(height):
            for col in range(width):
                if row < self.height and col < self.width:
                    cells.append(self.get(col, row))
                else:
                    cells.append(fill)
        return PatternGrid(width, height, cells)

    def copy(self) -> PatternGrid[CellType]:
        return PatternGrid(self.width, self.height, list(self.cells))

    def _index(self, col: int, row: int) -> int:
        if not (0 <= col < self.width and 0 <= row < self.height):
            raise IndexError(
                f"({col}, {row}) is outside the {self.width}x{self.height} pattern"
            )
        return row * self.width + col


# =============================================================================
# Rules
# =============================================================================


def _new_id() -> uuid.UUID:
    return uuid.uuid4()


@dataclass
class OutputAlternative:
    """One weighted candidate outcome for a rule match.

    Attributes:
        grid: Output cells, same dimensions as the rule's input pattern.
        weight: Relative selection weight. Raw, not normalized. A weight of 0
            is never selected.
        id: Stable identifier.
    """

    grid: PatternGrid[OutputCell]
    weight: int = 1
    id: OutputAlternativeId = field(
        default_factory=lambda: OutputAlternativeId(_new_id())
    )

    @classmethod
    def blank(cls, width: int, height: int, weight: int = 1) -> OutputAlternative:
        """Create an alternative that leaves every cell unchanged."""
        return cls(PatternGrid.filled(width, height, LEAVE_UNCHANGED), weight)

    def writes(self) -> Iterator[tuple[int, int, TileId]]:
        """Yield (dx, dy, tile_id) for every cell that writes a tile."""
        for dx, dy, cell in self.grid.offsets():
            if isinstance(cell, PlaceTile):
                yield dx, dy, cell.tile_id

    def duplicate(self) -> OutputAlternative:
        return OutputAlternative(self.grid.copy(), self.weight)


@dataclass
class Rule:
    """One input-pattern-to-output mapping.

    Attributes:
        name: Display name.
        input_pattern: Cells the layer must match around the anchor.
        outputs: Weighted alternatives; exactly one is applied per match.
        no_overlapping_output: When True, a match is skipped if any cell it
            would write was already written earlier in the same pass.
        id: Stable identifier.
    """

    name: str
    input_pattern: PatternGrid[InputCell]
    outputs: list[OutputAlternative]
    no_overlapping_output: bool = False
    id: RuleId = field(default_factory=lambda: RuleId(_new_id()))

    def __post_init__(self) -> None:
        if not self.outputs:
            raise RuleConfigurationError(
                f"Rule {self.name!r} needs at least one output alternative"
            )
        for alternative in self.outputs:
            self._check_output_dimensions(alternative)

    @classmethod
    def create(
        cls,
        name: str = config.AUTOMAP_DEFAULT_RULE_NAME,
        width: int = config.AUTOMAP_DEFAULT_PATTERN_SIZE,
        height: int = config.AUTOMAP_DEFAULT_PATTERN_SIZE,
    ) -> Rule:
        """Create a rule with an all-Ignore pattern and one blank output."""
        return cls(
            name=name,
            input_pattern=PatternGrid.filled(width, height, IGNORE),
            outputs=[OutputAlternative.blank(width, height)],
        )

    @property
    def width(self) -> int:
        return self.input_pattern.width

    @property
    def height(self) -> int:
        return self.input_pattern.height

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def set_input_cell(self, col: int, row: int, cell: InputCell) -> None:
        self.input_pattern.set(col, row, cell)

    def set_output_cell(
        self, output_index: int, col: int, row: int, cell: OutputCell
    ) -> None:
        self.outputs[output_index].grid.set(col, row, cell)

    def resize_pattern(self, width: int, height: int) -> None:
        """Resize the input pattern and every output grid with it.

        New input cells are Ignore; new output cells are LeaveUnchanged.

        Raises:
            PatternDimensionError: If either size is even or not positive.
        """
        check_pattern_dimensions(width, height)
        self.input_pattern = self.input_pattern.resized(width, height, IGNORE)
        for alternative in self.outputs:
            alternative.grid = alternative.grid.resized(width, height, LEAVE_UNCHANGED)

    def add_output(self, weight: int = 1) -> OutputAlternative:
        """Append a blank alternative and return it."""
        self._check_weight(weight)
        alternative = OutputAlternative.blank(self.width, self.height, weight)
        self.outputs.append(alternative)
        return alternative

    def remove_output(self, index: int) -> OutputAlternative:
        """Remove and return the alternative at ``index``.

        Raises:
            RuleConfigurationError: If it is the rule's only alternative.
        """
        if len(self.outputs) == 1:
            raise RuleConfigurationError(
                f"Rule {self.name!r} must keep at least one output alternative"
            )
        return self.outputs.pop(index)

    def set_output_weight(self, index: int, weight: int) -> None:
        self._check_weight(weight)
        self.outputs[index].weight = weight

    def probabilities(self) -> list[float]:
        """Return each alternative's selection probability, for display."""
        weights = [max(alternative.weight, 0) for alternative in self.outputs]
        total = sum(weights)
        if total <= 0:
            return [0.0] * len(self.outputs)
        return [weight / total for weight in weights]

    def duplicate(self) -> Rule:
        """Deep-copy the rule under a new id."""
        return Rule(
            name=self.name,
            input_pattern=self.input_pattern.copy(),
            outputs=[alternative.duplicate() for alternative in self.outputs],
            no_overlapping_output=self.no_overlapping_output,
        )

    def validate(self) -> None:
        """Check edit-time invariants.

        Raises:
            RuleConfigurationError: On a missing alternative, mismatched
                output dimensions, or a weight outside the allowed range.
        """
        if not self.outputs:
            raise RuleConfigurationError(
                f"Rule {self.name!r} needs at least one output alternative"
            )
        for alternative in self.outputs:
            self._check_output_dimensions(alternative)
            self._check_weight(alternative.weight)

    def tile_references(self) -> set[TileId]:
        """Return every tile id named by the pattern or the outputs."""
        ids: set[TileId] = set()
        for cell in self.input_pattern.cells:
            if isinstance(cell, Tile | NotTile):
                ids.add(cell.tile_id)
        for alternative in self.outputs:
            ids.update(tile_id for _, _, tile_id in alternative.writes())
        return ids

    def _check_output_dimensions(self, alternative: OutputAlternative) -> None:
        if (alternative.grid.width, alternative.grid.height) != (
            self.input_pattern.width,
            self.input_pattern.height,
        ):
            raise RuleConfigurationError(
                f"Rule {self.name!r}: output grid is "
                f"{alternative.grid.width}x{alternative.grid.height}, input pattern "
                f"is {self.input_pattern.width}x{self.input_pattern.height}"
            )

    def _check_weight(self, weight: int) -> None:
        if not config.AUTOMAP_MIN_WEIGHT <= weight <= config.AUTOMAP_MAX_WEIGHT:
            raise RuleConfigurationError(
                f"Rule {self.name!r}: weight must be between "
                f"{config.AUTOMAP_MIN_WEIGHT} and {config.AUTOMAP_MAX_WEIGHT}, "
                f"got {weight}"
            )


# =============================================================================
# Rule sets
# =============================================================================


class EdgeHandling(Enum):
    """How pattern cells falling outside the layer are read."""

    WRAP = auto()  # Coordinates wrap around to the opposite edge
    IGNORE = auto()  # Only Ignore cells may fall outside the layer
    FIXED = auto()  # Outside cells read as empty


@dataclass(frozen=True, slots=True)
class Once:
    """Apply a rule set in exactly one pass."""


@dataclass(frozen=True, slots=True)
class UntilStable:
    """Re-apply a rule set until a pass changes nothing.

    Rule sets with several weighted alternatives may never settle, so the
    number of passes is capped at ``max_iterations``.
    """

    max_iterations: int = config.AUTOMAP_UNTIL_STABLE_MAX_ITERATIONS

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise RuleConfigurationError(
                f"max_iterations must be at least 1, got {self.max_iterations}"
            )


type ApplyMode = Once | UntilStable


@dataclass
class RuleSet:
    """A named, ordered group of rules sharing edge and apply policy.

    Rule order is match priority: earlier rules may claim cells before later
    rules run in the same pass.
    """

    name: str
    rules: list[Rule] = field(default_factory=list)
    edge_handling: EdgeHandling = EdgeHandling.IGNORE
    apply_mode: ApplyMode = field(default_factory=Once)
    disabled: bool = False
    id: RuleSetId = field(default_factory=lambda: RuleSetId(_new_id()))

    def rename(self, name: str) -> None:
        self.name = name

    def get_rule(self, rule_id: RuleId) -> Rule:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        raise UnknownRuleError(f"Rule {rule_id} not in rule set {self.name!r}")

    def add_rule(self, rule: Rule | None = None) -> Rule:
        """Append a rule (a default 3x3 one if none is given) and return it."""
        if rule is None:
            rule = Rule.create()
        self.rules.append(rule)
        return rule

    def remove_rule(self, rule_id: RuleId) -> Rule:
        rule = self.get_rule(rule_id)
        self.rules.remove(rule)
        return rule

    def move_rule(self, rule_id: RuleId, new_index: int) -> None:
        """Move a rule to ``new_index``, shifting the others."""
        rule = self.get_rule(rule_id)
        self.rules.remove(rule)
        new_index = max(0, min(new_index, len(self.rules)))
        self.rules.insert(new_index, rule)

    def duplicate_rule(self, rule_id: RuleId) -> Rule:
        """Insert a deep copy of a rule right after it and return the copy."""
        rule = self.get_rule(rule_id)
        clone = rule.duplicate()
        self.rules.insert(self.rules.index(rule) + 1, clone)
        return clone


@dataclass
class AutomapConfig:
    """Project-wide automap configuration: rule sets in run order."""

    rule_sets: list[RuleSet] = field(default_factory=list)

    def add_rule_set(
        self, name: str = config.AUTOMAP_DEFAULT_RULE_SET_NAME
    ) -> RuleSet:
        rule_set = RuleSet(name)
        self.rule_sets.append(rule_set)
        return rule_set

    def get_rule_set(self, rule_set_id: RuleSetId) -> RuleSet:
        for rule_set in self.rule_sets:
            if rule_set.id == rule_set_id:
                return rule_set
        raise UnknownRuleSetError(f"Rule set {rule_set_id} not found")

    def remove_rule_set(self, rule_set_id: RuleSetId) -> RuleSet:
        rule_set = self.get_rule_set(rule_set_id)
        self.rule_sets.remove(rule_set)
        return rule_set

    def move_rule_set(self, rule_set_id: RuleSetId, new_index: int) -> None:
        rule_set = self.get_rule_set(rule_set_id)
        self.rule_sets.remove(rule_set)
        new_index = max(0, min(new_index, len(self.rule_sets)))
        self.rule_sets.insert(new_index, rule_set)

    def enabled_rule_sets(self) -> list[RuleSet]:
        return [rule_set for rule_set in self.rule_sets if not rule_set.disabled]

    def tile_references(self) -> set[TileId]:
        return {
            tile_id
            for rule_set in self.rule_sets
            for rule in rule_set.rules
            for tile_id in rule.tile_references()
        }

    def validate_tile_references(
        self, known_tile_ids: set[TileId]
    ) -> list[tuple[RuleSet, Rule, set[TileId]]]:
        """Find rules that reference tile ids missing from the tilesets.

        Returns:
            (rule_set, rule, missing_ids) for every offending rule, in order.
        """
        problems: list[tuple[RuleSet, Rule, set[TileId]]] = []
        for rule_set in self.rule_sets:
            for rule in rule_set.rules:
                missing = rule.tile_references() - known_tile_ids
                if missing:
                    problems.append((rule_set, rule, missing))
        return problems
