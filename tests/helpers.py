from __future__ import annotations

from collections.abc import Sequence

from tessella.automap import (
    IGNORE,
    LEAVE_UNCHANGED,
    InputCell,
    OutputAlternative,
    OutputCell,
    PatternGrid,
    PlaceTile,
    Rule,
)
from tessella.environment.level import TileLayer
from tessella.types import CellValue, TileId

# Tile ids used across the automap tests.
DIRT: TileId = 1
GRASS: TileId = 2
WATER: TileId = 3
SAND: TileId = 4
# Flip flags packed into the high bits make a distinct id.
GRASS_FLIPPED_X: TileId = GRASS | (1 << 31)


def layer_from_rows(rows: Sequence[Sequence[CellValue]], name: str = "ground") -> TileLayer:
    """Build a layer from rows written top to bottom, as they read on screen."""
    height = len(rows)
    width = len(rows[0])
    layer = TileLayer(name, width, height)
    for y, row in enumerate(rows):
        assert len(row) == width, "all rows must have the same length"
        for x, value in enumerate(row):
            layer.set(x, y, value)
    return layer


def layer_rows(layer: TileLayer) -> list[list[CellValue]]:
    """Inverse of layer_from_rows."""
    return [
        [layer.get(x, y) for x in range(layer.width)] for y in range(layer.height)
    ]


def grid_from_rows[CellType](rows: Sequence[Sequence[CellType]]) -> PatternGrid[CellType]:
    """Build a PatternGrid from rows written top to bottom."""
    return PatternGrid(len(rows[0]), len(rows), [cell for row in rows for cell in row])


def make_rule(
    input_rows: Sequence[Sequence[InputCell]],
    *output_rows: Sequence[Sequence[OutputCell]],
    weights: Sequence[int] | None = None,
    name: str = "test rule",
    no_overlapping_output: bool = False,
) -> Rule:
    """Build a rule from an input pattern and one grid per output alternative."""
    if weights is None:
        weights = [1] * len(output_rows)
    return Rule(
        name=name,
        input_pattern=grid_from_rows(input_rows),
        outputs=[
            OutputAlternative(grid_from_rows(rows), weight)
            for rows, weight in zip(output_rows, weights, strict=True)
        ],
        no_overlapping_output=no_overlapping_output,
    )


def single_cell_rule(
    input_cell: InputCell,
    output_tile: TileId,
    name: str = "single cell",
    no_overlapping_output: bool = False,
) -> Rule:
    """1x1 rule writing ``output_tile`` wherever ``input_cell`` matches."""
    return make_rule(
        [[input_cell]],
        [[PlaceTile(output_tile)]],
        name=name,
        no_overlapping_output=no_overlapping_output,
    )


def centered_rule(
    center: InputCell,
    output_tile: TileId,
    size: int = 3,
    weight: int = 1,
    name: str = "centered",
) -> Rule:
    """size x size rule with only its center constrained and written."""
    input_rows: list[list[InputCell]] = [[IGNORE] * size for _ in range(size)]
    output_rows: list[list[OutputCell]] = [[LEAVE_UNCHANGED] * size for _ in range(size)]
    mid = size // 2
    input_rows[mid][mid] = center
    output_rows[mid][mid] = PlaceTile(output_tile)
    return make_rule(input_rows, output_rows, weights=[weight], name=name)
