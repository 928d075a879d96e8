"""Pattern matching for automap rules.

A rule matches at an anchor position when every cell of its input pattern,
laid over the layer with the pattern's origin on the anchor, accepts the
value read there. Tile comparisons are exact: a flipped tile has its own id
and does not match a pattern cell naming the unflipped one.
"""

from __future__ import annotations

from tessella.types import TileCoord

from .grid import OUT_OF_BOUNDS, GridAccessor, ReadValue
from .types import Empty, Ignore, InputCell, NonEmpty, NotTile, Rule, Tile


def cell_matches(cell: InputCell, value: ReadValue) -> bool:
    """Test one input cell against one value read from the layer.

    ``value`` is a tile id, None for an empty cell, or OUT_OF_BOUNDS, which
    only Ignore accepts.
    """
    match cell:
        case Ignore():
            return True
        case _ if value is OUT_OF_BOUNDS:
            return False
        case Empty():
            return value is None
        case NonEmpty():
            return value is not None
        case Tile(tile_id=tile_id):
            return value == tile_id
        case NotTile(tile_id=tile_id):
            return value != tile_id
    raise TypeError(f"Unknown input cell {cell!r}")


def matches(
    rule: Rule, accessor: GridAccessor, anchor_x: TileCoord, anchor_y: TileCoord
) -> bool:
    """Return True if ``rule``'s input pattern matches at the anchor.

    Stops at the first cell that fails. A pattern made only of Ignore cells
    matches everywhere.
    """
    for dx, dy, cell in rule.input_pattern.offsets():
        if isinstance(cell, Ignore):
            continue
        if not cell_matches(cell, accessor.read(anchor_x + dx, anchor_y + dy)):
            return False
    return True
