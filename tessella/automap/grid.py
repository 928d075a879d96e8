"""Edge-aware read/write access to a tile layer.

Patterns anchored near the border of a layer reach past its edges. The
GridAccessor resolves those reads according to the rule set's EdgeHandling:

- WRAP: coordinates wrap around (x mod width, y mod height).
- IGNORE: the read returns OUT_OF_BOUNDS, which only an Ignore cell accepts.
- FIXED: the read returns None, as if the cell held no tile.
"""

from __future__ import annotations

from enum import Enum
from typing import Final, Literal

from tessella.environment.level import TileLayer
from tessella.types import CellValue, TileCoord

from .types import EdgeHandling


class _OutOfBounds(Enum):
    TOKEN = "out_of_bounds"

    def __repr__(self) -> str:
        return "OUT_OF_BOUNDS"


# Returned for out-of-bounds reads under EdgeHandling.IGNORE.
OUT_OF_BOUNDS: Final = _OutOfBounds.TOKEN

type ReadValue = CellValue | Literal[_OutOfBounds.TOKEN]


class GridAccessor:
    """Reads and writes one tile layer under an edge-handling policy."""

    def __init__(self, layer: TileLayer, edge_handling: EdgeHandling) -> None:
        self.layer = layer
        self.edge_handling = edge_handling

    @property
    def width(self) -> TileCoord:
        return self.layer.width

    @property
    def height(self) -> TileCoord:
        return self.layer.height

    def in_bounds(self, x: TileCoord, y: TileCoord) -> bool:
        return self.layer.in_bounds(x, y)

    def read(self, x: TileCoord, y: TileCoord) -> ReadValue:
        """Return the tile at (x, y), resolving out-of-bounds reads."""
        if self.layer.in_bounds(x, y):
            return self.layer.get(x, y)

        match self.edge_handling:
            case EdgeHandling.WRAP:
                return self.layer.get(x % self.layer.width, y % self.layer.height)
            case EdgeHandling.FIXED:
                return None
            case EdgeHandling.IGNORE:
                return OUT_OF_BOUNDS

    def write(self, x: TileCoord, y: TileCoord, tile: CellValue) -> None:
        """Write a tile. Out-of-bounds writes raise IndexError."""
        self.layer.set(x, y, tile)
