from __future__ import annotations

import uuid
from dataclasses import dataclass, field

import numpy as np

from tessella.types import CellValue, LayerId, LevelId, TileCoord, TileId

# Stored in a layer's tile array where a cell holds no tile.
EMPTY_TILE = -1


class LayerNotFoundError(LookupError):
    """Raised when a layer id no longer resolves to a layer of the level.

    Usually a stale reference kept by a panel after the layer was deleted.
    Writing to a layer that doesn't exist is never silently ignored.
    """

    def __init__(self, layer_id: LayerId, level_name: str) -> None:
        super().__init__(f"Layer {layer_id} not found in level {level_name!r}")
        self.layer_id = layer_id
        self.level_name = level_name


class TileLayer:
    """A rectangular grid of optional tile ids.

    Tiles are stored in a numpy array of shape (width, height), indexed
    ``tiles[x, y]``, with EMPTY_TILE marking cells that hold no tile.
    """

    def __init__(
        self,
        name: str,
        width: TileCoord,
        height: TileCoord,
        layer_id: LayerId | None = None,
        tiles: np.ndarray | None = None,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Layer size must be positive, got {width}x{height}")
        self.id: LayerId = layer_id if layer_id is not None else LayerId(uuid.uuid4())
        self.name = name
        self.width: TileCoord = width
        self.height: TileCoord = height
        self.visible = True

        if tiles is None:
            tiles = np.full((width, height), EMPTY_TILE, dtype=np.int64, order="F")
        elif tiles.shape != (width, height):
            raise ValueError(
                f"Tile array shape {tiles.shape} does not match {width}x{height}"
            )
        self.tiles = tiles

    @classmethod
    def filled(
        cls, name: str, width: TileCoord, height: TileCoord, tile: CellValue
    ) -> TileLayer:
        """Create a layer with every cell set to ``tile``."""
        layer = cls(name, width, height)
        layer.tiles[:, :] = EMPTY_TILE if tile is None else tile
        return layer

    def in_bounds(self, x: TileCoord, y: TileCoord) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, x: TileCoord, y: TileCoord) -> CellValue:
        """Return the tile at (x, y), or None if the cell is empty."""
        if not self.in_bounds(x, y):
            raise IndexError(f"({x}, {y}) is outside layer {self.name!r}")
        value = int(self.tiles[x, y])
        return None if value == EMPTY_TILE else value

    def set(self, x: TileCoord, y: TileCoord, tile: CellValue) -> None:
        """Write a tile id (or None to clear) at (x, y)."""
        if not self.in_bounds(x, y):
            raise IndexError(f"({x}, {y}) is outside layer {self.name!r}")
        if tile is not None and tile < 0:
            raise ValueError(f"Tile ids are non-negative, got {tile}")
        self.tiles[x, y] = EMPTY_TILE if tile is None else tile

    def snapshot(self) -> np.ndarray:
        """Return a copy of the raw tile array."""
        return self.tiles.copy(order="F")

    def restore(self, snapshot: np.ndarray) -> None:
        """Overwrite every cell from a snapshot taken with snapshot()."""
        if snapshot.shape != self.tiles.shape:
            raise ValueError(
                f"Snapshot shape {snapshot.shape} does not match {self.tiles.shape}"
            )
        self.tiles[:, :] = snapshot

    def copy(self, name: str | None = None) -> TileLayer:
        """Return a detached copy of this layer with a new id."""
        return TileLayer(
            name if name is not None else self.name,
            self.width,
            self.height,
            tiles=self.snapshot(),
        )

    def tile_ids(self) -> set[TileId]:
        """Return the distinct tile ids present on the layer."""
        return {int(v) for v in np.unique(self.tiles) if v != EMPTY_TILE}

    def __repr__(self) -> str:
        return f"TileLayer({self.name!r}, {self.width}x{self.height})"


@dataclass
class Level:
    """A map made of equally sized tile layers, drawn bottom to top."""

    name: str
    width: TileCoord
    height: TileCoord
    layers: list[TileLayer] = field(default_factory=list)
    id: LevelId = field(default_factory=lambda: LevelId(uuid.uuid4()))

    def add_layer(self, name: str) -> TileLayer:
        """Create an empty layer on top of the stack and return it."""
        layer = TileLayer(name, self.width, self.height)
        self.layers.append(layer)
        return layer

    def get_layer(self, layer_id: LayerId) -> TileLayer:
        """Resolve a layer id.

        Raises:
            LayerNotFoundError: If no layer of this level has the id.
        """
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        raise LayerNotFoundError(layer_id, self.name)

    def remove_layer(self, layer_id: LayerId) -> TileLayer:
        layer = self.get_layer(layer_id)
        self.layers.remove(layer)
        return layer
