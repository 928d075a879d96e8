from __future__ import annotations

from typing import NewType
from uuid import UUID

# =============================================================================
# SPATIAL TYPES
# =============================================================================

type TileCoord = int  # Always integer tile position

# Level coordinates - absolute positions on a tile layer
type TilePos = tuple[TileCoord, TileCoord]  # Example: (5, 3) = tile 5,3 on layer

# Offset of a pattern cell relative to the pattern's origin (center) cell
type PatternOffset = tuple[int, int]  # Example: (-1, 0) = cell left of origin

# =============================================================================
# TILE TYPES
# =============================================================================

# Virtual tile index inside the project's tilesets. Flipped variants of a tile
# are distinct ids as far as the automap engine is concerned.
type TileId = int

# Contents of one layer cell: a tile id, or None for "no tile here".
type CellValue = TileId | None

# =============================================================================
# IDENTIFIERS
# =============================================================================

# Stable identifiers for project objects. Persisted as UUID strings.
LayerId = NewType("LayerId", UUID)
LevelId = NewType("LevelId", UUID)
RuleId = NewType("RuleId", UUID)
RuleSetId = NewType("RuleSetId", UUID)
OutputAlternativeId = NewType("OutputAlternativeId", UUID)

# =============================================================================
# UTILITY TYPES
# =============================================================================

# Random seed for deterministic rule application.
# Can be an int for numeric seeds or a descriptive string like "grassland2".
type RandomSeed = int | str | None
