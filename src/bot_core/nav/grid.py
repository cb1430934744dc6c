# navigation grid abstraction based on world blocks
# src/bot_core/nav/grid.py
"""
NavGrid: walkability queries over a WorldSnapshot.

This module does not know which blocks are solid. It only:
- Exposes walkability queries (floor + two free blocks).
- Produces neighbour candidates for the A* search, including step-ups,
  controlled falls and diagonal moves that do not cut corners.

The solid/passable decision is delegated to a BlockSolidFn, by default
bot_core.collision.default_is_solid_block.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from ..snapshot import Coord, WorldSnapshot

# Signature for a block-solid callback:
#   is_solid(x, y, z, world) -> bool
BlockSolidFn = Callable[[int, int, int, WorldSnapshot], bool]

_CARDINAL: Tuple[Tuple[int, int], ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))
_DIAGONAL: Tuple[Tuple[int, int], ...] = ((1, 1), (1, -1), (-1, 1), (-1, -1))


@dataclass
class NavGrid:
    """
    Navigation grid built on top of a WorldSnapshot.

    Responsibilities:
    - Provide walkability tests (is_walkable).
    - Provide neighbour coordinates for pathfinding.

    It does NOT:
    - Interpret block names.
    - Issue any movement.
    """

    world: WorldSnapshot
    is_solid_block: BlockSolidFn

    max_fall_height: int = 3
    max_step_height: int = 1
    allow_diagonal: bool = True

    # ------------------------------------------------------------------
    # Core queries
    # ------------------------------------------------------------------

    def is_walkable(self, x: int, y: int, z: int) -> bool:
        """Solid floor at y - 1 and free space for feet and head."""
        if not self._solid(x, y - 1, z):
            return False
        return not self._solid(x, y, z) and not self._solid(x, y + 1, z)

    def neighbors(self, coord: Coord) -> List[Coord]:
        """Cardinal neighbours, plus diagonals when enabled."""
        result = self.neighbors_4dir(coord)
        if self.allow_diagonal:
            result.extend(self._diagonal_neighbors(coord))
        return result

    def neighbors_4dir(self, coord: Coord) -> List[Coord]:
        x, y, z = coord
        candidates: List[Coord] = []
        for dx, dz in _CARDINAL:
            target = self._landing(coord, x + dx, z + dz)
            if target is not None:
                candidates.append(target)
        return candidates

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _solid(self, x: int, y: int, z: int) -> bool:
        return bool(self.is_solid_block(x, y, z, self.world))

    def _landing(self, start: Coord, x: int, z: int) -> Optional[Coord]:
        sx, y, sz = start
        # Same level first, then step up, then step down / fall.
        if self.is_walkable(x, y, z):
            return (x, y, z)
        for dy in range(1, self.max_step_height + 1):
            # Jumping needs head room above the start position.
            if self._solid(sx, y + 1 + dy, sz):
                break
            if self.is_walkable(x, y + dy, z):
                return (x, y + dy, z)
        for dy in range(1, self.max_fall_height + 1):
            if self._solid(x, y - dy + 1, z):
                break
            if self.is_walkable(x, y - dy, z):
                return (x, y - dy, z)
        return None

    def _diagonal_neighbors(self, coord: Coord) -> List[Coord]:
        x, y, z = coord
        candidates: List[Coord] = []
        for dx, dz in _DIAGONAL:
            # No corner cutting: both side cells must be open at this level.
            if not self.is_walkable(x + dx, y, z) or not self.is_walkable(x, y, z + dz):
                continue
            if self.is_walkable(x + dx, y, z + dz):
                candidates.append((x + dx, y, z + dz))
        return candidates


__all__ = ["BlockSolidFn", "NavGrid"]
