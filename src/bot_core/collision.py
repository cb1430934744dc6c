# src/bot_core/collision.py
"""
Block collision and visibility helpers for bot_core.

Defines how movement and aiming decide whether a block is "solid" or
"see-through":

- Passable blocks (air, water, flowers, torches, ...) do not collide.
- Transparent blocks (air, glass, leaves, ...) do not block line of sight.

Everything works on a WorldSnapshot and never raises; unknown coordinates
are air.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from .snapshot import BlockState, Coord, Vec3, WorldSnapshot, block_center

TRANSPARENT_BLOCKS: FrozenSet[str] = frozenset(
    {
        "air",
        "water",
        "lava",
        "glass",
        "stained_glass",
        "glass_pane",
        "stained_glass_pane",
        "ice",
        "leaves",
        "vine",
        "ladder",
        "torch",
        "redstone_torch",
    }
)

PASSABLE_BLOCKS: FrozenSet[str] = frozenset(
    {
        "air",
        "water",
        "flowing_water",
        "tallgrass",
        "double_plant",
        "red_flower",
        "yellow_flower",
        "torch",
        "redstone_torch",
        "vine",
        "ladder",
        "snow_layer",
        "carpet",
        "rail",
        "web",
    }
)


def _is_air_like(block: Optional[BlockState]) -> bool:
    return block is None or block.is_air


@dataclass
class BlockCollisionProfile:
    """
    Collision/visibility policy for navigation and aiming.

    Parameters:
        passable: block names the player walks through.
        transparent: block names rays pass through.
    """

    passable: FrozenSet[str] = field(default_factory=lambda: PASSABLE_BLOCKS)
    transparent: FrozenSet[str] = field(default_factory=lambda: TRANSPARENT_BLOCKS)

    def is_solid_block(self, x: int, y: int, z: int, world: WorldSnapshot) -> bool:
        block = world.block_at((x, y, z))
        if _is_air_like(block):
            return False
        return block.name not in self.passable

    def is_transparent(self, block: BlockState) -> bool:
        return _is_air_like(block) or block.name in self.transparent

    # ------------------------------------------------------------------
    # Standing / walking
    # ------------------------------------------------------------------

    def can_stand_on(self, coord: Coord, world: WorldSnapshot) -> bool:
        """Solid floor at coord with two free blocks above."""
        x, y, z = coord
        return (
            self.is_solid_block(x, y, z, world)
            and not self.is_solid_block(x, y + 1, z, world)
            and not self.is_solid_block(x, y + 2, z, world)
        )

    def can_walk_through(self, coord: Coord, world: WorldSnapshot) -> bool:
        x, y, z = coord
        return not self.is_solid_block(x, y, z, world) and not self.is_solid_block(
            x, y + 1, z, world
        )

    def can_walk_between(self, start: Vec3, end: Vec3, world: WorldSnapshot) -> bool:
        """
        March from start to end in 0.25 block steps and check that every
        body position (feet + head) is free.
        """
        delta = end.subtract(start)
        length = delta.length()
        if length == 0.0 or not math.isfinite(length):
            return self.can_walk_through(start.floored(), world)

        steps = max(1, int(math.ceil(length / 0.25)))
        for i in range(steps + 1):
            point = start.add(delta.scale(i / steps))
            if not self.can_walk_through(point.floored(), world):
                return False
        return True

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    def has_line_of_sight(
        self,
        eye: Vec3,
        target: Vec3,
        world: WorldSnapshot,
        step: float = 0.25,
        target_coord: Optional[Coord] = None,
    ) -> bool:
        """
        Discrete ray march from eye to target.

        Every sampled block that is neither transparent nor the target block
        itself blocks the view.
        """
        delta = target.subtract(eye)
        length = delta.length()
        if length == 0.0 or not math.isfinite(length) or step <= 0:
            return True

        start_coord = eye.floored()
        steps = int(length / step)
        for i in range(1, steps + 1):
            coord = eye.add(delta.scale((i * step) / length)).floored()
            if coord == target_coord or coord == start_coord:
                continue
            if not self.is_transparent(world.block_at(coord)):
                return False
        return True

    def can_see_block(
        self,
        eye: Vec3,
        coord: Coord,
        world: WorldSnapshot,
        step: float = 0.25,
    ) -> bool:
        return self.has_line_of_sight(
            eye, block_center(coord), world, step=step, target_coord=coord
        )

    def has_visible_side(self, coord: Coord, world: WorldSnapshot) -> bool:
        """At least one neighbour of the block is see-through."""
        x, y, z = coord
        for dx, dy, dz in (
            (1, 0, 0),
            (-1, 0, 0),
            (0, 1, 0),
            (0, -1, 0),
            (0, 0, 1),
            (0, 0, -1),
        ):
            if self.is_transparent(world.block_at((x + dx, y + dy, z + dz))):
                return True
        return False


# ---------------------------------------------------------------------------
# Default profile & convenience entry point
# ---------------------------------------------------------------------------

_DEFAULT_PROFILE = BlockCollisionProfile()


def default_block_collision_profile() -> BlockCollisionProfile:
    return _DEFAULT_PROFILE


def default_is_solid_block(x: int, y: int, z: int, world: WorldSnapshot) -> bool:
    """Convenience function for use as a BlockSolidFn in nav/grid."""
    return _DEFAULT_PROFILE.is_solid_block(x, y, z, world)


__all__ = [
    "BlockCollisionProfile",
    "PASSABLE_BLOCKS",
    "TRANSPARENT_BLOCKS",
    "default_block_collision_profile",
    "default_is_solid_block",
]
