# src/bot_core/target.py
"""
Aim targets for the RotationController.

A Target is resolved again on every tick against the current snapshot,
because entities move. Four kinds exist:

- PositionTarget: a fixed point.
- EntityTarget: a live entity, aimed at feet + eye_offset.
- BlockTarget: the center of a block.
- AngleTarget: an explicit yaw/pitch.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Union

from .angles import Angle, rotation_to, rotation_to_block, rotation_to_entity
from .snapshot import Coord, Vec3, WorldSnapshot, block_center


@dataclass(frozen=True)
class PositionTarget:
    position: Vec3

    def resolve_position(self, world: WorldSnapshot) -> Optional[Vec3]:
        return self.position

    def resolve_angle(self, world: WorldSnapshot) -> Optional[Angle]:
        return rotation_to(world.eye_position, self.position)


@dataclass(frozen=True)
class EntityTarget:
    entity_id: int
    eye_offset: float = 1.2

    def resolve_position(self, world: WorldSnapshot) -> Optional[Vec3]:
        entity = world.entity_by_id(self.entity_id)
        if entity is None or not entity.alive:
            return None
        return entity.position.offset(0.0, self.eye_offset, 0.0)

    def resolve_angle(self, world: WorldSnapshot) -> Optional[Angle]:
        entity = world.entity_by_id(self.entity_id)
        if entity is None or not entity.alive:
            return None
        return rotation_to_entity(world.eye_position, entity, self.eye_offset)

    @staticmethod
    def with_random_offset(entity_id: int, rng: random.Random) -> "EntityTarget":
        """Offset between 0.75 and 1.5 blocks above the feet."""
        return EntityTarget(entity_id, (1.0 + rng.random()) * 0.75)


@dataclass(frozen=True)
class BlockTarget:
    coord: Coord

    def resolve_position(self, world: WorldSnapshot) -> Optional[Vec3]:
        return block_center(self.coord)

    def resolve_angle(self, world: WorldSnapshot) -> Optional[Angle]:
        return rotation_to_block(world.eye_position, self.coord)


@dataclass(frozen=True)
class AngleTarget:
    angle: Angle

    def resolve_position(self, world: WorldSnapshot) -> Optional[Vec3]:
        return None

    def resolve_angle(self, world: WorldSnapshot) -> Optional[Angle]:
        return self.angle


Target = Union[PositionTarget, EntityTarget, BlockTarget, AngleTarget]


__all__ = [
    "AngleTarget",
    "BlockTarget",
    "EntityTarget",
    "PositionTarget",
    "Target",
]
