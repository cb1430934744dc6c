# src/bot_core/snapshot.py
"""
Snapshot structures for bot_core.

The external world/actor adapter assembles a WorldSnapshot between ticks and
hands it to the core inside a TickEvent. Every Feature, Macro and helper reads
the same snapshot during a tick and never mutates it.

Design goals:
- Keep the types close to what a client-protocol library exposes.
- Sparse block storage: any coordinate not present is air.
- No game-mode semantics here (ore tables, NPC names). Those live in
  bot_core.queries and the features.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

# (x, y, z) integer block coordinates
Coord = Tuple[int, int, int]

# Height of the player's eyes above the feet position.
EYE_HEIGHT = 1.62

AIR_STATE_ID = 0


# ---------------------------------------------------------------------------
# Vector helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Vec3:
    """Immutable 3D float vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def offset(self, dx: float, dy: float, dz: float) -> "Vec3":
        return Vec3(self.x + dx, self.y + dy, self.z + dz)

    def add(self, other: "Vec3") -> "Vec3":
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def subtract(self, other: "Vec3") -> "Vec3":
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def scale(self, factor: float) -> "Vec3":
        return Vec3(self.x * factor, self.y * factor, self.z * factor)

    def distance_sq(self, other: "Vec3") -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        dz = self.z - other.z
        return dx * dx + dy * dy + dz * dz

    def distance_to(self, other: "Vec3") -> float:
        return math.sqrt(self.distance_sq(other))

    def horizontal_distance_to(self, other: "Vec3") -> float:
        return math.hypot(self.x - other.x, self.z - other.z)

    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def floored(self) -> Coord:
        return (math.floor(self.x), math.floor(self.y), math.floor(self.z))

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.x, self.y, self.z))

    @staticmethod
    def of(coord: Coord) -> "Vec3":
        return Vec3(float(coord[0]), float(coord[1]), float(coord[2]))


def block_center(coord: Coord) -> Vec3:
    """Center point of the block at `coord`."""
    return Vec3(coord[0] + 0.5, coord[1] + 0.5, coord[2] + 0.5)


def pack_xz(x: int, z: int) -> int:
    """Pack two block coordinates into a single int key (x, z)."""
    return ((x & 0xFFFFFFFF) << 32) | (z & 0xFFFFFFFF)


# ---------------------------------------------------------------------------
# World content types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BlockState:
    """A block as seen by the client: numeric state id plus a readable name."""

    state_id: int
    name: str = "unknown"

    @property
    def is_air(self) -> bool:
        return self.state_id == AIR_STATE_ID or self.name == "air"


AIR = BlockState(AIR_STATE_ID, "air")


@dataclass
class EntityInfo:
    """
    Entity visible to the client.

    kind is a coarse category ("player", "mob", "npc", "armor_stand", "item").
    `name` is the display/custom name with formatting codes kept as sent.
    """

    entity_id: int
    kind: str
    name: str
    position: Vec3
    height: float = 1.8
    health: Optional[float] = None
    alive: bool = True
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ItemStack:
    """
    Inventory or container slot content.

    `slot` is the index inside the owning container. For the player inventory
    slots 0..8 are the hotbar.
    """

    slot: int
    name: str
    display_name: str = ""
    count: int = 1
    lore: List[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.display_name or self.name


@dataclass
class WindowInfo:
    """Currently open container window (chest menu, NPC GUI, ...)."""

    window_id: int
    title: str
    kind: str = "chest"
    slots: List[Optional[ItemStack]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass
class WorldSnapshot:
    """
    Read-only projection of the world for a single tick.

    Owned and replaced by the adapter between ticks; the core treats it as
    immutable while a tick is processed.
    """

    tick: int = 0
    player_pos: Vec3 = field(default_factory=lambda: Vec3(0.5, 64.0, 0.5))
    velocity: Vec3 = field(default_factory=Vec3)
    yaw: float = 0.0
    pitch: float = 0.0
    on_ground: bool = True

    blocks: Dict[Coord, BlockState] = field(default_factory=dict)
    entities: List[EntityInfo] = field(default_factory=list)
    inventory: List[ItemStack] = field(default_factory=list)
    held_slot: int = 0
    open_window: Optional[WindowInfo] = None

    tablist: List[str] = field(default_factory=list)
    scoreboard_title: str = ""
    scoreboard: List[str] = field(default_factory=list)

    # Anything else the adapter wants to expose (server name, ping, ...)
    context: Dict[str, Any] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------

    @property
    def eye_position(self) -> Vec3:
        return self.player_pos.offset(0.0, EYE_HEIGHT, 0.0)

    @property
    def feet_coord(self) -> Coord:
        return self.player_pos.floored()

    @property
    def horizontal_speed(self) -> float:
        return math.hypot(self.velocity.x, self.velocity.z)

    def block_at(self, coord: Coord) -> BlockState:
        """Block at `coord`; unknown coordinates are air."""
        return self.blocks.get(coord, AIR)

    def held_item(self) -> Optional[ItemStack]:
        return self.item_in_slot(self.held_slot)

    def item_in_slot(self, slot: int) -> Optional[ItemStack]:
        for stack in self.inventory:
            if stack.slot == slot:
                return stack
        return None

    def entity_by_id(self, entity_id: int) -> Optional[EntityInfo]:
        for entity in self.entities:
            if entity.entity_id == entity_id:
                return entity
        return None

    def hotbar(self) -> List[ItemStack]:
        return [s for s in self.inventory if 0 <= s.slot <= 8]

    def with_blocks(self, blocks: Iterable[Tuple[Coord, BlockState]]) -> "WorldSnapshot":
        """Return a shallow copy with additional/overridden blocks."""
        merged = dict(self.blocks)
        merged.update(dict(blocks))
        copy = WorldSnapshot(**{**self.__dict__, "blocks": merged})
        return copy


__all__ = [
    "AIR",
    "AIR_STATE_ID",
    "BlockState",
    "Coord",
    "EYE_HEIGHT",
    "EntityInfo",
    "ItemStack",
    "Vec3",
    "WindowInfo",
    "WorldSnapshot",
    "block_center",
    "pack_xz",
]
