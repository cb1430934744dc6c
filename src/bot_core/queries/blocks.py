# src/bot_core/queries/blocks.py
"""
Block lookups used by the mining and navigation features.

Covers:
- scanning a cube around a point for blocks with a positive priority
- block strength / mining time tables
- the two block ranking formulas (selection score and mining cost), with
  every weight passed in so the numbers live in configuration
- dig face selection and walkable spots around a position

All functions read a WorldSnapshot and return plain values or empty lists.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from ..angles import Angle, angle_distance, normalize_angle, rotation_to_block
from ..collision import BlockCollisionProfile, default_block_collision_profile
from ..snapshot import Coord, Vec3, WorldSnapshot, block_center

# Offsets (inside the unit block) of the point aimed at for each face.
BLOCK_SIDES: Dict[str, Tuple[float, float, float]] = {
    "down": (0.5, 0.01, 0.5),
    "up": (0.5, 0.99, 0.5),
    "west": (0.01, 0.5, 0.5),
    "east": (0.99, 0.5, 0.5),
    "north": (0.5, 0.5, 0.01),
    "south": (0.5, 0.5, 0.99),
}

_STRENGTH_GROUPS: Tuple[Tuple[int, Tuple[int, ...]], ...] = (
    (600, (57, 41, 152, 22, 133, 42, 173)),  # ore blocks
    (500, (19, 28707, 37023)),  # sponge, gray mithril
    (50, (1,)),  # hard stone
    (2000, (16385,)),  # titanium
    (1500, (12323,)),  # blue mithril
    (800, (168, 4264, 8360)),  # green mithril
    (3800, (95, 160, 16544, 16479)),  # opal, topaz
    (3000, (4191, 4256, 12383, 12448, 20575, 20640, 41055, 41120)),
    (4800, (8287, 8352)),  # jasper
    (5200, (45151, 45216, 53343, 53408, 61535, 61600, 49247, 49312)),
    (2300, (57504, 57439)),  # ruby
)

BLOCK_STRENGTH: Dict[int, int] = {
    state_id: strength
    for strength, ids in _STRENGTH_GROUPS
    for state_id in ids
}

DEFAULT_BLOCK_STRENGTH = 5000


@dataclass
class SelectionWeights:
    """Weights of the visible-block selection score."""

    priority: float = 100.0
    distance: float = 10.0
    height: float = 5.0
    angle: float = 0.5


@dataclass
class MiningCostWeights:
    """Coefficients of the mining cost (lower is better)."""

    mining: float = 1.0
    angle: float = 0.1
    distance: float = 0.1


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def block_strength(state_id: int) -> int:
    return BLOCK_STRENGTH.get(state_id, DEFAULT_BLOCK_STRENGTH)


def mining_time_ticks(state_id: int, mining_speed: float, glide_offset: int = 0) -> int:
    """Ticks needed to break a block at the given mining speed."""
    if mining_speed <= 0:
        return 0
    return int(math.ceil(block_strength(state_id) * 30 / mining_speed)) + glide_offset


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------


def find_priority_blocks(
    world: WorldSnapshot,
    priorities: Mapping[int, int],
    radius: int = 5,
    center: Optional[Coord] = None,
) -> List[Coord]:
    """Coordinates within `radius` whose state id has priority > 0."""
    if not priorities:
        return []
    origin = center if center is not None else world.eye_position.floored()
    found: List[Coord] = []
    # Sparse worlds: walk the known blocks instead of the whole cube.
    for coord, block in world.blocks.items():
        if priorities.get(block.state_id, 0) <= 0:
            continue
        if all(abs(coord[i] - origin[i]) <= radius for i in range(3)):
            found.append(coord)
    found.sort()
    return found


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


def selection_score(
    priority: int,
    distance: float,
    height_delta: float,
    angle_delta: float,
    weights: Optional[SelectionWeights] = None,
) -> float:
    """priority*w - distance*w - |height|*w - angle*w, floored at zero."""
    w = weights or SelectionWeights()
    score = (
        priority * w.priority
        - distance * w.distance
        - abs(height_delta) * w.height
        - angle_delta * w.angle
    )
    return max(0.0, score)


def mining_cost(
    state_id: int,
    priority: int,
    mining_speed: float,
    angle_change: float,
    distance_sq: float,
    weights: Optional[MiningCostWeights] = None,
) -> float:
    """(hardness/speed*w + angle*w + dist²*w) / priority; inf when unusable."""
    if priority <= 0 or mining_speed <= 0:
        return math.inf
    w = weights or MiningCostWeights()
    cost = (
        block_strength(state_id) / float(mining_speed) * w.mining
        + angle_change * w.angle
        + distance_sq * w.distance
    )
    return cost / float(priority)


def find_mineable_blocks(
    world: WorldSnapshot,
    priorities: Mapping[int, int],
    mining_speed: float,
    reach: float = 4.5,
    scan_radius: int = 5,
    selection: Optional[SelectionWeights] = None,
    costs: Optional[MiningCostWeights] = None,
    profile: Optional[BlockCollisionProfile] = None,
    ray_step: float = 0.25,
) -> List[Tuple[Coord, float, float]]:
    """
    Blocks in reach that the eye can see, best first.

    Ranked by selection score; mining cost breaks ties. Returns
    (coord, score, cost) triples.
    """
    profile = profile or default_block_collision_profile()
    eye = world.eye_position
    facing = Angle(world.yaw, world.pitch)
    ranked: List[Tuple[Coord, float, float]] = []
    for coord in find_priority_blocks(world, priorities, radius=scan_radius):
        center = block_center(coord)
        distance = eye.distance_to(center)
        if distance > reach:
            continue
        if not profile.can_see_block(eye, coord, world, step=ray_step):
            continue
        state_id = world.block_at(coord).state_id
        priority = priorities.get(state_id, 0)
        aim = rotation_to_block(eye, coord)
        yaw_delta = abs(normalize_angle(aim.yaw - facing.yaw))
        score = selection_score(priority, distance, center.y - eye.y, yaw_delta, selection)
        cost = mining_cost(
            state_id, priority, mining_speed, angle_distance(facing, aim), distance * distance, costs
        )
        ranked.append((coord, score, cost))
    ranked.sort(key=lambda item: (-item[1], item[2], item[0]))
    return ranked


# ---------------------------------------------------------------------------
# Faces & standing spots
# ---------------------------------------------------------------------------


def best_dig_face(eye: Vec3, coord: Coord) -> str:
    """
    Face of the block the player is looking into, from the dominant axis of
    the eye -> block offset.
    """
    center = block_center(coord)
    dx = center.x - eye.x
    dy = center.y - eye.y
    dz = center.z - eye.z
    ax, ay, az = abs(dx), abs(dy), abs(dz)
    if ay >= ax and ay >= az:
        return "down" if dy > 0 else "up"
    if ax >= az:
        return "west" if dx > 0 else "east"
    return "north" if dz > 0 else "south"


def side_position(coord: Coord, face: str) -> Vec3:
    ox, oy, oz = BLOCK_SIDES.get(face, (0.5, 0.5, 0.5))
    return Vec3(coord[0] + ox, coord[1] + oy, coord[2] + oz)


def closest_visible_side(
    world: WorldSnapshot,
    coord: Coord,
    profile: Optional[BlockCollisionProfile] = None,
) -> Optional[Vec3]:
    """Closest face point of `coord` that the player's eye can see."""
    profile = profile or default_block_collision_profile()
    eye = world.eye_position
    best: Optional[Vec3] = None
    best_dist = math.inf
    for face in BLOCK_SIDES:
        point = side_position(coord, face)
        if not profile.has_line_of_sight(eye, point, world, target_coord=coord):
            continue
        dist = eye.distance_sq(point)
        if dist < best_dist:
            best, best_dist = point, dist
    return best


def walkable_blocks_around(
    world: WorldSnapshot,
    center: Coord,
    horizontal: int = 1,
    down: int = 4,
    profile: Optional[BlockCollisionProfile] = None,
) -> List[Coord]:
    """
    Standing positions (feet coordinates) around `center`.

    A feet coordinate qualifies when the block below is solid and the feet
    and head blocks are free. Sorted by distance to `center`.
    """
    profile = profile or default_block_collision_profile()
    cx, cy, cz = center
    spots: List[Coord] = []
    for dy in range(-down, 0):
        for dx in range(-horizontal, horizontal + 1):
            for dz in range(-horizontal, horizontal + 1):
                floor = (cx + dx, cy + dy, cz + dz)
                if profile.can_stand_on(floor, world):
                    spots.append((floor[0], floor[1] + 1, floor[2]))
    spots.sort(key=lambda c: ((c[0] - cx) ** 2 + (c[1] - cy) ** 2 + (c[2] - cz) ** 2, c))
    return spots


__all__ = [
    "BLOCK_SIDES",
    "BLOCK_STRENGTH",
    "MiningCostWeights",
    "SelectionWeights",
    "best_dig_face",
    "block_strength",
    "closest_visible_side",
    "find_mineable_blocks",
    "find_priority_blocks",
    "mining_cost",
    "mining_time_ticks",
    "selection_score",
    "side_position",
    "walkable_blocks_around",
]
