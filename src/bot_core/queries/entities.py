# src/bot_core/queries/entities.py
"""
Entity lookups: radius filters, mob/NPC classification, and health parsing
from the floating name tags (armor stands) the server puts above mobs.
"""

from __future__ import annotations

import re
from typing import Callable, Collection, List, Optional

from ..angles import Angle, needed_change, normalize_angle, rotation_to
from ..snapshot import EntityInfo, Vec3, WorldSnapshot
from .text import strip_control_codes

EntityPredicate = Callable[[EntityInfo], bool]

_HEALTH_RE = re.compile(r"([\d,.]+[kM]?)/([\d,.]+[kM]?)\s*❤?\s*$")

_NON_LIVING_KINDS = frozenset({"armor_stand", "item", "fireball", "fishing_bobber"})


def is_mob(entity: EntityInfo) -> bool:
    return entity.kind == "mob" and entity.alive


def is_npc(entity: EntityInfo) -> bool:
    """NPCs are either tagged by the adapter or fake players (uuid v2)."""
    if entity.kind == "npc":
        return True
    return entity.kind == "player" and entity.data.get("uuid_version") == 2


def _parse_amount(text: str) -> float:
    text = text.replace(",", "")
    multiplier = 1.0
    if text.endswith("k"):
        multiplier, text = 1_000.0, text[:-1]
    elif text.endswith("M"):
        multiplier, text = 1_000_000.0, text[:-1]
    try:
        return float(text) * multiplier
    except ValueError:
        return 0.0


def health_from_stand_name(name: str) -> float:
    """Current health from a tag like "Goblin 1,250/2,000❤"; 0 if absent."""
    match = _HEALTH_RE.search(strip_control_codes(name or ""))
    if match is None:
        return 0.0
    return _parse_amount(match.group(1))


def is_stand_dead(name: str) -> bool:
    return health_from_stand_name(name) <= 0


def entities_in_radius(
    world: WorldSnapshot,
    position: Vec3,
    radius: float,
    predicate: Optional[EntityPredicate] = None,
) -> List[EntityInfo]:
    radius_sq = radius * radius
    found = [
        e
        for e in world.entities
        if e.position.distance_sq(position) <= radius_sq
        and (predicate is None or predicate(e))
    ]
    found.sort(key=lambda e: (e.position.distance_sq(position), e.entity_id))
    return found


def closest_entity(
    world: WorldSnapshot,
    position: Vec3,
    predicate: Optional[EntityPredicate] = None,
) -> Optional[EntityInfo]:
    best: Optional[EntityInfo] = None
    best_dist = float("inf")
    for entity in world.entities:
        if predicate is not None and not predicate(entity):
            continue
        dist = entity.position.distance_sq(position)
        if dist < best_dist:
            best, best_dist = entity, dist
    return best


def entity_under_stand(world: WorldSnapshot, stand: EntityInfo) -> Optional[EntityInfo]:
    """Living entity whose body overlaps the name tag's column."""
    for entity in world.entities:
        if entity.entity_id == stand.entity_id or entity.kind in _NON_LIVING_KINDS:
            continue
        if entity.kind == "player":
            continue
        dx = abs(entity.position.x - stand.position.x)
        dz = abs(entity.position.z - stand.position.z)
        dy = stand.position.y - entity.position.y
        if dx <= 0.6 and dz <= 0.6 and -0.5 <= dy <= 3.0:
            return entity
    return None


def find_named_mobs(
    world: WorldSnapshot,
    names: Collection[str],
    ignore_ids: Collection[int] = (),
    distance_weight: float = 0.5,
    angle_weight: float = 0.5,
) -> List[EntityInfo]:
    """
    Living mobs whose name tag contains one of `names`.

    Sorted by distance * distance_weight + |yaw change| * angle_weight.
    """
    if not names:
        return []

    candidates: List[EntityInfo] = []
    seen: set[int] = set()
    for entity in world.entities:
        label = strip_control_codes(entity.name)
        if not any(name in label for name in names):
            continue
        if entity.kind == "armor_stand":
            if is_stand_dead(entity.name):
                continue
            body = entity_under_stand(world, entity)
        elif is_mob(entity):
            body = entity
        else:
            continue
        if body is None or not body.alive or body.entity_id in ignore_ids:
            continue
        if body.health is not None and body.health <= 0:
            continue
        if body.entity_id not in seen:
            seen.add(body.entity_id)
            candidates.append(body)

    player = world.player_pos
    facing = normalize_angle(world.yaw)

    def cost(entity: EntityInfo) -> float:
        yaw_to = rotation_to(player, entity.position).yaw
        yaw_change = abs(needed_change(Angle(facing, 0.0), Angle(yaw_to, 0.0)).yaw)
        return player.distance_to(entity.position) * distance_weight + yaw_change * angle_weight

    candidates.sort(key=lambda e: (cost(e), e.entity_id))
    return candidates


__all__ = [
    "closest_entity",
    "entities_in_radius",
    "entity_under_stand",
    "find_named_mobs",
    "health_from_stand_name",
    "is_mob",
    "is_npc",
    "is_stand_dead",
]
