# src/bot_core/angles.py
"""
Pure angle geometry.

Conventions (Minecraft style):
- yaw 0 looks towards +z, yaw 90 towards -x, yaw -90 towards +x.
- pitch -90 looks straight up, +90 straight down.

Two yaw forms are used and callers pick explicitly:
- normalize_angle(): (-180, 180]
- get360(): [0, 360)

These helpers run every tick. They never raise on bad input; NaN or
infinite results collapse to the zero angle.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .snapshot import Coord, EntityInfo, Vec3, block_center


@dataclass(frozen=True)
class Angle:
    yaw: float = 0.0
    pitch: float = 0.0

    def is_finite(self) -> bool:
        return math.isfinite(self.yaw) and math.isfinite(self.pitch)


ZERO_ANGLE = Angle(0.0, 0.0)


def _safe(angle: Angle) -> Angle:
    return angle if angle.is_finite() else ZERO_ANGLE


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_angle(yaw: float) -> float:
    """Fold yaw into (-180, 180]."""
    if not math.isfinite(yaw):
        return 0.0
    result = yaw % 360.0
    if result > 180.0:
        result -= 360.0
    return result


def get360(yaw: float) -> float:
    """Fold yaw into [0, 360)."""
    if not math.isfinite(yaw):
        return 0.0
    result = yaw % 360.0
    # -1e-20 % 360.0 rounds to 360.0
    return 0.0 if result >= 360.0 else result


def clamp_pitch(pitch: float) -> float:
    return max(-90.0, min(90.0, pitch))


def clockwise_difference(start: float, end: float) -> float:
    """Degrees to turn clockwise from start to end, in [0, 360)."""
    return get360(get360(end) - get360(start))


def anticlockwise_difference(start: float, end: float) -> float:
    return get360(get360(start) - get360(end))


def smallest_angle_difference(start: float, end: float) -> float:
    """Unsigned shortest turn between two yaws, in [0, 180]."""
    return min(clockwise_difference(start, end), anticlockwise_difference(start, end))


# ---------------------------------------------------------------------------
# Rotations between points
# ---------------------------------------------------------------------------


def rotation_to(source: Vec3, target: Vec3) -> Angle:
    """
    Yaw/pitch that looks from `source` to `target`.

    Zero horizontal distance (target straight above/below) yields the zero
    angle instead of an undefined yaw.
    """
    dx = target.x - source.x
    dy = target.y - source.y
    dz = target.z - source.z
    horizontal = math.sqrt(dx * dx + dz * dz)
    if horizontal == 0.0 or not math.isfinite(horizontal):
        return ZERO_ANGLE

    yaw = math.degrees(math.atan2(dz, dx)) - 90.0
    pitch = -math.degrees(math.atan2(dy, horizontal))
    return _safe(Angle(yaw, pitch))


def needed_change(start: Angle, end: Angle) -> Angle:
    """Shortest yaw delta (normalized) plus raw pitch delta."""
    yaw_change = normalize_angle(normalize_angle(end.yaw) - normalize_angle(start.yaw))
    return _safe(Angle(yaw_change, end.pitch - start.pitch))


def angle_distance(start: Angle, end: Angle) -> float:
    """Combined magnitude of the change from start to end, in degrees."""
    change = needed_change(start, end)
    return abs(change.yaw) + abs(change.pitch)


def rotation_to_block(eye: Vec3, coord: Coord) -> Angle:
    return rotation_to(eye, block_center(coord))


def rotation_to_entity(eye: Vec3, entity: EntityInfo, eye_offset: float) -> Angle:
    """
    Aim at an entity's body.

    `eye_offset` is added to the entity's feet, capped at 85% of its height
    so tall mobs are hit around the chest.
    """
    offset = min(max(0.0, eye_offset), entity.height * 0.85)
    return rotation_to(eye, entity.position.offset(0.0, offset, 0.0))


def direction_for_rotation(angle: Angle) -> Vec3:
    """Unit look vector for a yaw/pitch pair."""
    yaw = math.radians(angle.yaw)
    pitch = math.radians(angle.pitch)
    cos_pitch = math.cos(pitch)
    return Vec3(
        -math.sin(yaw) * cos_pitch,
        -math.sin(pitch),
        math.cos(yaw) * cos_pitch,
    )


def is_looking_at(
    current: Angle,
    eye: Vec3,
    target: Vec3,
    tolerance: float = 5.0,
) -> bool:
    """True when both yaw and pitch errors towards target are within tolerance."""
    change = needed_change(current, rotation_to(eye, target))
    return abs(change.yaw) <= tolerance and abs(change.pitch) <= tolerance


__all__ = [
    "Angle",
    "ZERO_ANGLE",
    "angle_distance",
    "anticlockwise_difference",
    "clamp_pitch",
    "clockwise_difference",
    "direction_for_rotation",
    "get360",
    "is_looking_at",
    "needed_change",
    "normalize_angle",
    "rotation_to",
    "rotation_to_block",
    "rotation_to_entity",
    "smallest_angle_difference",
]
