# convert paths into executable path segments
# src/bot_core/nav/mover.py
"""
Mover: turn A* results into PathSegments for the PathExecutor.

Owns:
- PathSegment (start, goal, ordered block path)
- splitting long paths into chained segments
- plan_path(): grid + A* + segmenting in one call for features

It does NOT press keys; that is the PathExecutor's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..collision import default_is_solid_block
from ..snapshot import Coord, WorldSnapshot
from .grid import BlockSolidFn, NavGrid
from .pathfinder import PathfindingResult, find_path

log = logging.getLogger(__name__)


@dataclass
class PathSegment:
    """
    A continuous walk from start to goal.

    `path` holds feet coordinates in walking order, first == start and
    last == goal.
    """

    start: Coord
    goal: Coord
    path: List[Coord] = field(default_factory=list)

    def is_at_goal(self, coord: Coord) -> bool:
        return coord == self.goal

    @staticmethod
    def from_path(path: List[Coord]) -> "PathSegment":
        if not path:
            raise ValueError("cannot build a PathSegment from an empty path")
        return PathSegment(start=path[0], goal=path[-1], path=list(path))


def path_to_segments(
    path_result: PathfindingResult,
    *,
    max_segment_length: int = 64,
) -> List[PathSegment]:
    """
    Split a successful path into chained segments.

    Consecutive segments share their boundary coordinate so that each new
    segment starts exactly at the previous goal.
    """
    if not path_result.success or not path_result.path:
        return []

    path = path_result.path
    step = max(2, max_segment_length)
    segments: List[PathSegment] = []
    begin = 0
    while begin < len(path) - 1:
        end = min(begin + step - 1, len(path) - 1)
        segments.append(PathSegment.from_path(path[begin : end + 1]))
        begin = end
    if not segments:
        segments.append(PathSegment.from_path(path))
    return segments


def current_coord_from_snapshot(world: WorldSnapshot) -> Coord:
    """Feet block of the player."""
    return world.feet_coord


def plan_path(
    world: WorldSnapshot,
    goal: Coord,
    *,
    start: Optional[Coord] = None,
    is_solid_block: BlockSolidFn = default_is_solid_block,
    max_steps: int = 4096,
    max_segment_length: int = 64,
) -> List[PathSegment]:
    """Plan from the player's feet (or `start`) to `goal`; [] if unreachable."""
    origin = start if start is not None else current_coord_from_snapshot(world)
    grid = NavGrid(world=world, is_solid_block=is_solid_block)
    result = find_path(grid, origin, goal, max_steps=max_steps)
    if not result.success:
        log.debug("No path %s -> %s (%s)", origin, goal, result.reason)
        return []
    return path_to_segments(result, max_segment_length=max_segment_length)


__all__ = [
    "PathSegment",
    "current_coord_from_snapshot",
    "path_to_segments",
    "plan_path",
]
