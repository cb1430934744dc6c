# A* pathfinding over NavGrid
# src/bot_core/nav/pathfinder.py
"""
A* pathfinding over NavGrid.

- Octile distance heuristic with a small vertical term.
- Cardinal + diagonal moves (diagonals cost sqrt(2)), step-ups cost extra so
  flat detours win over needless jumps.
- max_steps guard so a blocked goal cannot stall a tick.
"""

from __future__ import annotations

import heapq
import itertools
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..snapshot import Coord
from .grid import NavGrid

_SQRT2 = math.sqrt(2.0)
JUMP_PENALTY = 0.5
FALL_PENALTY = 0.2


@dataclass
class PathfindingResult:
    """Structured result for a pathfinding attempt."""

    path: List[Coord]
    success: bool
    reason: Optional[str] = None
    expanded: int = 0


def _heuristic(a: Coord, b: Coord) -> float:
    dx = abs(a[0] - b[0])
    dz = abs(a[2] - b[2])
    flat = (dx + dz) + (_SQRT2 - 2.0) * min(dx, dz)
    return flat + abs(a[1] - b[1]) * 0.5


def _move_cost(a: Coord, b: Coord) -> float:
    diagonal = a[0] != b[0] and a[2] != b[2]
    cost = _SQRT2 if diagonal else 1.0
    dy = b[1] - a[1]
    if dy > 0:
        cost += JUMP_PENALTY * dy
    elif dy < 0:
        cost += FALL_PENALTY * -dy
    return cost


def find_path(
    grid: NavGrid,
    start: Coord,
    goal: Coord,
    max_steps: int = 4096,
) -> PathfindingResult:
    """
    A* search from start to goal (feet coordinates).

    Returns a PathfindingResult whose path includes start and goal, or an
    empty path with a reason ("goal_not_walkable", "no_path_found",
    "max_steps_exhausted"). Never touches the adapter.
    """
    if start == goal:
        return PathfindingResult(path=[start], success=True)
    if not grid.is_walkable(*goal):
        return PathfindingResult(path=[], success=False, reason="goal_not_walkable")

    counter = itertools.count()
    open_heap: List[tuple] = [(_heuristic(start, goal), next(counter), start)]
    came_from: Dict[Coord, Coord] = {}
    g_score: Dict[Coord, float] = {start: 0.0}
    closed: set[Coord] = set()

    steps = 0
    while open_heap and steps < max_steps:
        _, _, current = heapq.heappop(open_heap)
        if current in closed:
            continue
        closed.add(current)
        steps += 1

        if current == goal:
            return PathfindingResult(
                path=_reconstruct_path(came_from, current),
                success=True,
                expanded=steps,
            )

        for nxt in grid.neighbors(current):
            if nxt in closed:
                continue
            tentative_g = g_score[current] + _move_cost(current, nxt)
            if tentative_g < g_score.get(nxt, math.inf):
                came_from[nxt] = current
                g_score[nxt] = tentative_g
                heapq.heappush(
                    open_heap,
                    (tentative_g + _heuristic(nxt, goal), next(counter), nxt),
                )

    reason = "max_steps_exhausted" if steps >= max_steps else "no_path_found"
    return PathfindingResult(path=[], success=False, reason=reason, expanded=steps)


def _reconstruct_path(came_from: Dict[Coord, Coord], current: Coord) -> List[Coord]:
    path: List[Coord] = [current]
    while current in came_from:
        current = came_from[current]
        path.append(current)
    path.reverse()
    return path


__all__ = ["PathfindingResult", "find_path"]
