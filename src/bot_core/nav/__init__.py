# src/bot_core/nav/__init__.py
"""
Navigation subsystem for bot_core.

Provides:
- NavGrid: walkability queries over a WorldSnapshot
- find_path: A* over NavGrid
- PathSegment / plan_path: paths cut into chained segments
- PathExecutor: tick-by-tick walking of queued segments
- Pathfinder: plan, queue and report in one helper
"""

from __future__ import annotations

from .executor import PathExecutor, PathExecutorConfig, PathState
from .grid import BlockSolidFn, NavGrid
from .mover import PathSegment, current_coord_from_snapshot, path_to_segments, plan_path
from .pathfinder import PathfindingResult, find_path
from .planner import Pathfinder

__all__ = [
    "BlockSolidFn",
    "NavGrid",
    "PathExecutor",
    "PathExecutorConfig",
    "PathSegment",
    "PathState",
    "Pathfinder",
    "PathfindingResult",
    "current_coord_from_snapshot",
    "find_path",
    "path_to_segments",
    "plan_path",
]
