# src/bot_core/nav/planner.py
"""
Pathfinder: plan a path on the current snapshot, queue its segments on the
shared PathExecutor and report the outcome on later ticks.

Features call go_to() once, then poll is_running() / succeeded() / failed()
from their own tick handlers. Planning failures are reported the same way
as walking failures.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..collision import default_is_solid_block
from ..snapshot import Coord, WorldSnapshot
from .executor import PathExecutor
from .grid import BlockSolidFn
from .mover import plan_path

log = logging.getLogger(__name__)


class Pathfinder:
    def __init__(
        self,
        executor: PathExecutor,
        is_solid_block: BlockSolidFn = default_is_solid_block,
        max_steps: int = 4096,
    ) -> None:
        self._executor = executor
        self._is_solid_block = is_solid_block
        self._max_steps = max_steps
        self._planning_failed = False
        self.goal: Optional[Coord] = None

    def go_to(self, world: WorldSnapshot, goal: Coord, allow_sprint: Optional[bool] = None) -> bool:
        """Replace whatever is being walked with a fresh path to `goal`."""
        self._executor.stop()
        self.goal = goal
        self._planning_failed = False

        segments = plan_path(
            world,
            goal,
            is_solid_block=self._is_solid_block,
            max_steps=self._max_steps,
        )
        if not segments:
            log.info("No path from %s to %s", world.feet_coord, goal)
            self._planning_failed = True
            return False

        for segment in segments:
            self._executor.queue_path(segment)
        self._executor.start(allow_sprint)
        return True

    def stop(self) -> None:
        self._executor.stop()
        self.goal = None

    def is_running(self) -> bool:
        return self._executor.is_running()

    def succeeded(self) -> bool:
        return not self._planning_failed and self._executor.ended()

    def failed(self) -> bool:
        return self._planning_failed or self._executor.failed()


__all__ = ["Pathfinder"]
