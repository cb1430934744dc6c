# src/bot_core/nav/executor.py
"""
PathExecutor: consume a FIFO of PathSegments and, once per tick, emit
movement keys and aim requests that walk the player along the current one.

Per tick:
1. Stuck check: horizontal speed below threshold for longer than the stuck
   window fails the whole walk.
2. Progress: the feet position is looked up in a (x, z) -> [(y, index)] map
   built when the segment was loaded; a later index advances the target.
3. Walked-past: if the player is closer to the waypoint after the target
   than the target itself is, the target advances early.
4. Aim: yaw error above threshold refreshes a rotation request toward a
   look-ahead point, with a duration that grows with distance.
5. Keys: forward always, strafe to correct yaw, jump over one-block
   obstacles, sprint only when roughly aligned and not jumping.

Callers sample failed()/ended() after is_running() turns False.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import Deque, Dict, List, Optional, Tuple

from ..adapter import WorldAdapter, release_all_keys
from ..angles import Angle, normalize_angle, rotation_to
from ..clock import Clock, TimeFn
from ..collision import BlockCollisionProfile, default_block_collision_profile
from ..errors import PathContractError
from ..rotation import RotationController
from ..snapshot import Coord, Vec3, WorldSnapshot, pack_xz
from ..target import AngleTarget
from .mover import PathSegment

log = logging.getLogger(__name__)


class PathState(Enum):
    STARTING_PATH = auto()
    TRAVERSING = auto()
    JUMPING = auto()
    WAITING = auto()
    END = auto()


@dataclass
class PathExecutorConfig:
    stuck_speed: float = 0.05
    stuck_time_ms: float = 1000.0
    rotation_error_deg: float = 3.0
    sprint_max_error_deg: float = 40.0
    lookahead_blocks: float = 5.0
    min_rotation_ms: float = 150.0
    max_rotation_ms: float = 400.0
    rotation_ms_per_block: float = 25.0
    pitch_refresh_ms: float = 1000.0
    allow_sprint: bool = True


def _center(coord: Coord) -> Vec3:
    return Vec3(coord[0] + 0.5, float(coord[1]), coord[2] + 0.5)


class PathExecutor:
    """
    Frame-by-frame path follower.

    Responsibilities:
    - Own the segment queue and the index into the current segment.
    - Press/release movement keys through the adapter.
    - Ask the RotationController to face the path.

    It does NOT plan paths (see nav.mover.plan_path).
    """

    def __init__(
        self,
        adapter: WorldAdapter,
        rotation: RotationController,
        time_fn: TimeFn,
        rng: Optional[random.Random] = None,
        config: Optional[PathExecutorConfig] = None,
        profile: Optional[BlockCollisionProfile] = None,
    ) -> None:
        self._adapter = adapter
        self._rotation = rotation
        self._time_fn = time_fn
        self._rng = rng or random.Random()
        self.config = config or PathExecutorConfig()
        self._profile = profile or default_block_collision_profile()

        self._queue: Deque[PathSegment] = deque()
        self._current: Optional[PathSegment] = None
        self._index_map: Dict[int, List[Tuple[int, int]]] = {}
        self._previous_index: int = -1
        self._target_index: int = 0
        self._last_goal: Optional[Coord] = None

        self._stuck_clock = Clock(time_fn)
        self._pitch_clock = Clock(time_fn)
        self._pitch: float = 12.0

        self._enabled: bool = False
        self._failed: bool = False
        self._succeeded: bool = False
        self.state: PathState = PathState.END
        self.allow_sprint: bool = self.config.allow_sprint

    # ------------------------------------------------------------------
    # Queue management
    # ------------------------------------------------------------------

    def queue_path(self, segment: PathSegment) -> bool:
        """
        Append a segment.

        An empty segment marks the walk as failed. A segment that does not
        start where the previously queued one ends is a planning bug: the
        executor is failed and stopped, then PathContractError is raised.
        """
        if not segment.path:
            log.warning("Refusing empty path segment")
            self._failed = True
            return False

        if self._last_goal is not None and segment.start != self._last_goal:
            details = {"expected_start": self._last_goal, "got_start": segment.start}
            log.error("Path segment does not continue previous goal: %s", details)
            self.stop()
            self._failed = True
            raise PathContractError(code="segment_start_mismatch", details=details)

        self._queue.append(segment)
        self._last_goal = segment.goal
        return True

    def clear_queue(self) -> None:
        self._queue.clear()
        self._current = None
        self._index_map = {}
        self._last_goal = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, allow_sprint: Optional[bool] = None) -> None:
        if allow_sprint is not None:
            self.allow_sprint = allow_sprint
        self._enabled = True
        self._failed = False
        self._succeeded = False
        self._stuck_clock.reset()
        self._pitch_clock.reset()
        self.state = PathState.STARTING_PATH

    def stop(self) -> None:
        was_enabled = self._enabled
        self._enabled = False
        self.clear_queue()
        self._previous_index = -1
        self._target_index = 0
        self._stuck_clock.reset()
        self._pitch_clock.reset()
        self.state = PathState.END
        if was_enabled:
            self._rotation.stop()
            release_all_keys(self._adapter)

    def is_running(self) -> bool:
        return self._enabled

    def failed(self) -> bool:
        return not self._enabled and self._failed

    def ended(self) -> bool:
        return not self._enabled and self._succeeded

    @property
    def current_segment(self) -> Optional[PathSegment]:
        return self._current

    @property
    def target_index(self) -> int:
        return self._target_index

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def on_tick(self, world: WorldSnapshot) -> None:
        if not self._enabled:
            return

        if self._check_stuck(world):
            log.info("Player stuck for %.0fms, path failed", self.config.stuck_time_ms)
            self._fail()
            return

        if self._current is None and not self._load_next():
            self._finish()
            return

        segment = self._current
        assert segment is not None

        self._update_progress(world)
        if self._target_index >= len(segment.path):
            if not self._load_next():
                self._finish()
                return
            segment = self._current
            assert segment is not None
            self._update_progress(world)

        target = segment.path[min(self._target_index, len(segment.path) - 1)]
        self._steer(world, segment, target)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_stuck(self, world: WorldSnapshot) -> bool:
        if world.horizontal_speed < self.config.stuck_speed:
            if not self._stuck_clock.is_scheduled():
                self._stuck_clock.schedule(self.config.stuck_time_ms)
        else:
            self._stuck_clock.reset()
        return self._stuck_clock.passed()

    def _load_next(self) -> bool:
        if not self._queue:
            self._current = None
            return False
        self._current = self._queue.popleft()
        self._index_map = {}
        for index, (x, y, z) in enumerate(self._current.path):
            self._index_map.setdefault(pack_xz(x, z), []).append((y, index))
        self._previous_index = -1
        self._target_index = 0
        self.state = PathState.STARTING_PATH
        return True

    def _update_progress(self, world: WorldSnapshot) -> None:
        segment = self._current
        assert segment is not None
        fx, fy, fz = world.feet_coord

        for y, index in self._index_map.get(pack_xz(fx, fz), []):
            if index > self._previous_index and abs(y - fy) <= 1:
                self._previous_index = index
                self._target_index = index + 1
                break

        # Walked past the target: skip ahead instead of turning back.
        nxt = self._target_index + 1
        if 0 <= self._target_index < len(segment.path) and nxt < len(segment.path):
            target_pos = _center(segment.path[self._target_index])
            next_pos = _center(segment.path[nxt])
            player_to_next = world.player_pos.horizontal_distance_to(next_pos)
            target_to_next = target_pos.horizontal_distance_to(next_pos)
            if player_to_next < target_to_next:
                self._previous_index = self._target_index
                self._target_index = nxt

    def _steer(self, world: WorldSnapshot, segment: PathSegment, target: Coord) -> None:
        cfg = self.config
        player = world.player_pos
        target_pos = _center(target)

        yaw_to_target = rotation_to(player, target_pos).yaw
        signed_error = normalize_angle(yaw_to_target - world.yaw)
        yaw_error = abs(signed_error)

        if self._pitch_clock.passed() or not self._pitch_clock.is_scheduled():
            self._pitch = 10.0 + self._rng.random() * 5.0
            self._pitch_clock.schedule(cfg.pitch_refresh_ms)

        if yaw_error > cfg.rotation_error_deg and not self._rotation.is_rotating():
            aim = self._lookahead_point(world, segment)
            distance = player.horizontal_distance_to(aim)
            duration = min(
                cfg.max_rotation_ms,
                cfg.min_rotation_ms + distance * cfg.rotation_ms_per_block,
            )
            aim_yaw = rotation_to(player, aim).yaw
            self._rotation.rotate_to(AngleTarget(Angle(aim_yaw, self._pitch)), duration)

        strafe_right = yaw_error > cfg.rotation_error_deg and signed_error > 0
        strafe_left = yaw_error > cfg.rotation_error_deg and signed_error < 0

        jump = self._should_jump(world, target_pos)
        sprint = self.allow_sprint and yaw_error < cfg.sprint_max_error_deg and not jump

        self.state = PathState.JUMPING if jump else PathState.TRAVERSING
        self._adapter.set_control_state("forward", True)
        self._adapter.set_control_state("right", strafe_right)
        self._adapter.set_control_state("left", strafe_left)
        self._adapter.set_control_state("jump", jump)
        self._adapter.set_control_state("sprint", sprint)

    def _lookahead_point(self, world: WorldSnapshot, segment: PathSegment) -> Vec3:
        """First path point more than `lookahead_blocks` away, else the goal."""
        player = world.player_pos
        start = min(self._target_index, len(segment.path) - 1)
        for coord in segment.path[start:]:
            point = _center(coord)
            if player.horizontal_distance_to(point) > self.config.lookahead_blocks:
                return point
        return _center(segment.path[-1])

    def _should_jump(self, world: WorldSnapshot, target_pos: Vec3) -> bool:
        if not world.on_ground:
            return False
        player = world.player_pos
        if target_pos.y > player.y + 0.5:
            return True

        flat = Vec3(target_pos.x - player.x, 0.0, target_pos.z - player.z)
        length = flat.length()
        if length == 0.0:
            return False
        step = flat.scale(min(1.0, length) / length)
        ahead = player.add(step)
        blocked_low = not self._profile.can_walk_between(player, ahead, world)
        clear_high = self._profile.can_walk_between(
            player.offset(0.0, 1.0, 0.0), ahead.offset(0.0, 1.0, 0.0), world
        )
        return blocked_low and clear_high

    def _fail(self) -> None:
        self.stop()
        self._failed = True

    def _finish(self) -> None:
        log.debug("Path finished")
        self.stop()
        self._succeeded = True


__all__ = ["PathExecutor", "PathExecutorConfig", "PathState"]
