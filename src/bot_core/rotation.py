# src/bot_core/rotation.py
"""
RotationController: turns aim requests into per-tick look() commands.

Modes:
- Timed: rotate_to() queues a RotationRequest (FIFO, higher priority first).
  Smooth requests follow a cubic ease-in-out curve with a little jitter; on
  the tick where the request's Clock passes, the aim snaps exactly to the
  target and the next request starts.
- Following: start_following() tracks a live target by moving a fixed
  fraction of the remaining error each tick. Following pre-empts timed
  requests until stop_following()/stop().

Jitter comes from an injected random.Random so tests are deterministic.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

from .adapter import WorldAdapter
from .angles import Angle, clamp_pitch, needed_change
from .clock import Clock, TimeFn
from .snapshot import WorldSnapshot
from .target import Target

log = logging.getLogger(__name__)

FOLLOW_FRACTION = 0.1


def ease_in_out_cubic(t: float) -> float:
    t = max(0.0, min(1.0, t))
    if t < 0.5:
        return 4.0 * t * t * t
    return 1.0 - ((-2.0 * t + 2.0) ** 3) / 2.0


@dataclass
class RotationRequest:
    target: Target
    duration_ms: float = 1000.0
    smooth: bool = True
    randomness: float = 0.1
    priority: int = 1


@dataclass
class _ActiveRotation:
    request: RotationRequest
    start: Angle
    started_at: float
    clock: Clock
    yaw_multiplier: float = 1.0
    pitch_multiplier: float = 1.0


class RotationController:
    """
    Aim controller shared by every Feature through the BotContext.

    Responsibilities:
    - Keep the request queue and the follow target.
    - Emit at most one look() per tick.

    It does NOT decide what to look at; Features and the PathExecutor do.
    """

    def __init__(
        self,
        adapter: WorldAdapter,
        time_fn: TimeFn,
        rng: Optional[random.Random] = None,
        default_randomness: float = 0.1,
    ) -> None:
        self._adapter = adapter
        self._time_fn = time_fn
        self._rng = rng or random.Random()
        self.default_randomness = default_randomness

        self._queue: Deque[RotationRequest] = deque()
        self._active: Optional[_ActiveRotation] = None
        self._following: Optional[Target] = None

        # Last angle we sent (or observed while idle).
        self._current: Angle = Angle(0.0, 0.0)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def current_angle(self) -> Angle:
        return self._current

    def rotate_to(
        self,
        target: Target,
        duration_ms: float = 1000.0,
        smooth: bool = True,
        randomness: Optional[float] = None,
        priority: int = 1,
    ) -> None:
        request = RotationRequest(
            target=target,
            duration_ms=max(0.0, float(duration_ms)),
            smooth=smooth,
            randomness=self.default_randomness if randomness is None else randomness,
            priority=priority,
        )
        self._enqueue(request)
        if self._active is None:
            self._start_next()

    def start_following(self, target: Target) -> None:
        self._following = target

    def stop_following(self) -> None:
        self._following = None

    def stop(self) -> None:
        """Cancel the active rotation, the queue and following."""
        self._queue.clear()
        self._active = None
        self._following = None

    def set_rotation(self, angle: Angle) -> None:
        """Instant look, bypassing the queue."""
        self._emit(Angle(angle.yaw, clamp_pitch(angle.pitch)))

    def is_rotating(self) -> bool:
        return self._active is not None or bool(self._queue)

    def is_following(self) -> bool:
        return self._following is not None

    def queue_size(self) -> int:
        return len(self._queue)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def on_tick(self, world: WorldSnapshot) -> Optional[Angle]:
        """Advance the active mode and return the angle sent this tick."""
        if self._following is not None:
            return self._tick_following(world)

        if self._active is None:
            # Idle: adopt whatever the game reports.
            self._current = Angle(world.yaw, world.pitch)
            return None

        return self._tick_timed(world)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _enqueue(self, request: RotationRequest) -> None:
        # Stable insert: before the first queued request with lower priority.
        for index, queued in enumerate(self._queue):
            if request.priority > queued.priority:
                self._queue.insert(index, request)
                return
        self._queue.append(request)

    def _start_next(self) -> None:
        if not self._queue:
            self._active = None
            return
        request = self._queue.popleft()
        clock = Clock(self._time_fn)
        clock.schedule(request.duration_ms)
        self._active = _ActiveRotation(
            request=request,
            start=self._current,
            started_at=self._time_fn(),
            clock=clock,
            yaw_multiplier=1.0 + (self._rng.random() * 2.0 - 1.0) * 0.1,
            pitch_multiplier=1.0 + (self._rng.random() * 2.0 - 1.0) * 0.1,
        )

    def _tick_timed(self, world: WorldSnapshot) -> Optional[Angle]:
        active = self._active
        assert active is not None

        target = active.request.target.resolve_angle(world)
        if target is None:
            log.debug("Rotation target no longer valid, dropping request")
            self._start_next()
            return None

        if active.clock.passed():
            final = Angle(target.yaw, clamp_pitch(target.pitch))
            self._emit(final)
            self._start_next()
            return final

        duration = active.request.duration_ms
        elapsed = self._time_fn() - active.started_at
        progress = elapsed / duration if duration > 0 else 1.0

        change = needed_change(active.start, target)
        if active.request.smooth:
            eased = ease_in_out_cubic(progress)
            randomness = active.request.randomness
            yaw_noise = (self._rng.random() - 0.5) * randomness * active.yaw_multiplier
            pitch_noise = (self._rng.random() - 0.5) * randomness * active.pitch_multiplier
        else:
            eased = max(0.0, min(1.0, progress))
            yaw_noise = pitch_noise = 0.0

        angle = Angle(
            active.start.yaw + change.yaw * eased + yaw_noise,
            clamp_pitch(active.start.pitch + change.pitch * eased + pitch_noise),
        )
        self._emit(angle)
        return angle

    def _tick_following(self, world: WorldSnapshot) -> Optional[Angle]:
        target = self._following.resolve_angle(world) if self._following else None
        if target is None:
            log.debug("Follow target lost, leaving follow mode")
            self._following = None
            return None

        change = needed_change(self._current, target)
        angle = Angle(
            self._current.yaw + change.yaw * FOLLOW_FRACTION,
            clamp_pitch(self._current.pitch + change.pitch * FOLLOW_FRACTION),
        )
        self._emit(angle)
        return angle

    def _emit(self, angle: Angle) -> None:
        self._current = angle
        self._adapter.look(angle.yaw, angle.pitch)


__all__ = ["RotationController", "RotationRequest", "ease_in_out_cubic"]
