# src/features/route_navigator.py
"""
RouteNavigator feature.

    IDLE -> NAVIGATING -> WALKING -------> NAVIGATING -> ... -> COMPLETED
                       +-> TRANSPORTING -+

For each waypoint NAVIGATING either teleports (AOTV / ETHERWARP actions)
or walks. A teleport that does not land within 5 s falls back to walking.
A waypoint that cannot be reached after `max_retries` attempts is skipped;
the route still completes, with WAYPOINTS_SKIPPED as its error.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import TYPE_CHECKING, List, Optional

from bot_core.adapter import release_all_keys
from bot_core.nav.planner import Pathfinder
from bot_core.queries.inventory import hold_item
from bot_core.snapshot import WorldSnapshot
from bot_core.target import PositionTarget
from routes.graph import Route, Waypoint, WaypointAction

from .base import FeatureCore, StateMachine

if TYPE_CHECKING:
    from bot_core.context import BotContext


class RouteState(Enum):
    IDLE = auto()
    NAVIGATING = auto()
    TRANSPORTING = auto()
    WALKING = auto()
    COMPLETED = auto()


class RouteError(Enum):
    NONE = auto()
    INVALID_ROUTE = auto()
    WAYPOINTS_SKIPPED = auto()


TRANSPORT_ITEMS = {
    WaypointAction.AOTV: "Aspect of the Void",
    WaypointAction.ETHERWARP: "Etherwarp Conduit",
}

ARRIVE_DISTANCE = 3.0
LANDED_DISTANCE = 5.0
TRANSPORT_TIMEOUT_MS = 5000.0
TRANSPORT_COOLDOWN_MS = 1000.0
TRANSPORT_STUCK_MS = 10000.0
WALK_STUCK_MS = 30000.0
AIM_MS = 300.0


class RouteNavigator:
    name = "RouteNavigator"

    def __init__(self, ctx: "BotContext", max_retries: int = 3) -> None:
        self.ctx = ctx
        self.max_retries = max_retries
        self.core = FeatureCore(
            self.name,
            ctx.time_fn,
            ctx.bus,
            failsafes_to_ignore=("teleport", "rotation"),
            logger_name=__name__,
        )
        self.machine: StateMachine[RouteState] = StateMachine(
            self.core,
            RouteState.IDLE,
            handlers={
                RouteState.IDLE: lambda world: RouteState.IDLE,
                RouteState.NAVIGATING: self._tick_navigating,
                RouteState.TRANSPORTING: self._tick_transporting,
                RouteState.WALKING: self._tick_walking,
                RouteState.COMPLETED: self._tick_completed,
            },
        )
        self.pathfinder = Pathfinder(ctx.path_executor)

        self.error = RouteError.NONE
        self.route: Optional[Route] = None
        self.index = 0
        self.target: Optional[Waypoint] = None
        self.retry = 0
        self.skipped: List[int] = []
        self._click_pending = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, route: Route) -> bool:
        if route is None or not route.waypoints:
            self.core.log.error("Invalid route provided")
            self.error = RouteError.INVALID_ROUTE
            return False

        self.route = route
        self.index = 0
        self.retry = 0
        self.skipped = []
        self.error = RouteError.NONE
        self.core.enable(route=route.name, waypoints=len(route.waypoints))
        self.core.log.info("Starting route with %d waypoints", len(route.waypoints))
        self.machine.reset(RouteState.IDLE)
        self._advance(delay_ms=0.0)
        return True

    def stop(self) -> None:
        if self.core.enabled:
            self.pathfinder.stop()
            self.ctx.rotation.stop()
            release_all_keys(self.ctx.adapter)
        self.core.disable(self.error)
        self.machine.reset(RouteState.IDLE)
        self.target = None
        self.retry = 0
        self._click_pending = False

    def pause(self) -> None:
        self.core.pause()
        self.pathfinder.stop()
        self.ctx.rotation.stop()

    def resume(self) -> None:
        """Pick the current waypoint up again from scratch."""
        self.core.resume()
        if self.core.enabled and self.target is not None:
            self.machine.reset(RouteState.NAVIGATING)

    def succeeded(self) -> bool:
        return not self.core.enabled and self.error is RouteError.NONE

    def is_navigating(self) -> bool:
        return self.core.enabled and self.machine.state is not RouteState.IDLE

    def progress(self) -> float:
        """Share of waypoints done, in percent."""
        if self.route is None or not self.route.waypoints:
            return 0.0
        return self.index / len(self.route.waypoints) * 100.0

    def skip_waypoint(self) -> None:
        if self.route is None or self.index >= len(self.route.waypoints):
            return
        self.core.log.info("Skipping waypoint %d", self.index)
        self.pathfinder.stop()
        self.ctx.rotation.stop()
        self.index += 1
        self._advance(delay_ms=0.0)

    @property
    def state(self) -> RouteState:
        return self.machine.state

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def on_tick(self, world: WorldSnapshot) -> None:
        if not self.core.is_running():
            return
        if self.route is None:
            self.stop()
            return

        stuck = self.core.clock("stuck")
        if stuck.is_scheduled() and stuck.passed():
            self.core.log.warning("Navigation stuck, retrying")
            stuck.reset()
            self._retry(world)
            return

        self.machine.step(world)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _advance(self, delay_ms: float) -> None:
        """Target the waypoint at `index`, or complete the route."""
        assert self.route is not None
        self.core.clock("stuck").reset()
        self.core.clock("transport").reset()
        if self.index >= len(self.route.waypoints):
            self.machine.transition(RouteState.COMPLETED)
            return
        self.target = self.route.waypoints[self.index]
        self.retry = 0
        if delay_ms > 0:
            self.core.clock("delay").schedule(delay_ms)
        self.core.log.info("Navigating to waypoint %d: %s", self.index, self.target.position)
        if self.machine.state is not RouteState.NAVIGATING:
            self.machine.transition(RouteState.NAVIGATING)

    def _reached(self, world: WorldSnapshot, radius: float) -> bool:
        assert self.target is not None
        if world.player_pos.distance_to(self.target.position) >= radius:
            return False
        self.core.log.info("Reached waypoint %d", self.index)
        delay = self.target.delay_ms
        self.index += 1
        self._advance(delay)
        return True

    def _tick_navigating(self, world: WorldSnapshot) -> RouteState:
        if self.target is None:
            self._advance(0.0)
            return self.machine.state
        delay = self.core.clock("delay")
        if delay.is_scheduled() and not delay.passed():
            return RouteState.NAVIGATING
        if self._reached(world, ARRIVE_DISTANCE):
            return self.machine.state

        if self.target.action.is_transport:
            return self._start_transport(world)
        return self._start_walking(world)

    def _start_transport(self, world: WorldSnapshot) -> RouteState:
        assert self.target is not None
        cooldown = self.core.clock("transport_cooldown")
        if cooldown.is_scheduled() and not cooldown.passed():
            return RouteState.NAVIGATING
        cooldown.schedule(TRANSPORT_COOLDOWN_MS)

        item = TRANSPORT_ITEMS[self.target.action]
        if not hold_item(self.ctx.adapter, world, [item]):
            self.core.log.error("%s not found, walking instead", item)
            return self._start_walking(world)

        self.core.log.info("Attempting %s transport", self.target.action.value)
        self.ctx.rotation.rotate_to(PositionTarget(self.target.position), AIM_MS)
        self._click_pending = True
        self.core.clock("transport").schedule(TRANSPORT_TIMEOUT_MS)
        self.core.clock("stuck").schedule(TRANSPORT_STUCK_MS)
        return RouteState.TRANSPORTING

    def _tick_transporting(self, world: WorldSnapshot) -> RouteState:
        if self._click_pending and not self.ctx.rotation.is_rotating():
            self.ctx.adapter.activate_item()
            self._click_pending = False

        if self.core.clock("transport").passed():
            self.core.log.warning("Transport timeout, walking instead")
            self._click_pending = False
            return self._start_walking(world)

        if self._reached(world, LANDED_DISTANCE):
            return self.machine.state
        return RouteState.TRANSPORTING

    def _start_walking(self, world: WorldSnapshot) -> RouteState:
        assert self.target is not None
        self.core.clock("transport").reset()
        self.core.clock("stuck").schedule(WALK_STUCK_MS)
        self.pathfinder.go_to(world, self.target.position.floored())
        self.core.log.info("Walking to waypoint %d", self.index)
        return RouteState.WALKING

    def _tick_walking(self, world: WorldSnapshot) -> RouteState:
        if self.pathfinder.is_running():
            return RouteState.WALKING
        if self.pathfinder.succeeded() and self._reached(world, LANDED_DISTANCE):
            return self.machine.state
        self.core.log.error("Walking failed")
        self._retry(world)
        return self.machine.state

    def _retry(self, world: WorldSnapshot) -> None:
        self.retry += 1
        self.pathfinder.stop()
        self.ctx.rotation.stop()
        if self.retry >= self.max_retries:
            self.core.log.error("Max retries (%d) reached, skipping waypoint %d", self.max_retries, self.index)
            self.skipped.append(self.index)
            self.index += 1
            self._advance(0.0)
            return
        self.core.log.warning("Retrying navigation (attempt %d/%d)", self.retry, self.max_retries)
        next_state = self._start_walking(world)
        if next_state is not self.machine.state:
            self.machine.transition(next_state)

    def _tick_completed(self, world: WorldSnapshot) -> RouteState:
        if self.skipped:
            self.error = RouteError.WAYPOINTS_SKIPPED
        self.core.log.info("Route navigation completed")
        self.stop()
        return self.machine.state


__all__ = ["RouteError", "RouteNavigator", "RouteState", "TRANSPORT_ITEMS"]
