# src/features/auto_warp.py
"""
AutoWarp feature.

    IDLE -> WARPING -> VERIFYING -> IDLE -> ... (queue drained: stop)

request_warp() queues a location and starts the feature. Each request
tries the location's aliases in order ("/warp <alias>"), waiting up to
`verify_timeout_ms` after each command for the tablist/scoreboard area to
match. Cycling through every alias counts as one attempt; after
`max_attempts` the request is dropped and the feature error becomes
WARP_FAILED. A successful warp starts the cooldown, during which new
requests are refused.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Deque, List, Optional

from bot_core.clock import Clock
from bot_core.queries.text import is_in_location
from bot_core.snapshot import WorldSnapshot

from .base import FeatureCore, StateMachine

if TYPE_CHECKING:
    from bot_core.context import BotContext


class WarpState(Enum):
    IDLE = auto()
    WARPING = auto()
    VERIFYING = auto()


class WarpError(Enum):
    NONE = auto()
    WARP_FAILED = auto()


# Area names shown once the warp landed.
LOCATION_AREAS = {
    "hub": "Hub",
    "dwarven_mines": "Dwarven Mines",
    "crystal_hollows": "Crystal Hollows",
    "forge": "Forge",
    "base_camp": "Base Camp",
}


@dataclass
class WarpRequest:
    location: str
    reason: str = ""
    attempts: int = 0
    command_index: int = 0


class AutoWarp:
    name = "AutoWarp"

    def __init__(self, ctx: "BotContext") -> None:
        self.ctx = ctx
        self.settings = ctx.config.warp
        self.core = FeatureCore(
            self.name,
            ctx.time_fn,
            ctx.bus,
            failsafes_to_ignore=("teleport", "world_change"),
            logger_name=__name__,
        )
        self.machine: StateMachine[WarpState] = StateMachine(
            self.core,
            WarpState.IDLE,
            handlers={
                WarpState.IDLE: self._tick_idle,
                WarpState.WARPING: self._tick_warping,
                WarpState.VERIFYING: self._tick_verifying,
            },
            on_enter={WarpState.VERIFYING: lambda: self.core.timer.schedule(self.settings.verify_timeout_ms)},
        )
        self.cooldown = Clock(ctx.time_fn)
        self.queue: Deque[WarpRequest] = deque()
        self.error = WarpError.NONE
        self.failed: List[str] = []
        self.warps_done = 0

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def commands_for(self, location: str) -> List[str]:
        aliases = self.settings.locations.get(location) or [location]
        return [f"/warp {alias}" for alias in aliases]

    def request_warp(self, location: str, reason: str = "Manual request") -> bool:
        """Queue a warp; False when on cooldown or already queued."""
        if self.cooldown.is_scheduled() and not self.cooldown.passed():
            self.core.log.debug("Warp to %s skipped, cooldown active", location)
            return False
        if any(r.location == location for r in self.queue):
            return False
        self.queue.append(WarpRequest(location, reason))
        self.core.log.info("Queued warp to %s: %s", location, reason)
        if not self.core.enabled:
            self.start()
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        self.error = WarpError.NONE
        self.failed = []
        self.core.enable(queued=[r.location for r in self.queue])
        self.machine.reset(WarpState.IDLE)

    def stop(self) -> None:
        self.queue.clear()
        self.core.disable(self.error)
        self.machine.reset(WarpState.IDLE)

    def pause(self) -> None:
        self.core.pause()

    def resume(self) -> None:
        self.core.resume()

    def succeeded(self) -> bool:
        return not self.core.enabled and self.error is WarpError.NONE

    @property
    def state(self) -> WarpState:
        return self.machine.state

    @property
    def current(self) -> Optional[WarpRequest]:
        return self.queue[0] if self.queue else None

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def on_tick(self, world: WorldSnapshot) -> None:
        if not self.core.is_running():
            return
        self.machine.step(world)

    def _tick_idle(self, world: WorldSnapshot) -> WarpState:
        if not self.queue:
            self.core.log.info("Warp queue empty")
            self.stop()
            return WarpState.IDLE
        return WarpState.WARPING

    def _tick_warping(self, world: WorldSnapshot) -> WarpState:
        request = self.queue[0]
        commands = self.commands_for(request.location)
        command = commands[request.command_index % len(commands)]
        self.core.log.info("Trying %s (attempt %d)", command, request.attempts + 1)
        self.ctx.adapter.chat(command)
        return WarpState.VERIFYING

    def _tick_verifying(self, world: WorldSnapshot) -> WarpState:
        request = self.queue[0]
        area = LOCATION_AREAS.get(request.location, request.location.replace("_", " "))
        if is_in_location(world, area):
            self.core.log.info("Warped to %s", request.location)
            self.queue.popleft()
            self.warps_done += 1
            self.cooldown.schedule(self.settings.cooldown_ms)
            return WarpState.IDLE

        if self.core.is_timer_running():
            return WarpState.VERIFYING

        request.command_index += 1
        if request.command_index >= len(self.commands_for(request.location)):
            request.command_index = 0
            request.attempts += 1
            if request.attempts >= self.settings.max_attempts:
                self.core.log.error(
                    "Failed to warp to %s after %d attempts", request.location, self.settings.max_attempts
                )
                self.queue.popleft()
                self.failed.append(request.location)
                self.error = WarpError.WARP_FAILED
                return WarpState.IDLE
            self.core.log.warning("Warp attempt %d failed for %s", request.attempts, request.location)
        return WarpState.WARPING


__all__ = ["AutoWarp", "LOCATION_AREAS", "WarpError", "WarpRequest", "WarpState"]
