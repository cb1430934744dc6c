# src/features/auto_chest_unlocker.py
"""
AutoChestUnlocker feature.

    STARTING -> FINDING_WALKABLE_BLOCKS -> WALKING -> WAITING -> LOOKING -> ...
    LOOKING -> STARTING                        (lockpick mode)
    LOOKING -> VERIFYING_ROTATION -> CLICKING  (click mode)
    STARTING -> ENDING                         (queue empty)

Chests come from the context's shared chest queue. While running, the
feature adds chests that appear within 8 blocks and drops the ones that
vanish. In lockpick mode it follows the crit particles the server spawns
in front of the chest until the chest is solved; in click mode it aims at
the chest and right clicks it.

A chest that cannot be reached or solved is skipped. The failure is kept
and becomes the feature error when nothing was unlocked by the end.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import TYPE_CHECKING, List, Optional

from bot_core.adapter import BlockChangeEvent, PacketEvent, WorldUnloadEvent, release_all_keys
from bot_core.angles import Angle, is_looking_at
from bot_core.collision import default_block_collision_profile
from bot_core.nav.planner import Pathfinder
from bot_core.queries.blocks import closest_visible_side, walkable_blocks_around
from bot_core.queries.inventory import hold_item
from bot_core.snapshot import Coord, Vec3, WorldSnapshot, block_center
from bot_core.target import PositionTarget

from .base import FeatureCore, StateMachine

if TYPE_CHECKING:
    from bot_core.context import BotContext

log = logging.getLogger(__name__)


class ChestState(Enum):
    STARTING = auto()
    FINDING_WALKABLE_BLOCKS = auto()
    WALKING = auto()
    WAITING = auto()
    LOOKING = auto()
    VERIFYING_ROTATION = auto()
    CLICKING = auto()
    ENDING = auto()


class ChestError(Enum):
    NONE = auto()
    NO_CHESTS = auto()
    NO_WALKABLE_BLOCKS = auto()
    PATH_FAILED = auto()
    TIMEOUT = auto()


CHEST_NAME = "chest"
LOCKPICKED_MESSAGE = "CHEST LOCKPICKED"
CRIT_PARTICLE_ID = 9

TRACK_RADIUS = 8.0
REACH = 4.0
CLOSE_ENOUGH = 3.0
LOOK_TIMEOUT_MS = 5000.0
VERIFY_TIMEOUT_MS = 3000.0
CLICK_DELAY_MS = 250.0
WALK_TIMEOUT_MS = 15000.0
AIM_TOLERANCE = 8.0

_CARDINAL_OFFSETS = ((0, 0, -1), (0, 0, 1), (1, 0, 0), (-1, 0, 0))


class AutoChestUnlocker:
    name = "AutoChestUnlocker"

    def __init__(self, ctx: "BotContext") -> None:
        self.ctx = ctx
        self.core = FeatureCore(
            self.name,
            ctx.time_fn,
            ctx.bus,
            failsafes_to_ignore=("rotation",),
            logger_name=__name__,
        )
        self.machine: StateMachine[ChestState] = StateMachine(
            self.core,
            ChestState.STARTING,
            handlers={
                ChestState.STARTING: self._tick_starting,
                ChestState.FINDING_WALKABLE_BLOCKS: self._tick_finding_walkable,
                ChestState.WALKING: self._tick_walking,
                ChestState.WAITING: self._tick_waiting,
                ChestState.LOOKING: self._tick_looking,
                ChestState.VERIFYING_ROTATION: self._tick_verifying,
                ChestState.CLICKING: self._tick_clicking,
                ChestState.ENDING: self._tick_ending,
            },
            on_enter={
                ChestState.LOOKING: self._enter_looking,
                ChestState.WAITING: lambda: self.core.clock("walk").schedule(WALK_TIMEOUT_MS),
            },
        )
        self.pathfinder = Pathfinder(ctx.path_executor)
        self._profile = default_block_collision_profile()

        self.error = ChestError.NONE
        self.click_chest = False
        self.chest_solving: Optional[Coord] = None
        self.walkable_blocks: List[Coord] = []
        self.particle_pos: Optional[Vec3] = None
        self.chest_solved = False
        self.chests_unlocked = 0
        self._last_failure = ChestError.NONE
        self._walk_failed = False
        self._aimed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, item_to_hold: str = "", click_chest: bool = False, world: Optional[WorldSnapshot] = None) -> None:
        world = world or self.ctx.world
        if not self.ctx.chest_queue:
            self.core.log.error("Chest queue is empty")
            self.error = ChestError.NO_CHESTS
            return
        if item_to_hold:
            hold_item(self.ctx.adapter, world, [item_to_hold])

        self.error = ChestError.NONE
        self.click_chest = click_chest
        self.chests_unlocked = 0
        self._last_failure = ChestError.NONE
        self.core.enable(click_chest=click_chest, chests=len(self.ctx.chest_queue))
        self.machine.reset(ChestState.STARTING)

    def stop(self) -> None:
        if self.core.enabled:
            self.pathfinder.stop()
            self.ctx.rotation.stop()
        self.core.disable(self.error)
        self.chest_solving = None
        self.walkable_blocks = []
        self.particle_pos = None
        self.chest_solved = False

    def pause(self) -> None:
        self.core.pause()
        self.pathfinder.stop()
        self.ctx.rotation.stop()

    def resume(self) -> None:
        self.core.resume()
        if self.chest_solving is not None:
            self.ctx.chest_queue.appendleft(self.chest_solving)
        self.machine.reset(ChestState.STARTING)

    def succeeded(self) -> bool:
        return not self.core.enabled and self.error is ChestError.NONE

    @property
    def state(self) -> ChestState:
        return self.machine.state

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_tick(self, world: WorldSnapshot) -> None:
        if not self.core.is_running():
            return
        self.machine.step(world)

    def on_chat(self, message: str) -> None:
        if message.strip() == LOCKPICKED_MESSAGE:
            self.chest_solved = True

    def on_block_change(self, event: BlockChangeEvent) -> None:
        world = self.ctx.world
        if world.player_pos.distance_to(block_center(event.coord)) > TRACK_RADIUS:
            return
        if event.old.is_air and event.new.name == CHEST_NAME:
            if event.coord not in self.ctx.chest_queue:
                self.ctx.chest_queue.append(event.coord)
        elif event.old.name == CHEST_NAME and event.new.is_air:
            if event.coord == self.chest_solving:
                self.core.log.info("Chest removed, solved")
                self.chest_solved = True
            elif event.coord in self.ctx.chest_queue:
                self.core.log.info("Chest despawned")
                self.ctx.chest_queue.remove(event.coord)

    def on_packet(self, event: PacketEvent) -> None:
        if event.packet_type != "particle" or self.click_chest:
            return
        if self.machine.state is not ChestState.LOOKING or self.chest_solving is None:
            return
        if event.data.get("id") != CRIT_PARTICLE_ID:
            return
        x, y, z = event.data.get("position", (0.0, 0.0, 0.0))
        position = Vec3(float(x), float(y), float(z))
        if self.ctx.world.player_pos.distance_to(position) >= TRACK_RADIUS:
            return
        cx, cy, cz = self.chest_solving
        if position.floored() in {(cx + dx, cy + dy, cz + dz) for dx, dy, dz in _CARDINAL_OFFSETS}:
            self.particle_pos = position

    def on_world_unload(self, event: WorldUnloadEvent) -> None:
        self.ctx.chest_queue.clear()

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _wait(self, state: ChestState, ms: float) -> ChestState:
        if ms <= 0:
            self.core.timer.reset()
        else:
            self.core.timer.schedule(ms)
        return state

    def _skip(self, failure: ChestError) -> ChestState:
        self.core.log.warning("Skipping chest %s: %s", self.chest_solving, failure.name)
        self._last_failure = failure
        self.chest_solving = None
        self.pathfinder.stop()
        self.ctx.rotation.stop()
        return self._wait(ChestState.STARTING, 0)

    def _tick_starting(self, world: WorldSnapshot) -> ChestState:
        queue = self.ctx.chest_queue
        if not queue:
            self.core.log.info("Chest queue is empty")
            return self._wait(ChestState.ENDING, 0)

        player = world.player_pos
        nearest = min(queue, key=lambda c: player.distance_sq(block_center(c)))
        queue.remove(nearest)
        self.chest_solving = nearest
        self.chest_solved = False
        self.particle_pos = None
        self._walk_failed = False

        if world.eye_position.distance_to(block_center(nearest)) > REACH:
            return self._wait(ChestState.FINDING_WALKABLE_BLOCKS, 0)
        return ChestState.LOOKING

    def _tick_finding_walkable(self, world: WorldSnapshot) -> ChestState:
        assert self.chest_solving is not None
        spots = walkable_blocks_around(world, self.chest_solving, horizontal=1, down=4)
        player = world.player_pos
        spots.sort(key=lambda c: player.distance_sq(Vec3.of(c)))
        self.walkable_blocks = spots
        self.core.log.info("Found %d walkable blocks", len(spots))
        return ChestState.WALKING

    def _tick_walking(self, world: WorldSnapshot) -> ChestState:
        if not self.walkable_blocks:
            failure = ChestError.PATH_FAILED if self._walk_failed else ChestError.NO_WALKABLE_BLOCKS
            return self._skip(failure)
        target = self.walkable_blocks.pop(0)
        self.core.log.info("Walking to %s", target)
        self.pathfinder.go_to(world, target)
        return ChestState.WAITING

    def _tick_waiting(self, world: WorldSnapshot) -> ChestState:
        assert self.chest_solving is not None
        if self.pathfinder.is_running():
            if world.eye_position.distance_to(block_center(self.chest_solving)) < CLOSE_ENOUGH:
                self.core.log.info("Close enough to chest")
                self.pathfinder.stop()
                return ChestState.LOOKING
            if self.core.clock("walk").passed():
                self.pathfinder.stop()
                self._walk_failed = True
                return ChestState.WALKING
            return ChestState.WAITING

        if self.pathfinder.succeeded():
            return ChestState.LOOKING
        self.core.log.warning("Failed walking to block, trying the next one")
        self._walk_failed = True
        return ChestState.WALKING

    def _enter_looking(self) -> None:
        self.core.timer.schedule(LOOK_TIMEOUT_MS)
        self._aimed = False

    def _looking_at_chest(self, world: WorldSnapshot) -> bool:
        assert self.chest_solving is not None
        facing = Angle(world.yaw, world.pitch)
        return is_looking_at(facing, world.eye_position, block_center(self.chest_solving), AIM_TOLERANCE)

    def _tick_looking(self, world: WorldSnapshot) -> ChestState:
        assert self.chest_solving is not None
        rotation = self.ctx.rotation
        if not self._aimed and not rotation.is_rotating() and not self._looking_at_chest(world):
            aim = closest_visible_side(world, self.chest_solving, self._profile)
            rotation.rotate_to(PositionTarget(aim or block_center(self.chest_solving)), 400)
            self._aimed = True

        if self.click_chest:
            return self._wait(ChestState.VERIFYING_ROTATION, VERIFY_TIMEOUT_MS)

        if self.chest_solved:
            self.core.log.info("Chest solved")
            rotation.stop()
            self.chests_unlocked += 1
            self.chest_solving = None
            return self._wait(ChestState.STARTING, 0)

        if self.core.has_timer_ended():
            self.core.log.error("No particle in time")
            return self._skip(ChestError.TIMEOUT)

        if self.particle_pos is not None:
            rotation.stop_following()
            rotation.rotate_to(PositionTarget(self.particle_pos), 400)
            rotation.start_following(PositionTarget(self.particle_pos))
            self.core.timer.schedule(LOOK_TIMEOUT_MS)
            self.particle_pos = None
        return ChestState.LOOKING

    def _tick_verifying(self, world: WorldSnapshot) -> ChestState:
        if self.core.has_timer_ended():
            self.core.log.error("Could not look at chest")
            return self._skip(ChestError.TIMEOUT)
        if self._looking_at_chest(world):
            self.ctx.rotation.stop()
            release_all_keys(self.ctx.adapter)
            return self._wait(ChestState.CLICKING, CLICK_DELAY_MS)
        return ChestState.VERIFYING_ROTATION

    def _tick_clicking(self, world: WorldSnapshot) -> ChestState:
        if self.core.is_timer_running():
            return ChestState.CLICKING
        self.ctx.adapter.activate_item()
        self.chests_unlocked += 1
        self.chest_solving = None
        return self._wait(ChestState.STARTING, 0)

    def _tick_ending(self, world: WorldSnapshot) -> ChestState:
        if self.chests_unlocked == 0 and self._last_failure is not ChestError.NONE:
            self.error = self._last_failure
        self.core.log.info("Done, %d chests unlocked", self.chests_unlocked)
        self.stop()
        return ChestState.ENDING


__all__ = ["AutoChestUnlocker", "ChestError", "ChestState"]
