# src/features/auto_mob_killer.py
"""
AutoMobKiller feature.

    STARTING -> FINDING_MOB -> LOOKING_AT_MOB -> KILLING_MOB -> STARTING

FINDING_MOB rescans every `recheck_ms`, picks the best living mob whose
name matches and whose floor can be stood on, and walks next to it. When
no mob is found for SHUTDOWN_MS the feature stops with NO_ENTITIES. A mob
that keeps moving away is re-pathed at most `max_path_retries` times
before the search starts over.

The ids of mobs already targeted go into the context's shared mob queue,
which every killer skips while searching; the queue is emptied every
`queue_reset_ms`.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import TYPE_CHECKING, List, Optional, Sequence, Set

from bot_core.adapter import EntityEvent
from bot_core.angles import Angle, is_looking_at
from bot_core.collision import default_block_collision_profile
from bot_core.nav.planner import Pathfinder
from bot_core.queries.blocks import walkable_blocks_around
from bot_core.queries.entities import find_named_mobs
from bot_core.queries.inventory import hold_item
from bot_core.snapshot import EntityInfo, Vec3, WorldSnapshot
from bot_core.target import EntityTarget

from .base import FeatureCore, StateMachine

if TYPE_CHECKING:
    from bot_core.context import BotContext


class MobKillerState(Enum):
    STARTING = auto()
    FINDING_MOB = auto()
    LOOKING_AT_MOB = auto()
    KILLING_MOB = auto()


class MobKillerError(Enum):
    NONE = auto()
    NO_ENTITIES = auto()


SHUTDOWN_MS = 10000.0
ATTACK_RANGE = 2.8
MOVED_AWAY_DISTANCE = 3.0
KILL_TIMEOUT_MS = 3000.0


class AutoMobKiller:
    name = "AutoMobKiller"

    def __init__(
        self,
        ctx: "BotContext",
        recheck_ms: float = 1000.0,
        queue_reset_ms: float = 1000.0,
        max_path_retries: int = 3,
    ) -> None:
        self.ctx = ctx
        self.recheck_ms = recheck_ms
        self.queue_reset_ms = queue_reset_ms
        self.max_path_retries = max_path_retries
        self.core = FeatureCore(
            self.name,
            ctx.time_fn,
            ctx.bus,
            failsafes_to_ignore=("knockback", "rotation", "damage"),
            logger_name=__name__,
        )
        self.machine: StateMachine[MobKillerState] = StateMachine(
            self.core,
            MobKillerState.STARTING,
            handlers={
                MobKillerState.STARTING: self._tick_starting,
                MobKillerState.FINDING_MOB: self._tick_finding,
                MobKillerState.LOOKING_AT_MOB: self._tick_looking,
                MobKillerState.KILLING_MOB: self._tick_killing,
            },
            on_enter={
                MobKillerState.FINDING_MOB: lambda: self.core.clock("recheck").reset(),
                MobKillerState.KILLING_MOB: lambda: self.core.clock("kill").schedule(KILL_TIMEOUT_MS),
            },
        )
        self.pathfinder = Pathfinder(ctx.path_executor)
        self._profile = default_block_collision_profile()

        self.error = MobKillerError.NONE
        self.mobs_to_kill: List[str] = []
        self.target_id: Optional[int] = None
        self.last_position: Optional[Vec3] = None
        self.path_retry = 0
        self.mobs_killed = 0
        self._attacked: Set[int] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, mobs_to_kill: Sequence[str], weapon: str = "", world: Optional[WorldSnapshot] = None) -> None:
        world = world or self.ctx.world
        if weapon and not hold_item(self.ctx.adapter, world, [weapon]):
            self.core.log.error("Could not hold weapon %s", weapon)
            self.error = MobKillerError.NO_ENTITIES
            return

        self.mobs_to_kill = list(mobs_to_kill)
        self.error = MobKillerError.NONE
        self.target_id = None
        self.last_position = None
        self.path_retry = 0
        self._attacked.clear()
        self.core.enable(mobs=self.mobs_to_kill)
        self.machine.reset(MobKillerState.STARTING)
        self.core.clock("queue").schedule(self.queue_reset_ms)

    def stop(self) -> None:
        if self.core.enabled:
            self.pathfinder.stop()
        self.core.disable(self.error)
        self.target_id = None
        self.last_position = None

    def pause(self) -> None:
        self.core.pause()
        self.pathfinder.stop()

    def resume(self) -> None:
        """Keep the current target; only the walk stopped by pause() is re-queued."""
        if not self.core.paused:
            return
        self.core.resume()
        if self.machine.state is not MobKillerState.FINDING_MOB:
            return
        world = self.ctx.world
        mob = self._target(world)
        if mob is not None:
            self.last_position = mob.position
            self._walk_to(world, mob)

    def succeeded(self) -> bool:
        return not self.core.enabled and self.error is MobKillerError.NONE

    @property
    def state(self) -> MobKillerState:
        return self.machine.state

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_tick(self, world: WorldSnapshot) -> None:
        if not self.core.is_running():
            return

        if self.core.clock("shutdown").passed():
            self.core.log.info("No mobs spawned")
            self._fail(MobKillerError.NO_ENTITIES)
            return

        if self.core.clock("queue").passed():
            self.ctx.mob_queue.clear()
            self.core.clock("queue").schedule(self.queue_reset_ms)

        self.machine.step(world)

    def on_entity(self, event: EntityEvent) -> None:
        if event.action != "despawn" and event.entity.alive:
            return
        entity_id = event.entity.entity_id
        if entity_id in self._attacked:
            self._attacked.discard(entity_id)
            self.mobs_killed += 1

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _tick_starting(self, world: WorldSnapshot) -> MobKillerState:
        if self.target_id is not None and self.target_id not in self.ctx.mob_queue:
            self.ctx.mob_queue.append(self.target_id)
        return MobKillerState.FINDING_MOB

    def _target(self, world: WorldSnapshot) -> Optional[EntityInfo]:
        if self.target_id is None:
            return None
        return world.entity_by_id(self.target_id)

    def _tick_finding(self, world: WorldSnapshot) -> MobKillerState:
        recheck = self.core.clock("recheck")
        if not recheck.is_scheduled() or recheck.passed():
            next_state = self._pick_target(world)
            if next_state is not None:
                return next_state
            recheck.schedule(self.recheck_ms)

        mob = self._target(world)
        if mob is None or not mob.alive or (mob.health is not None and mob.health <= 0):
            self.pathfinder.stop()
            self.core.log.info("Target is gone")
            return MobKillerState.STARTING

        distance = world.player_pos.distance_to(mob.position)
        eye_target = mob.position.offset(0.0, 1.0, 0.0)
        if distance < ATTACK_RANGE and self._profile.has_line_of_sight(world.eye_position, eye_target, world):
            return MobKillerState.LOOKING_AT_MOB

        if self.last_position is not None and mob.position.distance_to(self.last_position) > MOVED_AWAY_DISTANCE:
            self.path_retry += 1
            if self.path_retry > self.max_path_retries:
                self.core.log.info("Target keeps moving away, searching again")
                self.path_retry = 0
                return MobKillerState.STARTING
            self.last_position = mob.position
            self._walk_to(world, mob)
            return MobKillerState.FINDING_MOB

        if not self.pathfinder.is_running():
            self.core.log.info("Path ended before reaching the target")
            return MobKillerState.STARTING
        return MobKillerState.FINDING_MOB

    def _pick_target(self, world: WorldSnapshot) -> Optional[MobKillerState]:
        """Rescan; a returned state overrides the rest of the tick."""
        shutdown = self.core.clock("shutdown")
        mobs = find_named_mobs(world, self.mobs_to_kill, ignore_ids=set(self.ctx.mob_queue))
        if not mobs:
            if not shutdown.is_scheduled():
                self.core.log.info("No mobs found, shutting down in %.0fs", SHUTDOWN_MS / 1000)
                shutdown.schedule(SHUTDOWN_MS)
            return MobKillerState.FINDING_MOB
        shutdown.reset()

        best = next((m for m in mobs if self._has_floor(world, m)), None)
        if best is None:
            self.core.log.info("No mob stands on a reachable block")
            return MobKillerState.STARTING

        if best.entity_id != self.target_id:
            self.target_id = best.entity_id
            self.last_position = best.position
            self._walk_to(world, best)
        return None

    def _has_floor(self, world: WorldSnapshot, mob: EntityInfo) -> bool:
        x, y, z = mob.position.floored()
        return self._profile.can_stand_on((x, y - 1, z), world)

    def _walk_to(self, world: WorldSnapshot, mob: EntityInfo) -> None:
        spots = walkable_blocks_around(world, mob.position.floored(), horizontal=1, down=4)
        goal = spots[0] if spots else mob.position.floored()
        self.pathfinder.go_to(world, goal, allow_sprint=self.ctx.config.commission.mob_killer_sprint)

    def _tick_looking(self, world: WorldSnapshot) -> MobKillerState:
        if self.pathfinder.is_running():
            self.pathfinder.stop()
        if self._target(world) is None:
            return MobKillerState.STARTING
        self.ctx.rotation.rotate_to(EntityTarget.with_random_offset(self.target_id, self.ctx.rng), 400)
        return MobKillerState.KILLING_MOB

    def _tick_killing(self, world: WorldSnapshot) -> MobKillerState:
        mob = self._target(world)
        if mob is None or self.core.clock("kill").passed():
            self.ctx.rotation.stop()
            return MobKillerState.STARTING

        facing = Angle(world.yaw, world.pitch)
        aimed = is_looking_at(facing, world.eye_position, mob.position.offset(0.0, 1.0, 0.0), tolerance=15.0)
        if not aimed:
            if self.pathfinder.is_running() and world.player_pos.distance_to(mob.position) < 3:
                self.pathfinder.stop()
                return MobKillerState.KILLING_MOB
            if not self.pathfinder.is_running() and not self.ctx.rotation.is_rotating():
                return MobKillerState.STARTING
            return MobKillerState.KILLING_MOB

        self.ctx.adapter.attack(mob.entity_id)
        self._attacked.add(mob.entity_id)
        self.ctx.rotation.stop()
        return MobKillerState.STARTING

    def _fail(self, error: MobKillerError) -> None:
        self.error = error
        self.stop()


__all__ = ["AutoMobKiller", "MobKillerError", "MobKillerState"]
