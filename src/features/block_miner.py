# src/features/block_miner.py
"""
BlockMiner feature.

State machine:

    STARTING ──(blocks found)──> CHOOSING_BLOCK ──> BREAKING ──> STARTING
        │                              ^
        └──(ability ready)──> APPLY_ABILITY

- STARTING waits up to `wait_threshold_ms` for a block with priority > 0
  inside the scan radius, else NOT_ENOUGH_BLOCKS.
- CHOOSING_BLOCK ranks visible blocks in reach by selection score (mining
  cost breaks ties) and picks the best one.
- BREAKING aims once, waits a tick, digs, and returns to STARTING when the
  block is air or after the breaking timeout.
- APPLY_ABILITY fires the tool ability once, waits for the chat
  confirmation, tries the alternate tools once, then carries on without it.

Ability retries count detours that ended without a chat confirmation:
every Starting <-> ApplyAbility swap, an ApplyAbility exit while the
ability still reads as available, and every detour Starting skipped
because the retry limit was reached. A confirmation resets the count;
reaching the retry ceiling stops the miner with NO_PICKAXE_ABILITY.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from bot_core.adapter import release_all_keys
from bot_core.collision import default_block_collision_profile
from bot_core.queries.blocks import (
    best_dig_face,
    closest_visible_side,
    find_mineable_blocks,
    find_priority_blocks,
)
from bot_core.queries.inventory import hold_item
from bot_core.snapshot import Coord, WorldSnapshot
from bot_core.target import PositionTarget

from .base import FeatureCore, StateMachine

if TYPE_CHECKING:
    from bot_core.context import BotContext

log = logging.getLogger(__name__)


class MinerState(Enum):
    STARTING = auto()
    CHOOSING_BLOCK = auto()
    BREAKING = auto()
    APPLY_ABILITY = auto()


class BlockMinerError(Enum):
    NONE = auto()
    NOT_ENOUGH_BLOCKS = auto()
    NO_TOOLS_AVAILABLE = auto()
    NO_POINTS_FOUND = auto()
    NO_TARGET_BLOCKS = auto()
    NO_PICKAXE_ABILITY = auto()


class PickaxeAbility(Enum):
    AVAILABLE = auto()
    UNAVAILABLE = auto()


@dataclass(frozen=True)
class BlockSpec:
    """A minable block kind and the client state ids it shows up as."""

    name: str
    state_ids: Tuple[int, ...]


MINING_BLOCKS: Dict[str, BlockSpec] = {
    kind.name: kind
    for kind in (
        BlockSpec("GRAY_MITHRIL", (28707, 37023)),
        BlockSpec("GREEN_MITHRIL", (168, 4264, 8360)),
        BlockSpec("BLUE_MITHRIL", (12323,)),
        BlockSpec("TITANIUM", (16385,)),
        BlockSpec("DIAMOND", (57,)),
        BlockSpec("EMERALD", (133,)),
        BlockSpec("REDSTONE", (152,)),
        BlockSpec("LAPIS", (22,)),
        BlockSpec("GOLD", (41,)),
        BlockSpec("IRON", (42,)),
        BlockSpec("COAL", (173,)),
    )
}

# Confirmation window for one ability activation.
ABILITY_CONFIRM_MS = 1000.0
MINING_SPEED_OFFSET = 200

ABILITY_AVAILABLE_MESSAGES = ("is now available!",)
ABILITY_USED_MESSAGES = ("You used your", "Your pickaxe ability is on cooldown for")


class BlockMiner:
    name = "BlockMiner"

    def __init__(self, ctx: "BotContext") -> None:
        self.ctx = ctx
        cfg = ctx.config
        self.core = FeatureCore(self.name, ctx.time_fn, ctx.bus, logger_name=__name__)
        self.machine: StateMachine[MinerState] = StateMachine(
            self.core,
            MinerState.STARTING,
            handlers={
                MinerState.STARTING: self._tick_starting,
                MinerState.CHOOSING_BLOCK: self._tick_choosing,
                MinerState.BREAKING: self._tick_breaking,
                MinerState.APPLY_ABILITY: self._tick_ability,
            },
            on_enter={
                MinerState.STARTING: self._enter_starting,
                MinerState.BREAKING: self._enter_breaking,
                MinerState.APPLY_ABILITY: self._enter_ability,
            },
            on_exit={
                MinerState.BREAKING: self._exit_breaking,
                MinerState.APPLY_ABILITY: self._exit_ability,
            },
            on_transition=self._count_ability_retries,
        )
        self._profile = default_block_collision_profile()

        self.error: BlockMinerError = BlockMinerError.NONE
        self.pickaxe_ability: PickaxeAbility = PickaxeAbility.AVAILABLE
        self.block_priority: Dict[int, int] = {}
        self.target_block: Optional[Coord] = None
        self.target_state_id: Optional[int] = None
        self.mining_speed: float = 0.0
        self.mining_tool: str = ""
        self.wait_threshold_ms: float = cfg.general.ore_respawn_wait_threshold_s * 1000.0
        self.retry_activate_ability: int = 0
        self.tried_alt: bool = False
        self.blocks_mined: int = 0

        self._rotated = False
        self._digging = False
        self._ability_attempted = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(
        self,
        blocks_to_mine: Sequence[BlockSpec],
        mining_speed: float,
        priority: Sequence[int],
        mining_tool: str = "",
        world: Optional[WorldSnapshot] = None,
    ) -> None:
        world = world or self.ctx.world
        self.core.log.info("Starting")
        if self.core.enabled:
            self.stop()

        if mining_tool and not hold_item(self.ctx.adapter, world, [mining_tool]):
            self.core.log.error("%s not found in hotbar", mining_tool)
            self.error = BlockMinerError.NO_TOOLS_AVAILABLE
            self.stop()
            return

        if not blocks_to_mine or not priority or all(p == 0 for p in priority):
            self.core.log.error("Target blocks not set")
            self.error = BlockMinerError.NO_TARGET_BLOCKS
            return

        self.block_priority = {}
        for index, kind in enumerate(blocks_to_mine):
            weight = priority[index] if index < len(priority) else 0
            for state_id in kind.state_ids:
                self.block_priority[state_id] = weight

        self.mining_tool = mining_tool
        self.mining_speed = max(1.0, float(mining_speed) - MINING_SPEED_OFFSET)
        self.error = BlockMinerError.NONE
        self.pickaxe_ability = PickaxeAbility.AVAILABLE
        self.retry_activate_ability = 0
        self.tried_alt = False
        self.target_block = None

        self.core.enable(blocks=len(self.block_priority))
        self.machine.reset(MinerState.STARTING)
        self._enter_starting()

    def stop(self) -> None:
        if self._digging:
            self.ctx.adapter.stop_digging()
            self._digging = False
        was_enabled = self.core.enabled
        self.core.disable(self.error)
        self.target_block = None
        self._rotated = False
        self._ability_attempted = False
        if was_enabled:
            release_all_keys(self.ctx.adapter)

    def pause(self) -> None:
        if self._digging:
            self.ctx.adapter.stop_digging()
            self._digging = False
        self.core.pause()
        release_all_keys(self.ctx.adapter)

    def resume(self) -> None:
        self.core.resume()

    def set_wait_threshold(self, ms: float) -> None:
        self.wait_threshold_ms = float(ms)

    @property
    def state(self) -> MinerState:
        return self.machine.state

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_tick(self, world: WorldSnapshot) -> None:
        if not self.core.is_running():
            return
        self.machine.step(world)

    def on_chat(self, message: str) -> None:
        if any(text in message for text in ABILITY_AVAILABLE_MESSAGES):
            self.pickaxe_ability = PickaxeAbility.AVAILABLE
            self.core.log.info("Pickaxe ability available")
        if any(text in message for text in ABILITY_USED_MESSAGES):
            self.pickaxe_ability = PickaxeAbility.UNAVAILABLE
            self.retry_activate_ability = 0
            self.core.log.info("Pickaxe ability unavailable")

    # ------------------------------------------------------------------
    # STARTING
    # ------------------------------------------------------------------

    def _enter_starting(self) -> None:
        self.core.clock("starting").schedule(self.wait_threshold_ms)

    def _tick_starting(self, world: WorldSnapshot) -> MinerState:
        if self.core.clock("starting").passed():
            self.core.log.error("No blocks within %.0fms", self.wait_threshold_ms)
            self._fail(BlockMinerError.NOT_ENOUGH_BLOCKS)
            return MinerState.STARTING

        radius = self.ctx.config.scoring.scan_radius
        if not find_priority_blocks(world, self.block_priority, radius=radius):
            return MinerState.STARTING

        if self._ability_pending():
            if self.retry_activate_ability < self.ctx.config.mining.ability_retry_limit:
                return MinerState.APPLY_ABILITY
            self._note_ability_retry()
            if not self.core.enabled:
                return MinerState.STARTING
        return MinerState.CHOOSING_BLOCK

    def _ability_pending(self) -> bool:
        return (
            self.ctx.config.general.use_pickaxe_ability
            and self.pickaxe_ability is PickaxeAbility.AVAILABLE
        )

    # ------------------------------------------------------------------
    # CHOOSING_BLOCK
    # ------------------------------------------------------------------

    def _tick_choosing(self, world: WorldSnapshot) -> MinerState:
        best = self.choose_block(world)
        if best is None:
            self.core.log.debug("No visible block in reach")
            return MinerState.STARTING
        self.target_block = best
        self.target_state_id = world.block_at(best).state_id
        self.core.log.debug("Selected block %s", best)
        return MinerState.BREAKING

    def choose_block(self, world: WorldSnapshot) -> Optional[Coord]:
        """Best visible block in reach, or None."""
        scoring = self.ctx.config.scoring
        ranked = find_mineable_blocks(
            world,
            self.block_priority,
            self.mining_speed,
            reach=scoring.reach,
            scan_radius=scoring.scan_radius,
            selection=scoring.selection_weights(),
            costs=scoring.cost_weights(),
            profile=self._profile,
            ray_step=scoring.ray_step,
        )
        return ranked[0][0] if ranked else None

    # ------------------------------------------------------------------
    # BREAKING
    # ------------------------------------------------------------------

    def _enter_breaking(self) -> None:
        self.core.clock("breaking").schedule(self.ctx.config.mining.breaking_timeout_ms)
        self._rotated = False
        self._digging = False

    def _exit_breaking(self) -> None:
        if self._digging:
            self.ctx.adapter.stop_digging()
        self._digging = False
        self._rotated = False

    def _tick_breaking(self, world: WorldSnapshot) -> MinerState:
        target = self.target_block
        if target is None:
            return MinerState.CHOOSING_BLOCK

        if self.core.clock("breaking").passed():
            self.core.log.warning("Timed out breaking %s", target)
            return MinerState.STARTING

        if world.block_at(target).is_air:
            self.blocks_mined += 1
            self.target_block = None
            return MinerState.STARTING

        if not self._rotated:
            aim = closest_visible_side(world, target, self._profile)
            if aim is None:
                self.core.log.error("No visible point on %s", target)
                self._fail(BlockMinerError.NO_POINTS_FOUND)
                return MinerState.BREAKING
            self.ctx.rotation.rotate_to(
                PositionTarget(aim), self.ctx.config.general.rotation_time_ms
            )
            self._rotated = True
            # One tick for the aim to settle before the first swing.
            return MinerState.BREAKING

        if not self._digging:
            face = best_dig_face(world.eye_position, target)
            self.ctx.adapter.start_digging(target, face)
            self._digging = True
        return MinerState.BREAKING

    # ------------------------------------------------------------------
    # APPLY_ABILITY
    # ------------------------------------------------------------------

    def _enter_ability(self) -> None:
        self.core.clock("ability").schedule(self.ctx.config.mining.ability_timeout_ms)
        self.core.clock("ability_confirm").reset()
        self._ability_attempted = False

    def _exit_ability(self) -> None:
        self.tried_alt = False
        self._ability_attempted = False

    def _tick_ability(self, world: WorldSnapshot) -> MinerState:
        if self.core.clock("ability").passed():
            self.core.log.warning("Ability activation timed out")
            return MinerState.CHOOSING_BLOCK

        if self.pickaxe_ability is PickaxeAbility.UNAVAILABLE:
            if self._ability_attempted:
                self.core.log.info("Pickaxe ability activated")
            return MinerState.CHOOSING_BLOCK

        if not self._ability_attempted:
            tools = [self.mining_tool] if self.mining_tool else list(self.ctx.config.general.alt_mining_tools)
            if not hold_item(self.ctx.adapter, world, tools):
                self.core.log.warning("No tool to activate the ability with")
                return MinerState.STARTING
            self.ctx.adapter.activate_item()
            self._ability_attempted = True
            self.core.clock("ability_confirm").schedule(ABILITY_CONFIRM_MS)
            return MinerState.APPLY_ABILITY

        if not self.core.clock("ability_confirm").passed():
            return MinerState.APPLY_ABILITY

        if not self.tried_alt:
            self.tried_alt = True
            if hold_item(self.ctx.adapter, world, self.ctx.config.general.alt_mining_tools):
                self.core.log.info("Retrying ability with an alternate tool")
                self._ability_attempted = False
                return MinerState.APPLY_ABILITY

        self.core.log.warning("Ability did not trigger, mining without it")
        return MinerState.CHOOSING_BLOCK

    # ------------------------------------------------------------------
    # Transition bookkeeping
    # ------------------------------------------------------------------

    def _count_ability_retries(self, old: MinerState, new: MinerState) -> None:
        swapped = {old, new} == {MinerState.STARTING, MinerState.APPLY_ABILITY}
        unconfirmed = (
            old is MinerState.APPLY_ABILITY
            and new is MinerState.CHOOSING_BLOCK
            and self.pickaxe_ability is PickaxeAbility.AVAILABLE
        )
        if swapped or unconfirmed:
            self._note_ability_retry()

    def _note_ability_retry(self) -> None:
        self.retry_activate_ability += 1
        if self.retry_activate_ability >= self.ctx.config.mining.ability_retry_ceiling:
            self.core.log.error("Too many ability activation attempts")
            self._fail(BlockMinerError.NO_PICKAXE_ABILITY)

    def _fail(self, error: BlockMinerError) -> None:
        self.error = error
        self.stop()


def blocks_for_ore(ore_type: str) -> List[BlockSpec]:
    """Block kinds mined for a configured ore type."""
    if ore_type == "mithril":
        return [MINING_BLOCKS[n] for n in ("GRAY_MITHRIL", "GREEN_MITHRIL", "BLUE_MITHRIL", "TITANIUM")]
    kind = MINING_BLOCKS.get(ore_type.upper())
    return [kind] if kind is not None else []


__all__ = [
    "BlockMiner",
    "BlockMinerError",
    "BlockSpec",
    "MINING_BLOCKS",
    "MinerState",
    "PickaxeAbility",
    "blocks_for_ore",
]
