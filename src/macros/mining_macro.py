# src/macros/mining_macro.py
"""
Mining macro.

    INITIALIZATION -> GETTING_STATS -> MINING
          ^                              |
          +------(NO_POINTS_FOUND)-------+

INITIALIZATION resolves the configured ore into block kinds. When no mining
speed is configured it is read from the stats menu through AutoInventory,
retried up to `max_stats_retries` times. MINING keeps BlockMiner running
and turns its errors into either a re-initialisation or a fatal disable
with a readable reason.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import TYPE_CHECKING, Dict, List, Optional

from bot_core.snapshot import WorldSnapshot
from features.auto_inventory import AutoInventory
from features.base import Feature, StateMachine
from features.block_miner import BlockMiner, BlockMinerError, BlockSpec, blocks_for_ore
from monitoring.events import EventType

from .base import MacroCore

if TYPE_CHECKING:
    from bot_core.context import BotContext


class MiningMacroState(Enum):
    INITIALIZATION = auto()
    GETTING_STATS = auto()
    MINING = auto()


FATAL_MINER_ERRORS: Dict[BlockMinerError, str] = {
    BlockMinerError.NO_TARGET_BLOCKS: "Please set at least one type of target block in configs!",
    BlockMinerError.NOT_ENOUGH_BLOCKS: "Not enough blocks nearby! Please move to a new vein",
    BlockMinerError.NO_TOOLS_AVAILABLE: "Cannot find tools in hotbar! Please set it in configs",
    BlockMinerError.NO_PICKAXE_ABILITY: (
        "Cannot find messages for pickaxe ability! Either enable any pickaxe ability "
        "in HOTM or enable chat messages. You can also disable pickaxe ability in configs."
    ),
}


class MiningMacro:
    name = "MiningMacro"

    def __init__(self, ctx: "BotContext", max_stats_retries: int = 3) -> None:
        self.ctx = ctx
        self.max_stats_retries = max_stats_retries
        self.core = MacroCore(self.name, ctx.time_fn, ctx.bus, logger_name=__name__)
        self.machine: StateMachine[MiningMacroState] = StateMachine(
            self.core,
            MiningMacroState.INITIALIZATION,
            handlers={
                MiningMacroState.INITIALIZATION: self._tick_initialization,
                MiningMacroState.GETTING_STATS: self._tick_getting_stats,
                MiningMacroState.MINING: self._tick_mining,
            },
            event_type=EventType.MACRO_STATE_CHANGE,
        )
        self.blocks: List[BlockSpec] = []
        self.mining_speed: int = 0
        self.stats_retries = 0
        self._miner_started = False

    @property
    def miner(self) -> BlockMiner:
        return self.ctx.feature(BlockMiner.name)

    @property
    def inventory(self) -> AutoInventory:
        return self.ctx.feature(AutoInventory.name)

    # ------------------------------------------------------------------
    # Macro protocol
    # ------------------------------------------------------------------

    def on_enable(self) -> None:
        self.machine.reset(MiningMacroState.INITIALIZATION)

    def on_disable(self) -> None:
        self._miner_started = False

    def owned_features(self) -> List[Feature]:
        return [self.miner, self.inventory]

    def counters(self) -> Dict[str, int]:
        return {"blocks_mined": self.miner.blocks_mined}

    def current_state(self) -> Optional[str]:
        return self.machine.state.name

    def on_tick(self, world: WorldSnapshot) -> None:
        self.machine.step(world)
        self.core.delay(self.ctx.config.general.macro_tick_delay_ms)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _tick_initialization(self, world: WorldSnapshot) -> MiningMacroState:
        self.blocks = blocks_for_ore(self.ctx.config.mining.ore_type)
        self.mining_speed = self.ctx.config.general.mining_speed
        self.stats_retries = 0
        self._miner_started = False

        if self.mining_speed <= 0:
            self.core.log.info("Reading mining speed from stats")
            self.inventory.retrieve_stats()
            return MiningMacroState.GETTING_STATS
        return MiningMacroState.MINING

    def _tick_getting_stats(self, world: WorldSnapshot) -> MiningMacroState:
        inventory = self.inventory
        if inventory.core.enabled:
            return MiningMacroState.GETTING_STATS

        if inventory.succeeded and inventory.mining_speed > 0:
            self.mining_speed = inventory.mining_speed
            self.core.log.info("Mining speed %d", self.mining_speed)
            return MiningMacroState.MINING

        self.stats_retries += 1
        if self.stats_retries >= self.max_stats_retries:
            self.core.disable(
                f"Failed to get mining stats after {self.max_stats_retries} attempts"
            )
            return MiningMacroState.GETTING_STATS
        self.core.log.warning("Stats not read (%s), retrying", inventory.error.name)
        inventory.retrieve_stats()
        return MiningMacroState.GETTING_STATS

    def _tick_mining(self, world: WorldSnapshot) -> MiningMacroState:
        miner = self.miner
        if not self._miner_started:
            miner.set_wait_threshold(self.ctx.config.general.ore_respawn_wait_threshold_s * 1000.0)
            miner.start(
                self.blocks,
                self.mining_speed,
                self.determine_priority(),
                self.ctx.config.general.mining_tool,
                world=world,
            )
            self._miner_started = True
            return MiningMacroState.MINING

        if miner.core.enabled:
            return MiningMacroState.MINING

        self._miner_started = False
        error = miner.error
        if error is BlockMinerError.NO_POINTS_FOUND:
            self.core.log.info("Lost sight of the target, restarting")
            return MiningMacroState.INITIALIZATION
        reason = FATAL_MINER_ERRORS.get(error)
        if reason is not None:
            self.core.disable(reason)
        return MiningMacroState.MINING

    def determine_priority(self) -> List[int]:
        """Priority per entry of `blocks`, in the same order."""
        mining = self.ctx.config.mining
        if mining.ore_type == "mithril":
            return [
                int(mining.mine_gray_mithril),
                int(mining.mine_green_mithril),
                int(mining.mine_blue_mithril),
                1,
            ]
        return [1] * len(self.blocks)


__all__ = ["FATAL_MINER_ERRORS", "MiningMacro", "MiningMacroState"]
