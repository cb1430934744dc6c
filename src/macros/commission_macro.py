# src/macros/commission_macro.py
"""
Commission macro.

    STARTING -> [GETTING_STATS | REFUEL | SELLING | WARPING | PATHING] -> STARTING
    STARTING -> MINING | MOB_KILLING -> CLAIMING -> STARTING

STARTING reads the commission section of the tablist every pass. A
finished commission is claimed first (warping to the Forge when claiming
at the emissary). Otherwise the upkeep detours run in a fixed order:
mining stats, drill fuel, selling, getting back to the Dwarven Mines and
walking a route registered for the commission. When none is needed, the
best open commission is worked: slayer commissions through AutoMobKiller,
mining commissions through BlockMiner. Once the tablist shows it done the
worker is stopped and the commission is claimed.

A feature that fails in a way the macro cannot recover from disables the
macro with a readable reason; so does reaching `max_commissions`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from bot_core.queries.text import commission_progress, is_in_location
from bot_core.snapshot import WorldSnapshot
from features.auto_commission_claim import AutoCommissionClaim
from features.auto_drill_refuel import AutoDrillRefuel
from features.auto_inventory import AutoInventory
from features.auto_mob_killer import AutoMobKiller
from features.auto_sell import AutoSell
from features.auto_warp import AutoWarp
from features.base import Feature, StateMachine
from features.block_miner import MINING_BLOCKS, BlockMiner, BlockMinerError, BlockSpec, blocks_for_ore
from features.route_navigator import RouteNavigator
from monitoring.events import EventType
from routes.graph import Route

from .base import MacroCore
from .mining_macro import FATAL_MINER_ERRORS

if TYPE_CHECKING:
    from bot_core.context import BotContext


class CommissionMacroState(Enum):
    STARTING = auto()
    GETTING_STATS = auto()
    WARPING = auto()
    PATHING = auto()
    REFUEL = auto()
    SELLING = auto()
    MINING = auto()
    MOB_KILLING = auto()
    CLAIMING = auto()


# Slayer commissions in the order they are picked, with the mobs counted.
SLAYER_COMMISSIONS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("glacite walker slayer", ("Glacite Walker",)),
    ("goblin slayer", ("Goblin", "Knifethrower", "Fireslinger")),
    ("mines slayer", ("Goblin", "Knifethrower", "Fireslinger", "Glacite Walker")),
    ("treasure hoarder", ("Treasure Hoarder",)),
)

MINING_COMMISSIONS: Tuple[Tuple[str, Tuple[BlockSpec, ...]], ...] = (
    ("titanium", (MINING_BLOCKS["TITANIUM"],)),
    ("mithril", tuple(blocks_for_ore("mithril"))),
)

MINES_AREA = "Dwarven Mines"
FORGE_AREA = "Forge"
# Route key walked before claiming at the emissary.
EMISSARY_ROUTE = "emissary"


@dataclass(frozen=True)
class Commission:
    name: str
    progress: float
    mobs: Tuple[str, ...] = ()
    blocks: Tuple[BlockSpec, ...] = ()
    rank: int = 0

    @property
    def is_slayer(self) -> bool:
        return bool(self.mobs)

    @property
    def done(self) -> bool:
        return self.progress >= 1.0


def classify_commission(name: str, progress: float) -> Optional[Commission]:
    """Commission the macro knows how to work, or None."""
    lowered = name.lower()
    for rank, (key, mobs) in enumerate(SLAYER_COMMISSIONS):
        if key in lowered:
            return Commission(name, progress, mobs=mobs, rank=rank)
    for offset, (key, blocks) in enumerate(MINING_COMMISSIONS):
        if key in lowered:
            return Commission(name, progress, blocks=blocks, rank=len(SLAYER_COMMISSIONS) + offset)
    return None


def best_commission(progress: Dict[str, float]) -> Optional[Commission]:
    """Open commission to work next: slayers first, then mining, tablist order within a rank."""
    known = [
        commission
        for commission in (classify_commission(name, value) for name, value in progress.items())
        if commission is not None and not commission.done
    ]
    if not known:
        return None
    return min(known, key=lambda c: c.rank)


class CommissionMacro:
    name = "CommissionMacro"

    def __init__(self, ctx: "BotContext", max_commissions: int = 50, max_stats_retries: int = 3) -> None:
        self.ctx = ctx
        self.max_commissions = max_commissions
        self.max_stats_retries = max_stats_retries
        self.core = MacroCore(self.name, ctx.time_fn, ctx.bus, logger_name=__name__)
        self.machine: StateMachine[CommissionMacroState] = StateMachine(
            self.core,
            CommissionMacroState.STARTING,
            handlers={
                CommissionMacroState.STARTING: self._tick_starting,
                CommissionMacroState.GETTING_STATS: self._tick_getting_stats,
                CommissionMacroState.WARPING: self._tick_warping,
                CommissionMacroState.PATHING: self._tick_pathing,
                CommissionMacroState.REFUEL: self._tick_refuel,
                CommissionMacroState.SELLING: self._tick_selling,
                CommissionMacroState.MINING: self._tick_mining,
                CommissionMacroState.MOB_KILLING: self._tick_mob_killing,
                CommissionMacroState.CLAIMING: self._tick_claiming,
            },
            event_type=EventType.MACRO_STATE_CHANGE,
        )
        self.routes: Dict[str, Route] = {}
        self.commission: Optional[Commission] = None
        self.commissions_claimed = 0
        self.mining_speed = 0
        self.stats_retries = 0
        self._walked_route: Optional[str] = None
        self._worker_started = False

    # ------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------

    @property
    def miner(self) -> BlockMiner:
        return self.ctx.feature(BlockMiner.name)

    @property
    def inventory(self) -> AutoInventory:
        return self.ctx.feature(AutoInventory.name)

    @property
    def claim(self) -> AutoCommissionClaim:
        return self.ctx.feature(AutoCommissionClaim.name)

    @property
    def killer(self) -> AutoMobKiller:
        return self.ctx.feature(AutoMobKiller.name)

    @property
    def navigator(self) -> RouteNavigator:
        return self.ctx.feature(RouteNavigator.name)

    @property
    def refuel(self) -> AutoDrillRefuel:
        return self.ctx.feature(AutoDrillRefuel.name)

    @property
    def warp(self) -> AutoWarp:
        return self.ctx.feature(AutoWarp.name)

    @property
    def seller(self) -> AutoSell:
        return self.ctx.feature(AutoSell.name)

    def set_route(self, key: str, route: Route) -> None:
        """Route walked before working commission `key` (or before claiming, for EMISSARY_ROUTE)."""
        self.routes[key] = route

    # ------------------------------------------------------------------
    # Macro protocol
    # ------------------------------------------------------------------

    def on_enable(self) -> None:
        self.commission = None
        self.commissions_claimed = 0
        self.mining_speed = self.ctx.config.general.mining_speed
        self.stats_retries = 0
        self._walked_route = None
        self._worker_started = False
        self.machine.reset(CommissionMacroState.STARTING)

    def on_disable(self) -> None:
        self._worker_started = False

    def owned_features(self) -> List[Feature]:
        return [
            self.miner,
            self.inventory,
            self.claim,
            self.killer,
            self.navigator,
            self.refuel,
            self.warp,
            self.seller,
        ]

    def counters(self) -> Dict[str, int]:
        return {
            "commissions_claimed": self.commissions_claimed,
            "blocks_mined": self.miner.blocks_mined,
            "mobs_killed": self.killer.mobs_killed,
        }

    def current_state(self) -> Optional[str]:
        return self.machine.state.name

    def on_tick(self, world: WorldSnapshot) -> None:
        self.machine.step(world)
        self.core.delay(self.ctx.config.general.macro_tick_delay_ms)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _tick_starting(self, world: WorldSnapshot) -> CommissionMacroState:
        if self.commissions_claimed >= self.max_commissions:
            self.core.disable(f"Claimed {self.max_commissions} commissions, stopping for this session")
            return CommissionMacroState.STARTING

        progress = commission_progress(world.tablist)
        if any(value >= 1.0 for value in progress.values()):
            return self._go_claim(world)

        commission = best_commission(progress)
        if commission is None:
            self.core.disable("No supported commission found in the tablist")
            return CommissionMacroState.STARTING
        if self.commission is None or commission.name != self.commission.name:
            self.core.log.info("Working on %s (%.0f%%)", commission.name, commission.progress * 100)
            self._walked_route = None
        self.commission = commission

        if not commission.is_slayer and self.mining_speed <= 0:
            self.core.log.info("Reading mining speed from stats")
            self.stats_retries = 0
            self.inventory.retrieve_stats()
            return CommissionMacroState.GETTING_STATS

        if self.ctx.config.refuel.enabled and self.refuel.start(world):
            return CommissionMacroState.REFUEL

        if self.ctx.config.sell.enabled and self.seller.should_sell(world):
            self.seller.start()
            return CommissionMacroState.SELLING

        if not is_in_location(world, MINES_AREA):
            return self._go_warp(MINES_AREA, "dwarven_mines", "Not in the Dwarven Mines")

        route = self.routes.get(commission.name)
        if route is not None and self._walked_route != commission.name:
            return self._go_path(commission.name, route)

        self._worker_started = False
        if commission.is_slayer:
            return CommissionMacroState.MOB_KILLING
        return CommissionMacroState.MINING

    def _go_claim(self, world: WorldSnapshot) -> CommissionMacroState:
        method = self.ctx.config.commission.claim_method
        if method != "pigeon":
            if not is_in_location(world, FORGE_AREA):
                return self._go_warp(FORGE_AREA, "forge", "Claiming at the emissary")
            route = self.routes.get(EMISSARY_ROUTE)
            if route is not None and self._walked_route != EMISSARY_ROUTE:
                return self._go_path(EMISSARY_ROUTE, route)
        self.core.log.info("Commission done, claiming with %s", method)
        self.claim.start(method)
        return CommissionMacroState.CLAIMING

    def _go_warp(self, area: str, location: str, reason: str) -> CommissionMacroState:
        if not self.warp.request_warp(location, reason):
            self.core.log.debug("Warp to %s not queued, waiting", area)
            return CommissionMacroState.STARTING
        return CommissionMacroState.WARPING

    def _go_path(self, key: str, route: Route) -> CommissionMacroState:
        if not self.navigator.start(route):
            self.core.disable(f"Route for {key} is empty")
            return CommissionMacroState.STARTING
        self._walked_route = key
        return CommissionMacroState.PATHING

    def _tick_getting_stats(self, world: WorldSnapshot) -> CommissionMacroState:
        inventory = self.inventory
        if inventory.core.enabled:
            return CommissionMacroState.GETTING_STATS

        if inventory.succeeded and inventory.mining_speed > 0:
            self.mining_speed = inventory.mining_speed
            self.core.log.info("Mining speed %d", self.mining_speed)
            return CommissionMacroState.STARTING

        self.stats_retries += 1
        if self.stats_retries >= self.max_stats_retries:
            self.core.disable(f"Failed to get mining stats after {self.max_stats_retries} attempts")
            return CommissionMacroState.GETTING_STATS
        self.core.log.warning("Stats not read (%s), retrying", inventory.error.name)
        inventory.retrieve_stats()
        return CommissionMacroState.GETTING_STATS

    def _tick_warping(self, world: WorldSnapshot) -> CommissionMacroState:
        warp = self.warp
        if warp.core.enabled:
            return CommissionMacroState.WARPING
        if not warp.succeeded():
            self.core.disable(f"Could not warp to {', '.join(warp.failed) or 'the mines'}")
        return CommissionMacroState.STARTING

    def _tick_pathing(self, world: WorldSnapshot) -> CommissionMacroState:
        navigator = self.navigator
        if navigator.core.enabled:
            return CommissionMacroState.PATHING
        if not navigator.succeeded():
            self.core.disable(f"Route {self._walked_route} failed: {navigator.error.name}")
        return CommissionMacroState.STARTING

    def _tick_refuel(self, world: WorldSnapshot) -> CommissionMacroState:
        refuel = self.refuel
        if refuel.core.enabled:
            return CommissionMacroState.REFUEL
        if not refuel.succeeded():
            self.core.disable(f"Drill refuel failed: {refuel.error.name}")
        return CommissionMacroState.STARTING

    def _tick_selling(self, world: WorldSnapshot) -> CommissionMacroState:
        seller = self.seller
        if seller.core.enabled:
            return CommissionMacroState.SELLING
        if not seller.succeeded():
            self.core.log.warning("Selling failed (%s), carrying on", seller.error.name)
        return CommissionMacroState.STARTING

    def _current_done(self, world: WorldSnapshot) -> bool:
        if self.commission is None:
            return False
        return commission_progress(world.tablist).get(self.commission.name, 0.0) >= 1.0

    def _tick_mining(self, world: WorldSnapshot) -> CommissionMacroState:
        miner = self.miner
        commission = self.commission
        if self._current_done(world):
            self.core.log.info("%s done", commission.name)
            if miner.core.enabled:
                miner.stop()
            self._worker_started = False
            return self._go_claim(world)

        if not self._worker_started:
            miner.set_wait_threshold(self.ctx.config.general.ore_respawn_wait_threshold_s * 1000.0)
            miner.start(
                commission.blocks,
                self.mining_speed,
                [1] * len(commission.blocks),
                self.ctx.config.general.mining_tool,
                world=world,
            )
            self._worker_started = True
            return CommissionMacroState.MINING

        if miner.core.enabled:
            return CommissionMacroState.MINING

        self._worker_started = False
        if miner.error is BlockMinerError.NO_POINTS_FOUND:
            self.core.log.info("Lost sight of the target, restarting")
            return CommissionMacroState.MINING
        reason = FATAL_MINER_ERRORS.get(miner.error)
        if reason is not None:
            self.core.disable(reason)
        return CommissionMacroState.STARTING

    def _tick_mob_killing(self, world: WorldSnapshot) -> CommissionMacroState:
        killer = self.killer
        commission = self.commission
        if self._current_done(world):
            self.core.log.info("%s done", commission.name)
            if killer.core.enabled:
                killer.stop()
            self._worker_started = False
            return self._go_claim(world)

        if not self._worker_started:
            killer.start(commission.mobs, self.ctx.config.commission.slayer_weapon, world=world)
            self._worker_started = True
            return CommissionMacroState.MOB_KILLING

        if killer.core.enabled:
            return CommissionMacroState.MOB_KILLING

        self._worker_started = False
        self.core.disable(f"Mob killer stopped on {commission.name}: {killer.error.name}")
        return CommissionMacroState.MOB_KILLING

    def _tick_claiming(self, world: WorldSnapshot) -> CommissionMacroState:
        claim = self.claim
        if claim.core.enabled:
            return CommissionMacroState.CLAIMING
        if not claim.succeeded():
            self.core.disable(f"Could not claim commission: {claim.error.name}")
            return CommissionMacroState.CLAIMING
        if claim.claimed == 0:
            self.core.disable("Commission menu had nothing to claim")
            return CommissionMacroState.CLAIMING
        self.commissions_claimed += claim.claimed
        self.commission = None
        self._walked_route = None
        self.core.log.info("Claimed %d commissions this session", self.commissions_claimed)
        return CommissionMacroState.STARTING


__all__ = [
    "Commission",
    "CommissionMacro",
    "CommissionMacroState",
    "best_commission",
    "classify_commission",
]
