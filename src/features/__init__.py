# src/features/__init__.py
"""
Features: tick-driven state machines registered in a FeatureManager.
"""

from .auto_chest_unlocker import AutoChestUnlocker, ChestError, ChestState
from .auto_commission_claim import AutoCommissionClaim, ClaimError, ClaimState
from .auto_drill_refuel import AutoDrillRefuel, FuelType, RefuelError, RefuelState
from .auto_inventory import AutoInventory, InventoryError, InventoryState
from .auto_mob_killer import AutoMobKiller, MobKillerError, MobKillerState
from .auto_sell import AutoSell, SellError, SellState
from .auto_warp import AutoWarp, WarpError, WarpState
from .base import Feature, FeatureCore, StateMachine
from .block_miner import BlockMiner, BlockMinerError, MinerState
from .manager import FeatureManager
from .route_navigator import RouteError, RouteNavigator, RouteState

__all__ = [
    "AutoChestUnlocker",
    "AutoCommissionClaim",
    "AutoDrillRefuel",
    "AutoInventory",
    "AutoMobKiller",
    "AutoSell",
    "AutoWarp",
    "BlockMiner",
    "BlockMinerError",
    "ChestError",
    "ChestState",
    "ClaimError",
    "ClaimState",
    "Feature",
    "FeatureCore",
    "FeatureManager",
    "FuelType",
    "InventoryError",
    "InventoryState",
    "MinerState",
    "MobKillerError",
    "MobKillerState",
    "RefuelError",
    "RefuelState",
    "RouteError",
    "RouteNavigator",
    "RouteState",
    "SellError",
    "SellState",
    "StateMachine",
    "WarpError",
    "WarpState",
]
