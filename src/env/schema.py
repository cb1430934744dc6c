# src/env/schema.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from bot_core.queries.blocks import MiningCostWeights, SelectionWeights


@dataclass
class GeneralConfig:
    """Settings shared by every macro."""
    macro_type: str = "mining"
    mining_tool: str = "Pickaxe"
    alt_mining_tools: List[str] = field(
        default_factory=lambda: ["Gauntlet", "Drill", "Pickaxe"]
    )
    use_pickaxe_ability: bool = True
    ore_respawn_wait_threshold_s: float = 5.0
    mining_speed: int = 1000  # 0: read it from the stats menu
    sprint: bool = True
    macro_tick_delay_ms: float = 0.0
    rotation_time_ms: float = 400.0


@dataclass
class MiningConfig:
    """Which ores the mining macro targets and BlockMiner timings."""
    ore_type: str = "mithril"  # mithril, diamond, emerald, redstone, lapis, gold, iron, coal
    mine_gray_mithril: bool = True
    mine_green_mithril: bool = True
    mine_blue_mithril: bool = True
    breaking_timeout_ms: float = 10000.0
    ability_timeout_ms: float = 5000.0
    ability_retry_limit: int = 2   # ability detours allowed from Starting
    ability_retry_ceiling: int = 4  # Starting<->ApplyAbility swaps before giving up


@dataclass
class ScoringConfig:
    """Block selection and mining cost weights."""
    priority_weight: float = 100.0
    distance_weight: float = 10.0
    height_weight: float = 5.0
    angle_weight: float = 0.5
    scan_radius: int = 5
    reach: float = 4.5
    ray_step: float = 0.25
    mining_coefficient: float = 1.0
    angle_coefficient: float = 0.1
    distance_coefficient: float = 0.1

    def selection_weights(self) -> SelectionWeights:
        return SelectionWeights(
            priority=self.priority_weight,
            distance=self.distance_weight,
            height=self.height_weight,
            angle=self.angle_weight,
        )

    def cost_weights(self) -> MiningCostWeights:
        return MiningCostWeights(
            mining=self.mining_coefficient,
            angle=self.angle_coefficient,
            distance=self.distance_coefficient,
        )


@dataclass
class CommissionConfig:
    claim_method: str = "emissary"  # "emissary" or "pigeon"
    slayer_weapon: str = ""
    mob_killer_sprint: bool = True


@dataclass
class RefuelConfig:
    enabled: bool = False
    machine_fuel: str = "Volta"
    min_fuel_level: int = 10


@dataclass
class SellConfig:
    enabled: bool = False
    threshold: int = 30
    cooldown_ms: float = 10000.0
    sellable_items: List[str] = field(
        default_factory=lambda: [
            "cobblestone", "stone", "coal", "iron", "gold", "diamond", "emerald",
            "redstone", "lapis", "mithril", "hard stone", "ruby", "amber",
            "sapphire", "jade", "amethyst", "topaz", "jasper", "opal",
        ]
    )
    protected_items: List[str] = field(
        default_factory=lambda: [
            "pickaxe", "drill", "gauntlet", "food", "potion", "key", "pass",
            "token", "fuel",
        ]
    )


@dataclass
class WarpConfig:
    cooldown_ms: float = 30000.0
    max_attempts: int = 3
    verify_timeout_ms: float = 3000.0
    locations: Dict[str, List[str]] = field(
        default_factory=lambda: {
            "hub": ["hub"],
            "dwarven_mines": ["mines", "dwarven"],
            "crystal_hollows": ["ch", "crystals"],
            "forge": ["forge"],
            "base_camp": ["camp", "base"],
        }
    )


@dataclass
class HumanizationConfig:
    seed: Optional[int] = None
    rotation_randomness: float = 0.1


@dataclass
class MinerConfig:
    """Top-level resolved configuration."""
    general: GeneralConfig = field(default_factory=GeneralConfig)
    mining: MiningConfig = field(default_factory=MiningConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    commission: CommissionConfig = field(default_factory=CommissionConfig)
    refuel: RefuelConfig = field(default_factory=RefuelConfig)
    sell: SellConfig = field(default_factory=SellConfig)
    warp: WarpConfig = field(default_factory=WarpConfig)
    humanization: HumanizationConfig = field(default_factory=HumanizationConfig)

    @staticmethod
    def default() -> "MinerConfig":
        return MinerConfig()
