# tests/test_commission_macro.py
"""
Unit tests for macros.commission_macro.CommissionMacro.

Covers:
- Mining commission: BlockMiner runs until the tablist shows it done, then the pigeon claim
- Slayer commission starts AutoMobKiller with the commission's mobs
- Outside the Dwarven Mines the macro warps there before working
- Emissary claims warp to the Forge first
- No supported commission / session limit disable with a reason
- Commission ranking: slayers first, finished commissions skipped
"""

from __future__ import annotations

from typing import Optional

from bot_core.snapshot import BlockState, ItemStack, WindowInfo
from bot_core.testing import WorldBuilder
from env.schema import MinerConfig
from features.auto_commission_claim import AutoCommissionClaim
from features.auto_mob_killer import AutoMobKiller
from features.block_miner import BlockMiner
from macros.commission_macro import (
    CommissionMacro,
    CommissionMacroState,
    best_commission,
    classify_commission,
)
from monitoring.events import EventType
from tests.fakes.fake_runtime import FakeBot, make_bot

BEDROCK = BlockState(7, "bedrock")
TITANIUM = 16385
IN_MINES = "§b§lArea: §7Dwarven Mines"


def _config(claim_method: str = "pigeon") -> MinerConfig:
    config = MinerConfig.default()
    config.general.mining_speed = 1000
    config.general.use_pickaxe_ability = False
    config.commission.claim_method = claim_method
    return config


def _bot(*commissions: str, area: Optional[str] = IN_MINES, claim_method: str = "pigeon") -> FakeBot:
    header = [area] if area else []
    world = (
        WorldBuilder()
        .at(0.5, 64, 0.5)
        .floor(63, state=BEDROCK)
        .item(0, "diamond_pickaxe", "Titanium Pickaxe")
        .item(4, "feather", "Royal Pigeon")
        .block((3, 65, 0), TITANIUM, "polished_diorite")
        .tablist(*header, "§e§lCommissions:", *commissions)
        .build()
    )
    return make_bot(world, _config(claim_method), instant_dig=True)


def _claim_menu() -> WindowInfo:
    return WindowInfo(
        window_id=5,
        title="§8Commissions",
        slots=[ItemStack(0, "writable_book", "Commission #1", lore=["Titanium Miner", "", "Click to claim rewards!"])],
    )


def test_mining_commission_claimed_once_done() -> None:
    bot = _bot(" Titanium Miner: §c20%")
    macro = bot.ctx.macros.start(CommissionMacro.name)
    miner = bot.feature(BlockMiner.name)

    bot.tick(2)
    assert macro.machine.state is CommissionMacroState.MINING
    assert macro.commission.name == "Titanium Miner"
    assert miner.core.enabled
    assert miner.block_priority == {TITANIUM: 1}

    assert bot.tick_until(lambda: miner.blocks_mined == 1, max_ticks=20)
    assert macro.machine.state is CommissionMacroState.MINING

    bot.world.tablist = [IN_MINES, "§e§lCommissions:", " Titanium Miner: §aDONE"]
    assert bot.tick_until(lambda: macro.machine.state is CommissionMacroState.CLAIMING, max_ticks=5)
    assert not miner.core.enabled
    assert bot.feature(AutoCommissionClaim.name).core.enabled

    assert bot.tick_until(lambda: bool(bot.adapter.named("activate_item")), max_ticks=100)
    bot.world.open_window = _claim_menu()
    bot.world.tablist = [IN_MINES, "§e§lCommissions:", " Mithril Miner: §c0%"]

    assert bot.tick_until(lambda: macro.commissions_claimed == 1, max_ticks=100)
    assert bot.tick_until(lambda: macro.machine.state is CommissionMacroState.MINING, max_ticks=5)
    assert macro.commission.name == "Mithril Miner"

    counters = bot.ctx.macros.status().counters
    assert counters["commissions_claimed"] == 1
    assert counters["blocks_mined"] == 1
    assert bot.events_of(EventType.MACRO_STATE_CHANGE, CommissionMacro.name)


def test_slayer_commission_starts_mob_killer() -> None:
    bot = _bot(" Goblin Slayer: §c10%", " Mithril Miner: §c50%")
    macro = bot.ctx.macros.start(CommissionMacro.name)

    bot.tick(3)

    killer = bot.feature(AutoMobKiller.name)
    assert macro.machine.state is CommissionMacroState.MOB_KILLING
    assert killer.core.enabled
    assert killer.mobs_to_kill == ["Goblin", "Knifethrower", "Fireslinger"]
    assert not bot.feature(BlockMiner.name).core.enabled


def test_warps_to_the_mines_first() -> None:
    bot = _bot(" Titanium Miner: §c20%", area=None)
    macro = bot.ctx.macros.start(CommissionMacro.name)

    bot.tick()
    assert macro.machine.state is CommissionMacroState.WARPING
    assert bot.tick_until(lambda: "/warp mines" in bot.adapter.chat_messages(), max_ticks=5)

    bot.world.tablist = [IN_MINES, "§e§lCommissions:", " Titanium Miner: §c20%"]
    assert bot.tick_until(lambda: macro.machine.state is CommissionMacroState.MINING, max_ticks=10)


def test_emissary_claim_warps_to_forge() -> None:
    bot = _bot(" Goblin Slayer: §aDONE", claim_method="emissary")
    macro = bot.ctx.macros.start(CommissionMacro.name)

    bot.tick()

    assert macro.machine.state is CommissionMacroState.WARPING
    assert bot.tick_until(lambda: "/warp forge" in bot.adapter.chat_messages(), max_ticks=5)


def test_unknown_commissions_disable_macro() -> None:
    bot = _bot(" Lucky Raffle: §c0%")
    bot.ctx.macros.start(CommissionMacro.name)

    bot.tick(2)

    status = bot.ctx.macros.status()
    assert not status.running
    assert status.last_error == "No supported commission found in the tablist"


def test_session_limit_disables_macro() -> None:
    bot = _bot(" Titanium Miner: §c20%")
    macro = bot.ctx.macros.get(CommissionMacro.name)
    macro.max_commissions = 0
    bot.ctx.macros.start(CommissionMacro.name)

    bot.tick(2)

    assert bot.ctx.macros.status().last_error == "Claimed 0 commissions, stopping for this session"


def test_commission_ranking() -> None:
    progress = {
        "Mithril Miner": 0.5,
        "Royal Mines Titanium": 0.1,
        "Goblin Slayer": 0.2,
        "Glacite Walker Slayer": 1.0,
    }

    assert best_commission(progress).name == "Goblin Slayer"
    del progress["Goblin Slayer"]
    assert best_commission(progress).name == "Royal Mines Titanium"
    assert best_commission({"Glacite Walker Slayer": 1.0}) is None
    assert classify_commission("Lucky Raffle", 0.0) is None
    assert classify_commission("Mines Slayer", 0.3).mobs[-1] == "Glacite Walker"
