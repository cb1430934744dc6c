# tests/test_mining_macro.py
"""
Unit tests for macros.mining_macro.MiningMacro.

Covers:
- Configured mining speed goes straight to MINING and starts BlockMiner
- Mining speed 0 reads stats through AutoInventory first
- Fatal BlockMiner errors disable the macro with a readable reason
- Priority list built from the mithril toggles
"""

from __future__ import annotations

from bot_core.snapshot import BlockState, ItemStack, WindowInfo
from bot_core.testing import WorldBuilder
from env.schema import MinerConfig
from features.block_miner import BlockMiner, BlockMinerError
from macros.mining_macro import FATAL_MINER_ERRORS, MiningMacro, MiningMacroState
from monitoring.events import EventType
from tests.fakes.fake_runtime import make_bot

BEDROCK = BlockState(7, "bedrock")


def _config(ore: str = "diamond", speed: int = 1000) -> MinerConfig:
    config = MinerConfig.default()
    config.mining.ore_type = ore
    config.general.mining_speed = speed
    config.general.use_pickaxe_ability = False
    return config


def _world(with_block: bool = True):
    builder = (
        WorldBuilder()
        .at(0.5, 64, 0.5)
        .floor(63, state=BEDROCK)
        .item(0, "diamond_pickaxe", "Titanium Pickaxe")
    )
    if with_block:
        builder.block((3, 65, 0), 57, "diamond_block")
    return builder.build()


def test_configured_speed_starts_miner() -> None:
    bot = make_bot(_world(), _config(), instant_dig=True)
    macro = bot.ctx.macros.start(MiningMacro.name)

    bot.tick(2)

    assert macro.current_state() == "MINING"
    miner = bot.feature(BlockMiner.name)
    assert miner.core.enabled
    assert miner.block_priority == {57: 1}

    bot.tick(6)
    assert miner.blocks_mined == 1
    assert bot.ctx.macros.status().counters == {"blocks_mined": 1}


def test_zero_speed_reads_stats_first() -> None:
    bot = make_bot(_world(), _config(speed=0), instant_dig=True)
    macro = bot.ctx.macros.start(MiningMacro.name)

    bot.tick()
    assert macro.machine.state is MiningMacroState.GETTING_STATS
    assert "/sbmenu" in bot.adapter.chat_messages()

    stats = ItemStack(0, "diamond_pickaxe", "Mining Stats", lore=["Mining Speed: 1,234"])
    bot.world.open_window = WindowInfo(window_id=2, title="Your Stats", slots=[stats])

    assert bot.tick_until(lambda: macro.machine.state is MiningMacroState.MINING, max_ticks=10)
    assert macro.mining_speed == 1234


def test_not_enough_blocks_disables_macro() -> None:
    bot = make_bot(_world(with_block=False), _config())
    bot.ctx.macros.start(MiningMacro.name)

    assert bot.tick_until(lambda: not bot.ctx.macros.is_running(), max_ticks=200)

    status = bot.ctx.macros.status()
    assert status.last_error == FATAL_MINER_ERRORS[BlockMinerError.NOT_ENOUGH_BLOCKS]
    assert not bot.feature(BlockMiner.name).core.enabled
    assert bot.events_of(EventType.MACRO_DISABLED, "MiningMacro")


def test_unknown_ore_disables_with_no_target_blocks() -> None:
    bot = make_bot(_world(), _config(ore="unobtainium"))
    bot.ctx.macros.start(MiningMacro.name)

    bot.tick(4)

    status = bot.ctx.macros.status()
    assert not status.running
    assert status.last_error == FATAL_MINER_ERRORS[BlockMinerError.NO_TARGET_BLOCKS]


def test_mithril_priority_follows_toggles() -> None:
    config = _config(ore="mithril")
    config.mining.mine_green_mithril = False
    bot = make_bot(_world(), config)
    macro = bot.ctx.macros.get(MiningMacro.name)

    assert macro.determine_priority() == [1, 0, 1, 1]
