# tests/test_block_miner.py
"""
Unit tests for features.block_miner.BlockMiner.

Covers:
- Start preconditions (NO_TARGET_BLOCKS, NO_TOOLS_AVAILABLE)
- Happy path: Starting -> ChoosingBlock -> Breaking -> Starting
- NOT_ENOUGH_BLOCKS after the respawn wait threshold
- Ability retry ceiling (NO_PICKAXE_ABILITY) reached by ticking
- Ability activation confirmed through chat
- Pause/resume keeps the wait clock
"""

from __future__ import annotations

from bot_core.snapshot import BlockState
from bot_core.testing import WorldBuilder
from env.schema import MinerConfig
from features.block_miner import (
    BlockMiner,
    BlockMinerError,
    BlockSpec,
    MinerState,
    PickaxeAbility,
    blocks_for_ore,
)
from monitoring.events import EventType
from tests.fakes.fake_runtime import FakeBot, make_bot

BEDROCK = BlockState(7, "bedrock")
STONE_SPEC = BlockSpec("STONE", (1,))


def _config(use_ability: bool = False) -> MinerConfig:
    config = MinerConfig.default()
    config.general.use_pickaxe_ability = use_ability
    return config


def _bot(with_block: bool = True, use_ability: bool = False) -> FakeBot:
    builder = (
        WorldBuilder()
        .at(0.5, 64, 0.5)
        .floor(63, state=BEDROCK)
        .item(0, "diamond_pickaxe", "Titanium Pickaxe")
    )
    if with_block:
        builder.block((3, 65, 0), 1, "stone")
    return make_bot(builder.build(), _config(use_ability), instant_dig=True)


def _miner(bot: FakeBot) -> BlockMiner:
    return bot.feature(BlockMiner.name)


def _start(bot: FakeBot, priority=(1,), tool: str = "Pickaxe") -> BlockMiner:
    miner = _miner(bot)
    miner.start([STONE_SPEC], 1000, list(priority), tool, world=bot.world)
    return miner


def test_all_zero_priorities_refuse_to_start() -> None:
    bot = _bot()
    miner = _start(bot, priority=(0,))

    assert miner.error is BlockMinerError.NO_TARGET_BLOCKS
    assert not miner.core.enabled
    assert bot.events_of(EventType.FEATURE_STARTED, "BlockMiner") == []


def test_missing_tool_refuses_to_start() -> None:
    bot = _bot()
    miner = _start(bot, tool="Drill")

    assert miner.error is BlockMinerError.NO_TOOLS_AVAILABLE
    assert not miner.core.enabled


def test_mines_single_block_and_returns_to_starting() -> None:
    bot = _bot()
    miner = _start(bot)
    assert miner.core.enabled
    assert miner.state is MinerState.STARTING

    bot.tick(6)

    transitions = [e.payload["to"] for e in bot.events_of(EventType.FEATURE_STATE_CHANGE, "BlockMiner")]
    assert transitions[:3] == ["CHOOSING_BLOCK", "BREAKING", "STARTING"]
    assert bot.world.block_at((3, 65, 0)).is_air
    assert miner.blocks_mined == 1
    assert miner.state is MinerState.STARTING
    assert miner.core.enabled
    assert bot.adapter.named("start_digging")[0].args["coord"] == (3, 65, 0)


def test_no_blocks_times_out_with_not_enough_blocks() -> None:
    bot = _bot(with_block=False)
    miner = _start(bot)

    bot.tick(99)  # 4950ms
    assert miner.core.enabled

    bot.tick(1)  # 5000ms
    assert not miner.core.enabled
    assert miner.error is BlockMinerError.NOT_ENOUGH_BLOCKS
    errors = bot.events_of(EventType.FEATURE_ERROR, "BlockMiner")
    assert errors and errors[-1].payload["error"] == "NOT_ENOUGH_BLOCKS"


def test_ability_ceiling_reached_when_tool_leaves_hotbar() -> None:
    builder = (
        WorldBuilder()
        .at(0.5, 64, 0.5)
        .floor(63, state=BEDROCK)
        .item(0, "diamond_pickaxe", "Titanium Pickaxe")
        .block((3, 65, 0), 1, "stone")
        .block((0, 65, 3), 1, "stone")
    )
    bot = make_bot(builder.build(), _config(use_ability=True), instant_dig=True)
    miner = _start(bot)
    bot.world.inventory = []

    bot.tick()  # STARTING -> APPLY_ABILITY
    bot.tick()  # no tool to activate with -> STARTING
    assert miner.retry_activate_ability == 2

    bot.tick()  # detour refused at the retry limit, still counted
    assert miner.state is MinerState.CHOOSING_BLOCK
    assert miner.retry_activate_ability == 3

    assert bot.tick_until(lambda: not miner.core.enabled, max_ticks=40)
    assert miner.error is BlockMinerError.NO_PICKAXE_ABILITY
    assert miner.blocks_mined == 1
    assert bot.adapter.named("activate_item") == []


def test_chat_confirmation_resets_ability_retries() -> None:
    bot = _bot(use_ability=True)
    miner = _start(bot)

    bot.tick()  # STARTING -> APPLY_ABILITY
    assert miner.retry_activate_ability == 1

    bot.chat("§aYou used your §6Mining Speed Boost §aPickaxe Ability!")

    assert miner.retry_activate_ability == 0
    assert miner.core.enabled


def test_ability_confirmed_by_chat_then_mines() -> None:
    bot = _bot(use_ability=True)
    miner = _start(bot)

    bot.tick()  # STARTING -> APPLY_ABILITY
    assert miner.state is MinerState.APPLY_ABILITY
    bot.tick()  # activates
    assert len(bot.adapter.named("activate_item")) == 1

    bot.chat("§aYou used your §6Mining Speed Boost §aPickaxe Ability!")
    assert miner.pickaxe_ability is PickaxeAbility.UNAVAILABLE

    bot.tick()
    assert miner.state is MinerState.CHOOSING_BLOCK

    bot.chat("Mining Speed Boost is now available!")
    assert miner.pickaxe_ability is PickaxeAbility.AVAILABLE


def test_pause_keeps_wait_clock() -> None:
    bot = _bot(with_block=False)
    miner = _start(bot)

    bot.tick(60)  # 3000ms of the 5000ms wait
    miner.pause()
    bot.tick(200)  # paused features are not ticked
    miner.resume()

    bot.tick(1)
    assert miner.core.enabled
    assert bot.tick_until(lambda: not miner.core.enabled, max_ticks=50)
    assert miner.error is BlockMinerError.NOT_ENOUGH_BLOCKS


def test_blocks_for_ore() -> None:
    assert [b.name for b in blocks_for_ore("mithril")] == [
        "GRAY_MITHRIL",
        "GREEN_MITHRIL",
        "BLUE_MITHRIL",
        "TITANIUM",
    ]
    assert [b.name for b in blocks_for_ore("diamond")] == ["DIAMOND"]
    assert blocks_for_ore("unobtainium") == []
