# tests/test_auto_inventory.py
"""
Unit tests for features.auto_inventory.AutoInventory.

Covers:
- Stats read from the profile menu (menu command, stats entry click, lore parse)
- Retry ceiling -> STATS_UNAVAILABLE
- Moving required items into the hotbar
- Dropping junk when organizing
"""

from __future__ import annotations

from bot_core.snapshot import ItemStack, WindowInfo
from bot_core.testing import WorldBuilder
from features.auto_inventory import MENU_COMMAND, AutoInventory, InventoryError
from tests.fakes.fake_runtime import make_bot


def _inventory(bot) -> AutoInventory:
    return bot.feature(AutoInventory.name)


def test_reads_stats_from_menu() -> None:
    bot = make_bot(WorldBuilder().build())
    inv = _inventory(bot)
    inv.retrieve_stats()

    bot.tick()
    assert bot.adapter.chat_messages() == [MENU_COMMAND]

    menu = WindowInfo(window_id=1, title="SkyBlock Menu", slots=[None, ItemStack(1, "skull", "Your Stats")])
    bot.world.open_window = menu
    bot.tick()
    assert bot.adapter.named("click_window")[-1].args["slot"] == 1

    bot.world.open_window = WindowInfo(
        window_id=2,
        title="Your Stats",
        slots=[
            ItemStack(0, "diamond_pickaxe", "Mining Stats", lore=["§6⸕ Mining Speed §f1,450"]),
            ItemStack(1, "emerald", "Heart of the Mountain", lore=["Level: 7", "Mithril Powder: 12,000"]),
            ItemStack(2, "book", "Commissions", lore=["Commission Slots: 3/4"]),
        ],
    )
    assert bot.tick_until(lambda: not inv.core.enabled, max_ticks=5)

    assert inv.succeeded
    assert inv.error is InventoryError.NONE
    assert inv.mining_speed == 1450
    assert inv.hotm_level == 7
    assert inv.powder == {"Mithril": 12000}
    assert inv.commission_slots == (3, 4)
    assert bot.adapter.named("close_window")


def test_gives_up_after_max_attempts() -> None:
    bot = make_bot(WorldBuilder().build())
    inv = _inventory(bot)
    inv.retrieve_stats()

    assert bot.tick_until(lambda: not inv.core.enabled, max_ticks=200)

    assert inv.error is InventoryError.STATS_UNAVAILABLE
    assert not inv.succeeded
    assert bot.adapter.chat_messages() == [MENU_COMMAND] * inv.max_attempts


def test_moves_required_items_to_hotbar_and_drops_junk() -> None:
    world = (
        WorldBuilder()
        .item(0, "diamond_pickaxe", "Pickaxe")
        .item(20, "feather", "Royal Pigeon")
        .item(21, "cobblestone", "Cobblestone", count=64)
        .build()
    )
    bot = make_bot(world)
    inv = _inventory(bot)
    inv.start(retrieve_stats=False, organize=True, required_items=["Royal Pigeon", "Abiphone"])

    bot.tick(3)

    swap = bot.adapter.named("click_window")[0].args
    assert swap == {"slot": 20, "button": 1, "mode": 2}
    assert [c.args["slot"] for c in bot.adapter.named("drop_slot")] == [21]
    assert inv.succeeded
