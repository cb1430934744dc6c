# tests/test_auto_drill_refuel.py
"""
Unit tests for features.auto_drill_refuel.

Covers:
- Fuel level parsing from drill lore
- Fuel choice honours the configured machine fuel
- Start preconditions (drill, need, fuel, Abiphone, cooldown)
- The Abiphone -> Greatforge -> Drill Anvil click flow
- Timeouts retry from the start and give up at the retry ceiling
"""

from __future__ import annotations

from typing import List, Optional

from bot_core.snapshot import ItemStack, WindowInfo
from bot_core.testing import WorldBuilder
from features.auto_drill_refuel import (
    AutoDrillRefuel,
    FuelType,
    RefuelError,
    RefuelState,
    best_fuel,
    drill_fuel_percent,
)
from tests.fakes.fake_runtime import FakeBot, make_bot

DRILL = "Mithril Drill SX-R226"


def _drill(fuel: str = "100/3,000") -> ItemStack:
    return ItemStack(slot=0, name="prismarine_shard", display_name=f"§5{DRILL}", lore=[f"§7Fuel: §2{fuel}"])


def _bot(fuel: str = "100/3,000", abiphone: bool = True, fuels=("Volta",)) -> FakeBot:
    builder = WorldBuilder().at(0.5, 64, 0.5).floor(63)
    drill = _drill(fuel)
    builder.item(0, drill.name, drill.display_name, lore=drill.lore)
    if abiphone:
        builder.item(1, "player_head", "§aAbiphone XII Mega")
    for offset, name in enumerate(fuels):
        builder.item(10 + offset, "player_head", name)
    return make_bot(builder.build())


def _refuel(bot: FakeBot) -> AutoDrillRefuel:
    return bot.feature(AutoDrillRefuel.name)


def _window(title: str, named: dict) -> WindowInfo:
    slots: List[Optional[ItemStack]] = [None] * 60
    for index, stack in named.items():
        slots[index] = stack
    return WindowInfo(window_id=2, title=title, slots=slots)


def test_fuel_percent_from_lore() -> None:
    assert drill_fuel_percent(_drill("2,500/3k")) == 2500 / 3000 * 100
    assert drill_fuel_percent(_drill("0/3,000")) == 0.0
    assert drill_fuel_percent(ItemStack(slot=0, name="drill", lore=["Breaking Power 9"])) is None


def test_best_fuel_prefers_configured() -> None:
    world = _bot(fuels=("Volta", "Oil Barrel")).world

    assert best_fuel(world) is FuelType.VOLTA
    assert best_fuel(world, FuelType.OIL_BARREL) is FuelType.OIL_BARREL
    assert best_fuel(_bot(fuels=()).world) is None
    assert FuelType.by_name(" biofuel ") is FuelType.BIOFUEL


def test_start_preconditions() -> None:
    refuel = _refuel(_bot(fuel="2,900/3,000"))
    assert refuel.start() is False
    assert refuel.error is RefuelError.NONE
    assert refuel.needs_refuel() is False

    refuel = _refuel(_bot(fuels=()))
    assert refuel.start() is False
    assert refuel.error is RefuelError.NO_FUEL

    refuel = _refuel(_bot(abiphone=False))
    assert refuel.start() is False
    assert refuel.error is RefuelError.NO_ABIPHONE

    bot = make_bot(WorldBuilder().at(0.5, 64, 0.5).build())
    refuel = _refuel(bot)
    assert refuel.start() is False
    assert refuel.error is RefuelError.NO_DRILL


def test_full_refuel_flow() -> None:
    bot = _bot()
    refuel = _refuel(bot)
    assert refuel.needs_refuel()
    assert refuel.start() is True
    assert refuel.fuel is FuelType.VOLTA

    bot.tick()
    assert refuel.state is RefuelState.ABIPHONE
    assert bot.world.held_slot == 1
    assert len(bot.adapter.named("activate_item")) == 1

    bot.world.open_window = _window(
        "§8Abiphone XII Mega",
        {3: ItemStack(slot=3, name="player_head", display_name="§6Greatforge")},
    )
    bot.tick()
    assert refuel.state is RefuelState.GREATFORGE
    assert bot.adapter.named("click_window")[-1].args["slot"] == 3

    bot.world.open_window = _window(
        "Drill Anvil",
        {
            22: ItemStack(slot=22, name="anvil", display_name="§aDrill Anvil"),
            54: _drill(),
            58: ItemStack(slot=58, name="player_head", display_name="Volta"),
        },
    )
    bot.tick()
    assert refuel.state is RefuelState.REFUELING

    assert bot.tick_until(lambda: not refuel.core.enabled, max_ticks=60)
    assert refuel.succeeded()

    clicks = [(c.args["slot"], c.args["mode"]) for c in bot.adapter.named("click_window")]
    assert clicks == [(3, 0), (54, 1), (58, 1), (22, 0)]
    assert bot.world.open_window is None

    # Cooldown blocks an immediate second refuel.
    assert refuel.start() is False


def test_missing_contact_retries() -> None:
    bot = _bot()
    refuel = _refuel(bot)
    refuel.start()
    bot.tick()

    bot.world.open_window = _window("Abiphone XII Mega", {})
    bot.tick()

    assert refuel.retries == 1
    assert refuel.error is RefuelError.NO_GREATFORGE_CONTACT
    assert refuel.state is RefuelState.STARTING
    assert refuel.core.enabled


def test_timeouts_give_up_after_retries() -> None:
    bot = _bot()
    refuel = _refuel(bot)
    refuel.start()

    # The Abiphone never opens a window.
    assert bot.tick_until(lambda: not refuel.core.enabled, max_ticks=600)

    assert refuel.retries == refuel.max_retries
    assert refuel.error is RefuelError.TIMEOUT
    assert len(bot.adapter.named("activate_item")) == refuel.max_retries
